# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Smart Context Engine: context selection and edit strategy for LLM coding requests."""

from .cache import AnalysisCache
from .config import Config, ConfigurationError
from .context_optimizer import ContextOptimizer, create_context_optimizer
from .edit_optimizer import EditBelowThresholdError, EditOptimizer, create_edit_optimizer
from .edit_validator import EditValidator
from .file_access import FileAccess, LocalFileAccess
from .graph_builder import DependencyGraphBuilder, GraphBuildError
from .metrics_collector import MetricsCollector
from .service import ContextEngineService

__version__ = "0.1.0"

__all__ = [
    "AnalysisCache",
    "Config",
    "ConfigurationError",
    "ContextOptimizer",
    "create_context_optimizer",
    "EditOptimizer",
    "EditBelowThresholdError",
    "create_edit_optimizer",
    "EditValidator",
    "FileAccess",
    "LocalFileAccess",
    "DependencyGraphBuilder",
    "GraphBuildError",
    "MetricsCollector",
    "ContextEngineService",
]

# Conditional import for MCP server (requires the mcp package)
try:
    from .mcp_server import SmartContextMCPServer

    __all__.append("SmartContextMCPServer")
except ImportError:
    pass
