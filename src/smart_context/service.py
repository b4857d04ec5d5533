# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""ContextEngineService - business logic layer for the MCP server.

The service owns configuration, the shared analysis cache, file access,
metrics and every engine component, and is the single entry point for
callers:

- Context selection: dependency graph + semantic matches + token budget
- Edit analysis and optimized edit prompts
- Validation of generated edits
- Dependency graph queries and usage statistics

Per-request parameters are validated here; invalid ones raise
ConfigurationError or ValueError before any engine work starts.
"""

import logging
import math
import os
import time
from typing import Any, Dict, List, Optional, Sequence

from smart_context.cache import AnalysisCache, dependency_graph_key
from smart_context.config import Config, ConfigurationError
from smart_context.context_optimizer import CHARS_PER_TOKEN, create_context_optimizer
from smart_context.edit_optimizer import EditBelowThresholdError, create_edit_optimizer
from smart_context.edit_templates import TemplateProvider
from smart_context.file_access import FileAccess, LocalFileAccess
from smart_context.graph_builder import analyze_dependency_complexity
from smart_context.metrics_collector import MetricsCollector
from smart_context.models import (
    ContextOptimization,
    DependencyGraph,
    EditAnalysis,
    EditValidation,
    OptimizedEdit,
    Sensitivity,
    SmartContextConfig,
    ValidationLevel,
)

logger = logging.getLogger(__name__)

# Security constants
_MAX_FILEPATH_LENGTH = 4096


class ContextEngineService:
    """Business logic coordinator for context selection and edit optimization.

    Owned Components:
    - ContextOptimizer: graph building, semantic matching, budgeted selection
    - EditOptimizer: complexity classification, strategy, templates, validation
    - AnalysisCache: shared by every component, keyed per namespace
    - MetricsCollector: in-process usage counters
    """

    def __init__(
        self,
        config: Config,
        cache: Optional[AnalysisCache] = None,
        file_access: Optional[FileAccess] = None,
        template_provider: Optional[TemplateProvider] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ):
        """Initialize the service with its dependencies.

        Args:
            config: Loaded configuration.
            cache: Shared analysis cache (default: a new cache).
            file_access: File access backend (default: LocalFileAccess).
            template_provider: Edit template source (default: the built-in set).
            metrics_collector: Metrics sink (default: a new collector).
        """
        self.config = config
        self.cache = cache if cache is not None else AnalysisCache()
        self.file_access = file_access if file_access is not None else LocalFileAccess()

        self._context_optimizer = create_context_optimizer(config, self.cache, self.file_access)
        self._edit_optimizer = create_edit_optimizer(config, self.cache, template_provider)

        self._metrics_collector = (
            metrics_collector if metrics_collector is not None else MetricsCollector()
        )
        self._metrics_collector.set_configuration(
            {
                key: value
                for key, value in config.to_dict().items()
                if key not in ("include_patterns", "exclude_patterns")
            }
        )

        logger.info(
            f"ContextEngineService initialized (sensitivity={config.smart_context_sensitivity}, "
            f"max_tokens={config.smart_context_max_tokens}, "
            f"threshold={config.turbo_edits_complexity_threshold})"
        )

    def _validate_filepath(self, filepath: str) -> None:
        """Validate a project-relative filepath.

        Raises:
            ValueError: If the path is empty, contains control characters,
                is too long, or traverses out of the project.
        """
        if not filepath:
            raise ValueError("Filepath must not be empty")

        if any(ord(c) < 32 and c not in ("\t", "\n", "\r") for c in filepath):
            raise ValueError("Invalid characters in filepath")

        if len(filepath) > _MAX_FILEPATH_LENGTH:
            raise ValueError(f"Filepath too long: {len(filepath)} > {_MAX_FILEPATH_LENGTH}")

        if "/.." in filepath or filepath.startswith("..") or "\\.." in filepath:
            raise ValueError("Path traversal not allowed")

    def _request_config(
        self,
        sensitivity: Optional[str],
        max_tokens: Optional[int],
        dependency_depth: Optional[int],
    ) -> SmartContextConfig:
        """Merge per-request overrides into the configured defaults.

        Raises:
            ConfigurationError: If an override is invalid.
        """
        base = self.config.smart_context_config()

        if sensitivity is not None and sensitivity not in Sensitivity.ALL:
            raise ConfigurationError(
                f"Invalid sensitivity '{sensitivity}', expected one of {', '.join(Sensitivity.ALL)}"
            )
        if max_tokens is not None and (
            not isinstance(max_tokens, int) or isinstance(max_tokens, bool) or max_tokens < 0
        ):
            raise ConfigurationError(f"max_tokens must be a non-negative integer, got {max_tokens!r}")
        if dependency_depth is not None and (
            not isinstance(dependency_depth, int)
            or isinstance(dependency_depth, bool)
            or dependency_depth < 0
        ):
            raise ConfigurationError(
                f"dependency_depth must be a non-negative integer, got {dependency_depth!r}"
            )

        return SmartContextConfig(
            sensitivity=sensitivity if sensitivity is not None else base.sensitivity,
            max_tokens=max_tokens if max_tokens is not None else base.max_tokens,
            dependency_depth=(
                dependency_depth if dependency_depth is not None else base.dependency_depth
            ),
        )

    def list_project_files(self, project_root: str) -> List[str]:
        """List the project files matching the configured include/exclude patterns.

        Raises:
            OSError: If project_root cannot be enumerated.
        """
        return self.file_access.list_files(
            os.path.abspath(project_root),
            self.config.include_patterns,
            self.config.exclude_patterns,
        )

    def _offered_tokens(self, root: str, files: Sequence[str]) -> int:
        total = 0
        for path in files:
            try:
                total += math.ceil(self.file_access.stat(root, path).size / CHARS_PER_TOKEN)
            except OSError:
                continue
        return total

    def select_context(
        self,
        prompt: str,
        project_root: str,
        available_files: Optional[Sequence[str]] = None,
        sensitivity: Optional[str] = None,
        max_tokens: Optional[int] = None,
        dependency_depth: Optional[int] = None,
    ) -> ContextOptimization:
        """Select the files to send to a language model for a prompt.

        Args:
            prompt: Natural-language request.
            project_root: Project root directory.
            available_files: Project-relative paths the caller may send
                (default: every project file matching the configured patterns).
            sensitivity: Override of smart_context_sensitivity.
            max_tokens: Override of smart_context_max_tokens.
            dependency_depth: Override of smart_context_dependency_depth.

        Returns:
            ContextOptimization. Engine failures yield the conservative fallback.

        Raises:
            ConfigurationError: If an override is invalid.
        """
        request_config = self._request_config(sensitivity, max_tokens, dependency_depth)
        root = os.path.abspath(project_root)

        if available_files is None:
            try:
                files = self.list_project_files(root)
            except OSError as e:
                logger.warning(f"Cannot list files of {root}: {e}")
                files = []
        else:
            files = [str(path) for path in available_files]

        result = self._context_optimizer.select_context(prompt, root, files, request_config)
        self._metrics_collector.record_context_selection(
            result, len(files), self._offered_tokens(root, files)
        )
        return result

    def analyze_edit(self, prompt: str, file_path: str, file_content: str) -> EditAnalysis:
        """Classify an edit request and suggest its strategy.

        Raises:
            ValueError: If file_path is invalid.
        """
        self._validate_filepath(file_path)
        return self._edit_optimizer.analyze(prompt, file_path, file_content)

    def optimize_edit(
        self,
        prompt: str,
        file_path: str,
        file_content: str,
        context: Optional[List[str]] = None,
    ) -> OptimizedEdit:
        """Build the optimized edit prompt for a request.

        Raises:
            ValueError: If file_path is invalid.
            EditBelowThresholdError: If the edit is below the complexity threshold.
        """
        self._validate_filepath(file_path)
        start_time = time.time()

        try:
            optimized = self._edit_optimizer.generate_optimized_edit(
                prompt, file_path, file_content, context
            )
        except EditBelowThresholdError:
            self._metrics_collector.record_skipped_edit()
            raise

        self._metrics_collector.record_edit(optimized, (time.time() - start_time) * 1000)
        return optimized

    def validate_edit(
        self,
        original_content: str,
        edited_content: str,
        file_path: str,
        validation_level: Optional[str] = None,
    ) -> EditValidation:
        """Validate a generated edit.

        Args:
            original_content: File content before the edit.
            edited_content: File content after the edit.
            file_path: Project-relative path of the edited file.
            validation_level: basic, enhanced or strict (default: enhanced).

        Raises:
            ValueError: If file_path or validation_level is invalid.
        """
        self._validate_filepath(file_path)
        level = validation_level if validation_level is not None else ValidationLevel.ENHANCED
        if level not in ValidationLevel.ORDER:
            raise ValueError(
                f"Invalid validation level '{level}', "
                f"expected one of {', '.join(ValidationLevel.ORDER)}"
            )

        validation = self._edit_optimizer.validate_at_level(
            original_content, edited_content, file_path, level
        )
        self._metrics_collector.record_validation(validation)
        return validation

    def build_dependency_graph(self, project_root: str) -> DependencyGraph:
        """Rebuild the dependency graph of a project and replace the cached one.

        Raises:
            GraphBuildError: If the project cannot be enumerated.
        """
        root = os.path.abspath(project_root)
        optimizer = self._context_optimizer
        graph = optimizer.graph_builder.build_graph(root, optimizer.build_options)
        self.cache.put(dependency_graph_key(root), graph)
        return graph

    def get_dependency_graph(self, project_root: str) -> Dict[str, Any]:
        """Get the (cached) dependency graph of a project with its complexity summary.

        Raises:
            GraphBuildError: If the graph has to be built and the project
                cannot be enumerated.
        """
        graph = self._context_optimizer.get_dependency_graph(os.path.abspath(project_root))
        is_valid, problems = graph.validate()
        return {
            "graph": graph.to_dict(),
            "complexity": analyze_dependency_complexity(graph).to_dict(),
            "valid": is_valid,
            "problems": problems,
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Get usage metrics and cache statistics."""
        return {
            "metrics": self._metrics_collector.get_metrics().to_dict(),
            "cache": self.cache.get_statistics().to_dict(),
            "templates": self._edit_optimizer.template_provider.statistics(),
        }

    def clear_caches(self) -> None:
        """Drop every cached graph, match set, analysis and strategy."""
        self._context_optimizer.clear_caches()
        self._edit_optimizer.clear_caches()
        logger.info("Analysis caches cleared")
