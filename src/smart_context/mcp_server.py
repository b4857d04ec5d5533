# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""MCP Server Protocol Layer for the Smart Context Engine.

This module implements the MCP protocol layer with ZERO business logic.
All business logic is delegated to ContextEngineService.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.session import ServerSession

from smart_context.config import Config
from smart_context.edit_optimizer import EditBelowThresholdError
from smart_context.logging_setup import setup_logging
from smart_context.service import ContextEngineService

logger = logging.getLogger(__name__)

TOOL_NAMES = (
    "select_context",
    "analyze_edit",
    "optimize_edit",
    "validate_edit",
    "get_dependency_graph",
    "get_statistics",
)


class SmartContextMCPServer:
    """MCP Protocol Layer for the Smart Context Engine.

    Responsibilities:
    - Initialize MCP server and register tools
    - Translate MCP requests to service calls
    - Format service responses as MCP tool results
    - Handle MCP server lifecycle

    This layer contains ZERO business logic. Context selection, edit
    optimization and validation reside in ContextEngineService.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        service: Optional[ContextEngineService] = None,
    ):
        """Initialize MCP server.

        Args:
            config: Configuration object. If None, loads from default location.
            service: Service layer instance. If None, creates default service.
        """
        if config is None:
            config = Config()
        self.config = config

        if service is None:
            service = ContextEngineService(config=config)
        self.service = service

        self.mcp = FastMCP(name="smart-context-engine")

        self._register_tools()

        logger.info("SmartContextMCPServer initialized")

    def _register_tools(self) -> None:
        """Register MCP tools with the server."""

        @self.mcp.tool()
        async def select_context(
            prompt: str,
            project_root: str,
            ctx: Context[ServerSession, None],
            available_files: Optional[List[str]] = None,
            sensitivity: Optional[str] = None,
            max_tokens: Optional[int] = None,
            dependency_depth: Optional[int] = None,
        ) -> Dict[str, Any]:
            """Select the project files most relevant to a request within a token budget.

            Args:
                prompt: Natural-language request
                project_root: Project root directory
                ctx: MCP context for logging and progress
                available_files: Project-relative paths that may be selected
                    (default: all project files)
                sensitivity: conservative, balanced or aggressive
                max_tokens: Token budget for the selected files
                dependency_depth: Dependency hops followed from each match

            Returns:
                Dictionary with selected_files, total_tokens, relevance_ratio,
                processing_time_ms and used_fallback.
            """
            await ctx.info(f"Selecting context in {project_root}")

            try:
                result = self.service.select_context(
                    prompt,
                    project_root,
                    available_files=available_files,
                    sensitivity=sensitivity,
                    max_tokens=max_tokens,
                    dependency_depth=dependency_depth,
                )
                await ctx.info(
                    f"Selected {len(result.selected_files)} files ({result.total_tokens} tokens)"
                )
                return result.to_dict()

            except Exception as e:
                await ctx.error(f"Error selecting context: {e}")
                raise

        @self.mcp.tool()
        async def analyze_edit(
            prompt: str,
            file_path: str,
            file_content: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Estimate the complexity of an edit request and suggest a strategy.

            Args:
                prompt: The edit request
                file_path: Project-relative path of the file to edit
                file_content: Current content of the file
                ctx: MCP context for logging and progress

            Returns:
                Dictionary with complexity, confidence, estimated_tokens,
                reasoning and suggested_strategy.
            """
            await ctx.info(f"Analyzing edit of {file_path}")

            try:
                analysis = self.service.analyze_edit(prompt, file_path, file_content)
                return analysis.to_dict()

            except Exception as e:
                await ctx.error(f"Error analyzing edit of {file_path}: {e}")
                raise

        @self.mcp.tool()
        async def optimize_edit(
            prompt: str,
            file_path: str,
            file_content: str,
            ctx: Context[ServerSession, None],
            context: Optional[List[str]] = None,
        ) -> Dict[str, Any]:
            """Build an optimized prompt, strategy and checklist for an edit request.

            Args:
                prompt: The edit request
                file_path: Project-relative path of the file to edit
                file_content: Current content of the file
                ctx: MCP context for logging and progress
                context: Additional context lines for the prompt

            Returns:
                Dictionary with optimized=True and the optimized edit, or
                optimized=False with the reason when the edit is below the
                configured complexity threshold.
            """
            await ctx.info(f"Optimizing edit of {file_path}")

            try:
                optimized = self.service.optimize_edit(prompt, file_path, file_content, context)
                response: Dict[str, Any] = {"optimized": True}
                response.update(optimized.to_dict())
                return response

            except EditBelowThresholdError as e:
                await ctx.info(str(e))
                return {
                    "optimized": False,
                    "complexity": e.complexity,
                    "threshold": e.threshold,
                    "message": str(e),
                }
            except Exception as e:
                await ctx.error(f"Error optimizing edit of {file_path}: {e}")
                raise

        @self.mcp.tool()
        async def validate_edit(
            original_content: str,
            edited_content: str,
            file_path: str,
            ctx: Context[ServerSession, None],
            validation_level: Optional[str] = None,
        ) -> Dict[str, Any]:
            """Validate generated file content against the original.

            Args:
                original_content: File content before the edit
                edited_content: File content after the edit
                file_path: Project-relative path of the edited file
                ctx: MCP context for logging and progress
                validation_level: basic, enhanced or strict (default: enhanced)

            Returns:
                Dictionary with syntax_valid, structure_intact,
                potential_issues, confidence and per-rule results.
            """
            await ctx.info(f"Validating edit of {file_path}")

            try:
                validation = self.service.validate_edit(
                    original_content, edited_content, file_path, validation_level
                )
                return validation.to_dict()

            except Exception as e:
                await ctx.error(f"Error validating edit of {file_path}: {e}")
                raise

        @self.mcp.tool()
        async def get_dependency_graph(
            project_root: str,
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Export the dependency graph of a project with its complexity summary.

            Args:
                project_root: Project root directory
                ctx: MCP context for logging and progress

            Returns:
                Dictionary with graph (nodes, edges, weights), complexity,
                valid and problems.
            """
            await ctx.info(f"Exporting dependency graph of {project_root}")

            try:
                response = self.service.get_dependency_graph(project_root)
                await ctx.info(
                    f"Graph exported: {response['complexity']['total_files']} files, "
                    f"{response['complexity']['total_dependencies']} dependencies"
                )
                return response

            except Exception as e:
                await ctx.error(f"Error exporting dependency graph: {e}")
                raise

        @self.mcp.tool()
        async def get_statistics(
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Report usage metrics, cache statistics and template counts.

            Args:
                ctx: MCP context for logging and progress
            """
            await ctx.info("Collecting statistics")
            return self.service.get_statistics()

        logger.info(f"MCP tools registered: {', '.join(TOOL_NAMES)}")

    def run(self, transport: str = "stdio") -> None:
        """Run the MCP server.

        Args:
            transport: Transport type to use. Options:
                - "stdio": Standard input/output (default)
                - "streamable-http": HTTP transport
                - "sse": Server-sent events transport
        """
        logger.info(f"Starting MCP server with {transport} transport")
        self.mcp.run(transport=transport)  # type: ignore[arg-type]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Smart Context Engine MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file. Default: ./.smart_context.yml",
    )
    parser.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "streamable-http", "sse"],
        default="stdio",
        help="Transport type for MCP server. Default: stdio",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for JSON log files. Default: ./.smart_context_logs",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level. Default: INFO",
    )
    return parser.parse_args(argv)


def main() -> None:
    """Main entry point for MCP server.

    Initializes structured logging and starts the server.
    """
    args = parse_args()

    log_file = setup_logging(log_dir=args.log_dir, log_level=args.log_level)

    server = SmartContextMCPServer(config=Config(args.config))
    logger.info(f"Logging to {log_file}")
    server.run(transport=args.transport)


if __name__ == "__main__":
    main()
