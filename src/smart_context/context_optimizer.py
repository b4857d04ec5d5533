# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Token-budgeted context selection.

Selection Workflow:
1. Get the project's dependency graph (cache, else build)
2. Get the prompt's semantic matches over the available files (cache, else match)
3. Seed with matches scoring above the sensitivity threshold
4. Expand each seed with its dependencies up to dependency_depth hops
5. Keep only available files
6. Admit candidates greedily by relevance per token until the budget is spent

Step 6 is a greedy approximation of the 0/1 knapsack problem: it is not
optimal, but it is deterministic (ties broken by path) and linear after the
sort.

Any unexpected failure falls back to a small fixed selection of entry-point
files, so select_context never raises.
"""

import logging
import math
import posixpath
import time
from typing import Dict, Iterable, List, Optional, Sequence

from smart_context.cache import (
    AnalysisCache,
    CacheNamespace,
    dependency_graph_key,
    semantic_matches_key,
)
from smart_context.config import Config
from smart_context.file_access import FileAccess, LocalFileAccess
from smart_context.graph_builder import DependencyGraphBuilder, GraphBuildOptions
from smart_context.models import (
    ContextOptimization,
    DependencyGraph,
    SemanticMatch,
    Sensitivity,
    SmartContextConfig,
)
from smart_context.semantic_matcher import SemanticMatcher

logger = logging.getLogger(__name__)

SENSITIVITY_THRESHOLDS: Dict[str, float] = {
    Sensitivity.CONSERVATIVE: 0.8,
    Sensitivity.BALANCED: 0.6,
    Sensitivity.AGGRESSIVE: 0.4,
}
DEFAULT_SEMANTIC_THRESHOLD = 0.6

CHARS_PER_TOKEN = 4
UNREADABLE_FILE_TOKENS = 1000

# Extension -> relevance prior used for budget admission
EXTENSION_SCORES: Dict[str, float] = {
    ".ts": 1.0,
    ".tsx": 1.0,
    ".js": 0.9,
    ".jsx": 0.9,
    ".py": 0.9,
    ".java": 0.8,
    ".cpp": 0.8,
    ".c": 0.8,
    ".cs": 0.8,
    ".json": 0.7,
    ".md": 0.5,
    ".txt": 0.3,
}
DEFAULT_EXTENSION_SCORE = 0.5

FALLBACK_MAX_FILES = 5
FALLBACK_TOKENS_PER_FILE = 500
FALLBACK_RELEVANCE_RATIO = 0.5
FALLBACK_NAME_MARKERS = ("index", "main", "app")


def semantic_threshold(sensitivity: str) -> float:
    """Minimum semantic score for a file to seed the selection."""
    return SENSITIVITY_THRESHOLDS.get(sensitivity, DEFAULT_SEMANTIC_THRESHOLD)


def estimate_tokens(content: str) -> int:
    """Approximate token count of a text (1 token ~ 4 characters)."""
    return math.ceil(len(content) / CHARS_PER_TOKEN)


class ContextOptimizer:
    """Selects the files to hand to a language model for a prompt.

    Graphs and semantic matches are memoized in the injected AnalysisCache
    under the project path and (prompt, file set) keys.

    Usage:
        optimizer = ContextOptimizer(SmartContextConfig(max_tokens=8000))
        result = optimizer.select_context(prompt, "/path/to/project", files)
    """

    def __init__(
        self,
        config: Optional[SmartContextConfig] = None,
        cache: Optional[AnalysisCache] = None,
        file_access: Optional[FileAccess] = None,
        graph_builder: Optional[DependencyGraphBuilder] = None,
        matcher: Optional[SemanticMatcher] = None,
        build_options: Optional[GraphBuildOptions] = None,
    ):
        """Initialize the optimizer with its collaborators.

        Args:
            config: Default selection parameters (default: SmartContextConfig()).
            cache: Shared analysis cache (default: a private cache).
            file_access: File access backend (default: LocalFileAccess).
            graph_builder: Graph builder (default: one over file_access).
            matcher: Semantic matcher (default: one over file_access).
            build_options: File selection for graph builds.
        """
        self.config = config if config is not None else SmartContextConfig()
        self.cache = cache if cache is not None else AnalysisCache()
        self.file_access = file_access if file_access is not None else LocalFileAccess()
        self.graph_builder = (
            graph_builder
            if graph_builder is not None
            else DependencyGraphBuilder(file_access=self.file_access)
        )
        self.matcher = matcher if matcher is not None else SemanticMatcher(self.file_access)
        self.build_options = build_options

    def select_context(
        self,
        prompt: str,
        root: str,
        available_files: Optional[Iterable[str]],
        config: Optional[SmartContextConfig] = None,
    ) -> ContextOptimization:
        """Select context files for a prompt within the token budget.

        Args:
            prompt: Natural-language request.
            root: Project root directory.
            available_files: Project-relative paths the caller may send
                (None selects nothing).
            config: Per-call parameters (default: the optimizer's config).

        Returns:
            The selection. Never raises; failures yield the conservative
            fallback with used_fallback=True.
        """
        config = config if config is not None else self.config
        start_time = time.time()
        files = [str(path) for path in available_files or ()]

        try:
            graph = self.get_dependency_graph(root)
            matches = self.get_semantic_matches(prompt, files, root)
            related = self.identify_related_files(matches, graph, files, config)
            result = self.optimize_for_tokens(related, config.max_tokens, root)
            result.processing_time_ms = (time.time() - start_time) * 1000

            logger.info(
                f"Selected {len(result.selected_files)}/{len(related)} candidate files "
                f"({result.total_tokens} tokens, ratio {result.relevance_ratio:.2f}) "
                f"in {result.processing_time_ms:.1f}ms"
            )
            return result

        except Exception as e:
            logger.error(f"Context selection failed, using fallback: {e}", exc_info=True)
            return self.conservative_fallback(
                files, config.max_tokens, (time.time() - start_time) * 1000
            )

    def get_dependency_graph(self, root: str) -> DependencyGraph:
        """Get the dependency graph of a project, building it on a cache miss."""
        return self.cache.get_or_compute(
            dependency_graph_key(root),
            lambda: self.graph_builder.build_graph(root, self.build_options),
        )

    def get_semantic_matches(
        self, prompt: str, files: Sequence[str], root: str
    ) -> List[SemanticMatch]:
        """Get semantic matches of a prompt, matching on a cache miss."""
        return self.cache.get_or_compute(
            semantic_matches_key(prompt, files, root),
            lambda: self.matcher.find_matches(prompt, files, root),
        )

    def identify_related_files(
        self,
        matches: List[SemanticMatch],
        graph: DependencyGraph,
        available_files: Sequence[str],
        config: Optional[SmartContextConfig] = None,
    ) -> List[str]:
        """Seed from strong matches, expand by dependencies, keep available files.

        Returns:
            Candidate paths in discovery order: seeds by descending score,
            each followed by its dependencies in BFS order.
        """
        config = config if config is not None else self.config
        threshold = semantic_threshold(config.sensitivity)

        related: Dict[str, None] = {}
        seeds = [match.file_path for match in matches if match.relevance_score > threshold]
        for seed in seeds:
            related.setdefault(seed, None)
            for dependency in graph.find_transitive_dependencies(seed, config.dependency_depth):
                related.setdefault(dependency, None)

        available = set(available_files)
        return [path for path in related if path in available]

    def optimize_for_tokens(
        self, candidate_files: List[str], max_tokens: int, root: str = "."
    ) -> ContextOptimization:
        """Admit candidates by relevance per token while the budget allows.

        Returns:
            Selection whose total_tokens never exceeds max_tokens.
        """
        if not candidate_files:
            return ContextOptimization(selected_files=[], total_tokens=0, relevance_ratio=0.0)

        estimates = [
            (path, self.estimate_file_tokens(path, root), self.file_relevance(path, root))
            for path in candidate_files
        ]
        estimates.sort(key=lambda e: (-(e[2] / max(e[1], 1)), e[0]))

        selected: List[str] = []
        total_tokens = 0
        total_relevance = 0.0
        max_possible_relevance = 0.0

        for path, tokens, relevance in estimates:
            max_possible_relevance += relevance
            if total_tokens + tokens <= max_tokens:
                selected.append(path)
                total_tokens += tokens
                total_relevance += relevance

        ratio = total_relevance / max_possible_relevance if max_possible_relevance > 0 else 0.0
        return ContextOptimization(
            selected_files=selected, total_tokens=total_tokens, relevance_ratio=ratio
        )

    def estimate_file_tokens(self, path: str, root: str = ".") -> int:
        """Estimate the tokens of a file, UNREADABLE_FILE_TOKENS if it cannot be read."""
        try:
            return estimate_tokens(self.file_access.read_text(root, path))
        except (OSError, UnicodeDecodeError):
            return UNREADABLE_FILE_TOKENS

    def file_relevance(self, path: str, root: str = ".") -> float:
        """Prompt-independent relevance: extension score times size score."""
        extension = posixpath.splitext(path)[1].lower()
        extension_score = EXTENSION_SCORES.get(extension, DEFAULT_EXTENSION_SCORE)

        try:
            size_kb = self.file_access.stat(root, path).size / 1024
        except OSError:
            return extension_score * 0.5

        if size_kb < 1:
            size_score = 0.3
        elif size_kb > 100:
            size_score = 0.5
        else:
            size_score = 1.0
        return extension_score * size_score

    def conservative_fallback(
        self, available_files: Sequence[str], max_tokens: int, processing_time_ms: float = 0.0
    ) -> ContextOptimization:
        """Pick up to FALLBACK_MAX_FILES entry-point files without reading anything.

        Entry points are files whose name contains index/main/app, or
        package.json. The count is also capped so the flat per-file estimate
        stays within max_tokens.
        """
        limit = min(FALLBACK_MAX_FILES, max(max_tokens, 0) // FALLBACK_TOKENS_PER_FILE)
        main_files: List[str] = []
        for path in available_files:
            if len(main_files) >= limit:
                break
            name = posixpath.basename(str(path)).lower()
            if name == "package.json" or any(marker in name for marker in FALLBACK_NAME_MARKERS):
                main_files.append(str(path))

        logger.warning(f"Conservative fallback selected {len(main_files)} files")
        return ContextOptimization(
            selected_files=main_files,
            total_tokens=len(main_files) * FALLBACK_TOKENS_PER_FILE,
            relevance_ratio=FALLBACK_RELEVANCE_RATIO,
            processing_time_ms=processing_time_ms,
            used_fallback=True,
        )

    def clear_caches(self) -> None:
        """Drop cached graphs and semantic matches."""
        self.cache.clear(CacheNamespace.DEPENDENCY_GRAPH)
        self.cache.clear(CacheNamespace.SEMANTIC_MATCHES)


def create_context_optimizer(
    config: Config,
    cache: Optional[AnalysisCache] = None,
    file_access: Optional[FileAccess] = None,
) -> ContextOptimizer:
    """Create a ContextOptimizer from loaded configuration."""
    file_access = file_access if file_access is not None else LocalFileAccess()
    return ContextOptimizer(
        config=config.smart_context_config(),
        cache=cache,
        file_access=file_access,
        graph_builder=DependencyGraphBuilder(file_access=file_access, max_workers=config.max_workers),
        matcher=SemanticMatcher(file_access, max_workers=config.max_workers),
        build_options=GraphBuildOptions(
            include_patterns=list(config.include_patterns),
            exclude_patterns=list(config.exclude_patterns),
        ),
    )
