# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Dependency graph construction from a project tree.

Build pipeline:
1. Enumerate files matching include/exclude patterns (sorted, deduplicated)
2. Read and stat each file on a bounded thread pool and extract raw
   imports/exports with the extractor registered for its extension
3. Resolve relative import targets to known nodes
4. Normalize edge weights by in-degree

A file that cannot be read or analyzed is logged and skipped. Only failure to
enumerate the project root aborts a build.
"""

import logging
import posixpath
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from smart_context.config import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_PATTERNS
from smart_context.extractors import ExtractorRegistry, create_default_registry
from smart_context.file_access import FileAccess, LocalFileAccess
from smart_context.models import DependencyComplexity, DependencyGraph, FileNode

logger = logging.getLogger(__name__)

# Extensions tried, in order, when a relative import omits one
RESOLUTION_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx", ".py", ".java", ".cpp", ".c", ".cs")

# Package initializers tried after index.<ext>
PACKAGE_INDEX_FILES = ("__init__.py",)


class GraphBuildError(Exception):
    """Raised when the project root cannot be enumerated."""

    pass


@dataclass
class GraphBuildOptions:
    """File selection for a graph build."""

    include_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_PATTERNS))
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))


def resolve_import_path(
    specifier: str, importing_file: str, nodes: Mapping[str, FileNode]
) -> Optional[str]:
    """Resolve a relative specifier against the importing file's directory.

    Candidates are tried in order: the exact path, the path plus each
    extension of RESOLUTION_EXTENSIONS, then index.<ext> and __init__.py
    inside the path as a directory. A candidate is accepted only if it is a
    known node.

    Args:
        specifier: "./x" or "../x" style specifier.
        importing_file: Project-relative path of the importing file.
        nodes: Known nodes keyed by project-relative path.

    Returns:
        Project-relative path of the resolved node, or None.
    """
    if not specifier.startswith("."):
        return None

    base_dir = posixpath.dirname(importing_file)
    joined = posixpath.normpath(posixpath.join(base_dir, specifier))
    if joined == ".." or joined.startswith("../"):
        return None

    candidates: List[str] = []
    if joined != ".":
        candidates.append(joined)
        candidates.extend(joined + ext for ext in RESOLUTION_EXTENSIONS)

    directory = "" if joined == "." else joined
    candidates.extend(posixpath.join(directory, f"index{ext}") for ext in RESOLUTION_EXTENSIONS)
    candidates.extend(posixpath.join(directory, name) for name in PACKAGE_INDEX_FILES)

    for candidate in candidates:
        if candidate in nodes:
            return candidate
    return None


class DependencyGraphBuilder:
    """Builds DependencyGraph instances for project trees.

    The builder holds no per-build state; one instance may build graphs for
    several projects.

    Usage:
        builder = DependencyGraphBuilder(create_default_registry(), LocalFileAccess())
        graph = builder.build_graph("/path/to/project")
    """

    def __init__(
        self,
        registry: Optional[ExtractorRegistry] = None,
        file_access: Optional[FileAccess] = None,
        max_workers: int = 8,
    ):
        """Initialize the builder.

        Args:
            registry: Extractor registry (default: all built-in extractors).
            file_access: File access backend (default: LocalFileAccess).
            max_workers: Upper bound on concurrent file reads.
        """
        self.registry = registry if registry is not None else create_default_registry()
        self.file_access = file_access if file_access is not None else LocalFileAccess()
        self.max_workers = max(1, max_workers)

    def build_graph(self, root: str, options: Optional[GraphBuildOptions] = None) -> DependencyGraph:
        """Build the dependency graph of a project.

        Args:
            root: Project root directory.
            options: File selection (default: GraphBuildOptions()).

        Returns:
            Graph whose edges only reference known nodes.

        Raises:
            GraphBuildError: If the root cannot be enumerated.
        """
        options = options if options is not None else GraphBuildOptions()
        start_time = time.time()

        try:
            files = self.file_access.list_files(
                root, options.include_patterns, options.exclude_patterns
            )
        except OSError as e:
            raise GraphBuildError(f"Cannot enumerate project root {root}: {e}") from e

        graph = DependencyGraph()
        if files:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(files))) as executor:
                results = list(executor.map(lambda path: self._analyze_file(root, path), files))
            for node in results:
                if node is not None:
                    graph.add_node(node)

        for path in sorted(graph.nodes):
            graph.set_dependencies(path, self._resolve_dependencies(graph.nodes[path], graph.nodes))

        graph.compute_weights()

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Built dependency graph for {root}: {len(graph.nodes)} files, "
            f"{sum(len(deps) for deps in graph.edges.values())} edges in {elapsed_ms:.1f}ms"
        )
        return graph

    def _analyze_file(self, root: str, path: str) -> Optional[FileNode]:
        """Read, stat and extract one file; None if it cannot be analyzed."""
        try:
            content = self.file_access.read_text(root, path)
            stat = self.file_access.stat(root, path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping unreadable file {path}: {e}")
            return None

        imports: List[str] = []
        exports: List[str] = []
        extractor = self.registry.for_extension(posixpath.splitext(path)[1])
        if extractor is not None:
            try:
                imports = extractor.extract_imports(content)
                exports = extractor.extract_exports(content)
            except Exception as e:
                logger.warning(f"{extractor.name()} failed on {path}: {e}")
                return None

        return FileNode(
            path=path,
            imports=tuple(imports),
            exports=tuple(exports),
            size=stat.size,
            last_modified=stat.last_modified,
        )

    def _resolve_dependencies(self, node: FileNode, nodes: Dict[str, FileNode]) -> List[str]:
        extractor = self.registry.for_extension(posixpath.splitext(node.path)[1])
        if extractor is None:
            return []

        dependencies: List[str] = []
        for raw_import in node.imports:
            specifier = extractor.resolve_specifier(raw_import)
            if specifier is None:
                continue
            resolved = resolve_import_path(specifier, node.path, nodes)
            if resolved is not None and resolved != node.path and resolved not in dependencies:
                dependencies.append(resolved)
        return dependencies


def analyze_dependency_complexity(graph: DependencyGraph) -> DependencyComplexity:
    """Summarize the size, density and problem spots of a dependency graph.

    Orphan files have no dependencies and no dependents.
    """
    total_files = len(graph.nodes)
    dependency_counts = [len(graph.edges.get(path, [])) for path in graph.nodes]
    total_dependencies = sum(dependency_counts)

    referenced = set(graph.in_degrees())
    orphan_files = sorted(
        path for path in graph.nodes if not graph.edges.get(path) and path not in referenced
    )

    return DependencyComplexity(
        total_files=total_files,
        total_dependencies=total_dependencies,
        average_dependencies_per_file=(total_dependencies / total_files if total_files else 0.0),
        max_dependencies_in_file=max(dependency_counts, default=0),
        circular_dependencies=graph.find_circular_dependencies(),
        orphan_files=orphan_files,
    )
