# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for the smart context engine.

This module defines the foundational data structures used throughout the system:
- FileNode: Immutable snapshot of one scanned source file
- DependencyGraph: Directed file dependency graph with normalized edge weights
- EntityExtraction / SemanticMatch: Prompt analysis and per-file relevance
- ContextOptimization: Result of token-budgeted context selection
- EditAnalysis / EditStrategy / RetryPolicy: Edit classification and strategy
- ValidationResult / EditValidation: Post-generation edit checks
- OptimizedEdit: Prompt bundle handed to the text-generation layer

All models use JSON-compatible primitives for serialization.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)


class MatchType:
    """Priority tags for semantic matches.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    DIRECT = "direct"  # entity found in the file name
    SEMANTIC = "semantic"  # entity found in the file content
    STRUCTURAL = "structural"  # only path-based priors fired

    ALL = (DIRECT, SEMANTIC, STRUCTURAL)


class Sensitivity:
    """Smart context sensitivity levels."""

    CONSERVATIVE = "conservative"
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"

    ALL = (CONSERVATIVE, BALANCED, AGGRESSIVE)


class EditComplexity:
    """Ordinal complexity tiers for edit requests (increasing scope)."""

    SIMPLE = "simple"  # typos, text changes
    MODERATE = "moderate"  # function-level refactors
    COMPLEX = "complex"  # architectural changes
    MULTI_FILE = "multi_file"  # changes spanning several files

    ORDER = (SIMPLE, MODERATE, COMPLEX, MULTI_FILE)

    @classmethod
    def rank(cls, complexity: str) -> int:
        """Return the ordinal position of a complexity tier."""
        return cls.ORDER.index(complexity)

    @classmethod
    def max(cls, a: str, b: str) -> str:
        """Return the higher of two complexity tiers."""
        return a if cls.rank(a) >= cls.rank(b) else b


class ModelSelection:
    """Model tiers an edit strategy can request."""

    FAST = "fast"
    BALANCED = "balanced"
    POWERFUL = "powerful"

    ALL = (FAST, BALANCED, POWERFUL)


class ModelStrategy:
    """User preference for model selection."""

    FAST = "fast"
    BALANCED = "balanced"
    QUALITY = "quality"

    ALL = (FAST, BALANCED, QUALITY)


class ComplexityThreshold:
    """Minimum complexity at which optimized edits are produced."""

    SIMPLE = "simple"  # every tier
    MODERATE = "moderate"  # everything except simple
    ALL = "all"  # only complex and multi-file edits

    VALUES = (SIMPLE, MODERATE, ALL)


class ValidationLevel:
    """Ordinal validation strictness (basic ⊂ enhanced ⊂ strict)."""

    BASIC = "basic"
    ENHANCED = "enhanced"
    STRICT = "strict"

    ORDER = (BASIC, ENHANCED, STRICT)

    @classmethod
    def rank(cls, level: str) -> int:
        """Return the ordinal position of a validation level."""
        return cls.ORDER.index(level)


@dataclass(frozen=True)
class FileNode:
    """Immutable snapshot of one scanned file.

    Identity is the project-relative POSIX path.
    """

    path: str
    imports: Tuple[str, ...]  # raw import targets, in source order
    exports: Tuple[str, ...]  # declared export symbols, in source order
    size: int  # bytes on disk
    last_modified: float  # Unix timestamp

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "path": self.path,
            "imports": list(self.imports),
            "exports": list(self.exports),
            "size": self.size,
            "last_modified": self.last_modified,
        }


def edge_key(source: str, target: str) -> str:
    """Build the key used for edge weights."""
    return f"{source}->{target}"


class DependencyGraph:
    """Directed graph of file dependencies.

    Maintains:
    - nodes: path -> FileNode
    - edges: path -> ordered list of paths it depends on
    - weights: "source->target" -> normalized weight in [0, 1]

    Invariant: every edge target exists as a node key. Dangling imports are
    dropped at build time rather than stored.
    """

    def __init__(self) -> None:
        """Initialize empty dependency graph."""
        self.nodes: Dict[str, FileNode] = {}
        self.edges: Dict[str, List[str]] = {}
        self.weights: Dict[str, float] = {}

    def add_node(self, node: FileNode) -> None:
        """Add or replace a node."""
        self.nodes[node.path] = node

    def set_dependencies(self, filepath: str, dependencies: List[str]) -> None:
        """Set the outgoing edges of a file.

        Targets that are not known nodes are dropped.

        Args:
            filepath: Source file (must be a node).
            dependencies: Candidate dependency paths.

        Raises:
            KeyError: If filepath is not a node of the graph.
        """
        if filepath not in self.nodes:
            raise KeyError(f"Unknown node: {filepath}")

        kept: List[str] = []
        for dep in dependencies:
            if dep in self.nodes and dep not in kept:
                kept.append(dep)
            elif dep not in self.nodes:
                logger.debug(f"Dropping dangling edge {filepath} -> {dep}")
        self.edges[filepath] = kept

    def get_dependencies(self, filepath: str) -> List[str]:
        """Get direct dependencies of a file (empty list if unknown)."""
        return list(self.edges.get(filepath, []))

    def edge_weight(self, source: str, target: str) -> float:
        """Get the weight of an edge, 0.0 if the edge does not exist."""
        return self.weights.get(edge_key(source, target), 0.0)

    def in_degrees(self) -> Dict[str, int]:
        """Count how many files depend on each file."""
        counts: Dict[str, int] = {}
        for dependencies in self.edges.values():
            for dep in dependencies:
                counts[dep] = counts.get(dep, 0) + 1
        return counts

    def compute_weights(self) -> None:
        """Recompute edge weights as in-degree(target) / max in-degree."""
        counts = self.in_degrees()
        max_count = max(list(counts.values()) + [1])

        self.weights = {}
        for source, dependencies in self.edges.items():
            for dep in dependencies:
                self.weights[edge_key(source, dep)] = counts.get(dep, 1) / max_count

    def find_transitive_dependencies(self, start_file: str, max_depth: int = 3) -> List[str]:
        """Find dependencies reachable from start_file within max_depth hops.

        Breadth-first; every node is visited once. The start file itself is
        never part of the result.

        Args:
            start_file: File to start from.
            max_depth: Maximum number of hops (0 returns nothing).

        Returns:
            Dependency paths in BFS discovery order.
        """
        visited: Set[str] = set()
        queue: List[Tuple[str, int]] = [(start_file, 0)]
        dependencies: List[str] = []

        while queue:
            current, depth = queue.pop(0)
            if current in visited or depth > max_depth:
                continue
            visited.add(current)

            if depth > 0:
                dependencies.append(current)

            for dep in self.edges.get(current, []):
                if dep not in visited:
                    queue.append((dep, depth + 1))

        return dependencies

    def find_reverse_dependencies(self, target_file: str) -> List[str]:
        """Find files that directly depend on target_file (linear scan)."""
        return [
            filepath
            for filepath, dependencies in self.edges.items()
            if target_file in dependencies
        ]

    def find_circular_dependencies(self) -> List[List[str]]:
        """Detect dependency cycles with an iterative DFS over an explicit stack.

        Each cycle is reported closed, e.g. ["a", "b", "a"]. Cycles are
        canonicalized by rotating the smallest path to the front so the same
        cycle found from different entry points is reported once. Reversed
        cycles stay distinct since edge direction matters.

        Known limitation: nodes already fully explored are not re-entered, so
        a cycle reachable only through an explored node can be missed.

        Returns:
            List of cycles in discovery order.
        """
        visited: Set[str] = set()
        on_stack: Set[str] = set()
        seen: Set[Tuple[str, ...]] = set()
        cycles: List[List[str]] = []

        for root in sorted(self.nodes):
            if root in visited:
                continue

            # Explicit stack of (node, remaining dependencies); path mirrors it
            path: List[str] = [root]
            stack: List[Tuple[str, Iterator[str]]] = [(root, iter(self.edges.get(root, [])))]
            visited.add(root)
            on_stack.add(root)

            while stack:
                node, deps = stack[-1]
                dep = next(deps, None)
                if dep is None:
                    stack.pop()
                    path.pop()
                    on_stack.discard(node)
                    continue

                if dep in on_stack:
                    cycle = _canonical_cycle(path[path.index(dep):])
                    if cycle not in seen:
                        seen.add(cycle)
                        cycles.append(list(cycle) + [cycle[0]])
                elif dep not in visited:
                    visited.add(dep)
                    on_stack.add(dep)
                    path.append(dep)
                    stack.append((dep, iter(self.edges.get(dep, []))))

        return cycles

    def validate(self) -> Tuple[bool, List[str]]:
        """Validate graph invariants.

        Checks for:
        - Edge sources that are not nodes
        - Edge targets that are not nodes (dangling edges)
        - Weights outside [0, 1] or without a matching edge

        Returns:
            Tuple of (is_valid, error_messages).
        """
        errors: List[str] = []

        for source, dependencies in self.edges.items():
            if source not in self.nodes:
                errors.append(f"Edge source {source} is not a node")
            for dep in dependencies:
                if dep not in self.nodes:
                    errors.append(f"Dangling edge: {source} -> {dep}")

        for key, weight in self.weights.items():
            if not 0.0 <= weight <= 1.0:
                errors.append(f"Weight out of range for {key}: {weight}")
            source, _, target = key.partition("->")
            if target not in self.edges.get(source, []):
                errors.append(f"Weight without edge: {key}")

        return len(errors) == 0, errors

    def to_dict(self) -> Dict[str, Any]:
        """Export graph to JSON-compatible dict."""
        return {
            "nodes": [self.nodes[path].to_dict() for path in sorted(self.nodes)],
            "edges": {path: list(deps) for path, deps in sorted(self.edges.items())},
            "weights": dict(sorted(self.weights.items())),
            "metadata": {
                "total_files": len(self.nodes),
                "total_edges": sum(len(deps) for deps in self.edges.values()),
            },
        }


def _canonical_cycle(cycle: List[str]) -> Tuple[str, ...]:
    """Rotate a cycle so its smallest member comes first."""
    pivot = cycle.index(min(cycle))
    return tuple(cycle[pivot:] + cycle[:pivot])


@dataclass
class DependencyComplexity:
    """Summary statistics of a dependency graph."""

    total_files: int
    total_dependencies: int
    average_dependencies_per_file: float
    max_dependencies_in_file: int
    circular_dependencies: List[List[str]]
    orphan_files: List[str]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "total_files": self.total_files,
            "total_dependencies": self.total_dependencies,
            "average_dependencies_per_file": round(self.average_dependencies_per_file, 4),
            "max_dependencies_in_file": self.max_dependencies_in_file,
            "circular_dependencies": self.circular_dependencies,
            "orphan_files": self.orphan_files,
        }


@dataclass
class EntityExtraction:
    """Entities, keywords, file-type hints and concepts found in a prompt.

    Categories may overlap; order is irrelevant.
    """

    entities: Set[str] = field(default_factory=set)
    keywords: Set[str] = field(default_factory=set)
    file_types: Set[str] = field(default_factory=set)
    concepts: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict (sets become sorted lists)."""
        return {
            "entities": sorted(self.entities),
            "keywords": sorted(self.keywords),
            "file_types": sorted(self.file_types),
            "concepts": sorted(self.concepts),
        }


@dataclass
class SemanticMatch:
    """Relevance of one file to a prompt."""

    file_path: str
    relevance_score: float  # 0 <= score <= 10
    matched_entities: Set[str]
    context_importance: float  # 0 <= importance <= 1
    match_type: str  # MatchType value

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "file_path": self.file_path,
            "relevance_score": round(self.relevance_score, 4),
            "matched_entities": sorted(self.matched_entities),
            "context_importance": round(self.context_importance, 4),
            "match_type": self.match_type,
        }


@dataclass
class MatchStatistics:
    """Aggregate statistics over a list of semantic matches."""

    total_matches: int = 0
    average_relevance: float = 0.0
    max_relevance: float = 0.0
    min_relevance: float = 0.0
    by_type: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "total_matches": self.total_matches,
            "average_relevance": round(self.average_relevance, 4),
            "max_relevance": round(self.max_relevance, 4),
            "min_relevance": round(self.min_relevance, 4),
            "by_type": dict(self.by_type),
        }


@dataclass
class SmartContextConfig:
    """Parameters of one context selection."""

    sensitivity: str = Sensitivity.BALANCED
    max_tokens: int = 20000
    dependency_depth: int = 2

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "sensitivity": self.sensitivity,
            "max_tokens": self.max_tokens,
            "dependency_depth": self.dependency_depth,
        }


@dataclass
class ContextOptimization:
    """Result of a context selection.

    selected_files is in admission order, not relevance order.
    """

    selected_files: List[str]
    total_tokens: int
    relevance_ratio: float  # achieved / maximum possible relevance
    processing_time_ms: float = 0.0
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "selected_files": list(self.selected_files),
            "total_tokens": self.total_tokens,
            "relevance_ratio": round(self.relevance_ratio, 4),
            "processing_time_ms": round(self.processing_time_ms, 2),
            "used_fallback": self.used_fallback,
        }


@dataclass(frozen=True)
class RetryPolicy:
    """Retry schedule for a generation attempt."""

    max_attempts: int
    backoff_multiplier: float
    initial_delay_ms: int

    def delay_for_attempt(self, attempt: int) -> float:
        """Delay in milliseconds before the given retry (1-based).

        The first attempt has no delay; retry n waits
        initial_delay * multiplier ** (n - 2).

        Raises:
            ValueError: If attempt is outside 1..max_attempts.
        """
        if attempt < 1 or attempt > self.max_attempts:
            raise ValueError(f"attempt must be within 1..{self.max_attempts}, got {attempt}")
        if attempt == 1:
            return 0.0
        return self.initial_delay_ms * (self.backoff_multiplier ** (attempt - 2))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "max_attempts": self.max_attempts,
            "backoff_multiplier": self.backoff_multiplier,
            "initial_delay_ms": self.initial_delay_ms,
        }


@dataclass(frozen=True)
class EditStrategy:
    """Model tier, token ceiling, validation strictness and retry policy for an edit."""

    model_selection: str  # ModelSelection value
    max_tokens: int
    validation_level: str  # ValidationLevel value
    retry_policy: RetryPolicy
    prompt_template: str = ""  # template key, set once a template is chosen

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "model_selection": self.model_selection,
            "max_tokens": self.max_tokens,
            "validation_level": self.validation_level,
            "retry_policy": self.retry_policy.to_dict(),
            "prompt_template": self.prompt_template,
        }


@dataclass
class EditAnalysis:
    """Estimated difficulty of an edit request."""

    complexity: str  # EditComplexity value
    confidence: float  # 0.1 <= confidence <= 1.0
    estimated_tokens: int
    reasoning: List[str]
    suggested_strategy: Optional[EditStrategy] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {
            "complexity": self.complexity,
            "confidence": round(self.confidence, 4),
            "estimated_tokens": self.estimated_tokens,
            "reasoning": list(self.reasoning),
        }
        if self.suggested_strategy is not None:
            result["suggested_strategy"] = self.suggested_strategy.to_dict()
        return result


@dataclass
class ValidationResult:
    """Outcome of a single validation rule."""

    passed: bool
    issues: List[str]
    confidence: float


@dataclass
class EditValidation:
    """Aggregate outcome of validating a proposed edit."""

    syntax_valid: bool
    structure_intact: bool
    potential_issues: List[str]
    confidence: float
    validation_level: str
    processing_time_ms: float
    rule_results: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "syntax_valid": self.syntax_valid,
            "structure_intact": self.structure_intact,
            "potential_issues": list(self.potential_issues),
            "confidence": round(self.confidence, 4),
            "validation_level": self.validation_level,
            "processing_time_ms": round(self.processing_time_ms, 2),
            "rule_results": dict(self.rule_results),
        }


@dataclass
class OptimizedEdit:
    """Prompt bundle handed to the text-generation layer."""

    strategy: EditStrategy
    optimized_prompt: str
    expected_output_format: str
    validation_rules: List[str]
    processing_hints: List[str]
    analysis: Optional[EditAnalysis] = None
    prompt_tokens: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {
            "strategy": self.strategy.to_dict(),
            "optimized_prompt": self.optimized_prompt,
            "expected_output_format": self.expected_output_format,
            "validation_rules": list(self.validation_rules),
            "processing_hints": list(self.processing_hints),
            "prompt_tokens": self.prompt_tokens,
        }
        if self.analysis is not None:
            result["analysis"] = self.analysis.to_dict()
        return result
