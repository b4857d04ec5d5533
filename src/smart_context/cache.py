# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Process-lifetime analysis caches with an explicit key scheme.

This module implements the caching layer shared by the engine components.
Each component receives an AnalysisCache instance (injected, never a module
global) so tests can start from a fresh cache and assert hit/miss behavior.

Key scheme:
- dependency graphs: project path
- semantic matches: prompt + file set
- complexity analyses: prompt + file path + content length
- edit strategies: complexity + model preference + file extension

Design Decisions:
- No invalidation policy: entries live until clear(). Stale graphs are an
  accepted tradeoff because a rebuild on miss is cheap.
- Single lock protects the store and the statistics.
"""

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Iterable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

CacheKey = Tuple[str, ...]


class CacheNamespace:
    """Namespaces separating the different cached value kinds."""

    DEPENDENCY_GRAPH = "dependency_graph"
    SEMANTIC_MATCHES = "semantic_matches"
    COMPLEXITY = "complexity"
    STRATEGY = "strategy"


def dependency_graph_key(project_path: str) -> CacheKey:
    """Key for a project's dependency graph."""
    return (CacheNamespace.DEPENDENCY_GRAPH, project_path)


def semantic_matches_key(prompt: str, files: Iterable[str], project_path: str = "") -> CacheKey:
    """Key for the semantic matches of a prompt against a file set.

    The file set is order-insensitive. Paths are project-relative, so the
    project path is part of the key.
    """
    files_part = "\n".join(sorted(set(files)))
    return (CacheNamespace.SEMANTIC_MATCHES, project_path, prompt, files_part)


def complexity_key(prompt: str, file_path: str, content_length: int) -> CacheKey:
    """Key for a complexity analysis."""
    return (CacheNamespace.COMPLEXITY, prompt, file_path, str(content_length))


def strategy_key(complexity: str, preference: str, extension: str) -> CacheKey:
    """Key for an edit strategy."""
    return (CacheNamespace.STRATEGY, complexity, preference, extension)


@dataclass
class CacheStatistics:
    """Hit/miss counters for the analysis cache."""

    hits: int = 0
    misses: int = 0
    entry_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "entry_count": self.entry_count,
        }


class AnalysisCache:
    """Key/value store for analysis results.

    Thread Safety:
        All public methods are thread-safe via _lock. compute functions passed
        to get_or_compute run outside the lock; two concurrent misses on the
        same key both compute and the last write wins, which is harmless
        because every cached computation is idempotent.

    Usage:
        cache = AnalysisCache()
        graph = cache.get_or_compute(dependency_graph_key(root), lambda: build(root))
        stats = cache.get_statistics()
    """

    def __init__(self) -> None:
        """Initialize an empty cache."""
        self._store: Dict[CacheKey, Any] = {}
        self._stats = CacheStatistics()
        self._lock = Lock()

    def get(self, key: CacheKey) -> Optional[Any]:
        """Get a cached value, or None on a miss."""
        with self._lock:
            if key in self._store:
                self._stats.hits += 1
                return self._store[key]
            self._stats.misses += 1
            return None

    def put(self, key: CacheKey, value: Any) -> None:
        """Store a value under key."""
        with self._lock:
            self._store[key] = value
            self._stats.entry_count = len(self._store)

    def contains(self, key: CacheKey) -> bool:
        """Check for a key without touching statistics."""
        with self._lock:
            return key in self._store

    def get_or_compute(self, key: CacheKey, compute: Callable[[], T]) -> T:
        """Return the cached value for key, computing and storing it on a miss.

        Exceptions raised by compute propagate and nothing is cached.
        """
        with self._lock:
            if key in self._store:
                self._stats.hits += 1
                logger.debug(f"Cache hit: {key[0]}")
                return self._store[key]  # type: ignore[no-any-return]
            self._stats.misses += 1

        value = compute()

        with self._lock:
            self._store[key] = value
            self._stats.entry_count = len(self._store)
        logger.debug(f"Cache miss: {key[0]} (entries={self._stats.entry_count})")
        return value

    def clear(self, namespace: Optional[str] = None) -> None:
        """Remove entries, either all or those of one namespace."""
        with self._lock:
            if namespace is None:
                self._store.clear()
            else:
                for key in [k for k in self._store if k[0] == namespace]:
                    del self._store[key]
            self._stats.entry_count = len(self._store)

        logger.debug(f"Cache cleared (namespace={namespace or 'all'})")

    def size(self, namespace: Optional[str] = None) -> int:
        """Number of entries, optionally restricted to one namespace."""
        with self._lock:
            if namespace is None:
                return len(self._store)
            return sum(1 for key in self._store if key[0] == namespace)

    def get_statistics(self) -> CacheStatistics:
        """Get a copy of the cache statistics."""
        with self._lock:
            return CacheStatistics(
                hits=self._stats.hits,
                misses=self._stats.misses,
                entry_count=len(self._store),
            )
