# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Unit tests for AnalysisCache and its key scheme.

Tests coverage:
- Hit/miss behavior and statistics
- get_or_compute memoization and error propagation
- Namespace-scoped clearing
- Thread safety (concurrent access)
"""

from threading import Thread
from typing import List

import pytest

from smart_context.cache import (
    AnalysisCache,
    CacheNamespace,
    complexity_key,
    dependency_graph_key,
    semantic_matches_key,
    strategy_key,
)


class TestCacheKeys:
    """Test the key scheme."""

    def test_semantic_key_ignores_file_order_and_duplicates(self) -> None:
        key1 = semantic_matches_key("fix it", ["b.ts", "a.ts"], "/proj")
        key2 = semantic_matches_key("fix it", ["a.ts", "b.ts", "a.ts"], "/proj")
        assert key1 == key2

    def test_semantic_key_depends_on_project(self) -> None:
        key1 = semantic_matches_key("fix it", ["a.ts"], "/proj1")
        key2 = semantic_matches_key("fix it", ["a.ts"], "/proj2")
        assert key1 != key2

    def test_keys_carry_their_namespace(self) -> None:
        assert dependency_graph_key("/proj")[0] == CacheNamespace.DEPENDENCY_GRAPH
        assert semantic_matches_key("p", [])[0] == CacheNamespace.SEMANTIC_MATCHES
        assert complexity_key("p", "a.ts", 10)[0] == CacheNamespace.COMPLEXITY
        assert strategy_key("simple", "fast", ".ts")[0] == CacheNamespace.STRATEGY

    def test_complexity_key_uses_content_length(self) -> None:
        assert complexity_key("p", "a.ts", 10) != complexity_key("p", "a.ts", 11)


class TestCacheBasics:
    """Test basic cache operations."""

    def test_cache_miss_then_hit(self) -> None:
        cache = AnalysisCache()
        key = dependency_graph_key("/proj")

        assert cache.get(key) is None
        cache.put(key, "graph")
        assert cache.get(key) == "graph"

        stats = cache.get_statistics()
        assert stats.misses == 1
        assert stats.hits == 1
        assert stats.entry_count == 1

    def test_contains_does_not_touch_statistics(self) -> None:
        cache = AnalysisCache()
        key = dependency_graph_key("/proj")
        cache.put(key, 1)

        assert cache.contains(key)
        assert not cache.contains(dependency_graph_key("/other"))
        stats = cache.get_statistics()
        assert stats.hits == 0
        assert stats.misses == 0

    def test_get_or_compute_memoizes(self) -> None:
        cache = AnalysisCache()
        calls: List[int] = []

        def compute() -> str:
            calls.append(1)
            return "value"

        key = strategy_key("simple", "fast", ".ts")
        assert cache.get_or_compute(key, compute) == "value"
        assert cache.get_or_compute(key, compute) == "value"
        assert len(calls) == 1

    def test_get_or_compute_does_not_cache_errors(self) -> None:
        cache = AnalysisCache()
        key = dependency_graph_key("/proj")

        def fail() -> str:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_compute(key, fail)
        assert not cache.contains(key)

    def test_statistics_to_dict(self) -> None:
        cache = AnalysisCache()
        cache.get(dependency_graph_key("/proj"))
        assert cache.get_statistics().to_dict() == {"hits": 0, "misses": 1, "entry_count": 0}


class TestCacheClearing:
    """Test namespace-scoped clearing."""

    def test_clear_namespace(self) -> None:
        cache = AnalysisCache()
        cache.put(dependency_graph_key("/proj"), "graph")
        cache.put(complexity_key("p", "a.ts", 1), "analysis")

        cache.clear(CacheNamespace.DEPENDENCY_GRAPH)

        assert cache.size(CacheNamespace.DEPENDENCY_GRAPH) == 0
        assert cache.size(CacheNamespace.COMPLEXITY) == 1
        assert cache.get_statistics().entry_count == 1

    def test_clear_all(self) -> None:
        cache = AnalysisCache()
        cache.put(dependency_graph_key("/proj"), "graph")
        cache.put(strategy_key("simple", "fast", ".ts"), "strategy")

        cache.clear()

        assert cache.size() == 0


class TestCacheThreadSafety:
    """Test concurrent access."""

    def test_concurrent_get_or_compute(self) -> None:
        cache = AnalysisCache()
        errors: List[Exception] = []

        def worker(index: int) -> None:
            try:
                for i in range(100):
                    key = complexity_key(f"prompt {i % 10}", "a.ts", index % 3)
                    cache.get_or_compute(key, lambda: i)
            except Exception as e:
                errors.append(e)

        threads = [Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert cache.size(CacheNamespace.COMPLEXITY) == 30
        stats = cache.get_statistics()
        assert stats.hits + stats.misses == 800
