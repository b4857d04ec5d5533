# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for dependency graph construction."""

from pathlib import Path

import pytest

from conftest import InMemoryFileAccess, write_project
from smart_context.graph_builder import (
    DependencyGraphBuilder,
    GraphBuildError,
    GraphBuildOptions,
    analyze_dependency_complexity,
    resolve_import_path,
)
from smart_context.models import FileNode


def node(path: str) -> FileNode:
    return FileNode(path=path, imports=(), exports=(), size=0, last_modified=0.0)


class TestResolveImportPath:
    """Test relative specifier resolution."""

    def test_extension_appended(self):
        nodes = {"src/util.ts": node("src/util.ts")}
        assert resolve_import_path("./util", "src/index.ts", nodes) == "src/util.ts"

    def test_exact_path(self):
        nodes = {"src/util.js": node("src/util.js")}
        assert resolve_import_path("./util.js", "src/index.ts", nodes) == "src/util.js"

    def test_directory_index(self):
        nodes = {"src/lib/index.ts": node("src/lib/index.ts")}
        assert resolve_import_path("./lib", "src/app.ts", nodes) == "src/lib/index.ts"

    def test_parent_directory(self):
        nodes = {"shared/types.ts": node("shared/types.ts")}
        assert resolve_import_path("../shared/types", "src/app.ts", nodes) == "shared/types.ts"

    def test_outside_project_root(self):
        nodes = {"types.ts": node("types.ts")}
        assert resolve_import_path("../../types", "src/app.ts", nodes) is None

    def test_unknown_target(self):
        assert resolve_import_path("./missing", "src/app.ts", {}) is None

    def test_bare_specifier_is_external(self):
        nodes = {"react.ts": node("react.ts")}
        assert resolve_import_path("react", "app.ts", nodes) is None


class TestDependencyGraphBuilder:
    """Test graph builds over real and in-memory trees."""

    def test_typescript_project(self, ts_project: Path):
        graph = DependencyGraphBuilder().build_graph(str(ts_project))

        assert sorted(graph.nodes) == ["src/index.ts", "src/other.ts", "src/util.ts"]
        assert graph.get_dependencies("src/index.ts") == ["src/util.ts"]
        assert graph.get_dependencies("src/util.ts") == []
        assert graph.edge_weight("src/index.ts", "src/util.ts") == 1.0
        assert graph.nodes["src/index.ts"].imports == ("./util",)
        assert graph.nodes["src/util.ts"].exports == ("helper",)
        assert graph.nodes["src/other.ts"].size == len("export const answer = 42;\n")

        is_valid, errors = graph.validate()
        assert is_valid, errors

    def test_python_relative_imports(self, tmp_path: Path):
        write_project(
            tmp_path,
            {
                "pkg/__init__.py": "",
                "pkg/a.py": "from .b import helper\nfrom . import c\nimport os\n",
                "pkg/b.py": "def helper():\n    return 1\n",
                "pkg/c.py": "VALUE = 1\n",
            },
        )

        graph = DependencyGraphBuilder().build_graph(str(tmp_path))

        assert graph.get_dependencies("pkg/a.py") == ["pkg/b.py", "pkg/__init__.py"]
        assert graph.nodes["pkg/b.py"].exports == ("helper",)

    def test_self_import_dropped(self):
        access = InMemoryFileAccess({"index.ts": 'import { x } from "./index";\n'})

        graph = DependencyGraphBuilder(file_access=access).build_graph("/virtual")

        assert graph.get_dependencies("index.ts") == []

    def test_unreadable_file_skipped(self):
        access = InMemoryFileAccess(
            {
                "a.ts": 'import { b } from "./b";\n',
                "b.ts": "export const b = 1;\n",
            },
            unreadable=["b.ts"],
        )

        graph = DependencyGraphBuilder(file_access=access).build_graph("/virtual")

        assert list(graph.nodes) == ["a.ts"]
        assert graph.get_dependencies("a.ts") == []

    def test_unsupported_extension_has_no_edges(self):
        access = InMemoryFileAccess({"notes.txt": "./a.ts", "a.ts": ""})

        graph = DependencyGraphBuilder(file_access=access).build_graph(
            "/virtual", GraphBuildOptions(include_patterns=["**/*"], exclude_patterns=[])
        )

        assert "notes.txt" in graph.nodes
        assert graph.nodes["notes.txt"].imports == ()
        assert graph.get_dependencies("notes.txt") == []

    def test_missing_root_raises(self, tmp_path: Path):
        with pytest.raises(GraphBuildError):
            DependencyGraphBuilder().build_graph(str(tmp_path / "missing"))

    def test_empty_project(self, tmp_path: Path):
        graph = DependencyGraphBuilder().build_graph(str(tmp_path))

        assert graph.nodes == {}
        assert graph.to_dict()["metadata"] == {"total_files": 0, "total_edges": 0}


class TestDependencyComplexity:
    """Test graph summaries."""

    def test_typescript_project_summary(self, ts_project: Path):
        graph = DependencyGraphBuilder().build_graph(str(ts_project))

        complexity = analyze_dependency_complexity(graph)

        assert complexity.total_files == 3
        assert complexity.total_dependencies == 1
        assert complexity.average_dependencies_per_file == pytest.approx(1 / 3)
        assert complexity.max_dependencies_in_file == 1
        assert complexity.circular_dependencies == []
        assert complexity.orphan_files == ["src/other.ts"]

    def test_cycle_reported(self):
        access = InMemoryFileAccess(
            {
                "a.ts": 'import { b } from "./b";\n',
                "b.ts": 'import { a } from "./a";\n',
            }
        )
        graph = DependencyGraphBuilder(file_access=access).build_graph("/virtual")

        complexity = analyze_dependency_complexity(graph)

        assert complexity.circular_dependencies == [["a.ts", "b.ts", "a.ts"]]
        assert complexity.orphan_files == []

    def test_empty_graph(self):
        access = InMemoryFileAccess({})
        graph = DependencyGraphBuilder(file_access=access).build_graph("/virtual")

        complexity = analyze_dependency_complexity(graph)

        assert complexity.total_files == 0
        assert complexity.average_dependencies_per_file == 0.0
        assert complexity.max_dependencies_in_file == 0
