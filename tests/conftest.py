# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for smart context engine tests.

Provides small project trees on disk, an in-memory FileAccess, and an
offline stand-in for the tiktoken encoder so no test downloads encodings.
"""

from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from smart_context.file_access import FileAccess, FileStat, should_include

INDEX_TS = """import { helper } from "./util";

export function main() {
  return helper();
}
"""

UTIL_TS = """export function helper() {
  return 42;
}
"""

OTHER_TS = "export const answer = 42;\n"


def write_project(root: Path, files: Dict[str, str]) -> Path:
    """Write project-relative files under root and return root."""
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def ts_project(tmp_path: Path) -> Path:
    """Three-file TypeScript project: index imports util, other stands alone."""
    return write_project(
        tmp_path / "ts_project",
        {
            "src/index.ts": INDEX_TS,
            "src/util.ts": UTIL_TS,
            "src/other.ts": OTHER_TS,
        },
    )


class InMemoryFileAccess(FileAccess):
    """FileAccess over a dict of project-relative path -> content.

    Paths listed in unreadable exist but raise PermissionError on read.
    """

    def __init__(self, files: Dict[str, str], unreadable: Sequence[str] = ()):
        self.files = dict(files)
        self.unreadable = set(unreadable)
        self.reads: List[str] = []

    def list_files(
        self,
        root: str,
        include_patterns: Sequence[str],
        exclude_patterns: Sequence[str],
    ) -> List[str]:
        return sorted(
            path
            for path in self.files
            if should_include(path, include_patterns, exclude_patterns)
        )

    def read_text(self, root: str, relative_path: str) -> str:
        self.reads.append(relative_path)
        if relative_path in self.unreadable:
            raise PermissionError(f"Permission denied: {relative_path}")
        if relative_path not in self.files:
            raise FileNotFoundError(relative_path)
        return self.files[relative_path]

    def stat(self, root: str, relative_path: str) -> FileStat:
        if relative_path not in self.files:
            raise FileNotFoundError(relative_path)
        return FileStat(size=len(self.files[relative_path].encode("utf-8")), last_modified=0.0)


class FakeEncoding:
    """Whitespace tokenizer standing in for tiktoken.Encoding."""

    def encode(self, text: str, disallowed_special=()) -> List[str]:
        return text.split()


@pytest.fixture(autouse=True)
def offline_tokenizer(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tiktoken from downloading encoding files during tests."""
    monkeypatch.setattr(
        "smart_context.edit_optimizer.tiktoken.get_encoding", lambda name: FakeEncoding()
    )
