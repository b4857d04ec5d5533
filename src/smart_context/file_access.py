# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""File access abstraction used by graph building, matching and selection.

All paths handed to and returned by a FileAccess are project-relative POSIX
paths; the implementation owns the mapping to the real filesystem. Tests can
substitute an in-memory implementation.
"""

import fnmatch
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

logger = logging.getLogger(__name__)

# Directory names never descended into, regardless of patterns
ALWAYS_IGNORED = {
    ".git",
    "__pycache__",
    ".venv",
    "venv",
    "node_modules",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
}


@dataclass(frozen=True)
class FileStat:
    """Size and modification time of a file."""

    size: int
    last_modified: float


def matches_pattern(relative_path: str, pattern: str) -> bool:
    """Check a project-relative POSIX path against a glob pattern.

    A leading "**/" also matches at the project root, so "**/*.py" matches
    both "setup.py" and "src/pkg/mod.py".
    """
    if fnmatch.fnmatchcase(relative_path, pattern):
        return True
    if pattern.startswith("**/"):
        return fnmatch.fnmatchcase(relative_path, pattern[3:])
    return False


def should_include(
    relative_path: str, include_patterns: Sequence[str], exclude_patterns: Sequence[str]
) -> bool:
    """Apply include then exclude patterns to a relative path."""
    if not any(matches_pattern(relative_path, p) for p in include_patterns):
        return False
    return not any(matches_pattern(relative_path, p) for p in exclude_patterns)


class FileAccess(ABC):
    """Read-only view of a project tree."""

    @abstractmethod
    def list_files(
        self,
        root: str,
        include_patterns: Sequence[str],
        exclude_patterns: Sequence[str],
    ) -> List[str]:
        """List project-relative paths under root, sorted and deduplicated.

        Raises:
            OSError: If root itself cannot be enumerated.
        """
        pass

    @abstractmethod
    def read_text(self, root: str, relative_path: str) -> str:
        """Read a file as text.

        Raises:
            OSError: If the file cannot be read.
        """
        pass

    @abstractmethod
    def stat(self, root: str, relative_path: str) -> FileStat:
        """Get size and modification time of a file.

        Raises:
            OSError: If the file cannot be stat'ed.
        """
        pass


class LocalFileAccess(FileAccess):
    """FileAccess backed by the local filesystem."""

    def list_files(
        self,
        root: str,
        include_patterns: Sequence[str],
        exclude_patterns: Sequence[str],
    ) -> List[str]:
        root_path = Path(root)
        if not root_path.is_dir():
            raise NotADirectoryError(f"Project root is not a directory: {root}")

        found = set()

        def on_error(error: OSError) -> None:
            if Path(error.filename or "") == root_path:
                raise error
            logger.warning(f"Skipping unreadable directory {error.filename}: {error}")

        for dirpath, dirnames, filenames in os.walk(root_path, onerror=on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in ALWAYS_IGNORED)
            for filename in filenames:
                relative = Path(dirpath, filename).relative_to(root_path).as_posix()
                if should_include(relative, include_patterns, exclude_patterns):
                    found.add(relative)

        return sorted(found)

    def read_text(self, root: str, relative_path: str) -> str:
        return (Path(root) / relative_path).read_text(encoding="utf-8", errors="replace")

    def stat(self, root: str, relative_path: str) -> FileStat:
        result = (Path(root) / relative_path).stat()
        return FileStat(size=result.st_size, last_modified=result.st_mtime)
