# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Base interface for reference extractor plugins.

A reference extractor pulls import targets and exported symbols out of the
text of one source file using regular expressions. Extraction is best-effort
and never parses the language; a pattern that does not match simply yields
nothing.

Extractors are registered in an ExtractorRegistry keyed by file extension.
Adding a language means adding an extractor; the graph algorithm does not
change.
"""

import re
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Pattern, Tuple


class ReferenceExtractor(ABC):
    """Abstract base class for reference extractor plugins.

    Design Pattern:
    - Each extractor is independent and stateless
    - Extractors are registered with priority values
    - When several extractors claim an extension, the highest priority wins
    - New extractors can be added without modifying existing code

    Lifecycle:
    1. Extractor is registered in ExtractorRegistry
    2. The graph builder looks up the extractor for each file's extension
    3. extract_imports()/extract_exports() run on the file content
    4. resolve_specifier() turns each raw import into a relative path
       specifier, or None for targets outside the project
    """

    @abstractmethod
    def name(self) -> str:
        """Return extractor name for logging and debugging."""
        pass

    @abstractmethod
    def extensions(self) -> Tuple[str, ...]:
        """Return the lower-case file extensions (with dot) this extractor handles."""
        pass

    def priority(self) -> int:
        """Return extractor priority; higher values win extension conflicts."""
        return 50

    @abstractmethod
    def extract_imports(self, content: str) -> List[str]:
        """Extract raw import targets in source order, without duplicates.

        Extractors MUST NOT raise on malformed input; they return what matched.
        """
        pass

    @abstractmethod
    def extract_exports(self, content: str) -> List[str]:
        """Extract declared export symbols in source order, without duplicates."""
        pass

    def resolve_specifier(self, raw_import: str) -> Optional[str]:
        """Convert a raw import target to a relative path specifier.

        The default treats targets starting with "." as relative paths and
        everything else as external.

        Returns:
            A "./x" or "../x" style specifier, or None if the target cannot
            refer to a project file.
        """
        if raw_import.startswith("."):
            return raw_import
        return None


def collect_matches(patterns: Iterable[Pattern[str]], content: str) -> List[str]:
    """Run patterns over content and collect the first non-empty group of each match.

    Results keep first-seen order; duplicates are dropped.
    """
    results: List[str] = []
    for pattern in patterns:
        for match in pattern.finditer(content):
            value = next((group for group in match.groups() if group), None)
            if value is None:
                continue
            value = value.strip()
            if value and value not in results:
                results.append(value)
    return results


def split_symbol_list(symbols: str) -> List[str]:
    """Split an "a, b as c" symbol list into exported names ("a", "c")."""
    names: List[str] = []
    for part in symbols.split(","):
        part = part.strip()
        if not part:
            continue
        alias = re.split(r"\s+as\s+", part)
        names.append(alias[-1].strip())
    return names
