# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Reference extractor for Python modules.

Supports:
- import module, import a.b, import a, b
- from module import name
- Relative imports: from . import x, from ..pkg.mod import y

Only relative imports resolve to project files; absolute imports are
reported as raw targets but treated as external.
"""

import re
from typing import List, Optional, Tuple

from .base import ReferenceExtractor

FROM_IMPORT = re.compile(r"^[ \t]*from[ \t]+(\.*[\w.]*)[ \t]+import\b", re.MULTILINE)
PLAIN_IMPORT = re.compile(r"^[ \t]*import[ \t]+([\w.]+(?:[ \t]*,[ \t]*[\w.]+)*)", re.MULTILINE)
DEFINITION = re.compile(r"^(?:async[ \t]+)?(?:def|class)[ \t]+(\w+)", re.MULTILINE)
RELATIVE_PREFIX = re.compile(r"^(\.+)(.*)$")


class PythonExtractor(ReferenceExtractor):
    """Extractor for .py files.

    Exports are top-level function and class definitions, in source order.

    Priority: 90
    """

    def name(self) -> str:
        return "PythonExtractor"

    def extensions(self) -> Tuple[str, ...]:
        return (".py",)

    def priority(self) -> int:
        return 90

    def extract_imports(self, content: str) -> List[str]:
        found: List[Tuple[int, str]] = []
        for match in FROM_IMPORT.finditer(content):
            found.append((match.start(), match.group(1)))
        for match in PLAIN_IMPORT.finditer(content):
            for module in match.group(1).split(","):
                found.append((match.start(), module.strip()))

        imports: List[str] = []
        for _, module in sorted(found, key=lambda item: item[0]):
            if module and module not in imports:
                imports.append(module)
        return imports

    def extract_exports(self, content: str) -> List[str]:
        exports: List[str] = []
        for match in DEFINITION.finditer(content):
            if match.group(1) not in exports:
                exports.append(match.group(1))
        return exports

    def resolve_specifier(self, raw_import: str) -> Optional[str]:
        """Convert ".mod" to "./mod", "..pkg.mod" to "../pkg/mod" and "." to "."."""
        match = RELATIVE_PREFIX.match(raw_import)
        if match is None:
            return None

        dots, remainder = match.groups()
        prefix = "./" if len(dots) == 1 else "../" * (len(dots) - 1)
        if not remainder:
            return prefix.rstrip("/") or "."
        return prefix + remainder.replace(".", "/")
