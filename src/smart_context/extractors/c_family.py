# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Reference extractor for C and C++ sources.

Quoted includes ("util.h") are resolved relative to the including file.
System includes (<stdio.h>) are kept in their bracketed form and never
resolve.
"""

import re
from typing import List, Optional, Tuple

from .base import ReferenceExtractor

INCLUDE_PATTERN = re.compile(r"#\s*include\s*([<\"])([^>\"]+)[>\"]")
EXPORT_PATTERNS = [
    re.compile(r"^(?:class|struct)\s+(\w+)\s*[:{]", re.MULTILINE),
    re.compile(r"^[A-Za-z_][\w \t\*&:<>,]*?\b(\w+)[ \t]*\([^;{\n]*\)\s*\{", re.MULTILINE),
]
CONTROL_KEYWORDS = {"if", "for", "while", "switch", "return", "sizeof"}


class CFamilyExtractor(ReferenceExtractor):
    """Extractor for .c/.h/.cpp/.cc/.hpp files.

    Exports are top-level type and function definitions.

    Priority: 50
    """

    def name(self) -> str:
        return "CFamilyExtractor"

    def extensions(self) -> Tuple[str, ...]:
        return (".c", ".h", ".cpp", ".cc", ".hpp")

    def extract_imports(self, content: str) -> List[str]:
        imports: List[str] = []
        for match in INCLUDE_PATTERN.finditer(content):
            delimiter, target = match.groups()
            value = f"<{target.strip()}>" if delimiter == "<" else target.strip()
            if value not in imports:
                imports.append(value)
        return imports

    def extract_exports(self, content: str) -> List[str]:
        exports: List[str] = []
        for pattern in EXPORT_PATTERNS:
            for match in pattern.finditer(content):
                symbol = match.group(1)
                if symbol not in CONTROL_KEYWORDS and symbol not in exports:
                    exports.append(symbol)
        return exports

    def resolve_specifier(self, raw_import: str) -> Optional[str]:
        if raw_import.startswith("<"):
            return None
        if raw_import.startswith("."):
            return raw_import
        return f"./{raw_import}"
