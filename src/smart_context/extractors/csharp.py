# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Reference extractor for C# sources."""

import re
from typing import List, Tuple

from .base import ReferenceExtractor, collect_matches

USING_PATTERN = re.compile(r"^[ \t]*using\s+(?:static\s+)?([\w.]+)\s*;", re.MULTILINE)
EXPORT_PATTERN = re.compile(
    r"public\s+(?:static\s+)?(?:sealed\s+)?(?:abstract\s+)?(?:partial\s+)?"
    r"(?:class|interface|struct|enum|record)\s+(\w+)"
)


class CSharpExtractor(ReferenceExtractor):
    """Extractor for .cs files. Namespaces never resolve to files."""

    def name(self) -> str:
        return "CSharpExtractor"

    def extensions(self) -> Tuple[str, ...]:
        return (".cs",)

    def extract_imports(self, content: str) -> List[str]:
        return collect_matches([USING_PATTERN], content)

    def extract_exports(self, content: str) -> List[str]:
        return collect_matches([EXPORT_PATTERN], content)
