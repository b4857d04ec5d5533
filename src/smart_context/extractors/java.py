# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Reference extractor for Java and Kotlin sources.

Package imports never resolve to files (no classpath model), but they are
kept on the node so callers can inspect them.
"""

import re
from typing import List, Tuple

from .base import ReferenceExtractor, collect_matches

IMPORT_PATTERN = re.compile(r"^[ \t]*import\s+(?:static\s+)?([\w.*]+)\s*;?", re.MULTILINE)
EXPORT_PATTERNS = [
    re.compile(
        r"public\s+(?:static\s+)?(?:final\s+)?(?:abstract\s+)?"
        r"(?:class|interface|enum|record)\s+(\w+)"
    ),
    re.compile(r"public\s+(?:static\s+)?(?:final\s+)?[\w<>\[\],.\s]+?\s+(\w+)\s*\("),
]


class JavaExtractor(ReferenceExtractor):
    """Extractor for .java/.kt files.

    Priority: 50
    """

    def name(self) -> str:
        return "JavaExtractor"

    def extensions(self) -> Tuple[str, ...]:
        return (".java", ".kt")

    def extract_imports(self, content: str) -> List[str]:
        return collect_matches([IMPORT_PATTERN], content)

    def extract_exports(self, content: str) -> List[str]:
        return collect_matches(EXPORT_PATTERNS, content)
