# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Reference extractor for JavaScript and TypeScript modules.

Supports:
- ES module imports: import x from "./a", import { y } from "./b", import "./c"
- Re-exports: export { x } from "./a", export * from "./b"
- CommonJS: require("./a")
- Dynamic imports: import("./a")
"""

import re
from typing import List, Tuple

from .base import ReferenceExtractor, collect_matches, split_symbol_list

IMPORT_PATTERNS = [
    re.compile(
        r"import\s+(?:type\s+)?"
        r"(?:(?:\{[^}]*\}|\*\s+as\s+\w+|\w+)(?:\s*,\s*(?:\{[^}]*\}|\*\s+as\s+\w+|\w+))*\s+from\s+)?"
        r"['\"]([^'\"]+)['\"]"
    ),
    re.compile(r"export\s+(?:\*(?:\s+as\s+\w+)?|\{[^}]*\})\s+from\s+['\"]([^'\"]+)['\"]"),
    re.compile(r"require\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"),
    re.compile(r"import\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"),
]

DECLARATION_EXPORT = re.compile(
    r"export\s+(?:default\s+)?(?:abstract\s+)?(?:async\s+)?"
    r"(?:class|function\*?|const|let|var|interface|type|enum)\s+(\w+)"
)
LIST_EXPORT = re.compile(r"export\s*(?:type\s*)?\{([^}]+)\}")


class JavaScriptExtractor(ReferenceExtractor):
    """Extractor for .js/.jsx/.mjs/.cjs/.ts/.tsx files.

    Priority: 100 (most projects this engine targets are JS/TS first)
    """

    def name(self) -> str:
        return "JavaScriptExtractor"

    def extensions(self) -> Tuple[str, ...]:
        return (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx")

    def priority(self) -> int:
        return 100

    def extract_imports(self, content: str) -> List[str]:
        return collect_matches(IMPORT_PATTERNS, content)

    def extract_exports(self, content: str) -> List[str]:
        exports = collect_matches([DECLARATION_EXPORT], content)
        for match in LIST_EXPORT.finditer(content):
            for symbol in split_symbol_list(match.group(1)):
                if symbol not in exports:
                    exports.append(symbol)
        return exports
