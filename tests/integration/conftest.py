# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Shared fixtures for integration tests."""

from pathlib import Path

import pytest

APP_FILES = {
    "package.json": '{"name": "shop", "main": "src/index.ts"}\n',
    "src/index.ts": (
        'import { renderCart } from "./components/Cart";\n'
        'import { formatPrice } from "./utils/format";\n'
        "\n"
        "export function main() {\n"
        "  return renderCart([formatPrice(3)]);\n"
        "}\n"
    ),
    "src/components/Cart.tsx": (
        'import { formatPrice } from "../utils/format";\n'
        "\n"
        "export function renderCart(items: string[]) {\n"
        "  return <ul>{items.map((item) => <li key={item}>{item}</li>)}</ul>;\n"
        "}\n"
    ),
    "src/utils/format.ts": (
        "export function formatPrice(amount: number): string {\n"
        "  return `$${amount.toFixed(2)}`;\n"
        "}\n"
    ),
    "src/services/api.ts": (
        'import { formatPrice } from "../utils/format";\n'
        "\n"
        "export async function fetchTotal(): Promise<string> {\n"
        "  return formatPrice(10);\n"
        "}\n"
    ),
    "scripts/seed.py": "from pathlib import Path\n\n\ndef seed():\n    return Path('.')\n",
    "node_modules/react/index.js": "module.exports = {};\n",
}


@pytest.fixture
def app_project(tmp_path: Path) -> Path:
    """A small TypeScript shop with one Python script and a vendored module."""
    root = tmp_path / "shop"
    for relative_path, content in APP_FILES.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root
