# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Reference extractor plugins for dependency graph building.

Components:
- ReferenceExtractor: Abstract base class for extractor plugins
- ExtractorRegistry: Extension-keyed, priority-ordered registry
- JavaScriptExtractor: ES modules, CommonJS and dynamic imports
- PythonExtractor: import / from-import statements
- JavaExtractor: Java and Kotlin imports
- CFamilyExtractor: C/C++ #include directives
- CSharpExtractor: C# using directives
"""

from smart_context.extractors.base import ReferenceExtractor
from smart_context.extractors.c_family import CFamilyExtractor
from smart_context.extractors.csharp import CSharpExtractor
from smart_context.extractors.java import JavaExtractor
from smart_context.extractors.javascript import JavaScriptExtractor
from smart_context.extractors.python import PythonExtractor
from smart_context.extractors.registry import ExtractorRegistry


def create_default_registry() -> ExtractorRegistry:
    """Create a registry with every built-in extractor registered."""
    registry = ExtractorRegistry()
    for extractor in (
        JavaScriptExtractor(),
        PythonExtractor(),
        JavaExtractor(),
        CFamilyExtractor(),
        CSharpExtractor(),
    ):
        registry.register(extractor)
    return registry


__all__ = [
    "ReferenceExtractor",
    "ExtractorRegistry",
    "JavaScriptExtractor",
    "PythonExtractor",
    "JavaExtractor",
    "CFamilyExtractor",
    "CSharpExtractor",
    "create_default_registry",
]
