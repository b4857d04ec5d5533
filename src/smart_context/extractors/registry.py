# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Registry for reference extractor plugins.

Maps file extensions to extractors with priority-based conflict resolution.
"""

import logging
from typing import Dict, List, Optional

from .base import ReferenceExtractor

logger = logging.getLogger(__name__)


class ExtractorRegistry:
    """Registry for reference extractor plugins.

    Thread Safety:
    - NOT thread-safe for registration: register all extractors during
      initialization before building graphs
    - Lookups are read-only and may be shared across worker threads
    """

    def __init__(self) -> None:
        """Initialize empty extractor registry."""
        self._extractors: List[ReferenceExtractor] = []
        self._by_extension: Dict[str, ReferenceExtractor] = {}

    def register(self, extractor: ReferenceExtractor) -> None:
        """Register an extractor plugin.

        Args:
            extractor: Extractor to register.

        Raises:
            TypeError: If extractor is not a ReferenceExtractor instance.
        """
        if not isinstance(extractor, ReferenceExtractor):
            raise TypeError(
                f"Extractor must be a ReferenceExtractor instance, got {type(extractor)}"
            )

        self._extractors.append(extractor)
        # Sort by priority (highest first), then by name for stability
        self._extractors.sort(key=lambda e: (-e.priority(), e.name()))
        self._rebuild_index()

        logger.debug(
            f"Registered extractor '{extractor.name()}' with priority {extractor.priority()} "
            f"for {', '.join(extractor.extensions())}"
        )

    def _rebuild_index(self) -> None:
        self._by_extension = {}
        for extractor in self._extractors:
            for extension in extractor.extensions():
                self._by_extension.setdefault(extension.lower(), extractor)

    def get_extractors(self) -> List[ReferenceExtractor]:
        """Get all registered extractors in priority order (highest first)."""
        return list(self._extractors)

    def for_extension(self, extension: str) -> Optional[ReferenceExtractor]:
        """Get the extractor for a file extension such as ".ts".

        Returns:
            The highest priority extractor claiming the extension, or None.
        """
        return self._by_extension.get(extension.lower())

    def supported_extensions(self) -> List[str]:
        """Return every extension some extractor handles, sorted."""
        return sorted(self._by_extension)

    def clear(self) -> None:
        """Remove all registered extractors."""
        self._extractors.clear()
        self._by_extension.clear()

    def count(self) -> int:
        """Return number of registered extractors."""
        return len(self._extractors)
