# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""In-process usage metrics for the context and edit engines.

Counts context selections and optimized edits for the lifetime of the
process so callers can report usage, average latency, token savings and
validation success. Nothing is written to disk.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from smart_context.models import ContextOptimization, EditValidation, OptimizedEdit

logger = logging.getLogger(__name__)


def _average(total: float, count: int) -> float:
    return total / count if count else 0.0


@dataclass
class ContextSelectionMetrics:
    """Context selection usage.

    tokens_reduced is the estimated size of the offered files minus the size
    of the selection, summed over selections whose offered size is known.
    """

    total_usages: int = 0
    fallback_count: int = 0
    files_reduced: int = 0
    tokens_reduced: int = 0
    total_processing_time_ms: float = 0.0
    total_relevance_ratio: float = 0.0
    last_used: Optional[str] = None

    @property
    def average_processing_time_ms(self) -> float:
        return _average(self.total_processing_time_ms, self.total_usages)

    @property
    def average_relevance(self) -> float:
        return _average(self.total_relevance_ratio, self.total_usages)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_usages": self.total_usages,
            "fallback_count": self.fallback_count,
            "files_reduced": self.files_reduced,
            "tokens_reduced": self.tokens_reduced,
            "average_processing_time_ms": round(self.average_processing_time_ms, 2),
            "average_relevance": round(self.average_relevance, 4),
            "last_used": self.last_used,
        }


@dataclass
class EditMetrics:
    """Optimized edit and validation usage."""

    total_edits: int = 0
    skipped_below_threshold: int = 0
    edits_by_complexity: Dict[str, int] = field(default_factory=dict)
    prompt_tokens: int = 0
    total_processing_time_ms: float = 0.0
    validations: int = 0
    validations_passed: int = 0
    last_used: Optional[str] = None

    @property
    def average_processing_time_ms(self) -> float:
        return _average(self.total_processing_time_ms, self.total_edits)

    @property
    def validation_success_rate(self) -> float:
        """Fraction of validations where both syntax and structure held."""
        return _average(self.validations_passed, self.validations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_edits": self.total_edits,
            "skipped_below_threshold": self.skipped_below_threshold,
            "edits_by_complexity": dict(self.edits_by_complexity),
            "prompt_tokens": self.prompt_tokens,
            "average_processing_time_ms": round(self.average_processing_time_ms, 2),
            "validations": self.validations,
            "validation_success_rate": round(self.validation_success_rate, 4),
            "last_used": self.last_used,
        }


@dataclass
class EngineMetrics:
    """Snapshot of all metrics of a session."""

    session_id: str
    started_at: str
    context_selection: ContextSelectionMetrics
    edits: EditMetrics
    configuration: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "started_at": self.started_at,
            "context_selection": self.context_selection.to_dict(),
            "edits": self.edits.to_dict(),
            "configuration": dict(self.configuration),
        }


class MetricsCollector:
    """Aggregates usage metrics for one engine session.

    Usage:
        collector = MetricsCollector()
        collector.record_context_selection(result, offered_files=12, offered_tokens=9000)
        collector.record_edit(optimized, processing_time_ms=4.2)
        snapshot = collector.get_metrics().to_dict()
    """

    def __init__(self, session_id: Optional[str] = None):
        """Initialize the collector.

        Args:
            session_id: Optional session ID. If None, generates a UUID.
        """
        self._session_id = session_id or str(uuid.uuid4())
        self._started_at = _now()
        self._context = ContextSelectionMetrics()
        self._edits = EditMetrics()
        self._configuration: Dict[str, Any] = {}

        logger.debug(f"MetricsCollector initialized with session_id={self._session_id}")

    def record_context_selection(
        self,
        result: ContextOptimization,
        offered_files: int,
        offered_tokens: Optional[int] = None,
    ) -> None:
        """Record one context selection.

        Args:
            result: The selection returned to the caller.
            offered_files: Number of files the caller offered.
            offered_tokens: Estimated tokens of the offered files, if known.
        """
        metrics = self._context
        metrics.total_usages += 1
        metrics.total_processing_time_ms += result.processing_time_ms
        metrics.total_relevance_ratio += result.relevance_ratio
        metrics.files_reduced += max(0, offered_files - len(result.selected_files))
        if offered_tokens is not None:
            metrics.tokens_reduced += max(0, offered_tokens - result.total_tokens)
        if result.used_fallback:
            metrics.fallback_count += 1
        metrics.last_used = _now()

    def record_edit(self, optimized: OptimizedEdit, processing_time_ms: float) -> None:
        """Record one optimized edit."""
        metrics = self._edits
        metrics.total_edits += 1
        metrics.prompt_tokens += optimized.prompt_tokens
        metrics.total_processing_time_ms += processing_time_ms
        if optimized.analysis is not None:
            complexity = optimized.analysis.complexity
            metrics.edits_by_complexity[complexity] = (
                metrics.edits_by_complexity.get(complexity, 0) + 1
            )
        metrics.last_used = _now()

    def record_skipped_edit(self) -> None:
        """Record an edit rejected by the complexity threshold."""
        self._edits.skipped_below_threshold += 1

    def record_validation(self, validation: EditValidation) -> None:
        """Record one edit validation."""
        self._edits.validations += 1
        if validation.syntax_valid and validation.structure_intact:
            self._edits.validations_passed += 1

    def set_configuration(self, config: Dict[str, Any]) -> None:
        """Set configuration values reported alongside the metrics."""
        self._configuration = config.copy()

    def get_metrics(self) -> EngineMetrics:
        """Snapshot the current metrics."""
        return EngineMetrics(
            session_id=self._session_id,
            started_at=self._started_at,
            context_selection=replace(self._context),
            edits=replace(
                self._edits, edits_by_complexity=dict(self._edits.edits_by_complexity)
            ),
            configuration=dict(self._configuration),
        )

    def reset(self) -> None:
        """Zero all counters; the session ID is kept."""
        self._context = ContextSelectionMetrics()
        self._edits = EditMetrics()

    def get_session_id(self) -> str:
        """Get the session ID."""
        return self._session_id


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
