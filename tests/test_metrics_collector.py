# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Unit tests for MetricsCollector.

Tests cover:
- Context selection counters (files and tokens reduced, fallbacks, averages)
- Optimized edit counters by complexity and skipped edits
- Validation success rate
- Snapshot independence, configuration capture and reset
"""

import pytest

from smart_context.metrics_collector import (
    ContextSelectionMetrics,
    EditMetrics,
    MetricsCollector,
)
from smart_context.models import (
    ContextOptimization,
    EditAnalysis,
    EditComplexity,
    EditStrategy,
    EditValidation,
    ModelSelection,
    OptimizedEdit,
    RetryPolicy,
    ValidationLevel,
)


def selection(files, tokens: int, ratio: float = 0.5, ms: float = 10.0, fallback: bool = False):
    return ContextOptimization(
        selected_files=list(files),
        total_tokens=tokens,
        relevance_ratio=ratio,
        processing_time_ms=ms,
        used_fallback=fallback,
    )


def optimized_edit(complexity: str, prompt_tokens: int = 100) -> OptimizedEdit:
    strategy = EditStrategy(
        model_selection=ModelSelection.BALANCED,
        max_tokens=4000,
        validation_level=ValidationLevel.ENHANCED,
        retry_policy=RetryPolicy(3, 2.0, 1500),
    )
    analysis = EditAnalysis(
        complexity=complexity, confidence=0.8, estimated_tokens=1000, reasoning=[]
    )
    return OptimizedEdit(
        strategy=strategy,
        optimized_prompt="prompt",
        expected_output_format="Clean, well-formatted code",
        validation_rules=[],
        processing_hints=[],
        analysis=analysis,
        prompt_tokens=prompt_tokens,
    )


def validation(syntax: bool, structure: bool) -> EditValidation:
    return EditValidation(
        syntax_valid=syntax,
        structure_intact=structure,
        potential_issues=[],
        confidence=0.9,
        validation_level=ValidationLevel.BASIC,
        processing_time_ms=1.0,
    )


class TestContextSelection:
    """Tests for context selection counters."""

    def test_reductions(self):
        collector = MetricsCollector()

        collector.record_context_selection(
            selection(["a.ts", "b.ts"], 300), offered_files=5, offered_tokens=1000
        )

        metrics = collector.get_metrics().context_selection
        assert metrics.total_usages == 1
        assert metrics.files_reduced == 3
        assert metrics.tokens_reduced == 700
        assert metrics.fallback_count == 0
        assert metrics.last_used is not None

    def test_reductions_never_negative(self):
        collector = MetricsCollector()

        collector.record_context_selection(
            selection(["a.ts", "b.ts"], 300), offered_files=1, offered_tokens=100
        )

        metrics = collector.get_metrics().context_selection
        assert metrics.files_reduced == 0
        assert metrics.tokens_reduced == 0

    def test_unknown_offered_tokens(self):
        collector = MetricsCollector()

        collector.record_context_selection(selection(["a.ts"], 300), offered_files=2)

        assert collector.get_metrics().context_selection.tokens_reduced == 0

    def test_fallback_and_averages(self):
        collector = MetricsCollector()

        collector.record_context_selection(selection([], 0, ratio=0.0, ms=30.0, fallback=True), 0)
        collector.record_context_selection(selection(["a.ts"], 10, ratio=1.0, ms=10.0), 1)

        metrics = collector.get_metrics().context_selection
        assert metrics.fallback_count == 1
        assert metrics.average_processing_time_ms == pytest.approx(20.0)
        assert metrics.average_relevance == pytest.approx(0.5)

    def test_empty_averages(self):
        metrics = ContextSelectionMetrics()

        assert metrics.average_processing_time_ms == 0.0
        assert metrics.average_relevance == 0.0
        assert metrics.to_dict()["last_used"] is None


class TestEdits:
    """Tests for edit and validation counters."""

    def test_counts_by_complexity(self):
        collector = MetricsCollector()

        collector.record_edit(optimized_edit(EditComplexity.COMPLEX, 120), 4.0)
        collector.record_edit(optimized_edit(EditComplexity.COMPLEX, 80), 2.0)
        collector.record_edit(optimized_edit(EditComplexity.MODERATE, 50), 6.0)

        edits = collector.get_metrics().edits
        assert edits.total_edits == 3
        assert edits.edits_by_complexity == {"complex": 2, "moderate": 1}
        assert edits.prompt_tokens == 250
        assert edits.average_processing_time_ms == pytest.approx(4.0)

    def test_edit_without_analysis(self):
        collector = MetricsCollector()
        edit = optimized_edit(EditComplexity.SIMPLE)
        edit.analysis = None

        collector.record_edit(edit, 1.0)

        edits = collector.get_metrics().edits
        assert edits.total_edits == 1
        assert edits.edits_by_complexity == {}

    def test_skipped_edits(self):
        collector = MetricsCollector()

        collector.record_skipped_edit()
        collector.record_skipped_edit()

        edits = collector.get_metrics().edits
        assert edits.skipped_below_threshold == 2
        assert edits.total_edits == 0

    def test_validation_success_rate(self):
        collector = MetricsCollector()

        collector.record_validation(validation(True, True))
        collector.record_validation(validation(True, False))
        collector.record_validation(validation(False, True))
        collector.record_validation(validation(True, True))

        edits = collector.get_metrics().edits
        assert edits.validations == 4
        assert edits.validations_passed == 2
        assert edits.validation_success_rate == pytest.approx(0.5)

    def test_empty_success_rate(self):
        assert EditMetrics().validation_success_rate == 0.0


class TestSession:
    """Tests for snapshots, configuration and reset."""

    def test_session_id(self):
        assert MetricsCollector(session_id="abc").get_session_id() == "abc"
        assert MetricsCollector().get_session_id() != MetricsCollector().get_session_id()

    def test_snapshot_is_independent(self):
        collector = MetricsCollector()
        collector.record_edit(optimized_edit(EditComplexity.COMPLEX), 1.0)

        snapshot = collector.get_metrics()
        collector.record_edit(optimized_edit(EditComplexity.COMPLEX), 1.0)
        collector.record_context_selection(selection(["a.ts"], 10), 3)

        assert snapshot.edits.total_edits == 1
        assert snapshot.edits.edits_by_complexity == {"complex": 1}
        assert snapshot.context_selection.total_usages == 0

    def test_configuration_is_copied(self):
        collector = MetricsCollector()
        config = {"smart_context_sensitivity": "balanced"}

        collector.set_configuration(config)
        config["smart_context_sensitivity"] = "aggressive"

        assert collector.get_metrics().configuration == {
            "smart_context_sensitivity": "balanced"
        }

    def test_reset_keeps_session(self):
        collector = MetricsCollector(session_id="keep-me")
        collector.record_skipped_edit()
        collector.record_context_selection(selection(["a.ts"], 10), 3)

        collector.reset()

        metrics = collector.get_metrics()
        assert metrics.session_id == "keep-me"
        assert metrics.edits.skipped_below_threshold == 0
        assert metrics.context_selection.total_usages == 0

    def test_to_dict(self):
        collector = MetricsCollector(session_id="s1")
        collector.set_configuration({"max_retries": 3})
        collector.record_validation(validation(True, True))

        data = collector.get_metrics().to_dict()

        assert set(data) == {
            "session_id",
            "started_at",
            "context_selection",
            "edits",
            "configuration",
        }
        assert data["session_id"] == "s1"
        assert data["configuration"] == {"max_retries": 3}
        assert data["edits"]["validation_success_rate"] == 1.0
        assert data["context_selection"]["total_usages"] == 0
