# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Edit strategy selection.

Maps a complexity tier and the user's model preference to a model tier,
output token ceiling, validation level and retry policy. Selection is pure;
results are memoized per (complexity, preference, extension).
"""

import logging
import posixpath
from dataclasses import replace
from typing import Dict, NamedTuple, Optional

from smart_context.cache import AnalysisCache, strategy_key
from smart_context.models import (
    ComplexityThreshold,
    EditAnalysis,
    EditComplexity,
    EditStrategy,
    ModelSelection,
    ModelStrategy,
    RetryPolicy,
    ValidationLevel,
)

logger = logging.getLogger(__name__)


class _TierDefaults(NamedTuple):
    max_tokens: int
    validation_level: str
    retry_policy: RetryPolicy


STRATEGY_TABLE: Dict[str, _TierDefaults] = {
    EditComplexity.SIMPLE: _TierDefaults(2000, ValidationLevel.BASIC, RetryPolicy(2, 1.5, 1000)),
    EditComplexity.MODERATE: _TierDefaults(
        4000, ValidationLevel.ENHANCED, RetryPolicy(3, 2.0, 1500)
    ),
    EditComplexity.COMPLEX: _TierDefaults(8000, ValidationLevel.STRICT, RetryPolicy(3, 2.5, 2000)),
    EditComplexity.MULTI_FILE: _TierDefaults(
        12000, ValidationLevel.STRICT, RetryPolicy(4, 3.0, 3000)
    ),
}

# Used for tiers outside the table
DEFAULT_TIER = _TierDefaults(4000, ValidationLevel.ENHANCED, RetryPolicy(3, 2.0, 1500))

# complexity -> preference -> model tier
MODEL_TABLE: Dict[str, Dict[str, str]] = {
    EditComplexity.SIMPLE: {
        ModelStrategy.FAST: ModelSelection.FAST,
        ModelStrategy.BALANCED: ModelSelection.FAST,
        ModelStrategy.QUALITY: ModelSelection.BALANCED,
    },
    EditComplexity.MODERATE: {
        ModelStrategy.FAST: ModelSelection.BALANCED,
        ModelStrategy.BALANCED: ModelSelection.BALANCED,
        ModelStrategy.QUALITY: ModelSelection.POWERFUL,
    },
    EditComplexity.COMPLEX: {
        ModelStrategy.FAST: ModelSelection.BALANCED,
        ModelStrategy.BALANCED: ModelSelection.POWERFUL,
        ModelStrategy.QUALITY: ModelSelection.POWERFUL,
    },
    EditComplexity.MULTI_FILE: {
        ModelStrategy.FAST: ModelSelection.POWERFUL,
        ModelStrategy.BALANCED: ModelSelection.POWERFUL,
        ModelStrategy.QUALITY: ModelSelection.POWERFUL,
    },
}


def select_model(complexity: str, preference: str) -> str:
    """Pick the model tier; unknown preferences behave as balanced."""
    by_preference = MODEL_TABLE.get(complexity)
    if by_preference is None:
        return ModelSelection.BALANCED
    return by_preference.get(preference, by_preference[ModelStrategy.BALANCED])


def should_process(complexity: str, threshold: str) -> bool:
    """Check whether an edit of this complexity gets an optimized edit.

    Thresholds:
    - simple: every tier
    - moderate: every tier except simple
    - all: complex and multi_file only
    Unknown thresholds admit everything.
    """
    if threshold == ComplexityThreshold.MODERATE:
        return complexity != EditComplexity.SIMPLE
    if threshold == ComplexityThreshold.ALL:
        return complexity in (EditComplexity.COMPLEX, EditComplexity.MULTI_FILE)
    return True


class StrategySelector:
    """Chooses an EditStrategy for an analyzed edit.

    Args:
        cache: Shared analysis cache (default: a private cache).
        max_retries: Optional upper bound on retry attempts.
    """

    def __init__(self, cache: Optional[AnalysisCache] = None, max_retries: Optional[int] = None):
        self.cache = cache if cache is not None else AnalysisCache()
        self.max_retries = max_retries

    def select_strategy(
        self,
        analysis: EditAnalysis,
        model_strategy_preference: str = ModelStrategy.BALANCED,
        file_path: str = "",
    ) -> EditStrategy:
        """Select the strategy for an analysis.

        Only the complexity of the analysis matters; the file path contributes
        its extension to the memoization key.
        """
        extension = posixpath.splitext(file_path)[1].lower()
        key = strategy_key(analysis.complexity, model_strategy_preference, extension)
        return self.cache.get_or_compute(
            key, lambda: self._build_strategy(analysis.complexity, model_strategy_preference)
        )

    def _build_strategy(self, complexity: str, preference: str) -> EditStrategy:
        defaults = STRATEGY_TABLE.get(complexity, DEFAULT_TIER)
        retry_policy = defaults.retry_policy
        if self.max_retries is not None and retry_policy.max_attempts > self.max_retries:
            retry_policy = replace(retry_policy, max_attempts=self.max_retries)

        strategy = EditStrategy(
            model_selection=select_model(complexity, preference),
            max_tokens=defaults.max_tokens,
            validation_level=defaults.validation_level,
            retry_policy=retry_policy,
        )
        logger.debug(
            f"Strategy for {complexity}/{preference}: {strategy.model_selection}, "
            f"{strategy.max_tokens} tokens, {strategy.validation_level} validation"
        )
        return strategy
