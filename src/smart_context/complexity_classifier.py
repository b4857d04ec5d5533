# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Heuristic complexity classification of edit requests.

Classification starts at SIMPLE with confidence 0.8 and 1000 estimated
tokens, then applies keyword tiers and independent escalators in a single
pass. Complexity only ever moves upward within a pass, which makes the
classifier monotonic: adding escalating keywords to a prompt never lowers
the tier.
"""

import logging
import posixpath
import re
from typing import Dict, List, Optional, Tuple

from smart_context.cache import AnalysisCache, complexity_key
from smart_context.models import EditAnalysis, EditComplexity, ModelStrategy
from smart_context.strategy_selector import StrategySelector

logger = logging.getLogger(__name__)

INITIAL_CONFIDENCE = 0.8
INITIAL_TOKENS = 1000

# Keyword tiers, applied in this order
COMPLEXITY_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("simple", ("fix", "correct", "typo", "update", "change text", "rename")),
    ("moderate", ("refactor", "optimize", "restructure", "add function", "modify logic")),
    ("complex", ("architecture", "design pattern", "framework", "migrate", "rewrite")),
    ("multi-file", ("multiple files", "across files", "project-wide", "global change")),
]

# Keyword tier -> (complexity, confidence, estimated tokens)
TIER_ESCALATION: Dict[str, Tuple[str, float, int]] = {
    "moderate": (EditComplexity.MODERATE, 0.7, 2000),
    "complex": (EditComplexity.COMPLEX, 0.6, 4000),
    "multi-file": (EditComplexity.MULTI_FILE, 0.9, 8000),
}

LARGE_FILE_CHARS = 50000
LARGE_FILE_EXTRA_TOKENS = 1000
MANY_LINES = 1000
MANY_LINES_EXTRA_TOKENS = 500
LONG_PROMPT_CHARS = 500

COMPONENT_EXTENSIONS = (".tsx", ".jsx", ".vue", ".svelte")

STRUCTURAL_REFERENCE_PATTERNS = [
    re.compile(r"class\s+\w+", re.IGNORECASE),
    re.compile(r"interface\s+\w+", re.IGNORECASE),
    re.compile(r"function\s+\w+", re.IGNORECASE),
    re.compile(r"import.*from", re.IGNORECASE),
    re.compile(r"export.*\{", re.IGNORECASE),
]

MIN_EVIDENCE = 2
LOW_EVIDENCE_PENALTY = 0.2


class ComplexityClassifier:
    """Estimates the difficulty of an edit request.

    Analyses are memoized by (prompt, file path, content length). Each
    analysis embeds the strategy the StrategySelector picks for it.
    """

    def __init__(
        self,
        strategy_selector: Optional[StrategySelector] = None,
        cache: Optional[AnalysisCache] = None,
        model_strategy: str = ModelStrategy.BALANCED,
    ):
        """Initialize the classifier.

        Args:
            strategy_selector: Selector for the suggested strategy.
            cache: Shared analysis cache (default: a private cache).
            model_strategy: User model preference used for suggestions.
        """
        self.cache = cache if cache is not None else AnalysisCache()
        self.strategy_selector = (
            strategy_selector if strategy_selector is not None else StrategySelector(self.cache)
        )
        self.model_strategy = model_strategy

    def estimate_complexity(self, prompt: str, file_path: str, file_content: str) -> EditAnalysis:
        """Classify an edit request, reusing a cached analysis when available."""
        return self.cache.get_or_compute(
            complexity_key(prompt, file_path, len(file_content)),
            lambda: self._analyze(prompt, file_path, file_content),
        )

    def _analyze(self, prompt: str, file_path: str, file_content: str) -> EditAnalysis:
        reasoning: List[str] = []
        complexity = EditComplexity.SIMPLE
        confidence = INITIAL_CONFIDENCE
        estimated_tokens = INITIAL_TOKENS

        normalized_prompt = prompt.lower()
        extension = posixpath.splitext(file_path)[1].lower()
        line_count = len(file_content.split("\n"))

        for tier, keywords in COMPLEXITY_KEYWORDS:
            found = [keyword for keyword in keywords if keyword in normalized_prompt]
            if not found:
                continue
            reasoning.append(f"Detected {tier} keywords: {', '.join(found)}")

            if tier == "simple":
                if complexity == EditComplexity.SIMPLE:
                    confidence += 0.1
                continue

            tier_complexity, tier_confidence, tier_tokens = TIER_ESCALATION[tier]
            if EditComplexity.rank(tier_complexity) >= EditComplexity.rank(complexity):
                complexity = tier_complexity
                confidence = tier_confidence
                estimated_tokens = tier_tokens

        if len(file_content) > LARGE_FILE_CHARS:
            reasoning.append(f"Large file (>{LARGE_FILE_CHARS // 1000}KB) increases complexity")
            complexity = EditComplexity.max(complexity, EditComplexity.MODERATE)
            estimated_tokens += LARGE_FILE_EXTRA_TOKENS

        if line_count > MANY_LINES:
            reasoning.append(f"File has many lines (>{MANY_LINES}) increasing complexity")
            estimated_tokens += MANY_LINES_EXTRA_TOKENS

        if extension in COMPONENT_EXTENSIONS:
            reasoning.append("Component file may require structural analysis")
            complexity = EditComplexity.max(complexity, EditComplexity.MODERATE)

        structural_references = sum(
            1 for pattern in STRUCTURAL_REFERENCE_PATTERNS if pattern.search(prompt)
        )
        if structural_references > 2:
            reasoning.append("Multiple structural references detected in prompt")
            complexity = EditComplexity.max(complexity, EditComplexity.MODERATE)

        if len(prompt) > LONG_PROMPT_CHARS:
            reasoning.append(f"Long prompt (>{LONG_PROMPT_CHARS} chars) suggests a broad change")
            estimated_tokens += len(prompt) // 2

        if len(reasoning) < MIN_EVIDENCE:
            confidence -= LOW_EVIDENCE_PENALTY
            reasoning.append("Little evidence for classification, confidence reduced")

        analysis = EditAnalysis(
            complexity=complexity,
            confidence=max(0.1, min(1.0, confidence)),
            estimated_tokens=estimated_tokens,
            reasoning=reasoning,
        )
        analysis.suggested_strategy = self.strategy_selector.select_strategy(
            analysis, self.model_strategy, file_path
        )

        logger.debug(
            f"Classified edit of {posixpath.basename(file_path)} as {complexity} "
            f"(confidence {analysis.confidence:.2f}, ~{estimated_tokens} tokens)"
        )
        return analysis
