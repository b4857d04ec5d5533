# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Optimized edit prompts.

EditOptimizer turns a file-edit request into an OptimizedEdit for the
text-generation layer:
1. Classify the request (ComplexityClassifier)
2. Reject it when its complexity is below the configured threshold
3. Select the strategy (StrategySelector)
4. Infer the edit type and render its template for the strategy's model tier
5. Attach validation rules, processing hints and the expected output format

After generation, validate_edit checks the result with EditValidator at the
strategy's validation level.
"""

import logging
import posixpath
from dataclasses import replace
from typing import List, Optional

import tiktoken

from smart_context.cache import AnalysisCache, CacheNamespace
from smart_context.complexity_classifier import ComplexityClassifier
from smart_context.config import Config
from smart_context.edit_templates import (
    DefaultTemplateProvider,
    TemplateProvider,
    determine_edit_type,
)
from smart_context.edit_validator import EditValidator
from smart_context.models import (
    ComplexityThreshold,
    EditAnalysis,
    EditComplexity,
    EditStrategy,
    EditValidation,
    ModelStrategy,
    OptimizedEdit,
    ValidationLevel,
)
from smart_context.strategy_selector import StrategySelector, should_process

logger = logging.getLogger(__name__)

TS_EXTENSIONS = (".ts", ".tsx")

BASE_VALIDATION_RULES = ["Keep syntax valid", "Preserve existing functionality"]
ENHANCED_VALIDATION_RULES = ["Check imports/exports", "Keep code style consistent"]
TYPESCRIPT_VALIDATION_RULE = "Check TypeScript types"
STRICT_VALIDATION_RULES = [
    "Run linting checks",
    "Check for breaking changes",
    "Validate related tests",
]


class EditBelowThresholdError(Exception):
    """Raised when an edit is too simple for the configured complexity threshold."""

    def __init__(self, complexity: str, threshold: str):
        self.complexity = complexity
        self.threshold = threshold
        super().__init__(
            f"Edit complexity '{complexity}' is below the processing threshold '{threshold}'"
        )


def validation_rule_descriptions(level: str, file_extension: str) -> List[str]:
    """Instructions for the model describing the checks its output will face."""
    rules = list(BASE_VALIDATION_RULES)
    rank = ValidationLevel.rank(level) if level in ValidationLevel.ORDER else 1

    if rank >= ValidationLevel.rank(ValidationLevel.ENHANCED):
        rules.extend(ENHANCED_VALIDATION_RULES)
        if file_extension in TS_EXTENSIONS:
            rules.append(TYPESCRIPT_VALIDATION_RULE)

    if rank >= ValidationLevel.rank(ValidationLevel.STRICT):
        rules.extend(STRICT_VALIDATION_RULES)

    return rules


def expected_output_format(strategy: EditStrategy, file_extension: str) -> str:
    """Describe the output the model should produce."""
    output_format = "Clean, well-formatted code"
    if file_extension in TS_EXTENSIONS:
        output_format += " with correct TypeScript types"
    if strategy.validation_level == ValidationLevel.STRICT:
        output_format += " and explanatory comments where needed"
    return output_format


class EditOptimizer:
    """Builds optimized edit prompts and validates generated edits.

    Args:
        complexity_threshold: Minimum complexity that gets processed.
        model_strategy: User model preference (fast, balanced or quality).
        enable_validation: Whether validate_edit runs the validator.
        classifier: Complexity classifier (default: one over cache).
        validator: Edit validator (default: all built-in rules).
        template_provider: Template source (default: the built-in set).
        cache: Shared analysis cache (default: a private cache).
    """

    def __init__(
        self,
        complexity_threshold: str = ComplexityThreshold.MODERATE,
        model_strategy: str = ModelStrategy.BALANCED,
        enable_validation: bool = True,
        classifier: Optional[ComplexityClassifier] = None,
        validator: Optional[EditValidator] = None,
        template_provider: Optional[TemplateProvider] = None,
        cache: Optional[AnalysisCache] = None,
    ):
        self.complexity_threshold = complexity_threshold
        self.model_strategy = model_strategy
        self.enable_validation = enable_validation
        self.cache = cache if cache is not None else AnalysisCache()
        self.classifier = (
            classifier
            if classifier is not None
            else ComplexityClassifier(StrategySelector(self.cache), self.cache, model_strategy)
        )
        self.validator = validator if validator is not None else EditValidator()
        self.template_provider = (
            template_provider if template_provider is not None else DefaultTemplateProvider()
        )
        self._token_encoder: Optional[tiktoken.Encoding] = None

    def analyze(self, prompt: str, file_path: str, file_content: str) -> EditAnalysis:
        """Classify an edit request without applying the threshold."""
        return self.classifier.estimate_complexity(prompt, file_path, file_content)

    def generate_optimized_edit(
        self,
        prompt: str,
        file_path: str,
        file_content: str,
        context: Optional[List[str]] = None,
    ) -> OptimizedEdit:
        """Build the optimized edit for a request.

        Args:
            prompt: The user's edit request.
            file_path: Project-relative path of the file to edit.
            file_content: Current content of the file.
            context: Extra context lines appended to the prompt.

        Returns:
            OptimizedEdit carrying the strategy, the rendered prompt and hints.

        Raises:
            EditBelowThresholdError: If the edit is below the complexity threshold.
            TemplateError: If no template fits the edit.
        """
        analysis = self.analyze(prompt, file_path, file_content)

        if not should_process(analysis.complexity, self.complexity_threshold):
            raise EditBelowThresholdError(analysis.complexity, self.complexity_threshold)

        strategy = analysis.suggested_strategy
        if strategy is None:
            strategy = self.classifier.strategy_selector.select_strategy(
                analysis, self.model_strategy, file_path
            )

        file_name = posixpath.basename(file_path)
        extension = posixpath.splitext(file_path)[1].lower()
        edit_type = determine_edit_type(prompt, extension)
        template = self.template_provider.get_template(edit_type, strategy.model_selection)

        context_section = ""
        if context:
            context_section = "\n\nAdditional context:\n" + "\n".join(context) + "\n"

        optimized_prompt = template.render(
            {
                "ORIGINAL_PROMPT": prompt,
                "FILE_NAME": file_name,
                "FILE_EXTENSION": extension.lstrip("."),
                "FILE_CONTENT": file_content,
                "CONTEXT": context_section,
                "MAX_TOKENS": str(strategy.max_tokens),
                "VALIDATION_LEVEL": strategy.validation_level,
            }
        )
        prompt_tokens = self.count_tokens(optimized_prompt)

        strategy = replace(strategy, prompt_template=template.key)

        hints = [
            f"Estimated complexity: {analysis.complexity} "
            f"(confidence: {round(analysis.confidence * 100)}%)",
            f"Recommended model: {strategy.model_selection}",
            f"Estimated tokens: {analysis.estimated_tokens}",
            f"Prompt tokens: {prompt_tokens}",
        ]
        if analysis.complexity in (EditComplexity.COMPLEX, EditComplexity.MULTI_FILE):
            hints.append("Consider splitting into smaller edits if the response gets too long")
        if strategy.validation_level == ValidationLevel.STRICT:
            hints.append("Strict validation will be applied - be precise in the implementation")

        optimized = OptimizedEdit(
            strategy=strategy,
            optimized_prompt=optimized_prompt,
            expected_output_format=expected_output_format(strategy, extension),
            validation_rules=validation_rule_descriptions(strategy.validation_level, extension),
            processing_hints=hints,
            analysis=analysis,
            prompt_tokens=prompt_tokens,
        )

        logger.info(
            f"Optimized {edit_type} edit of {file_name}: {analysis.complexity} complexity, "
            f"{strategy.model_selection} model, template {template.key}, {prompt_tokens} prompt tokens"
        )
        return optimized

    def validate_edit(
        self,
        original_content: str,
        edited_content: str,
        file_path: str,
        strategy: EditStrategy,
    ) -> EditValidation:
        """Validate a generated edit at the strategy's validation level."""
        return self.validate_at_level(
            original_content, edited_content, file_path, strategy.validation_level
        )

    def validate_at_level(
        self,
        original_content: str,
        edited_content: str,
        file_path: str,
        level: str,
    ) -> EditValidation:
        """Validate a generated edit at an explicit validation level.

        With validation disabled, returns a passing result that says so.
        """
        if not self.enable_validation:
            return EditValidation(
                syntax_valid=True,
                structure_intact=True,
                potential_issues=["Validation disabled"],
                confidence=1.0,
                validation_level=level,
                processing_time_ms=0.0,
            )
        return self.validator.validate(original_content, edited_content, file_path, level)

    def _get_token_encoder(self) -> Optional[tiktoken.Encoding]:
        """Get or initialize the tiktoken encoder.

        Uses lazy initialization so that constructing the optimizer never
        downloads encoding files.
        """
        if self._token_encoder is None:
            try:
                self._token_encoder = tiktoken.get_encoding("cl100k_base")
            except Exception as e:
                logger.warning(f"Failed to initialize tiktoken encoder: {e}")
                return None
        return self._token_encoder

    def count_tokens(self, text: str) -> int:
        """Count prompt tokens with tiktoken, or chars/4 without an encoder."""
        encoder = self._get_token_encoder()
        if encoder is not None:
            return len(encoder.encode(text, disallowed_special=()))
        return (len(text) + 3) // 4

    def clear_caches(self) -> None:
        """Drop cached complexity analyses and strategies."""
        self.cache.clear(CacheNamespace.COMPLEXITY)
        self.cache.clear(CacheNamespace.STRATEGY)


def create_edit_optimizer(
    config: Config,
    cache: Optional[AnalysisCache] = None,
    template_provider: Optional[TemplateProvider] = None,
) -> EditOptimizer:
    """Create an EditOptimizer from loaded configuration."""
    cache = cache if cache is not None else AnalysisCache()
    selector = StrategySelector(cache, max_retries=config.max_retries)
    return EditOptimizer(
        complexity_threshold=config.turbo_edits_complexity_threshold,
        model_strategy=config.turbo_edits_model_strategy,
        enable_validation=config.enable_validation,
        classifier=ComplexityClassifier(selector, cache, config.turbo_edits_model_strategy),
        template_provider=template_provider,
        cache=cache,
    )
