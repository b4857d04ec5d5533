# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Post-generation validation of proposed edits.

EditValidator runs the registry rules active for a validation level and file
extension and folds their results into one EditValidation. It never raises:
a faulty rule becomes a failing low-confidence rule result and any other
unexpected error becomes a low-confidence overall result.
"""

import logging
import time
from typing import Dict, List, Optional

from smart_context.models import EditValidation, ValidationLevel, ValidationResult
from smart_context.validation_rules import ValidationRuleRegistry, create_default_rules

logger = logging.getLogger(__name__)

FAULTY_RULE_CONFIDENCE = 0.1


class EditValidator:
    """Validates edited content against the original.

    Args:
        registry: Rules to apply (default: every built-in rule).
    """

    def __init__(self, registry: Optional[ValidationRuleRegistry] = None):
        self.registry = registry if registry is not None else create_default_rules()

    def validate(
        self,
        original_content: str,
        edited_content: str,
        file_path: str,
        level: str = ValidationLevel.ENHANCED,
    ) -> EditValidation:
        """Validate an edit.

        Args:
            original_content: File content before the edit.
            edited_content: File content after the edit.
            file_path: Project-relative path; its extension selects rules.
            level: basic, enhanced or strict. Unknown levels run as enhanced.

        Returns:
            EditValidation. syntax_valid and structure_intact mirror the
            syntax and structure rules; confidence is the weighted average of
            the rule confidences.
        """
        start_time = time.time()

        if level not in ValidationLevel.ORDER:
            logger.warning(f"Unknown validation level '{level}', using enhanced")
            level = ValidationLevel.ENHANCED

        try:
            rules = self.registry.active_rules(level, file_path)

            results: Dict[str, ValidationResult] = {}
            weighted_confidence = 0.0
            total_weight = 0.0
            for rule in rules:
                try:
                    result = rule.check(original_content, edited_content, file_path)
                except Exception as e:
                    logger.warning(f"Validation rule '{rule.name}' failed on {file_path}: {e}")
                    result = ValidationResult(
                        passed=False,
                        issues=[f"Internal validation error: {e}"],
                        confidence=FAULTY_RULE_CONFIDENCE,
                    )
                results[rule.name] = result
                weighted_confidence += result.confidence * rule.weight
                total_weight += rule.weight

            issues: List[str] = []
            for result in results.values():
                issues.extend(result.issues)

            syntax = results.get("syntax")
            structure = results.get("structure")
            validation = EditValidation(
                syntax_valid=syntax is not None and syntax.passed,
                structure_intact=structure is not None and structure.passed,
                potential_issues=issues,
                confidence=weighted_confidence / total_weight if total_weight > 0 else 0.0,
                validation_level=level,
                processing_time_ms=(time.time() - start_time) * 1000,
                rule_results={name: result.passed for name, result in results.items()},
            )

            passed_count = sum(1 for result in results.values() if result.passed)
            logger.info(
                f"Validated edit of {file_path} at {level} level: "
                f"{passed_count}/{len(results)} rules passed, "
                f"confidence {validation.confidence:.2f}"
            )
            return validation

        except Exception as e:
            logger.error(f"Validation of {file_path} failed: {e}", exc_info=True)
            return EditValidation(
                syntax_valid=False,
                structure_intact=False,
                potential_issues=[f"Validation error: {e}"],
                confidence=FAULTY_RULE_CONFIDENCE,
                validation_level=level,
                processing_time_ms=(time.time() - start_time) * 1000,
            )
