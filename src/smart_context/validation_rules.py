# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Validation rules applied to proposed edits.

Each rule is a tagged registry entry: a name, a weight, the minimum
validation level at which it runs, an optional set of file extensions it
applies to, and a check function. Levels are strictly additive
(basic < enhanced < strict), so adding a rule never requires touching the
aggregation in EditValidator.

Check functions take (original_content, edited_content, file_path) and
return a ValidationResult. They may raise; the validator converts any
exception into a failing low-confidence result.
"""

import ast
import json
import logging
import os
import posixpath
import re
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional

from smart_context.models import ValidationLevel, ValidationResult

logger = logging.getLogger(__name__)

CheckFunction = Callable[[str, str, str], ValidationResult]

JS_TS_EXTENSIONS = frozenset({".js", ".jsx", ".ts", ".tsx"})
TS_EXTENSIONS = frozenset({".ts", ".tsx"})
MARKUP_EXTENSIONS = frozenset({".tsx", ".jsx", ".html"})

# Plain JavaScript that node can check without a transpiler
NODE_CHECKABLE_EXTENSIONS = frozenset({".js", ".mjs", ".cjs"})
NODE_CHECK_TIMEOUT_SECONDS = 10

BRACE_CHANGE_TOLERANCE = 0.1


@dataclass(frozen=True)
class ValidationRule:
    """A weighted check active from min_level upward."""

    name: str
    description: str
    weight: float
    min_level: str
    check: CheckFunction
    extensions: Optional[FrozenSet[str]] = None  # None applies to every file

    def applies_to(self, extension: str) -> bool:
        """Check whether the rule runs for a file extension such as ".ts"."""
        return self.extensions is None or extension.lower() in self.extensions

    def is_active(self, level: str, extension: str) -> bool:
        """Check whether the rule runs at a validation level for an extension."""
        return ValidationLevel.rank(self.min_level) <= ValidationLevel.rank(
            level
        ) and self.applies_to(extension)


def _extension(file_path: str) -> str:
    return posixpath.splitext(file_path)[1].lower()


# ---------------------------------------------------------------------------
# Syntax
# ---------------------------------------------------------------------------


def _node_check(content: str) -> Optional[str]:
    """Run node --check on content; return an error message or None.

    A missing node binary or a timeout is not treated as a syntax error.
    """
    node = shutil.which("node")
    if node is None:
        return None

    fd, path = tempfile.mkstemp(suffix=".js")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        completed = subprocess.run(
            [node, "--check", path],
            capture_output=True,
            text=True,
            timeout=NODE_CHECK_TIMEOUT_SECONDS,
        )
    except subprocess.TimeoutExpired:
        logger.warning("node --check timed out, skipping JavaScript syntax check")
        return None
    except OSError as e:
        logger.warning(f"Could not run node --check: {e}")
        return None
    finally:
        if os.path.exists(path):
            os.unlink(path)

    if completed.returncode != 0:
        return completed.stderr.strip() or "JavaScript syntax error"
    return None


def check_syntax(original: str, edited: str, file_path: str) -> ValidationResult:
    """Language-aware syntax check of the edited content."""
    issues: List[str] = []
    passed = True
    extension = _extension(file_path)

    if extension == ".json":
        try:
            json.loads(edited)
        except ValueError as e:
            passed = False
            issues.append(f"Syntax error: {e}")
    elif extension == ".py":
        try:
            ast.parse(edited)
        except SyntaxError as e:
            passed = False
            issues.append(f"Syntax error: {e.msg} (line {e.lineno})")
    elif extension in NODE_CHECKABLE_EXTENSIONS:
        error = _node_check(edited)
        if error is not None:
            passed = False
            issues.append(f"Syntax error: {error}")
    elif extension in JS_TS_EXTENSIONS:
        pass  # needs a transpiler; covered by the structure rule
    elif not edited.strip():
        passed = False
        issues.append("Edited file is empty")

    if "undefined" in edited and "undefined" not in original:
        issues.append("Possible introduction of undefined values")
    if "null" in edited and "null" not in original:
        issues.append("Possible introduction of null values")

    return ValidationResult(passed=passed, issues=issues, confidence=0.9 if passed else 0.1)


# ---------------------------------------------------------------------------
# Structure and size
# ---------------------------------------------------------------------------


def check_structure(original: str, edited: str, file_path: str) -> ValidationResult:
    """Bracket balance of the edited content and brace-count drift.

    Unbalanced braces, parentheses or brackets fail the rule. A change of more
    than 10% in the number of opening or closing braces is reported but does
    not fail on its own.
    """
    issues: List[str] = []
    passed = True

    for char, label in (("{", "opening"), ("}", "closing")):
        before = original.count(char)
        after = edited.count(char)
        if abs(before - after) > before * BRACE_CHANGE_TOLERANCE:
            issues.append(
                f"Significant change in the number of {label} braces: {before} -> {after}"
            )

    for open_char, close_char, label in (
        ("{", "}", "braces"),
        ("(", ")", "parentheses"),
        ("[", "]", "brackets"),
    ):
        if edited.count(open_char) != edited.count(close_char):
            issues.append(f"Unbalanced {label} in edited code")
            passed = False

    return ValidationResult(passed=passed, issues=issues, confidence=0.8 if passed else 0.3)


def check_length(original: str, edited: str, file_path: str) -> ValidationResult:
    """Flag large line-count swings and fail on a drastically shrunk file."""
    issues: List[str] = []
    passed = True

    original_lines = len(original.split("\n"))
    edited_lines = len(edited.split("\n"))
    if abs(edited_lines - original_lines) > original_lines * 2:
        issues.append(f"Very large size change: {original_lines} -> {edited_lines} lines")

    if len(edited) < len(original) * 0.1:
        issues.append("Edited file is much smaller than the original")
        passed = False

    return ValidationResult(passed=passed, issues=issues, confidence=0.7)


# ---------------------------------------------------------------------------
# Imports and style
# ---------------------------------------------------------------------------

IMPORT_STATEMENT = re.compile(r"import\s+.*\s+from\s+['\"][^'\"]*['\"]")
INVALID_IMPORT = re.compile(r"^import\s+.*from\s+[^'\"][^'\"]*$", re.MULTILINE)


def check_imports(original: str, edited: str, file_path: str) -> ValidationResult:
    """Report removed ES imports and fail on malformed import statements."""
    issues: List[str] = []
    passed = True

    edited_imports = IMPORT_STATEMENT.findall(edited)
    for statement in IMPORT_STATEMENT.findall(original):
        if not any(statement in candidate for candidate in edited_imports):
            issues.append(f"Import possibly removed: {statement}")

    if INVALID_IMPORT.search(edited):
        issues.append("Imports with invalid syntax detected")
        passed = False

    return ValidationResult(passed=passed, issues=issues, confidence=0.8 if passed else 0.4)


def detect_indentation(content: str) -> Dict[str, object]:
    """Dominant indentation type ("spaces"/"tabs") and average width."""
    spaces = 0
    tabs = 0
    width_sum = 0
    width_count = 0

    for line in content.split("\n"):
        if line.startswith(" "):
            spaces += 1
            width_sum += len(line) - len(line.lstrip(" "))
            width_count += 1
        elif line.startswith("\t"):
            tabs += 1
            width_sum += 4
            width_count += 1

    return {
        "type": "tabs" if tabs > spaces else "spaces",
        "size": round(width_sum / width_count) if width_count else 2,
    }


def primary_quote_style(content: str) -> str:
    """Return "single" when single quotes outnumber double quotes, else "double"."""
    return "single" if content.count("'") > content.count('"') else "double"


def check_style(original: str, edited: str, file_path: str) -> ValidationResult:
    """Report indentation and quote-style drift. Never fails."""
    issues: List[str] = []

    before = detect_indentation(original)
    after = detect_indentation(edited)
    if before["type"] != after["type"]:
        issues.append(f"Indentation type changed: {before['type']} -> {after['type']}")
    if abs(int(before["size"]) - int(after["size"])) > 1:  # type: ignore[call-overload]
        issues.append(f"Indentation size changed: {before['size']} -> {after['size']}")

    quotes_before = primary_quote_style(original)
    quotes_after = primary_quote_style(edited)
    if quotes_before != quotes_after:
        issues.append(f"Quote style changed: {quotes_before} -> {quotes_after}")

    return ValidationResult(passed=True, issues=issues, confidence=0.6)


# ---------------------------------------------------------------------------
# Language specific
# ---------------------------------------------------------------------------

TYPE_ANNOTATION = re.compile(r":\s*[A-Za-z][A-Za-z0-9<>\[\]|&\s]*")
INTERFACE_BLOCK = re.compile(r"interface\s+\w+\s*\{[^}]*\}")


def check_typescript(original: str, edited: str, file_path: str) -> ValidationResult:
    """Report dropped type annotations, introduced any, and removed interfaces."""
    issues: List[str] = []

    if len(TYPE_ANNOTATION.findall(edited)) < len(TYPE_ANNOTATION.findall(original)) * 0.8:
        issues.append("Many type annotations were removed")
    if ": any" in edited and ": any" not in original:
        issues.append("Type 'any' was introduced, consider a more specific type")
    if len(INTERFACE_BLOCK.findall(edited)) < len(INTERFACE_BLOCK.findall(original)):
        issues.append("Interfaces may have been removed or corrupted")

    return ValidationResult(passed=True, issues=issues, confidence=0.8)


def check_javascript(original: str, edited: str, file_path: str) -> ValidationResult:
    """Report var-only declarations and newly added console.log calls."""
    issues: List[str] = []

    uses_var = re.search(r"\bvar\s+", edited) is not None
    uses_const_let = re.search(r"\b(?:const|let)\s+", edited) is not None
    if uses_var and not uses_const_let:
        issues.append("Consider 'const' or 'let' instead of 'var'")

    if "console.log" in edited and "console.log" not in original:
        issues.append("console.log added, remove it before shipping")

    return ValidationResult(passed=True, issues=issues, confidence=0.7)


# ---------------------------------------------------------------------------
# Strict level
# ---------------------------------------------------------------------------

SECURITY_PATTERNS = [
    (re.compile(r"eval\s*\("), "eval() introduced, a code injection risk"),
    (re.compile(r"innerHTML\s*="), "innerHTML assignment, consider textContent or createElement"),
    (re.compile(r"document\.write"), "document.write introduced, obsolete and unsafe"),
    (re.compile(r"\.html\s*\("), ".html() introduced, make sure the content is sanitized"),
]

NESTED_LOOP = re.compile(r"for\s*\([^}]*for\s*\(")
IMG_TAG = re.compile(r"<img[^>]*>")
INPUT_TAG = re.compile(r"<input[^>]*>")


def check_security(original: str, edited: str, file_path: str) -> ValidationResult:
    """Fail when the edit introduces a known dangerous API."""
    issues = [
        message
        for pattern, message in SECURITY_PATTERNS
        if pattern.search(edited) and not pattern.search(original)
    ]
    passed = not issues
    return ValidationResult(passed=passed, issues=issues, confidence=0.9 if passed else 0.2)


def check_performance(original: str, edited: str, file_path: str) -> ValidationResult:
    """Report deep loop nesting and string concatenation in loops. Never fails."""
    issues: List[str] = []

    if len(NESTED_LOOP.findall(edited)) > 2:
        issues.append("Deeply nested loops detected, consider optimizing")
    if "+=" in edited and "string" in edited:
        issues.append("String concatenation with +=, consider joining a list")

    return ValidationResult(passed=True, issues=issues, confidence=0.6)


def check_accessibility(original: str, edited: str, file_path: str) -> ValidationResult:
    """Report images without alt text and unlabeled inputs. Never fails."""
    issues: List[str] = []

    for tag in IMG_TAG.findall(edited):
        if "alt=" not in tag:
            issues.append("img tag without alt attribute")

    has_label = "<label" in edited
    for tag in INPUT_TAG.findall(edited):
        if "aria-label" not in tag and not has_label:
            issues.append("input without an associated label")

    return ValidationResult(passed=True, issues=issues, confidence=0.7)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ValidationRuleRegistry:
    """Ordered collection of validation rules.

    Rules run in registration order; names are unique.
    """

    def __init__(self) -> None:
        self._rules: List[ValidationRule] = []

    def register(self, rule: ValidationRule) -> None:
        """Register a rule.

        Raises:
            ValueError: If a rule with the same name exists or the level is unknown.
        """
        if rule.min_level not in ValidationLevel.ORDER:
            raise ValueError(f"Unknown validation level '{rule.min_level}' for rule {rule.name}")
        if any(existing.name == rule.name for existing in self._rules):
            raise ValueError(f"Validation rule '{rule.name}' already registered")

        self._rules.append(rule)
        logger.debug(f"Registered validation rule '{rule.name}' (min level {rule.min_level})")

    def get_rules(self) -> List[ValidationRule]:
        """All rules in registration order."""
        return list(self._rules)

    def active_rules(self, level: str, file_path: str) -> List[ValidationRule]:
        """Rules that run at level for the file's extension."""
        extension = _extension(file_path)
        return [rule for rule in self._rules if rule.is_active(level, extension)]

    def count(self) -> int:
        """Return number of registered rules."""
        return len(self._rules)


def create_default_rules() -> ValidationRuleRegistry:
    """Create a registry holding every built-in rule."""
    registry = ValidationRuleRegistry()
    for rule in (
        ValidationRule("syntax", "Basic syntax validation", 1.0, ValidationLevel.BASIC, check_syntax),
        ValidationRule(
            "structure", "Structural integrity", 0.8, ValidationLevel.BASIC, check_structure
        ),
        ValidationRule("length", "Size change", 0.3, ValidationLevel.BASIC, check_length),
        ValidationRule(
            "imports",
            "Imports and exports",
            0.6,
            ValidationLevel.ENHANCED,
            check_imports,
            JS_TS_EXTENSIONS,
        ),
        ValidationRule("style", "Style consistency", 0.4, ValidationLevel.ENHANCED, check_style),
        ValidationRule(
            "typescript",
            "TypeScript specific checks",
            0.7,
            ValidationLevel.ENHANCED,
            check_typescript,
            TS_EXTENSIONS,
        ),
        ValidationRule(
            "javascript",
            "JavaScript specific checks",
            0.6,
            ValidationLevel.ENHANCED,
            check_javascript,
            JS_TS_EXTENSIONS,
        ),
        ValidationRule("security", "Basic security", 0.9, ValidationLevel.STRICT, check_security),
        ValidationRule(
            "performance", "Basic performance", 0.5, ValidationLevel.STRICT, check_performance
        ),
        ValidationRule(
            "accessibility",
            "Accessibility",
            0.4,
            ValidationLevel.STRICT,
            check_accessibility,
            MARKUP_EXTENSIONS,
        ),
    ):
        registry.register(rule)
    return registry
