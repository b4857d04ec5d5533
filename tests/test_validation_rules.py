# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for individual validation rules and the rule registry."""

import subprocess

import pytest

from smart_context.models import ValidationLevel, ValidationResult
from smart_context.validation_rules import (
    ValidationRule,
    ValidationRuleRegistry,
    check_accessibility,
    check_imports,
    check_javascript,
    check_length,
    check_performance,
    check_security,
    check_structure,
    check_style,
    check_syntax,
    check_typescript,
    create_default_rules,
    detect_indentation,
    primary_quote_style,
)


@pytest.fixture
def no_node(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend node is not installed."""
    monkeypatch.setattr("smart_context.validation_rules.shutil.which", lambda name: None)


@pytest.fixture
def fake_node(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend node is installed at a fixed path."""
    monkeypatch.setattr(
        "smart_context.validation_rules.shutil.which", lambda name: "/usr/bin/node"
    )


class TestSyntax:
    """Test the language-aware syntax rule."""

    def test_valid_python(self):
        result = check_syntax("x = 1\n", "x = 2\n", "mod.py")

        assert result.passed
        assert result.confidence == 0.9

    def test_invalid_python(self):
        result = check_syntax("x = 1\n", "x = = 1\n", "mod.py")

        assert not result.passed
        assert result.confidence == 0.1
        assert result.issues[0].startswith("Syntax error:")
        assert "(line 1)" in result.issues[0]

    def test_invalid_json(self):
        result = check_syntax('{"a": 1}', '{"a": }', "package.json")

        assert not result.passed

    def test_typescript_is_not_parsed(self):
        assert check_syntax("", "const x: = ;", "a.ts").passed

    def test_javascript_without_node(self, no_node):
        assert check_syntax("", "const = ;", "a.js").passed

    def test_javascript_node_reports_error(self, fake_node, monkeypatch: pytest.MonkeyPatch):
        def fake_run(args, **kwargs):
            return subprocess.CompletedProcess(args, 1, stdout="", stderr="SyntaxError: Unexpected token")

        monkeypatch.setattr("smart_context.validation_rules.subprocess.run", fake_run)

        result = check_syntax("", "const = ;", "a.js")

        assert not result.passed
        assert result.issues == ["Syntax error: SyntaxError: Unexpected token"]

    def test_javascript_node_timeout_is_not_an_error(
        self, fake_node, monkeypatch: pytest.MonkeyPatch
    ):
        def fake_run(args, **kwargs):
            raise subprocess.TimeoutExpired(args, kwargs.get("timeout", 10))

        monkeypatch.setattr("smart_context.validation_rules.subprocess.run", fake_run)

        assert check_syntax("", "const a = 1;", "a.mjs").passed

    def test_jsx_is_not_node_checked(self, fake_node, monkeypatch: pytest.MonkeyPatch):
        def fake_run(args, **kwargs):
            raise AssertionError("node must not run for .jsx")

        monkeypatch.setattr("smart_context.validation_rules.subprocess.run", fake_run)

        assert check_syntax("", "const a = <div />;", "App.jsx").passed

    def test_empty_file_fails_for_other_types(self):
        result = check_syntax("hello", "   ", "notes.md")

        assert not result.passed
        assert result.issues == ["Edited file is empty"]

    def test_introduced_undefined_is_reported(self):
        result = check_syntax("x = 1", "x = undefined", "a.ts")

        assert result.passed
        assert "Possible introduction of undefined values" in result.issues


class TestStructureAndLength:
    """Test bracket balance and size rules."""

    def test_balanced(self):
        code = "function a() { return [1, 2]; }"
        result = check_structure(code, code, "a.ts")

        assert result.passed
        assert result.issues == []

    def test_unmatched_brace_fails(self):
        result = check_structure("function a() {\n}\n", "function a() {\n", "a.ts")

        assert not result.passed
        assert "Unbalanced braces in edited code" in result.issues
        assert result.confidence == 0.3

    def test_unbalanced_parentheses_and_brackets(self):
        result = check_structure("", "call(a[0]", "a.ts")

        assert "Unbalanced parentheses in edited code" in result.issues
        assert "Unbalanced brackets in edited code" not in result.issues

    def test_brace_drift_is_reported_without_failing(self):
        original = "{}" * 10
        edited = "{}" * 20

        result = check_structure(original, edited, "a.ts")

        assert result.passed
        assert "Significant change in the number of opening braces: 10 -> 20" in result.issues

    def test_drastic_shrink_fails(self):
        result = check_length("x" * 1000, "x", "a.ts")

        assert not result.passed
        assert "Edited file is much smaller than the original" in result.issues

    def test_large_growth_is_reported(self):
        result = check_length("a\nb", "\n".join(["line"] * 10), "a.ts")

        assert result.passed
        assert result.issues == ["Very large size change: 2 -> 10 lines"]


class TestImportsAndStyle:
    """Test import and style consistency rules."""

    def test_removed_import(self):
        original = 'import { a } from "./a";\nimport { b } from "./b";\n'
        edited = 'import { a } from "./a";\n'

        result = check_imports(original, edited, "a.ts")

        assert result.passed
        assert result.issues == ['Import possibly removed: import { b } from "./b"']

    def test_invalid_import(self):
        result = check_imports("", "import x from lodash\n", "a.ts")

        assert not result.passed
        assert "Imports with invalid syntax detected" in result.issues

    def test_indentation_change(self):
        original = "def a():\n    return 1\n"
        edited = "def a():\n\treturn 1\n"

        result = check_style(original, edited, "a.py")

        assert result.passed
        assert result.issues == ["Indentation type changed: spaces -> tabs"]

    def test_quote_change(self):
        result = check_style("x = 'a'", 'x = "a"', "a.py")

        assert result.issues == ["Quote style changed: single -> double"]

    def test_detect_indentation(self):
        assert detect_indentation("a\n  b\n  c\n") == {"type": "spaces", "size": 2}
        assert detect_indentation("a\n\tb\n") == {"type": "tabs", "size": 4}
        assert detect_indentation("") == {"type": "spaces", "size": 2}

    def test_primary_quote_style(self):
        assert primary_quote_style("'a' 'b'") == "single"
        assert primary_quote_style("no quotes") == "double"


class TestLanguageAndStrictRules:
    """Test language-specific and strict-level rules."""

    def test_typescript_any_introduced(self):
        result = check_typescript("let a: number = 1;", "let a: any = 1;", "a.ts")

        assert result.passed
        assert "Type 'any' was introduced, consider a more specific type" in result.issues

    def test_javascript_var(self):
        result = check_javascript("", "var a = 1;\nconsole.log(a);", "a.js")

        assert result.passed
        assert "Consider 'const' or 'let' instead of 'var'" in result.issues
        assert "console.log added, remove it before shipping" in result.issues

    def test_security_introduced(self):
        result = check_security("run(code);", "eval(code);", "a.js")

        assert not result.passed
        assert result.confidence == 0.2
        assert result.issues == ["eval() introduced, a code injection risk"]

    def test_security_preexisting_is_ignored(self):
        assert check_security("eval(code);", "eval(code); eval(more);", "a.js").passed

    def test_performance_never_fails(self):
        edited = "let string = '';\nfor (const a of b) { string += a; }"

        result = check_performance("", edited, "a.ts")

        assert result.passed
        assert "String concatenation with +=, consider joining a list" in result.issues

    def test_accessibility(self):
        edited = '<div><img src="a.png"><input type="text"></div>'

        result = check_accessibility("", edited, "App.tsx")

        assert result.passed
        assert "img tag without alt attribute" in result.issues
        assert "input without an associated label" in result.issues

    def test_accessibility_clean(self):
        edited = '<label>Name<input type="text"></label><img src="a.png" alt="logo">'

        assert check_accessibility("", edited, "App.tsx").issues == []


def _always_pass(original: str, edited: str, file_path: str) -> ValidationResult:
    return ValidationResult(passed=True, issues=[], confidence=1.0)


class TestRegistry:
    """Test rule registration and activation."""

    def test_duplicate_name_rejected(self):
        registry = ValidationRuleRegistry()
        registry.register(ValidationRule("custom", "", 1.0, ValidationLevel.BASIC, _always_pass))

        with pytest.raises(ValueError):
            registry.register(
                ValidationRule("custom", "", 1.0, ValidationLevel.STRICT, _always_pass)
            )

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError):
            ValidationRuleRegistry().register(
                ValidationRule("custom", "", 1.0, "paranoid", _always_pass)
            )

    @pytest.mark.parametrize(
        "level,file_path,expected",
        [
            (ValidationLevel.BASIC, "a.py", ["syntax", "structure", "length"]),
            (ValidationLevel.ENHANCED, "a.py", ["syntax", "structure", "length", "style"]),
            (
                ValidationLevel.STRICT,
                "a.py",
                ["syntax", "structure", "length", "style", "security", "performance"],
            ),
            (
                ValidationLevel.ENHANCED,
                "a.ts",
                ["syntax", "structure", "length", "imports", "style", "typescript", "javascript"],
            ),
            (
                ValidationLevel.STRICT,
                "App.tsx",
                [
                    "syntax",
                    "structure",
                    "length",
                    "imports",
                    "style",
                    "typescript",
                    "javascript",
                    "security",
                    "performance",
                    "accessibility",
                ],
            ),
        ],
    )
    def test_active_rules(self, level, file_path, expected):
        names = [rule.name for rule in create_default_rules().active_rules(level, file_path)]

        assert names == expected

    def test_levels_are_additive(self):
        registry = create_default_rules()

        basic = {rule.name for rule in registry.active_rules(ValidationLevel.BASIC, "a.tsx")}
        enhanced = {rule.name for rule in registry.active_rules(ValidationLevel.ENHANCED, "a.tsx")}
        strict = {rule.name for rule in registry.active_rules(ValidationLevel.STRICT, "a.tsx")}

        assert basic < enhanced < strict
        assert registry.count() == 10
