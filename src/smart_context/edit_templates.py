# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Edit prompt templates and their providers.

Templates are keyed by edit type and model tier. The built-in set ships as a
YAML resource next to this module; callers can substitute any
TemplateProvider, for example one backed by user-managed template storage.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from smart_context.models import ModelSelection

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_FILE = Path(__file__).parent / "templates" / "edit_templates.yml"

PLACEHOLDERS = (
    "ORIGINAL_PROMPT",
    "FILE_NAME",
    "FILE_EXTENSION",
    "FILE_CONTENT",
    "CONTEXT",
    "MAX_TOKENS",
    "VALIDATION_LEVEL",
)

JS_TS_EXTENSIONS = (".ts", ".tsx", ".js", ".jsx")


class EditType:
    """Kinds of edit a prompt can ask for."""

    SYNTAX_FIX = "syntax_fix"
    ADD_FEATURE = "add_feature"
    REFACTOR = "refactor"
    OPTIMIZE = "optimize"

    ALL = (SYNTAX_FIX, ADD_FEATURE, REFACTOR, OPTIMIZE)


class TemplateError(Exception):
    """Raised when templates cannot be loaded or no template fits a request."""

    pass


def template_key(edit_type: str, model_type: str) -> str:
    """Build the lookup key of a template."""
    return f"{edit_type}_{model_type}"


def determine_edit_type(prompt: str, file_extension: str) -> str:
    """Infer the edit type from prompt keywords.

    Checked in order: fix/correct/error, add/create/implement,
    refactor/restructure/optimize, performance/improve. Without a keyword,
    JS/TS files default to add_feature and everything else to syntax_fix.
    """
    normalized = prompt.lower()

    if any(word in normalized for word in ("fix", "correct", "error")):
        return EditType.SYNTAX_FIX
    if any(word in normalized for word in ("add", "create", "implement")):
        return EditType.ADD_FEATURE
    if any(word in normalized for word in ("refactor", "restructure", "optimize")):
        return EditType.REFACTOR
    if any(word in normalized for word in ("performance", "improve")):
        return EditType.OPTIMIZE

    if file_extension.lower() in JS_TS_EXTENSIONS:
        return EditType.ADD_FEATURE
    return EditType.SYNTAX_FIX


@dataclass(frozen=True)
class EditTemplate:
    """One prompt template for an (edit type, model tier) pair."""

    edit_type: str
    model_type: str
    template: str
    instructions: Tuple[str, ...] = ()
    constraints: Tuple[str, ...] = ()

    @property
    def key(self) -> str:
        """Lookup key, e.g. "refactor_balanced"."""
        return template_key(self.edit_type, self.model_type)

    def render(self, values: Dict[str, str]) -> str:
        """Substitute every {{PLACEHOLDER}} occurrence with its value.

        Placeholders missing from values render as empty strings.
        """
        rendered = self.template
        for name in PLACEHOLDERS:
            rendered = rendered.replace("{{" + name + "}}", values.get(name, ""))
        return rendered

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditTemplate":
        """Deserialize from a template mapping.

        Raises:
            TemplateError: If a required field is missing or mistyped.
        """
        try:
            edit_type = data["edit_type"]
            model_type = data["model_type"]
            template = data["template"]
        except KeyError as e:
            raise TemplateError(f"Template is missing field {e}") from e

        if not all(isinstance(value, str) for value in (edit_type, model_type, template)):
            raise TemplateError("Template fields edit_type, model_type and template must be strings")

        return cls(
            edit_type=edit_type,
            model_type=model_type,
            template=template,
            instructions=tuple(str(item) for item in data.get("instructions") or ()),
            constraints=tuple(str(item) for item in data.get("constraints") or ()),
        )


class TemplateProvider(ABC):
    """Source of edit templates."""

    @abstractmethod
    def list_templates(self) -> List[EditTemplate]:
        """Return every available template."""
        pass

    def get_template(self, edit_type: str, model_type: str) -> EditTemplate:
        """Get the template for an edit type and model tier.

        Falls back to the balanced template of the same edit type, then to
        add_feature_balanced.

        Raises:
            TemplateError: If no fallback exists either.
        """
        templates = {template.key: template for template in self.list_templates()}
        for key in (
            template_key(edit_type, model_type),
            template_key(edit_type, ModelSelection.BALANCED),
            template_key(EditType.ADD_FEATURE, ModelSelection.BALANCED),
        ):
            if key in templates:
                return templates[key]
        raise TemplateError(f"No template available for {edit_type}/{model_type}")

    def is_available(self, edit_type: str, model_type: str) -> bool:
        """Check for an exact (edit type, model tier) template."""
        key = template_key(edit_type, model_type)
        return any(template.key == key for template in self.list_templates())

    def statistics(self) -> Dict[str, Any]:
        """Count templates in total, per edit type and per model tier."""
        templates = self.list_templates()
        by_type: Dict[str, int] = {}
        by_model: Dict[str, int] = {}
        for template in templates:
            by_type[template.edit_type] = by_type.get(template.edit_type, 0) + 1
            by_model[template.model_type] = by_model.get(template.model_type, 0) + 1
        return {
            "total_templates": len(templates),
            "templates_by_type": by_type,
            "templates_by_model": by_model,
        }


class YamlTemplateProvider(TemplateProvider):
    """Templates loaded once from a YAML file with a top-level "templates" mapping."""

    def __init__(self, path: Optional[Path] = None):
        """Load templates.

        Args:
            path: YAML file (default: the built-in template set).

        Raises:
            TemplateError: If the file cannot be read or parsed.
        """
        self.path = path if path is not None else DEFAULT_TEMPLATES_FILE
        self._templates = self._load()

    def _load(self) -> List[EditTemplate]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise TemplateError(f"Cannot load templates from {self.path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("templates"), dict):
            raise TemplateError(f"{self.path} must contain a 'templates' mapping")

        templates: List[EditTemplate] = []
        for key, entry in data["templates"].items():
            if not isinstance(entry, dict):
                raise TemplateError(f"Template '{key}' must be a mapping")
            template = EditTemplate.from_dict(entry)
            if template.key != key:
                logger.warning(f"Template '{key}' declares key '{template.key}', using the latter")
            templates.append(template)

        logger.debug(f"Loaded {len(templates)} edit templates from {self.path}")
        return templates

    def list_templates(self) -> List[EditTemplate]:
        return list(self._templates)


class DefaultTemplateProvider(YamlTemplateProvider):
    """The built-in template set."""

    def __init__(self) -> None:
        super().__init__(DEFAULT_TEMPLATES_FILE)
