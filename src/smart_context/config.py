# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Configuration loading and validation for the smart context engine."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from smart_context.models import (
    ComplexityThreshold,
    ModelStrategy,
    Sensitivity,
    SmartContextConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = ".smart_context.yml"

DEFAULT_INCLUDE_PATTERNS = [
    "**/*.ts",
    "**/*.tsx",
    "**/*.js",
    "**/*.jsx",
    "**/*.mjs",
    "**/*.cjs",
    "**/*.py",
    "**/*.java",
    "**/*.kt",
    "**/*.cpp",
    "**/*.cc",
    "**/*.c",
    "**/*.h",
    "**/*.hpp",
    "**/*.cs",
]

DEFAULT_EXCLUDE_PATTERNS = [
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/.git/**",
    "**/.venv/**",
    "**/venv/**",
    "**/__pycache__/**",
]


class ConfigurationError(Exception):
    """Raised when configuration validation fails critically."""

    pass


class Config:
    """Configuration for the smart context engine.

    Loads configuration from .smart_context.yml with validation and defaults.
    Invalid or unknown entries are logged and replaced by their defaults.
    """

    DEFAULTS: Dict[str, Any] = {
        "smart_context_sensitivity": Sensitivity.BALANCED,
        "smart_context_max_tokens": 20000,
        "smart_context_dependency_depth": 2,
        "turbo_edits_complexity_threshold": ComplexityThreshold.MODERATE,
        "turbo_edits_model_strategy": ModelStrategy.BALANCED,
        "enable_validation": True,
        "max_retries": None,  # unset: strategies keep their own attempt counts
        "include_patterns": DEFAULT_INCLUDE_PATTERNS,
        "exclude_patterns": DEFAULT_EXCLUDE_PATTERNS,
        "max_workers": 8,
    }

    # Types of parameters whose default is None
    OPTIONAL_TYPES: Dict[str, type] = {
        "max_retries": int,
    }

    # Allowed values for enumerated parameters
    CHOICES: Dict[str, tuple] = {
        "smart_context_sensitivity": Sensitivity.ALL,
        "turbo_edits_complexity_threshold": ComplexityThreshold.VALUES,
        "turbo_edits_model_strategy": ModelStrategy.ALL,
    }

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default location.
            overrides: Values applied on top of the file, validated the same way.
        """
        if config_path is None:
            config_path = Path.cwd() / DEFAULT_CONFIG_FILENAME

        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._load_config()

        if overrides:
            self._validate_and_merge(overrides)

    def _defaults(self) -> Dict[str, Any]:
        return {
            key: list(value) if isinstance(value, list) else value
            for key, value in self.DEFAULTS.items()
        }

    def _load_config(self) -> None:
        """Load and validate configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Configuration file not found at {self.config_path}, using defaults")
            self._config = self._defaults()
            return

        try:
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f)

            if loaded_config is None:
                logger.warning("Configuration file is empty, using defaults")
                self._config = self._defaults()
                return

            if not isinstance(loaded_config, dict):
                logger.warning(
                    f"Configuration file must contain a YAML dictionary, "
                    f"got {type(loaded_config)}, using defaults"
                )
                self._config = self._defaults()
                return

            self._config = self._defaults()
            self._validate_and_merge(loaded_config)

        except yaml.YAMLError as e:
            logger.warning(
                f"Error parsing configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()
        except OSError as e:
            logger.warning(
                f"Unable to read configuration file {self.config_path}: {e}, using defaults"
            )
            self._config = self._defaults()

    def _validate_and_merge(self, loaded_config: Dict[str, Any]) -> None:
        """Validate loaded configuration and merge with current values.

        Invalid parameters are logged as warnings and defaults are kept.
        """
        for key, value in loaded_config.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Unknown configuration parameter '{key}', ignoring")
                continue

            if not self._validate_parameter(key, value):
                logger.warning(
                    f"Invalid value for '{key}': {value}, using default {self.DEFAULTS[key]}"
                )
                continue

            self._config[key] = value

    def _validate_parameter(self, key: str, value: Any) -> bool:
        """Validate a configuration parameter.

        Returns:
            True if valid, False if invalid
        """
        expected_type = self.OPTIONAL_TYPES.get(key, type(self.DEFAULTS[key]))
        # bool is an int subclass; reject it for numeric parameters
        if expected_type is int and isinstance(value, bool):
            return False
        if not isinstance(value, expected_type):
            return False

        if key in self.CHOICES:
            return value in self.CHOICES[key]
        elif key == "smart_context_max_tokens":
            return bool(0 < value <= 1_000_000)
        elif key == "smart_context_dependency_depth":
            return bool(0 <= value <= 10)
        elif key in ("max_retries", "max_workers"):
            return bool(value > 0)
        elif key in ("include_patterns", "exclude_patterns"):
            return all(isinstance(pattern, str) for pattern in value)

        return True

    def to_dict(self) -> Dict[str, Any]:
        """Return a copy of all effective configuration values."""
        return dict(self._config)

    @property
    def smart_context_sensitivity(self) -> str:
        """Sensitivity used to derive the semantic seeding threshold."""
        value = self._config["smart_context_sensitivity"]
        assert isinstance(value, str)
        return value

    @property
    def smart_context_max_tokens(self) -> int:
        """Token budget for context selection."""
        value = self._config["smart_context_max_tokens"]
        assert isinstance(value, int)
        return value

    @property
    def smart_context_dependency_depth(self) -> int:
        """Number of dependency hops added around seed files."""
        value = self._config["smart_context_dependency_depth"]
        assert isinstance(value, int)
        return value

    @property
    def turbo_edits_complexity_threshold(self) -> str:
        """Minimum complexity at which optimized edits are produced."""
        value = self._config["turbo_edits_complexity_threshold"]
        assert isinstance(value, str)
        return value

    @property
    def turbo_edits_model_strategy(self) -> str:
        """User preference for model selection (fast, balanced, quality)."""
        value = self._config["turbo_edits_model_strategy"]
        assert isinstance(value, str)
        return value

    @property
    def enable_validation(self) -> bool:
        """Whether generated edits are validated."""
        value = self._config["enable_validation"]
        assert isinstance(value, bool)
        return value

    @property
    def max_retries(self) -> Optional[int]:
        """Upper bound applied to strategy retry attempts, None when unset."""
        value = self._config["max_retries"]
        assert value is None or isinstance(value, int)
        return value

    @property
    def include_patterns(self) -> List[str]:
        """Glob patterns of files scanned for the dependency graph."""
        value = self._config["include_patterns"]
        assert isinstance(value, list)
        return value

    @property
    def exclude_patterns(self) -> List[str]:
        """Glob patterns excluded from scanning."""
        value = self._config["exclude_patterns"]
        assert isinstance(value, list)
        return value

    @property
    def max_workers(self) -> int:
        """Upper bound on concurrent file reads."""
        value = self._config["max_workers"]
        assert isinstance(value, int)
        return value

    def smart_context_config(self) -> SmartContextConfig:
        """Build the context selection parameters from this configuration."""
        return SmartContextConfig(
            sensitivity=self.smart_context_sensitivity,
            max_tokens=self.smart_context_max_tokens,
            dependency_depth=self.smart_context_dependency_depth,
        )
