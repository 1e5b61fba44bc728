"""Runtime configuration for the validator and deriver.

Provides centralized settings for test derivation. Environment variables
take precedence over YAML config.

Usage:
    from flowdesign.config.runtime_config import get_max_paths, get_number_step

    limit = get_max_paths()  # Safety cap on enumerated test paths
    step = get_number_step()  # Distance used for just-below/just-above numbers

Environment overrides:
    FLOWDESIGN_MAX_PATHS      positive integer
    FLOWDESIGN_NUMBER_STEP    positive number
    FLOWDESIGN_STRING_FILL    single character used to build string samples
    FLOWDESIGN_CONFIG         path to an alternative runtime.yaml

Validation severities are deliberately absent: they are fixed per rule.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

_CONFIG_PATH = Path(__file__).parent / "runtime.yaml"
_cached_config: Optional[Dict[str, Any]] = None

DEFAULT_MAX_PATHS = 1000
DEFAULT_NUMBER_STEP = 0.01
DEFAULT_STRING_FILL = "a"
DEFAULT_SAMPLE_LENGTH = 5


class ConfigError(Exception):
    """Raised when a configuration document cannot be read."""

    def __init__(self, path: Path, problem: str):
        self.path = path
        self.problem = problem
        super().__init__(f"{path}: {problem}")


def _config_path() -> Path:
    override = os.environ.get("FLOWDESIGN_CONFIG")
    if override:
        return Path(override)
    return _CONFIG_PATH


def _load_config() -> Dict[str, Any]:
    """Load runtime.yaml configuration, with caching."""
    global _cached_config
    if _cached_config is not None:
        return _cached_config

    path = _config_path()
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(path, f"invalid YAML: {e}")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(path, "top level must be a mapping")
        _cached_config = data
    else:
        _cached_config = _default_config()

    return _cached_config


def _default_config() -> Dict[str, Any]:
    """Return default configuration if runtime.yaml doesn't exist."""
    return {
        "version": "1.0",
        "derivation": {
            "max_paths": DEFAULT_MAX_PATHS,
            "number_step": DEFAULT_NUMBER_STEP,
            "string_fill": DEFAULT_STRING_FILL,
            "sample_length": DEFAULT_SAMPLE_LENGTH,
        },
    }


def reset_config() -> None:
    """Reset cached config (for testing)."""
    global _cached_config
    _cached_config = None


def get_setting(section: str, key: str, fallback: Any = None) -> Any:
    """Get a setting value from the config file.

    Args:
        section: Top-level section (e.g., "derivation").
        key: Setting key within the section.
        fallback: Value to return if key not found.
    """
    config = _load_config()
    values = config.get(section) or {}
    if not isinstance(values, dict):
        return fallback
    return values.get(key, fallback)


def _positive_number(name: str, raw: Any, default: float, integer: bool) -> float:
    try:
        value = int(raw) if integer else float(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid %s value %r. Falling back to %s.", name, raw, default)
        return default
    if value <= 0:
        logger.warning("%s must be positive, got %r. Falling back to %s.", name, raw, default)
        return default
    return value


def get_max_paths() -> int:
    """Safety cap on the number of test paths enumerated per flow.

    Environment variable precedence (highest to lowest):
    1. FLOWDESIGN_MAX_PATHS
    2. Config file derivation.max_paths
    3. Default: 1000
    """
    env_value = os.environ.get("FLOWDESIGN_MAX_PATHS")
    if env_value:
        return int(_positive_number("FLOWDESIGN_MAX_PATHS", env_value, DEFAULT_MAX_PATHS, integer=True))
    raw = get_setting("derivation", "max_paths", DEFAULT_MAX_PATHS)
    return int(_positive_number("derivation.max_paths", raw, DEFAULT_MAX_PATHS, integer=True))


def get_number_step() -> float:
    """Distance between a numeric bound and its just-outside value.

    Integer fields always use 1; this applies to ``number`` fields.
    """
    env_value = os.environ.get("FLOWDESIGN_NUMBER_STEP")
    if env_value:
        return _positive_number("FLOWDESIGN_NUMBER_STEP", env_value, DEFAULT_NUMBER_STEP, integer=False)
    raw = get_setting("derivation", "number_step", DEFAULT_NUMBER_STEP)
    return _positive_number("derivation.number_step", raw, DEFAULT_NUMBER_STEP, integer=False)


def get_string_fill() -> str:
    """Character repeated to build string samples of a given length."""
    value = os.environ.get("FLOWDESIGN_STRING_FILL") or get_setting(
        "derivation", "string_fill", DEFAULT_STRING_FILL
    )
    if not isinstance(value, str) or len(value) != 1:
        logger.warning(
            "string_fill must be a single character, got %r. Falling back to '%s'.",
            value,
            DEFAULT_STRING_FILL,
        )
        return DEFAULT_STRING_FILL
    return value


def get_sample_length() -> int:
    """Length of the valid string sample when no bound constrains it."""
    raw = get_setting("derivation", "sample_length", DEFAULT_SAMPLE_LENGTH)
    return int(_positive_number("derivation.sample_length", raw, DEFAULT_SAMPLE_LENGTH, integer=True))
