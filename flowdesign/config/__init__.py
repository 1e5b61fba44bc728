"""
flowdesign/config - Settings and reference registries.

- runtime_config: derivation settings from runtime.yaml + FLOWDESIGN_* env
- reference_registry: error-code and schema names flows may reference
"""

from .reference_registry import ReferenceRegistry, load_registry
from .runtime_config import (
    ConfigError,
    get_max_paths,
    get_number_step,
    get_sample_length,
    get_setting,
    get_string_fill,
    reset_config,
)

__all__ = [
    "ConfigError",
    "ReferenceRegistry",
    "get_max_paths",
    "get_number_step",
    "get_sample_length",
    "get_setting",
    "get_string_fill",
    "load_registry",
    "reset_config",
]
