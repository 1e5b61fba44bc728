"""
reference_registry.py - Error-code and schema registries owned by the editor.

The editing layer's configuration store keeps the list of error codes and
schema/model names that flows may reference. The validator only needs the
name sets; any metadata attached to an entry is ignored.

Usage:
    from flowdesign.config.reference_registry import ReferenceRegistry, load_registry

    registry = ReferenceRegistry.from_dict({
        "error_codes": ["USER_NOT_FOUND", "INVALID_EMAIL"],
        "schemas": {"User": {"fields": ["id", "email"]}},
    })
    registry = load_registry(Path("config/registry.yaml"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, FrozenSet, Iterable, Mapping

import yaml

from .runtime_config import ConfigError

logger = logging.getLogger(__name__)


def _names(value: Any) -> FrozenSet[str]:
    """Accept a list of names or a mapping keyed by name."""
    if isinstance(value, Mapping):
        return frozenset(str(key) for key in value)
    if isinstance(value, Iterable) and not isinstance(value, (str, bytes)):
        return frozenset(str(item) for item in value)
    return frozenset()


@dataclass(frozen=True)
class ReferenceRegistry:
    """Names flows may reference.

    Attributes:
        error_codes: Registered error codes.
        schemas: Registered schema/model names.
    """

    error_codes: FrozenSet[str] = frozenset()
    schemas: FrozenSet[str] = frozenset()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReferenceRegistry":
        """Create a registry from a dictionary (e.g., YAML load).

        ``models`` is accepted as an alias section for schema names.
        """
        schemas = _names(data.get("schemas")) | _names(data.get("models"))
        return cls(
            error_codes=_names(data.get("error_codes", data.get("errorCodes"))),
            schemas=schemas,
        )

    def has_error_code(self, code: str) -> bool:
        return code in self.error_codes

    def has_schema(self, name: str) -> bool:
        return name in self.schemas


def load_registry(path: Path) -> ReferenceRegistry:
    """Load a registry document.

    Raises:
        ConfigError: If the file is missing or is not a YAML mapping.
    """
    if not path.exists():
        raise ConfigError(path, "registry file not found")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(path, f"invalid YAML: {e}")

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ConfigError(path, "top level must be a mapping")

    registry = ReferenceRegistry.from_dict(data)
    logger.debug(
        "Loaded registry %s: %d error codes, %d schemas",
        path,
        len(registry.error_codes),
        len(registry.schemas),
    )
    return registry
