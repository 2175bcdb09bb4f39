"""Layered configuration resolution.

Values come from a preloaded, read-only table keyed by dot paths such as
``Regions.Default.prod``. A lookup walks three tiers: the caller's explicit
value, the environment-scoped entry, then the global default.
"""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

import structlog

from provisioner.domain.models.resource import Environment, ResourceType


logger = structlog.get_logger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

# Key of a mapping node that holds the environment-independent value.
GLOBAL_KEY = "global"

DEFAULT_CONFIGURATION: dict[str, Any] = {
    "Regions": {
        "Default": {
            "global": "eastus",
            "dev": "eastus",
            "test": "eastus2",
            "prod": "westeurope",
        },
    },
    "Tiers": {
        "VirtualMachine": {
            "global": "Standard_B2s",
            "dev": "Standard_B1ms",
            "prod": "Standard_D4s_v5",
        },
        "WebApp": {
            "global": "B1",
            "dev": "F1",
            "prod": "P1v3",
        },
        "StorageAccount": {
            "global": "Standard_LRS",
            "prod": "Standard_GRS",
        },
        "KeyVault": {
            "global": "standard",
            "prod": "premium",
        },
    },
}


class ConfigurationSource(str, Enum):
    """Tier a resolved value came from."""

    EXPLICIT = "explicit"
    ENVIRONMENT = "environment"
    GLOBAL = "global"
    ABSENT = "absent"


def config_key(*parts: str) -> str:
    """Join path segments into a dot-separated configuration key."""
    return ".".join(str(getattr(p, "value", p)) for p in parts if p)


def is_default_sentinel(value: Any) -> bool:
    """True for values that mean "not supplied" rather than an explicit choice."""
    if value is UNSET or value is None:
        return True
    if isinstance(value, str):
        return not value.strip() or value.strip().lower() == "default"
    return False


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


class ConfigurationTable:
    """Read-only nested key-value table loaded once at startup."""

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: Mapping[str, Any] = _freeze(copy.deepcopy(dict(data or {})))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ConfigurationTable:
        return cls(data)

    @classmethod
    def from_json_file(cls, path: str | Path) -> ConfigurationTable:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a JSON object")
        logger.info("configuration_loaded", path=str(path), sections=sorted(data))
        return cls(data)

    @classmethod
    def defaults(cls) -> ConfigurationTable:
        return cls(DEFAULT_CONFIGURATION)

    def lookup(self, path: str) -> Any:
        """Return the node at ``path`` or UNSET when any segment is missing."""
        node: Any = self._data
        for segment in path.split("."):
            if not isinstance(node, Mapping) or segment not in node:
                return UNSET
            node = node[segment]
        return node

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.lookup(path) is not UNSET


class ConfigurationResolver:
    """Resolves effective settings for one environment.

    Resolution never raises for missing keys and never touches the network;
    an unset value in every tier resolves to ``None``.
    """

    def __init__(self, table: ConfigurationTable, environment: Environment) -> None:
        self._table = table
        self._environment = environment

    @property
    def environment(self) -> Environment:
        return self._environment

    def for_environment(self, environment: Environment) -> ConfigurationResolver:
        return ConfigurationResolver(self._table, environment)

    def resolve_with_source(
        self, path: str, explicit: Any = UNSET
    ) -> tuple[Any, ConfigurationSource]:
        if not is_default_sentinel(explicit):
            return explicit, ConfigurationSource.EXPLICIT

        scoped = self._table.lookup(config_key(path, self._environment.value))
        if scoped is not UNSET and not isinstance(scoped, Mapping):
            return scoped, ConfigurationSource.ENVIRONMENT

        node = self._table.lookup(path)
        if isinstance(node, Mapping):
            node = node.get(GLOBAL_KEY, UNSET)
        if node is not UNSET and not isinstance(node, Mapping):
            return node, ConfigurationSource.GLOBAL

        return None, ConfigurationSource.ABSENT

    def resolve(self, path: str, explicit: Any = UNSET) -> Any:
        value, source = self.resolve_with_source(path, explicit)
        logger.debug(
            "configuration_resolved",
            path=path,
            environment=self._environment.value,
            source=source.value,
        )
        return value

    def default_region(self, explicit: Any = UNSET) -> str | None:
        return self.resolve("Regions.Default", explicit)

    def default_tier(self, resource_type: ResourceType, explicit: Any = UNSET) -> str | None:
        return self.resolve(config_key("Tiers", resource_type.value), explicit)
