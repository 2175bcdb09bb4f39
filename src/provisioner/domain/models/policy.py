"""Naming and retry policy value objects."""

from __future__ import annotations

import re

from pydantic import Field

from provisioner.domain.models.base import ValueObject
from provisioner.domain.models.resource import Environment, ResourceType


DEFAULT_ENVIRONMENT_SUFFIXES: dict[Environment, str] = {
    Environment.DEV: "dev",
    Environment.TEST: "test",
    Environment.PROD: "prod",
}


class NamingPolicy(ValueObject):
    """Naming rule for one resource type.

    ``pattern`` is a regular expression template; ``{env}`` is replaced by
    the escaped environment suffix before matching.
    """

    resource_type: ResourceType
    pattern: str
    environment_suffixes: dict[Environment, str] = Field(
        default_factory=lambda: dict(DEFAULT_ENVIRONMENT_SUFFIXES)
    )
    min_length: int = 1
    max_length: int = 64
    description: str = ""

    def qualified_pattern(self, environment: Environment) -> str:
        suffix = self.environment_suffixes.get(environment, environment.value)
        return self.pattern.replace("{env}", re.escape(suffix))

    def compiled(self, environment: Environment) -> re.Pattern[str]:
        return re.compile(self.qualified_pattern(environment))


class RetryPolicy(ValueObject):
    """Bounded exponential backoff for a single retryable call."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=2.0, ge=0)
    activity_label: str = "operation"

    def delay_for(self, attempt: int) -> float:
        """Sleep before the attempt after ``attempt`` (1-based)."""
        return self.base_delay * (2 ** (attempt - 1))


DEFAULT_NAMING_POLICIES: dict[ResourceType, NamingPolicy] = {
    ResourceType.VIRTUAL_MACHINE: NamingPolicy(
        resource_type=ResourceType.VIRTUAL_MACHINE,
        pattern=r"^vm-[a-z0-9]+(?:-[a-z0-9]+)*-{env}$",
        max_length=64,
        description="vm-<app>-<env>, lowercase letters, digits and hyphens",
    ),
    ResourceType.WEB_APP: NamingPolicy(
        resource_type=ResourceType.WEB_APP,
        pattern=r"^app-[a-z0-9]+(?:-[a-z0-9]+)*-{env}$",
        max_length=60,
        description="app-<app>-<env>, lowercase letters, digits and hyphens",
    ),
    ResourceType.STORAGE_ACCOUNT: NamingPolicy(
        resource_type=ResourceType.STORAGE_ACCOUNT,
        pattern=r"^st[a-z0-9]+{env}$",
        min_length=3,
        max_length=24,
        description="st<app><env>, lowercase letters and digits only, 3-24 characters",
    ),
    ResourceType.KEY_VAULT: NamingPolicy(
        resource_type=ResourceType.KEY_VAULT,
        pattern=r"^kv-[a-z0-9]+(?:-[a-z0-9]+)*-{env}$",
        min_length=3,
        max_length=24,
        description="kv-<app>-<env>, lowercase letters, digits and hyphens, 3-24 characters",
    ),
}
