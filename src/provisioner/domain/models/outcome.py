"""Backend results and the caller-facing provisioning result."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from provisioner.domain.models.base import utc_now, ValueObject
from provisioner.domain.models.resource import ResourceType


class DeploymentState(str, Enum):
    """Final state reported by the deployment backend."""

    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    SKIPPED = "Skipped"


class DeploymentOutcome(ValueObject):
    """Result of a single template deployment."""

    state: DeploymentState
    outputs: dict[str, Any] = Field(default_factory=dict)
    correlation_id: str = ""
    deployment_name: str = ""
    error_details: str = ""


class ResourceGroupInfo(ValueObject):
    name: str
    location: str
    tags: dict[str, str] = Field(default_factory=dict)


class ResourceInfo(ValueObject):
    """A resource as reported by the backend."""

    resource_id: str
    resource_type: str
    name: str
    resource_group: str
    location: str = ""
    provisioning_state: str = "Succeeded"
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_ready(self) -> bool:
        return self.provisioning_state == "Succeeded"


class IdempotencyOutcome(str, Enum):
    """How the idempotency gate shaped the run."""

    CREATED = "created"
    UPDATED = "updated"
    EXISTING = "existing"


class ProvisioningResult(ValueObject):
    """Normalized record returned to the caller on success."""

    resource_id: str
    resource_type: ResourceType
    name: str
    resource_group: str
    location: str
    tier: str | None = None
    idempotency: IdempotencyOutcome
    state: str
    correlation_id: str = ""
    deployment_name: str = ""
    outputs: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)

    @property
    def created(self) -> bool:
        return self.idempotency == IdempotencyOutcome.CREATED
