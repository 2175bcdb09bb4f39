"""Resource request and resource-type domain models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from provisioner.domain.models.base import ValueObject


class ResourceType(str, Enum):
    """Resource types the kernel knows how to provision."""

    VIRTUAL_MACHINE = "VirtualMachine"
    WEB_APP = "WebApp"
    STORAGE_ACCOUNT = "StorageAccount"
    KEY_VAULT = "KeyVault"


class Environment(str, Enum):
    """Deployment environments a resource can belong to."""

    DEV = "dev"
    TEST = "test"
    PROD = "prod"


class ResourceRequest(ValueObject):
    """A request to provision exactly one resource.

    Built by the command layer and owned by one orchestrator invocation.
    ``location`` and ``tier`` may be left unset and are then resolved from
    configuration.
    """

    resource_type: ResourceType
    name: str
    resource_group: str
    environment: Environment
    department: str = ""
    location: str | None = None
    tier: str | None = None
    force: bool = False
    strict_naming: bool | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)

    @field_validator("resource_group")
    @classmethod
    def _group_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("resource_group must not be empty")
        return value

    @property
    def resource_path(self) -> str:
        return f"{self.resource_type.value}/{self.resource_group}/{self.name}"


class Prerequisite(ValueObject):
    """A resource that must already exist before a deployment can run."""

    resource_type: str
    parameter: str
    network: bool = False


class ResourceProfile(ValueObject):
    """Static per-type data: template reference, tier key and prerequisites."""

    resource_type: ResourceType
    template_ref: str
    tier_parameter: str
    prerequisites: list[Prerequisite] = Field(default_factory=list)


RESOURCE_PROFILES: dict[ResourceType, ResourceProfile] = {
    ResourceType.VIRTUAL_MACHINE: ResourceProfile(
        resource_type=ResourceType.VIRTUAL_MACHINE,
        template_ref="templates/virtual_machine.json",
        tier_parameter="vmSize",
        prerequisites=[
            Prerequisite(
                resource_type="VirtualNetwork",
                parameter="VirtualNetworkName",
                network=True,
            ),
        ],
    ),
    ResourceType.WEB_APP: ResourceProfile(
        resource_type=ResourceType.WEB_APP,
        template_ref="templates/web_app.json",
        tier_parameter="skuName",
        prerequisites=[
            Prerequisite(resource_type="AppServicePlan", parameter="AppServicePlanName"),
        ],
    ),
    ResourceType.STORAGE_ACCOUNT: ResourceProfile(
        resource_type=ResourceType.STORAGE_ACCOUNT,
        template_ref="templates/storage_account.json",
        tier_parameter="skuName",
    ),
    ResourceType.KEY_VAULT: ResourceProfile(
        resource_type=ResourceType.KEY_VAULT,
        template_ref="templates/key_vault.json",
        tier_parameter="skuName",
    ),
}


def get_profile(resource_type: ResourceType) -> ResourceProfile:
    return RESOURCE_PROFILES[resource_type]
