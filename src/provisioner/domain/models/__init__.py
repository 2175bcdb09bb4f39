"""Domain models package."""

from provisioner.domain.models.base import (
    AggregateRoot,
    DomainEntity,
    DomainEvent,
    generate_id,
    utc_now,
    ValueObject,
)
from provisioner.domain.models.outcome import (
    DeploymentOutcome,
    DeploymentState,
    IdempotencyOutcome,
    ProvisioningResult,
    ResourceGroupInfo,
    ResourceInfo,
)
from provisioner.domain.models.policy import (
    DEFAULT_ENVIRONMENT_SUFFIXES,
    DEFAULT_NAMING_POLICIES,
    NamingPolicy,
    RetryPolicy,
)
from provisioner.domain.models.resource import (
    Environment,
    get_profile,
    Prerequisite,
    RESOURCE_PROFILES,
    ResourceProfile,
    ResourceRequest,
    ResourceType,
)


__all__ = [
    "AggregateRoot",
    "DEFAULT_ENVIRONMENT_SUFFIXES",
    "DEFAULT_NAMING_POLICIES",
    "DeploymentOutcome",
    "DeploymentState",
    "DomainEntity",
    "DomainEvent",
    "Environment",
    "IdempotencyOutcome",
    "NamingPolicy",
    "Prerequisite",
    "ProvisioningResult",
    "RESOURCE_PROFILES",
    "ResourceGroupInfo",
    "ResourceInfo",
    "ResourceProfile",
    "ResourceRequest",
    "ResourceType",
    "RetryPolicy",
    "ValueObject",
    "generate_id",
    "get_profile",
    "utc_now",
]
