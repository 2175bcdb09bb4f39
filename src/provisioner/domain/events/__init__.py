"""Domain events package."""

from provisioner.domain.events.provisioning_events import (
    DeploymentSubmitted,
    IdempotencyDecided,
    ProvisioningCompleted,
    ProvisioningFailed,
    ProvisioningStarted,
    ProvisioningStateChanged,
)


__all__ = [
    "DeploymentSubmitted",
    "IdempotencyDecided",
    "ProvisioningCompleted",
    "ProvisioningFailed",
    "ProvisioningStarted",
    "ProvisioningStateChanged",
]
