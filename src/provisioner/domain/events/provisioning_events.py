"""Provisioning run domain events."""

from __future__ import annotations

from provisioner.domain.models.base import DomainEvent


class ProvisioningStarted(DomainEvent):
    """Emitted when a run accepts a request."""

    resource_type: str
    environment: str
    event_type: str = "provisioning.started"


class ProvisioningStateChanged(DomainEvent):
    """Emitted on every state machine transition."""

    from_state: str
    to_state: str
    event_type: str = "provisioning.state_changed"


class IdempotencyDecided(DomainEvent):
    """Emitted when the idempotency gate reaches a decision."""

    action: str
    existing_resource_id: str = ""
    event_type: str = "provisioning.idempotency_decided"


class DeploymentSubmitted(DomainEvent):
    """Emitted before the deployment backend is invoked."""

    deployment_name: str
    template_ref: str
    event_type: str = "provisioning.deployment_submitted"


class ProvisioningCompleted(DomainEvent):
    """Emitted when a run finishes successfully."""

    resource_id: str
    idempotency: str
    correlation_id: str = ""
    event_type: str = "provisioning.completed"


class ProvisioningFailed(DomainEvent):
    """Emitted when a run ends in the failed state."""

    category: str
    error_message: str
    correlation_id: str = ""
    event_type: str = "provisioning.failed"
