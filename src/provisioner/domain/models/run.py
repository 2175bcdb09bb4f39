"""Provisioning run aggregate with its state machine."""

from __future__ import annotations

from enum import Enum

from provisioner.domain.events.provisioning_events import (
    DeploymentSubmitted,
    IdempotencyDecided,
    ProvisioningCompleted,
    ProvisioningFailed,
    ProvisioningStarted,
    ProvisioningStateChanged,
)
from provisioner.domain.models.base import AggregateRoot
from provisioner.domain.models.outcome import ProvisioningResult
from provisioner.domain.models.resource import ResourceRequest


class ProvisioningState(str, Enum):
    """Orchestrator lifecycle states."""

    VALIDATING = "Validating"
    RESOLVING = "Resolving"
    CHECKING_IDEMPOTENCY = "CheckingIdempotency"
    DEPLOYING = "Deploying"
    RETURNING_EXISTING = "ReturningExisting"
    ABORTED = "Aborted"
    COMPLETED = "Completed"
    FAILED = "Failed"


# State machine transitions
VALID_TRANSITIONS: dict[ProvisioningState, set[ProvisioningState]] = {
    ProvisioningState.VALIDATING: {ProvisioningState.RESOLVING, ProvisioningState.FAILED},
    ProvisioningState.RESOLVING: {
        ProvisioningState.CHECKING_IDEMPOTENCY, ProvisioningState.FAILED,
    },
    ProvisioningState.CHECKING_IDEMPOTENCY: {
        ProvisioningState.DEPLOYING, ProvisioningState.RETURNING_EXISTING,
        ProvisioningState.ABORTED, ProvisioningState.FAILED,
    },
    ProvisioningState.DEPLOYING: {ProvisioningState.COMPLETED, ProvisioningState.FAILED},
    ProvisioningState.ABORTED: {ProvisioningState.FAILED},
    ProvisioningState.RETURNING_EXISTING: set(),
    ProvisioningState.COMPLETED: set(),
    ProvisioningState.FAILED: set(),
}

TERMINAL_STATES: frozenset[ProvisioningState] = frozenset({
    ProvisioningState.COMPLETED,
    ProvisioningState.RETURNING_EXISTING,
    ProvisioningState.FAILED,
})


class ProvisioningRun(AggregateRoot):
    """One orchestrator invocation for one resource request."""

    request: ResourceRequest
    state: ProvisioningState = ProvisioningState.VALIDATING
    result: ProvisioningResult | None = None
    error_category: str = ""
    error_message: str = ""

    def begin(self) -> None:
        """Record acceptance of the request; the run starts in Validating."""
        self.add_event(ProvisioningStarted(
            resource_type=self.request.resource_type.value,
            environment=self.request.environment.value,
            resource_path=self.request.resource_path,
            run_id=self.id,
        ))

    def _transition_to(self, new_state: ProvisioningState) -> None:
        """Validate and execute state transition."""
        valid = VALID_TRANSITIONS.get(self.state, set())
        if new_state not in valid:
            raise InvalidStateTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value}. "
                f"Valid transitions: {sorted(s.value for s in valid)}"
            )
        previous = self.state
        self.state = new_state
        self.touch()
        self.add_event(ProvisioningStateChanged(
            from_state=previous.value,
            to_state=new_state.value,
            resource_path=self.request.resource_path,
            run_id=self.id,
        ))

    def start_resolving(self) -> None:
        self._transition_to(ProvisioningState.RESOLVING)

    def start_idempotency_check(self) -> None:
        self._transition_to(ProvisioningState.CHECKING_IDEMPOTENCY)

    def record_decision(self, action: str, existing_resource_id: str = "") -> None:
        self.add_event(IdempotencyDecided(
            action=action,
            existing_resource_id=existing_resource_id,
            resource_path=self.request.resource_path,
            run_id=self.id,
        ))

    def start_deploying(self, deployment_name: str, template_ref: str) -> None:
        self._transition_to(ProvisioningState.DEPLOYING)
        self.add_event(DeploymentSubmitted(
            deployment_name=deployment_name,
            template_ref=template_ref,
            resource_path=self.request.resource_path,
            run_id=self.id,
        ))

    def abort(self) -> None:
        self._transition_to(ProvisioningState.ABORTED)

    def return_existing(self, result: ProvisioningResult) -> None:
        self._transition_to(ProvisioningState.RETURNING_EXISTING)
        self._finish(result)

    def complete(self, result: ProvisioningResult) -> None:
        self._transition_to(ProvisioningState.COMPLETED)
        self._finish(result)

    def _finish(self, result: ProvisioningResult) -> None:
        self.result = result
        self.add_event(ProvisioningCompleted(
            resource_id=result.resource_id,
            idempotency=result.idempotency.value,
            correlation_id=result.correlation_id,
            resource_path=self.request.resource_path,
            run_id=self.id,
        ))

    def fail(self, category: str, message: str, correlation_id: str = "") -> None:
        """Move to Failed from any non-terminal state."""
        self.error_category = category
        self.error_message = message
        self._transition_to(ProvisioningState.FAILED)
        self.add_event(ProvisioningFailed(
            category=category,
            error_message=message,
            correlation_id=correlation_id,
            resource_path=self.request.resource_path,
            run_id=self.id,
        ))

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


class InvalidStateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
