"""Idempotency gate: decide whether a deployment may touch an existing resource."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum

import structlog
from pydantic import model_validator

from provisioner.domain.models.base import ValueObject
from provisioner.domain.models.outcome import ResourceInfo
from provisioner.domain.ports.services import NullTelemetry, ProvisioningTelemetry


logger = structlog.get_logger(__name__)

ExistingLookup = Callable[[], Awaitable[ResourceInfo | None]]
ConfirmFn = Callable[[], bool]


def always_confirm() -> bool:
    return True


def never_confirm() -> bool:
    return False


class GateAction(str, Enum):
    PROCEED = "Proceed"
    RETURN_EXISTING = "ReturnExisting"
    ABORT = "Abort"


class GateDecision(ValueObject):
    """Outcome of the gate; ``existing`` is set whenever a resource was found."""

    action: GateAction
    existing: ResourceInfo | None = None
    forced: bool = False

    @model_validator(mode="after")
    def _existing_unless_proceeding(self) -> GateDecision:
        if self.action != GateAction.PROCEED and self.existing is None:
            raise ValueError(f"{self.action.value} decision requires the existing resource")
        return self

    @property
    def proceeds(self) -> bool:
        return self.action == GateAction.PROCEED

    @property
    def is_update(self) -> bool:
        return self.proceeds and self.existing is not None

    def require_existing(self) -> ResourceInfo:
        """Return the found resource; only valid for decisions that found one."""
        if self.existing is None:
            raise ValueError(f"{self.action.value} decision carries no existing resource")
        return self.existing


class IdempotencyGate:
    """Single decision point guarding against unintended overwrites.

    The gate has no retry semantics of its own; the lookup it is handed is
    expected to be wrapped by the retry executor already. ``confirm`` must be
    synchronous and must not perform backend calls.

    With ``strict`` set, a found resource that is neither forced nor
    confirmed yields ``Abort`` instead of ``ReturnExisting``.
    """

    def __init__(
        self,
        *,
        strict: bool = False,
        telemetry: ProvisioningTelemetry | None = None,
    ) -> None:
        self._strict = strict
        self._telemetry = telemetry or NullTelemetry()

    async def decide(
        self,
        existing_lookup: ExistingLookup,
        force: bool = False,
        confirm: ConfirmFn = never_confirm,
    ) -> GateDecision:
        existing = await existing_lookup()

        if existing is None:
            decision = GateDecision(action=GateAction.PROCEED)
        elif force:
            decision = GateDecision(action=GateAction.PROCEED, existing=existing, forced=True)
        elif confirm():
            decision = GateDecision(action=GateAction.PROCEED, existing=existing)
        elif self._strict:
            decision = GateDecision(action=GateAction.ABORT, existing=existing)
        else:
            decision = GateDecision(action=GateAction.RETURN_EXISTING, existing=existing)

        self._telemetry.idempotency_decided(decision.action.value)
        logger.info(
            "idempotency_decided",
            action=decision.action.value,
            found=existing is not None,
            forced=force,
            existing_resource_id=existing.resource_id if existing else "",
        )
        return decision
