"""Service port interfaces (hexagonal architecture)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager, nullcontext
from datetime import datetime
from typing import Any

from pydantic import Field

from provisioner.domain.models.base import utc_now, ValueObject


class MonitoringEvent(ValueObject):
    """An entry in the append-only monitoring store."""

    kind: str
    path: str
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)


class EventStore(ABC):
    """Port for the process-wide monitoring event store.

    Implementations synchronize internally; callers append concurrently
    without locking.
    """

    @abstractmethod
    async def append(self, event: MonitoringEvent) -> None:
        """Append an event. Must not raise on secondary sink failures."""

    @abstractmethod
    def events(self, kind: str | None = None) -> list[MonitoringEvent]:
        """Snapshot of retained events, oldest first."""

    @abstractmethod
    def clear(self) -> None:
        """Drop all retained events."""


class EventPublisher(ABC):
    """Port for publishing events to an external event log."""

    @abstractmethod
    async def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        """Publish an event."""

    @abstractmethod
    async def publish_batch(self, events: list[tuple[str, dict[str, Any]]]) -> None:
        """Publish a batch of events."""


class ProvisioningTelemetry(ABC):
    """Port for run metrics and tracing.

    Domain services report through this port; adapters decide where the
    numbers and spans go.
    """

    @abstractmethod
    def run_span(self, name: str, attributes: dict[str, str]) -> AbstractContextManager[Any]:
        """Context manager covering one provisioning run."""

    @abstractmethod
    def annotate(self, key: str, value: str) -> None:
        """Attach an attribute to the current run span."""

    @abstractmethod
    def run_finished(self, resource_type: str, state: str, duration_seconds: float) -> None:
        """Record a run that ended in ``state``."""

    @abstractmethod
    def run_failed(self, resource_type: str, category: str) -> None:
        """Record the error category of a failed run."""

    @abstractmethod
    def retry_scheduled(self, activity: str) -> None:
        """Record one backoff before a retry."""

    @abstractmethod
    def idempotency_decided(self, action: str) -> None:
        """Record an idempotency gate decision."""


class NullTelemetry(ProvisioningTelemetry):
    """Telemetry that records nothing."""

    def run_span(self, name: str, attributes: dict[str, str]) -> AbstractContextManager[Any]:
        return nullcontext()

    def annotate(self, key: str, value: str) -> None:
        pass

    def run_finished(self, resource_type: str, state: str, duration_seconds: float) -> None:
        pass

    def run_failed(self, resource_type: str, category: str) -> None:
        pass

    def retry_scheduled(self, activity: str) -> None:
        pass

    def idempotency_decided(self, action: str) -> None:
        pass
