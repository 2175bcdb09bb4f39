"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import pytest

from provisioner.config import RuntimeEnvironment, Settings
from provisioner.container import ServiceContainer
from provisioner.domain.models.resource import Environment, ResourceRequest, ResourceType
from provisioner.domain.ports.services import ProvisioningTelemetry
from provisioner.domain.services.configuration import ConfigurationTable
from provisioner.domain.services.idempotency import IdempotencyGate
from provisioner.domain.services.naming import NamePolicyValidator
from provisioner.domain.services.provisioning_service import ProvisioningOrchestrator
from provisioner.domain.services.retry import RetryExecutor
from provisioner.infrastructure.backends.simulated import SimulatedDeploymentBackend
from provisioner.infrastructure.messaging.event_publisher import InMemoryEventPublisher
from provisioner.infrastructure.monitoring.event_store import InMemoryEventStore


class RecordingSleep:
    """Async sleep replacement that records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class RecordingTelemetry(ProvisioningTelemetry):
    """Telemetry double that keeps every call for assertions."""

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, str]]] = []
        self.annotations: dict[str, str] = {}
        self.finished: list[tuple[str, str]] = []
        self.failures: list[tuple[str, str]] = []
        self.retries: list[str] = []
        self.decisions: list[str] = []

    @contextmanager
    def run_span(self, name: str, attributes: dict[str, str]) -> Iterator[None]:
        self.spans.append((name, dict(attributes)))
        yield

    def annotate(self, key: str, value: str) -> None:
        self.annotations[key] = value

    def run_finished(self, resource_type: str, state: str, duration_seconds: float) -> None:
        self.finished.append((resource_type, state))

    def run_failed(self, resource_type: str, category: str) -> None:
        self.failures.append((resource_type, category))

    def retry_scheduled(self, activity: str) -> None:
        self.retries.append(activity)

    def idempotency_decided(self, action: str) -> None:
        self.decisions.append(action)


@pytest.fixture(autouse=True)
def reset_container() -> None:
    """Reset the process-wide container before each test."""
    ServiceContainer.reset()


@pytest.fixture
def settings() -> Settings:
    return Settings(environment=RuntimeEnvironment.TESTING, debug=True)


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def telemetry() -> RecordingTelemetry:
    return RecordingTelemetry()


@pytest.fixture
def executor(sleeper: RecordingSleep, telemetry: RecordingTelemetry) -> RetryExecutor:
    return RetryExecutor(sleep=sleeper, telemetry=telemetry)


@pytest.fixture
def backend() -> SimulatedDeploymentBackend:
    backend = SimulatedDeploymentBackend()
    backend.add_resource_group("rg-shop-prod", location="westeurope")
    backend.add_resource_group("rg-shop-dev", location="northeurope")
    return backend


@pytest.fixture
def event_publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore(max_events=100)


@pytest.fixture
def configuration() -> ConfigurationTable:
    return ConfigurationTable.defaults()


@pytest.fixture
def orchestrator(
    backend: SimulatedDeploymentBackend,
    executor: RetryExecutor,
    event_store: InMemoryEventStore,
    configuration: ConfigurationTable,
    telemetry: RecordingTelemetry,
) -> ProvisioningOrchestrator:
    return ProvisioningOrchestrator(
        backend,
        configuration=configuration,
        validator=NamePolicyValidator(strict=True),
        gate=IdempotencyGate(telemetry=telemetry),
        executor=executor,
        event_store=event_store,
        telemetry=telemetry,
        max_attempts=3,
        base_delay=1.0,
    )


def _build_request(**overrides: Any) -> ResourceRequest:
    data: dict[str, Any] = {
        "resource_type": ResourceType.VIRTUAL_MACHINE,
        "name": "vm-shop-prod",
        "resource_group": "rg-shop-prod",
        "environment": Environment.PROD,
        "department": "retail",
    }
    data.update(overrides)
    return ResourceRequest(**data)


@pytest.fixture
def request_factory() -> Callable[..., ResourceRequest]:
    return _build_request


@pytest.fixture
def vm_request() -> ResourceRequest:
    return _build_request()
