"""Composition root for the provisioning kernel."""

from __future__ import annotations

from provisioner.config import get_settings, Settings
from provisioner.domain.ports.backend import DeploymentBackend
from provisioner.domain.ports.services import (
    EventPublisher,
    EventStore,
    NullTelemetry,
    ProvisioningTelemetry,
)
from provisioner.domain.services.configuration import ConfigurationTable
from provisioner.domain.services.idempotency import IdempotencyGate
from provisioner.domain.services.naming import NamePolicyValidator
from provisioner.domain.services.provisioning_service import ProvisioningOrchestrator
from provisioner.domain.services.retry import RetryExecutor, Sleeper
from provisioner.infrastructure.messaging.event_publisher import InMemoryEventPublisher
from provisioner.infrastructure.monitoring.event_store import InMemoryEventStore
from provisioner.infrastructure.observability.telemetry import PrometheusTelemetry


def load_configuration_table(settings: Settings) -> ConfigurationTable:
    """Load the configuration table named in settings, or the built-in defaults."""
    if settings.config_file:
        return ConfigurationTable.from_json_file(settings.config_file)
    return ConfigurationTable.defaults()


class ServiceContainer:
    """Process-wide container for the kernel's shared collaborators.

    The configuration table and the event store are the only state shared
    between concurrent provisioning runs; both are created once here.
    Tests call :meth:`reset` between runs.
    """

    _instance: ServiceContainer | None = None

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._configuration = load_configuration_table(self._settings)
        self._event_publisher: EventPublisher | None = (
            InMemoryEventPublisher() if self._settings.event_store.publish_enabled else None
        )
        self._event_store = InMemoryEventStore(
            self._settings.event_store.max_events,
            log_path=self._settings.event_store.log_path,
            publisher=self._event_publisher,
        )
        self._telemetry: ProvisioningTelemetry = (
            PrometheusTelemetry(self._settings.observability.service_name)
            if self._settings.observability.metrics_enabled
            else NullTelemetry()
        )

    @classmethod
    def get_instance(cls) -> ServiceContainer:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def initialize(cls, settings: Settings | None = None) -> ServiceContainer:
        """Replace the process-wide instance with one built from ``settings``."""
        cls.reset()
        cls._instance = cls(settings)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        if cls._instance is not None:
            cls._instance.event_store.clear()
        cls._instance = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def configuration(self) -> ConfigurationTable:
        return self._configuration

    @property
    def event_store(self) -> EventStore:
        return self._event_store

    @property
    def telemetry(self) -> ProvisioningTelemetry:
        return self._telemetry

    @property
    def event_publisher(self) -> EventPublisher | None:
        return self._event_publisher

    def orchestrator(
        self,
        backend: DeploymentBackend,
        *,
        sleep: Sleeper | None = None,
    ) -> ProvisioningOrchestrator:
        """Build an orchestrator bound to ``backend`` and the shared state."""
        return ProvisioningOrchestrator(
            backend,
            configuration=self._configuration,
            validator=NamePolicyValidator(strict=self._settings.strict_naming),
            gate=IdempotencyGate(
                strict=self._settings.strict_idempotency,
                telemetry=self._telemetry,
            ),
            executor=RetryExecutor(sleep=sleep, telemetry=self._telemetry),
            event_store=self._event_store,
            telemetry=self._telemetry,
            max_attempts=self._settings.retry.max_attempts,
            base_delay=self._settings.retry.base_delay,
        )


def get_service_container() -> ServiceContainer:
    return ServiceContainer.get_instance()


def build_orchestrator(
    backend: DeploymentBackend,
    settings: Settings | None = None,
    *,
    sleep: Sleeper | None = None,
) -> ProvisioningOrchestrator:
    """Wire an orchestrator from settings without touching the shared container."""
    return ServiceContainer(settings).orchestrator(backend, sleep=sleep)
