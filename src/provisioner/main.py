"""Process bootstrap for hosts embedding the provisioning kernel."""

from __future__ import annotations

import structlog
from prometheus_client import start_http_server

from provisioner.config import get_settings, Settings
from provisioner.container import ServiceContainer
from provisioner.infrastructure.observability.logging import setup_logging
from provisioner.infrastructure.observability.tracing import setup_tracing


logger = structlog.get_logger(__name__)


def bootstrap(settings: Settings | None = None) -> ServiceContainer:
    """Configure logging, tracing and metrics, then create the shared container.

    Command surfaces call this once at process start and build orchestrators
    from the returned container.
    """
    if settings is None:
        settings = get_settings()

    observability = settings.observability
    setup_logging(observability.log_level, json_output=observability.log_json)
    setup_tracing(observability)

    if observability.metrics_enabled and observability.metrics_port:
        start_http_server(observability.metrics_port)
        logger.info("metrics_server_started", port=observability.metrics_port)

    container = ServiceContainer.initialize(settings)
    logger.info(
        "kernel_starting",
        environment=settings.environment.value,
        debug=settings.debug,
        strict_naming=settings.strict_naming,
        strict_idempotency=settings.strict_idempotency,
        max_attempts=settings.retry.max_attempts,
    )
    return container
