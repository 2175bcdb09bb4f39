"""Prometheus and OpenTelemetry adapter for the telemetry port."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Any

from opentelemetry import trace

from provisioner.domain.ports.services import ProvisioningTelemetry
from provisioner.infrastructure.observability.metrics import (
    IDEMPOTENCY_DECISIONS,
    PROVISIONING_DURATION,
    PROVISIONING_FAILURES_TOTAL,
    PROVISIONING_RUNS_TOTAL,
    RETRY_ATTEMPTS,
)
from provisioner.infrastructure.observability.tracing import get_tracer


class PrometheusTelemetry(ProvisioningTelemetry):
    """Reports runs to the process Prometheus registry and the global tracer."""

    def __init__(self, tracer_name: str = "provisioner") -> None:
        self._tracer_name = tracer_name

    def run_span(self, name: str, attributes: dict[str, str]) -> AbstractContextManager[Any]:
        attrs = {f"provisioner.{key}": value for key, value in attributes.items()}
        return get_tracer(self._tracer_name).start_as_current_span(name, attributes=attrs)

    def annotate(self, key: str, value: str) -> None:
        trace.get_current_span().set_attribute(f"provisioner.{key}", value)

    def run_finished(self, resource_type: str, state: str, duration_seconds: float) -> None:
        PROVISIONING_RUNS_TOTAL.labels(resource_type=resource_type, state=state).inc()
        PROVISIONING_DURATION.labels(resource_type=resource_type).observe(duration_seconds)

    def run_failed(self, resource_type: str, category: str) -> None:
        PROVISIONING_FAILURES_TOTAL.labels(
            resource_type=resource_type, category=category
        ).inc()

    def retry_scheduled(self, activity: str) -> None:
        RETRY_ATTEMPTS.labels(activity=activity).inc()

    def idempotency_decided(self, action: str) -> None:
        IDEMPOTENCY_DECISIONS.labels(action=action).inc()
