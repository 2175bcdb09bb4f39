"""OpenTelemetry tracing configuration."""

from __future__ import annotations

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
)
from opentelemetry.semconv.resource import ResourceAttributes

from provisioner.config import ObservabilitySettings


def setup_tracing(settings: ObservabilitySettings) -> TracerProvider | None:
    """Configure OpenTelemetry tracing; returns the installed provider."""
    if not settings.tracing_enabled:
        return None

    resource = Resource.create({
        ResourceAttributes.SERVICE_NAME: settings.service_name,
        ResourceAttributes.SERVICE_VERSION: "1.0.0",
    })

    provider = TracerProvider(resource=resource)

    # Console exporter for development
    if settings.console_spans:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    return provider


def get_tracer(name: str = "provisioner") -> trace.Tracer:
    """Get a tracer instance."""
    return trace.get_tracer(name)
