"""Prometheus metrics configuration."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Histogram,
    Info,
)


# Application info
APP_INFO = Info("provisioner", "Cloud provisioning kernel info")
APP_INFO.info({
    "version": "1.0.0",
    "service": "cloud-provisioning-kernel",
})

# Run metrics
PROVISIONING_RUNS_TOTAL = Counter(
    "provisioner_runs_total",
    "Total number of provisioning runs by final state",
    ["resource_type", "state"],
)

PROVISIONING_FAILURES_TOTAL = Counter(
    "provisioner_failures_total",
    "Total number of failed runs by error category",
    ["resource_type", "category"],
)

PROVISIONING_DURATION = Histogram(
    "provisioner_run_duration_seconds",
    "Wall-clock time of a provisioning run, including backoff sleeps",
    ["resource_type"],
    buckets=[1, 5, 15, 30, 60, 120, 300, 600, 1800],
)

# Retry metrics
RETRY_ATTEMPTS = Counter(
    "provisioner_retry_attempts_total",
    "Total number of retries scheduled after a transient failure",
    ["activity"],
)

# Idempotency metrics
IDEMPOTENCY_DECISIONS = Counter(
    "provisioner_idempotency_decisions_total",
    "Idempotency gate decisions",
    ["action"],  # "Proceed", "ReturnExisting", "Abort"
)

# Monitoring sink metrics
EVENT_SINK_FAILURES = Counter(
    "provisioner_event_sink_failures_total",
    "Failures of secondary event sinks (file, external publisher)",
    ["sink"],
)
