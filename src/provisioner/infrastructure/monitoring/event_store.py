"""Append-only monitoring event store."""

from __future__ import annotations

import asyncio
import json
import threading
from collections import deque
from pathlib import Path

import structlog

from provisioner.domain.ports.services import EventPublisher, EventStore, MonitoringEvent
from provisioner.infrastructure.observability.metrics import EVENT_SINK_FAILURES


logger = structlog.get_logger(__name__)


class InMemoryEventStore(EventStore):
    """Bounded ring of monitoring events with optional secondary sinks.

    The ring evicts the oldest entry once ``max_events`` is reached. Events
    may also be appended to a JSON-lines file and forwarded to an external
    publisher; both are fire-and-forget and a failing sink only produces a
    warning. The ring lock is never held across I/O; file writes run in a
    worker thread and are serialized by their own lock.
    """

    def __init__(
        self,
        max_events: int = 1000,
        *,
        log_path: str | Path | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._events: deque[MonitoringEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()
        self._file_lock = threading.Lock()
        self._log_path = Path(log_path) if log_path else None
        self._publisher = publisher

    @property
    def max_events(self) -> int:
        return self._events.maxlen or 0

    async def append(self, event: MonitoringEvent) -> None:
        with self._lock:
            self._events.append(event)

        if self._log_path is not None:
            await asyncio.to_thread(self._write_line, self._log_path, event)

        if self._publisher is not None:
            try:
                await self._publisher.publish(event.kind, event.model_dump(mode="json"))
            except Exception as e:
                EVENT_SINK_FAILURES.labels(sink="publisher").inc()
                logger.warning("event_publish_failed", kind=event.kind, error=str(e))

    def _write_line(self, path: Path, event: MonitoringEvent) -> None:
        line = json.dumps(event.model_dump(mode="json"), default=str) + "\n"
        try:
            with self._file_lock, open(path, "a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            EVENT_SINK_FAILURES.labels(sink="file").inc()
            logger.warning(
                "event_log_write_failed",
                path=str(path),
                kind=event.kind,
                error=str(e),
            )

    def events(self, kind: str | None = None) -> list[MonitoringEvent]:
        with self._lock:
            snapshot = list(self._events)
        if kind is None:
            return snapshot
        return [e for e in snapshot if e.kind == kind]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
