"""Event publisher implementations."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from provisioner.domain.ports.services import EventPublisher


logger = structlog.get_logger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[None]]


class InMemoryEventPublisher(EventPublisher):
    """In-memory external event log for development/testing."""

    def __init__(self) -> None:
        self._events: list[tuple[str, dict[str, Any]]] = []
        self._handlers: dict[str, list[Handler]] = {}

    async def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        self._events.append((event_type, payload))
        logger.debug("event_published", event_type=event_type, payload_keys=list(payload.keys()))

        for handler in self._handlers.get(event_type, []):
            await handler(payload)

    async def publish_batch(self, events: list[tuple[str, dict[str, Any]]]) -> None:
        for event_type, payload in events:
            await self.publish(event_type, payload)

    def subscribe(self, event_type: str, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    @property
    def published_events(self) -> list[tuple[str, dict[str, Any]]]:
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()
