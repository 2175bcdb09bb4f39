"""Unit tests for event publisher."""

from __future__ import annotations

import pytest

from provisioner.infrastructure.messaging.event_publisher import InMemoryEventPublisher


class TestInMemoryEventPublisher:
    @pytest.mark.asyncio
    async def test_publish(self, event_publisher: InMemoryEventPublisher) -> None:
        await event_publisher.publish("provisioning.started", {"run_id": "r-1"})
        assert event_publisher.published_events == [
            ("provisioning.started", {"run_id": "r-1"}),
        ]

    @pytest.mark.asyncio
    async def test_publish_batch_keeps_order(
        self, event_publisher: InMemoryEventPublisher
    ) -> None:
        await event_publisher.publish_batch([
            ("provisioning.started", {"n": 1}),
            ("provisioning.completed", {"n": 2}),
        ])
        assert [t for t, _ in event_publisher.published_events] == [
            "provisioning.started",
            "provisioning.completed",
        ]

    @pytest.mark.asyncio
    async def test_subscribers_only_see_their_type(
        self, event_publisher: InMemoryEventPublisher
    ) -> None:
        received: list[dict] = []

        async def handler(payload: dict) -> None:
            received.append(payload)

        event_publisher.subscribe("provisioning.failed", handler)
        await event_publisher.publish("provisioning.started", {"n": 1})
        await event_publisher.publish("provisioning.failed", {"n": 2})
        assert received == [{"n": 2}]

    @pytest.mark.asyncio
    async def test_clear(self, event_publisher: InMemoryEventPublisher) -> None:
        await event_publisher.publish("provisioning.started", {})
        event_publisher.clear()
        assert event_publisher.published_events == []
