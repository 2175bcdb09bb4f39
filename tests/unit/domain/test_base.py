"""Unit tests for base domain models."""

from __future__ import annotations

import pydantic
import pytest

from provisioner.domain.events import ProvisioningFailed
from provisioner.domain.models.base import (
    AggregateRoot,
    DomainEntity,
    DomainEvent,
    generate_id,
    utc_now,
)
from provisioner.domain.models.outcome import ResourceInfo


class TestIdsAndClock:
    def test_ids_unique(self) -> None:
        assert len({generate_id() for _ in range(100)}) == 100

    def test_utc_now_is_aware(self) -> None:
        assert utc_now().tzinfo is not None


class TestDomainEntity:
    def test_touch_bumps_version(self) -> None:
        entity = DomainEntity()
        created = entity.updated_at
        entity.touch()
        assert entity.version == 2
        assert entity.updated_at >= created


class TestValueObject:
    def test_frozen(self) -> None:
        info = ResourceInfo(
            resource_id="/id", resource_type="KeyVault", name="kv", resource_group="rg"
        )
        with pytest.raises(pydantic.ValidationError):
            info.name = "other"  # type: ignore[misc]

    def test_readiness(self) -> None:
        info = ResourceInfo(
            resource_id="/id", resource_type="VirtualNetwork", name="vnet",
            resource_group="rg", provisioning_state="Updating",
        )
        assert not info.is_ready


class TestDomainEvent:
    def test_payload_excludes_envelope(self) -> None:
        event = ProvisioningFailed(
            category="Transient",
            error_message="throttled",
            resource_path="WebApp/rg/app-shop-dev",
            run_id="run-1",
        )
        payload = event.payload()
        assert payload["category"] == "Transient"
        assert payload["run_id"] == "run-1"
        assert "event_id" not in payload
        assert "occurred_at" not in payload
        assert "resource_path" not in payload


class TestAggregateRoot:
    def test_events_are_per_instance(self) -> None:
        first = AggregateRoot()
        second = AggregateRoot()
        first.add_event(DomainEvent(event_type="a"))
        assert second.pending_events == []

    def test_collect_clears(self) -> None:
        aggregate = AggregateRoot()
        aggregate.add_event(DomainEvent(event_type="a"))
        aggregate.add_event(DomainEvent(event_type="b"))
        assert [e.event_type for e in aggregate.collect_events()] == ["a", "b"]
        assert aggregate.collect_events() == []
