"""Unit tests for the simulated deployment backend."""

from __future__ import annotations

import pytest

from provisioner.domain.models.outcome import DeploymentState
from provisioner.domain.ports.backend import BackendError
from provisioner.infrastructure.backends.simulated import (
    resource_id_for,
    SimulatedDeploymentBackend,
)


class TestSimulatedDeploymentBackend:
    @pytest.mark.asyncio
    async def test_resource_group_lookup_is_case_insensitive(
        self, backend: SimulatedDeploymentBackend
    ) -> None:
        group = await backend.get_resource_group("RG-SHOP-PROD")
        assert group is not None
        assert group.location == "westeurope"
        assert await backend.get_resource_group("rg-unknown") is None

    @pytest.mark.asyncio
    async def test_seeded_resource(self, backend: SimulatedDeploymentBackend) -> None:
        seeded = backend.add_resource("KeyVault", "kv-shop-dev", "rg-shop-dev")
        found = await backend.get_resource("KeyVault", "kv-shop-dev", "rg-shop-dev")
        assert found == seeded
        assert found.resource_id == resource_id_for("KeyVault", "kv-shop-dev", "rg-shop-dev")
        assert await backend.get_resource("WebApp", "kv-shop-dev", "rg-shop-dev") is None

    @pytest.mark.asyncio
    async def test_deploy_creates_resource(self, backend: SimulatedDeploymentBackend) -> None:
        outcome = await backend.deploy(
            "rg-shop-dev",
            "app-shop-dev-20260101000000",
            "templates/web_app.json",
            {"name": "app-shop-dev", "location": "eastus", "skuName": "F1"},
        )
        assert outcome.state == DeploymentState.SUCCEEDED
        assert outcome.correlation_id
        created = await backend.get_resource("WebApp", "app-shop-dev", "rg-shop-dev")
        assert created is not None
        assert created.location == "eastus"
        assert created.properties == {"skuName": "F1"}
        assert outcome.outputs["resourceId"] == created.resource_id

    @pytest.mark.asyncio
    async def test_scripted_outcome(self, backend: SimulatedDeploymentBackend) -> None:
        backend.set_next_outcome(DeploymentState.FAILED)
        outcome = await backend.deploy("rg-shop-dev", "d", "templates/key_vault.json", {"name": "kv"})
        assert outcome.state == DeploymentState.FAILED
        assert outcome.error_details
        assert await backend.get_resource("KeyVault", "kv", "rg-shop-dev") is None

    @pytest.mark.asyncio
    async def test_scripted_failures_are_consumed_in_order(
        self, backend: SimulatedDeploymentBackend
    ) -> None:
        first = BackendError(429, "TooManyRequests")
        second = BackendError(503, "ServiceUnavailable")
        backend.fail_next("get_resource_group", first, second)
        with pytest.raises(BackendError) as exc_info:
            await backend.get_resource_group("rg-shop-dev")
        assert exc_info.value is first
        with pytest.raises(BackendError) as exc_info:
            await backend.get_resource_group("rg-shop-dev")
        assert exc_info.value is second
        assert await backend.get_resource_group("rg-shop-dev") is not None

    @pytest.mark.asyncio
    async def test_call_counters(self, backend: SimulatedDeploymentBackend) -> None:
        await backend.get_resource_group("rg-shop-dev")
        await backend.get_resource("WebApp", "x", "rg-shop-dev")
        await backend.get_resource("WebApp", "y", "rg-shop-dev")
        assert backend.calls["get_resource_group"] == 1
        assert backend.calls["get_resource"] == 2
        assert backend.total_calls == 3


class TestBackendError:
    def test_str(self) -> None:
        error = BackendError(409, "Conflict", "busy", correlation_id="c-1")
        assert "409" in str(error)
        assert "Conflict" in str(error)
        assert error.correlation_id == "c-1"
