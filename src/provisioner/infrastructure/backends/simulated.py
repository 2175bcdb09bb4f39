"""Simulated deployment backend."""

from __future__ import annotations

import asyncio
from collections import Counter, defaultdict, deque
from typing import Any

import structlog

from provisioner.domain.models.base import generate_id
from provisioner.domain.models.outcome import (
    DeploymentOutcome,
    DeploymentState,
    ResourceGroupInfo,
    ResourceInfo,
)
from provisioner.domain.ports.backend import DeploymentBackend


logger = structlog.get_logger(__name__)

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"

# Template reference to the provider resource type it creates
TEMPLATE_RESOURCE_TYPES: dict[str, str] = {
    "templates/virtual_machine.json": "VirtualMachine",
    "templates/web_app.json": "WebApp",
    "templates/storage_account.json": "StorageAccount",
    "templates/key_vault.json": "KeyVault",
}


def resource_id_for(resource_type: str, name: str, resource_group: str) -> str:
    return (
        f"/subscriptions/{SUBSCRIPTION_ID}/resourceGroups/{resource_group}"
        f"/providers/{resource_type}/{name}"
    )


class SimulatedDeploymentBackend(DeploymentBackend):
    """In-memory cloud for development and testing.

    Resource groups and resources can be seeded up front. Failures can be
    scripted per operation (``get_resource_group``, ``get_resource``,
    ``deploy``); each queued exception is raised by one call, in order.
    Calls are counted per operation so tests can assert on backend traffic.
    """

    def __init__(self, latency: float = 0.0) -> None:
        self._latency = latency
        self._groups: dict[str, ResourceGroupInfo] = {}
        self._resources: dict[tuple[str, str, str], ResourceInfo] = {}
        self._failures: dict[str, deque[Exception]] = defaultdict(deque)
        self._outcome_states: deque[DeploymentState] = deque()
        self.calls: Counter[str] = Counter()
        self.deployments: list[dict[str, Any]] = []

    # ------------------------------------------------------------------
    # Seeding and scripting
    # ------------------------------------------------------------------

    def add_resource_group(self, name: str, location: str = "eastus") -> ResourceGroupInfo:
        group = ResourceGroupInfo(name=name, location=location)
        self._groups[name.lower()] = group
        return group

    def add_resource(
        self,
        resource_type: str,
        name: str,
        resource_group: str,
        *,
        location: str = "eastus",
        provisioning_state: str = "Succeeded",
        properties: dict[str, Any] | None = None,
    ) -> ResourceInfo:
        info = ResourceInfo(
            resource_id=resource_id_for(resource_type, name, resource_group),
            resource_type=resource_type,
            name=name,
            resource_group=resource_group,
            location=location,
            provisioning_state=provisioning_state,
            properties=properties or {},
        )
        self._resources[self._key(resource_type, name, resource_group)] = info
        return info

    def fail_next(self, operation: str, *errors: Exception) -> None:
        """Queue errors to be raised by the next calls of ``operation``."""
        self._failures[operation].extend(errors)

    def set_next_outcome(self, *states: DeploymentState) -> None:
        """Queue the final states reported by the next deployments."""
        self._outcome_states.extend(states)

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    @staticmethod
    def _key(resource_type: str, name: str, resource_group: str) -> tuple[str, str, str]:
        return (resource_type.lower(), resource_group.lower(), name.lower())

    async def _enter(self, operation: str) -> None:
        self.calls[operation] += 1
        if self._latency:
            await asyncio.sleep(self._latency)
        queue = self._failures.get(operation)
        if queue:
            raise queue.popleft()

    # ------------------------------------------------------------------
    # DeploymentBackend
    # ------------------------------------------------------------------

    async def get_resource_group(self, name: str) -> ResourceGroupInfo | None:
        await self._enter("get_resource_group")
        return self._groups.get(name.lower())

    async def get_resource(
        self, resource_type: str, name: str, resource_group: str
    ) -> ResourceInfo | None:
        await self._enter("get_resource")
        return self._resources.get(self._key(resource_type, name, resource_group))

    async def deploy(
        self,
        resource_group: str,
        deployment_name: str,
        template_ref: str,
        parameters: dict[str, Any],
    ) -> DeploymentOutcome:
        await self._enter("deploy")
        correlation_id = generate_id()
        self.deployments.append({
            "resource_group": resource_group,
            "deployment_name": deployment_name,
            "template_ref": template_ref,
            "parameters": dict(parameters),
            "correlation_id": correlation_id,
        })
        logger.info(
            "simulated_deployment",
            resource_group=resource_group,
            deployment_name=deployment_name,
            template_ref=template_ref,
        )

        state = (
            self._outcome_states.popleft() if self._outcome_states
            else DeploymentState.SUCCEEDED
        )
        if state != DeploymentState.SUCCEEDED:
            return DeploymentOutcome(
                state=state,
                correlation_id=correlation_id,
                deployment_name=deployment_name,
                error_details=f"Simulated deployment ended in state {state.value}",
            )

        resource_type = TEMPLATE_RESOURCE_TYPES.get(
            template_ref, str(parameters.get("resourceType", "Resource"))
        )
        name = str(parameters.get("name", deployment_name))
        info = self.add_resource(
            resource_type,
            name,
            resource_group,
            location=str(parameters.get("location", "")),
            properties={k: v for k, v in parameters.items() if k not in {"name", "location"}},
        )
        return DeploymentOutcome(
            state=DeploymentState.SUCCEEDED,
            outputs={"resourceId": info.resource_id, "name": name},
            correlation_id=correlation_id,
            deployment_name=deployment_name,
        )
