"""Deployment backend port (hexagonal architecture)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from provisioner.domain.models.outcome import (
    DeploymentOutcome,
    ResourceGroupInfo,
    ResourceInfo,
)


class BackendError(Exception):
    """Provider-specific failure surfaced by a backend adapter.

    Adapters translate their native errors into this shape; the retry
    executor classifies it as transient or fatal from ``status_code`` and
    ``code``.
    """

    def __init__(
        self,
        status_code: int,
        code: str = "",
        message: str = "",
        *,
        correlation_id: str | None = None,
        principal: str | None = None,
    ) -> None:
        super().__init__(message or code or f"HTTP {status_code}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.correlation_id = correlation_id
        self.principal = principal

    def __str__(self) -> str:
        code = f" {self.code}" if self.code else ""
        return f"HTTP {self.status_code}{code}: {self.message or 'backend call failed'}"

    def __repr__(self) -> str:
        return f"BackendError(status_code={self.status_code}, code={self.code!r})"


class DeploymentBackend(ABC):
    """Port for the cloud provider the kernel provisions into."""

    @abstractmethod
    async def get_resource_group(self, name: str) -> ResourceGroupInfo | None:
        """Return the resource group, or None when it does not exist."""

    @abstractmethod
    async def get_resource(
        self, resource_type: str, name: str, resource_group: str
    ) -> ResourceInfo | None:
        """Return the resource, or None when it does not exist."""

    @abstractmethod
    async def deploy(
        self,
        resource_group: str,
        deployment_name: str,
        template_ref: str,
        parameters: dict[str, Any],
    ) -> DeploymentOutcome:
        """Run a template deployment and wait for its final state."""
