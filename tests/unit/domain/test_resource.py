"""Unit tests for resource requests and profiles."""

from __future__ import annotations

import pydantic
import pytest

from provisioner.domain.models.policy import RetryPolicy
from provisioner.domain.models.resource import (
    Environment,
    get_profile,
    RESOURCE_PROFILES,
    ResourceRequest,
    ResourceType,
)


class TestResourceRequest:
    def test_defaults(self, vm_request: ResourceRequest) -> None:
        assert vm_request.location is None
        assert vm_request.tier is None
        assert vm_request.force is False
        assert vm_request.strict_naming is None
        assert vm_request.parameters == {}

    def test_resource_path(self, vm_request: ResourceRequest) -> None:
        assert vm_request.resource_path == "VirtualMachine/rg-shop-prod/vm-shop-prod"

    def test_immutable(self, vm_request: ResourceRequest) -> None:
        with pytest.raises(pydantic.ValidationError):
            vm_request.name = "vm-other-prod"  # type: ignore[misc]

    def test_requires_resource_group(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ResourceRequest(
                resource_type=ResourceType.KEY_VAULT,
                name="kv-shop-dev",
                resource_group="  ",
                environment=Environment.DEV,
            )

    def test_parameters_keep_insertion_order(self, request_factory) -> None:
        request = request_factory(parameters={"b": 1, "a": 2})
        assert list(request.parameters) == ["b", "a"]


class TestResourceProfiles:
    def test_every_type_has_profile(self) -> None:
        for resource_type in ResourceType:
            assert get_profile(resource_type).resource_type == resource_type

    def test_templates_are_distinct(self) -> None:
        refs = [p.template_ref for p in RESOURCE_PROFILES.values()]
        assert len(refs) == len(set(refs))

    def test_virtual_machine_needs_network(self) -> None:
        prerequisite = get_profile(ResourceType.VIRTUAL_MACHINE).prerequisites[0]
        assert prerequisite.resource_type == "VirtualNetwork"
        assert prerequisite.network is True


class TestRetryPolicy:
    def test_delays_double(self) -> None:
        policy = RetryPolicy(max_attempts=4, base_delay=1.5)
        assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.5, 3.0, 6.0]

    @pytest.mark.parametrize("fields", [{"max_attempts": 0}, {"base_delay": -1}])
    def test_bounds(self, fields: dict) -> None:
        with pytest.raises(pydantic.ValidationError):
            RetryPolicy(**fields)
