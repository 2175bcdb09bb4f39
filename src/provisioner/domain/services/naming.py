"""Resource name validation against per-type naming policies."""

from __future__ import annotations

from collections.abc import Mapping

import structlog

from provisioner.domain.errors import ValidationError
from provisioner.domain.models.policy import DEFAULT_NAMING_POLICIES, NamingPolicy
from provisioner.domain.models.resource import Environment, ResourceType


logger = structlog.get_logger(__name__)


class NamePolicyValidator:
    """Checks proposed names against environment-qualified naming patterns.

    In soft mode a mismatch returns ``False`` and the caller decides; in
    strict mode it raises :class:`ValidationError` carrying the offending
    pattern and value. Empty names and unknown resource types are rejected
    in both modes.
    """

    def __init__(
        self,
        policies: Mapping[ResourceType, NamingPolicy] | None = None,
        *,
        strict: bool = True,
    ) -> None:
        self._policies = dict(policies if policies is not None else DEFAULT_NAMING_POLICIES)
        self._strict = strict

    def policy_for(self, resource_type: ResourceType) -> NamingPolicy:
        policy = self._policies.get(resource_type)
        if policy is None:
            raise ValidationError(
                f"No naming policy for resource type {resource_type!s}",
                resource_type,
                rule="policy.unknown_type",
                provided_value=resource_type,
            )
        return policy

    def explain(self, resource_type: ResourceType, environment: Environment) -> str:
        """Human-readable naming hint for error messages."""
        policy = self.policy_for(resource_type)
        suffix = policy.environment_suffixes.get(environment, environment.value)
        hint = policy.description or policy.pattern
        return f"{hint} (environment suffix '{suffix}')"

    def validate(
        self,
        resource_type: ResourceType,
        name: str,
        environment: Environment,
        *,
        strict: bool | None = None,
    ) -> bool:
        strict = self._strict if strict is None else strict

        if not name or not name.strip():
            raise ValidationError(
                "Resource name must not be empty",
                resource_type,
                name or "",
                rule="name.required",
                provided_value=name,
            )

        policy = self.policy_for(resource_type)
        pattern = policy.qualified_pattern(environment)

        if not policy.min_length <= len(name) <= policy.max_length:
            return self._reject(
                strict, resource_type, name,
                rule=f"length {policy.min_length}-{policy.max_length}",
                reason=(
                    f"Name must be {policy.min_length}-{policy.max_length} "
                    f"characters, got {len(name)}"
                ),
            )

        if policy.compiled(environment).fullmatch(name) is None:
            return self._reject(
                strict, resource_type, name,
                rule=pattern,
                reason=(
                    f"Name does not match naming policy: "
                    f"{self.explain(resource_type, environment)}"
                ),
            )

        return True

    def _reject(
        self,
        strict: bool,
        resource_type: ResourceType,
        name: str,
        *,
        rule: str,
        reason: str,
    ) -> bool:
        if strict:
            raise ValidationError(
                reason,
                resource_type,
                name,
                rule=rule,
                provided_value=name,
            )
        logger.debug(
            "name_policy_mismatch",
            resource_type=resource_type.value,
            name=name,
            rule=rule,
        )
        return False
