"""Provisioning orchestrator: the shared sequence behind every resource operation."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

from provisioner.domain.errors import (
    DependencyError,
    NetworkConfigurationError,
    ProvisioningFailedError,
    report_error,
    ResourceExistsError,
    wrap_error,
)
from provisioner.domain.models.base import utc_now
from provisioner.domain.models.outcome import (
    DeploymentState,
    IdempotencyOutcome,
    ProvisioningResult,
    ResourceGroupInfo,
    ResourceInfo,
)
from provisioner.domain.models.policy import RetryPolicy
from provisioner.domain.models.resource import (
    get_profile,
    ResourceProfile,
    ResourceRequest,
)
from provisioner.domain.models.run import ProvisioningRun, ProvisioningState
from provisioner.domain.ports.backend import DeploymentBackend
from provisioner.domain.ports.services import (
    EventStore,
    MonitoringEvent,
    NullTelemetry,
    ProvisioningTelemetry,
)
from provisioner.domain.services.configuration import (
    ConfigurationResolver,
    ConfigurationTable,
)
from provisioner.domain.services.idempotency import (
    ConfirmFn,
    GateAction,
    GateDecision,
    IdempotencyGate,
    never_confirm,
)
from provisioner.domain.services.naming import NamePolicyValidator
from provisioner.domain.services.retry import RetryExecutor


logger = structlog.get_logger(__name__)

T = TypeVar("T")

MANAGED_BY_TAG = "cloud-provisioning-kernel"


class ProvisioningOrchestrator:
    """Runs one resource request end-to-end.

    Validate name -> resolve configuration -> check prerequisites ->
    idempotency gate -> deploy (with retries) -> read back. Every failure
    leaves as one of the taxonomy errors; the run's domain events are
    appended to the event store whether it succeeds or fails.
    """

    def __init__(
        self,
        backend: DeploymentBackend,
        *,
        configuration: ConfigurationTable | None = None,
        validator: NamePolicyValidator | None = None,
        gate: IdempotencyGate | None = None,
        executor: RetryExecutor | None = None,
        event_store: EventStore | None = None,
        telemetry: ProvisioningTelemetry | None = None,
        max_attempts: int = 3,
        base_delay: float = 2.0,
    ) -> None:
        self._backend = backend
        self._configuration = configuration or ConfigurationTable.defaults()
        self._validator = validator or NamePolicyValidator()
        self._gate = gate or IdempotencyGate()
        self._executor = executor or RetryExecutor()
        self._event_store = event_store
        self._telemetry = telemetry or NullTelemetry()
        self._max_attempts = max_attempts
        self._base_delay = base_delay

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _policy(self, activity_label: str) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self._max_attempts,
            base_delay=self._base_delay,
            activity_label=activity_label,
        )

    async def _with_retry(
        self,
        request: ResourceRequest,
        activity_label: str,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        return await self._executor.execute(
            operation,
            self._policy(activity_label),
            resource_type=request.resource_type.value,
            resource_name=request.name,
        )

    async def _flush_events(self, run: ProvisioningRun) -> None:
        """Append the run's pending events to the event store."""
        events = run.collect_events()
        if self._event_store is None:
            return
        for event in events:
            try:
                await self._event_store.append(MonitoringEvent(
                    kind=event.event_type,
                    path=event.resource_path,
                    payload=event.payload(),
                    timestamp=event.occurred_at,
                ))
            except Exception as e:
                logger.warning("event_store_append_failed", kind=event.event_type, error=str(e))

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def provision(
        self,
        request: ResourceRequest,
        confirm: ConfirmFn = never_confirm,
    ) -> ProvisioningResult:
        """Provision one resource, or raise a :class:`ProvisioningError`."""
        run = ProvisioningRun(request=request)
        run.begin()
        resource_type = request.resource_type.value
        started = time.monotonic()

        with structlog.contextvars.bound_contextvars(
            run_id=run.id,
            resource_type=resource_type,
            resource_name=request.name,
        ), self._telemetry.run_span(
            "provision",
            {
                "resource_type": resource_type,
                "resource_name": request.name,
                "resource_group": request.resource_group,
                "environment": request.environment.value,
            },
        ):
            logger.info("provisioning_started", environment=request.environment.value)
            try:
                result = await self._run(run, confirm)
            except Exception as exc:
                error = wrap_error(exc, resource_type, request.name)
                if not run.is_terminal:
                    run.fail(error.category.value, error.message, error.correlation_id or "")
                self._telemetry.annotate("error_category", error.category.value)
                self._telemetry.run_failed(resource_type, error.category.value)
                self._telemetry.run_finished(
                    resource_type, ProvisioningState.FAILED.value, time.monotonic() - started
                )
                await self._flush_events(run)
                report_error(error, reraise=False, log=logger)
                if error is exc:
                    raise
                raise error from exc

            self._telemetry.annotate("state", run.state.value)
            self._telemetry.run_finished(
                resource_type, run.state.value, time.monotonic() - started
            )
            await self._flush_events(run)
            logger.info(
                "provisioning_finished",
                state=run.state.value,
                idempotency=result.idempotency.value,
                resource_id=result.resource_id,
                correlation_id=result.correlation_id,
            )
            return result

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run(self, run: ProvisioningRun, confirm: ConfirmFn) -> ProvisioningResult:
        request = run.request
        profile = get_profile(request.resource_type)

        self._validate(request)

        run.start_resolving()
        group = await self._require_resource_group(request)
        resolver = ConfigurationResolver(self._configuration, request.environment)
        location = resolver.default_region(request.location) or group.location
        tier = resolver.default_tier(request.resource_type, request.tier)
        parameters = self._build_parameters(request, profile, location, tier)
        await self._check_prerequisites(request, profile)

        run.start_idempotency_check()
        decision = await self._gate.decide(
            lambda: self._with_retry(
                request,
                "lookup_existing",
                lambda: self._backend.get_resource(
                    request.resource_type.value, request.name, request.resource_group
                ),
            ),
            force=request.force,
            confirm=confirm,
        )
        run.record_decision(
            decision.action.value,
            decision.existing.resource_id if decision.existing else "",
        )

        if decision.action == GateAction.RETURN_EXISTING:
            result = self._existing_result(
                request, decision.require_existing(), location, tier
            )
            run.return_existing(result)
            return result

        if decision.action == GateAction.ABORT:
            existing = decision.require_existing()
            run.abort()
            raise ResourceExistsError(
                "Resource already exists; pass force or confirm to update it",
                request.resource_type,
                request.name,
                resource_id=existing.resource_id,
                existing_state=existing.provisioning_state,
            )

        return await self._deploy(run, profile, decision, parameters, location, tier)

    def _validate(self, request: ResourceRequest) -> None:
        valid = self._validator.validate(
            request.resource_type,
            request.name,
            request.environment,
            strict=request.strict_naming,
        )
        if not valid:
            # Soft mode: the name was checked and the mismatch is tolerated.
            logger.warning(
                "name_policy_violation_accepted",
                hint=self._validator.explain(request.resource_type, request.environment),
            )

    async def _require_resource_group(self, request: ResourceRequest) -> ResourceGroupInfo:
        group = await self._with_retry(
            request,
            "get_resource_group",
            lambda: self._backend.get_resource_group(request.resource_group),
        )
        if group is None:
            raise DependencyError(
                f"Resource group '{request.resource_group}' does not exist",
                request.resource_type,
                request.name,
                dependency_type="ResourceGroup",
                dependency_name=request.resource_group,
                dependency_state="NotFound",
            )
        return group

    async def _check_prerequisites(
        self, request: ResourceRequest, profile: ResourceProfile
    ) -> None:
        """Check prerequisites the request names; unnamed ones are left to the template."""
        for prerequisite in profile.prerequisites:
            dependency_name = request.parameters.get(prerequisite.parameter)
            if not dependency_name:
                continue

            found: ResourceInfo | None = await self._with_retry(
                request,
                f"get_{prerequisite.resource_type}",
                lambda p=prerequisite, n=dependency_name: self._backend.get_resource(
                    p.resource_type, str(n), request.resource_group
                ),
            )
            if found is None:
                raise DependencyError(
                    f"{prerequisite.resource_type} '{dependency_name}' not found "
                    f"in resource group '{request.resource_group}'",
                    request.resource_type,
                    request.name,
                    dependency_type=prerequisite.resource_type,
                    dependency_name=str(dependency_name),
                    dependency_state="NotFound",
                )
            if found.is_ready:
                continue
            if prerequisite.network:
                raise NetworkConfigurationError(
                    f"{prerequisite.resource_type} '{dependency_name}' is not usable "
                    f"(provisioning state {found.provisioning_state})",
                    request.resource_type,
                    request.name,
                    network_resource=found.resource_id,
                    detail=f"provisioningState={found.provisioning_state}",
                )
            raise DependencyError(
                f"{prerequisite.resource_type} '{dependency_name}' is not ready",
                request.resource_type,
                request.name,
                dependency_type=prerequisite.resource_type,
                dependency_name=str(dependency_name),
                dependency_state=found.provisioning_state,
            )

    def _build_parameters(
        self,
        request: ResourceRequest,
        profile: ResourceProfile,
        location: str,
        tier: str | None,
    ) -> dict[str, Any]:
        """Merge template parameters; identity and placement keys are not overridable."""
        tags = {
            "Environment": request.environment.value,
            "ManagedBy": MANAGED_BY_TAG,
        }
        if request.department:
            tags["Department"] = request.department

        parameters: dict[str, Any] = {}
        if tier is not None:
            parameters[profile.tier_parameter] = tier
        parameters.update(request.parameters)

        reserved: dict[str, Any] = {
            "name": request.name,
            "location": location,
            "environment": request.environment.value,
            "tags": tags,
        }
        if request.department:
            reserved["department"] = request.department

        overridden = sorted(
            key for key in reserved
            if key in request.parameters and request.parameters[key] != reserved[key]
        )
        if overridden:
            logger.warning("reserved_parameters_ignored", keys=overridden)
        parameters.update(reserved)
        return parameters

    async def _deploy(
        self,
        run: ProvisioningRun,
        profile: ResourceProfile,
        decision: GateDecision,
        parameters: dict[str, Any],
        location: str,
        tier: str | None,
    ) -> ProvisioningResult:
        request = run.request
        deployment_name = f"{request.name}-{utc_now():%Y%m%d%H%M%S}"
        run.start_deploying(deployment_name, profile.template_ref)

        outcome = await self._with_retry(
            request,
            "deploy",
            lambda: self._backend.deploy(
                request.resource_group,
                deployment_name,
                profile.template_ref,
                parameters,
            ),
        )

        if outcome.state != DeploymentState.SUCCEEDED:
            raise ProvisioningFailedError(
                f"Deployment '{outcome.deployment_name or deployment_name}' "
                f"ended in state {outcome.state.value}",
                request.resource_type,
                request.name,
                provisioning_state=outcome.state.value,
                deployment_id=outcome.deployment_name or deployment_name,
                error_details=outcome.error_details,
                correlation_id=outcome.correlation_id or None,
            )

        created = await self._with_retry(
            request,
            "read_back",
            lambda: self._backend.get_resource(
                request.resource_type.value, request.name, request.resource_group
            ),
        )
        if created is None:
            raise ProvisioningFailedError(
                "Deployment succeeded but the resource could not be read back",
                request.resource_type,
                request.name,
                provisioning_state=outcome.state.value,
                deployment_id=outcome.deployment_name or deployment_name,
                correlation_id=outcome.correlation_id or None,
            )

        result = ProvisioningResult(
            resource_id=created.resource_id,
            resource_type=request.resource_type,
            name=request.name,
            resource_group=request.resource_group,
            location=created.location or location,
            tier=tier,
            idempotency=(
                IdempotencyOutcome.UPDATED if decision.is_update
                else IdempotencyOutcome.CREATED
            ),
            state=ProvisioningState.COMPLETED.value,
            correlation_id=outcome.correlation_id,
            deployment_name=outcome.deployment_name or deployment_name,
            outputs=dict(outcome.outputs),
        )
        run.complete(result)
        return result

    @staticmethod
    def _existing_result(
        request: ResourceRequest,
        existing: ResourceInfo,
        location: str,
        tier: str | None,
    ) -> ProvisioningResult:
        return ProvisioningResult(
            resource_id=existing.resource_id,
            resource_type=request.resource_type,
            name=existing.name,
            resource_group=existing.resource_group,
            location=existing.location or location,
            tier=tier,
            idempotency=IdempotencyOutcome.EXISTING,
            state=ProvisioningState.RETURNING_EXISTING.value,
            outputs=dict(existing.properties),
        )
