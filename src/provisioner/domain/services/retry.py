"""Bounded exponential-backoff executor for backend calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    RetryCallState,
    stop_after_attempt,
    wait_exponential,
)

from provisioner.domain.errors import is_transient, TransientError
from provisioner.domain.models.policy import RetryPolicy
from provisioner.domain.ports.services import NullTelemetry, ProvisioningTelemetry


logger = structlog.get_logger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


class RetryExecutor:
    """Runs an async operation with bounded attempts and exponential backoff.

    Transient failures are converted to :class:`TransientError` and retried
    after ``base_delay * 2 ** (attempt - 1)`` seconds; anything else is
    re-raised at once. When attempts run out the last ``TransientError`` is
    raised with ``attempt_count == max_attempts``.
    """

    def __init__(
        self,
        sleep: Sleeper | None = None,
        telemetry: ProvisioningTelemetry | None = None,
    ) -> None:
        self._sleep: Sleeper = sleep or asyncio.sleep
        self._telemetry = telemetry or NullTelemetry()

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        *,
        resource_type: str = "",
        resource_name: str = "",
    ) -> T:
        def before_sleep(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            error = retry_state.outcome.exception() if retry_state.outcome else None
            self._telemetry.retry_scheduled(policy.activity_label)
            logger.warning(
                "retry_scheduled",
                activity=policy.activity_label,
                attempt=retry_state.attempt_number,
                max_attempts=policy.max_attempts,
                delay_seconds=delay,
                error=str(error) if error else "",
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.max_attempts),
            wait=wait_exponential(multiplier=policy.base_delay, exp_base=2, min=0),
            retry=retry_if_exception_type(TransientError),
            sleep=self._sleep,
            before_sleep=before_sleep,
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number
                logger.debug(
                    "attempt_started",
                    activity=policy.activity_label,
                    attempt=number,
                )
                try:
                    return await operation()
                except Exception as exc:
                    if not is_transient(exc):
                        logger.info(
                            "attempt_failed_fatal",
                            activity=policy.activity_label,
                            attempt=number,
                            error_type=type(exc).__name__,
                        )
                        raise
                    raise self._as_transient(
                        exc, policy, number, resource_type, resource_name
                    ) from exc

        raise AssertionError("unreachable")  # pragma: no cover

    @staticmethod
    def _as_transient(
        exc: Exception,
        policy: RetryPolicy,
        attempt: int,
        resource_type: str,
        resource_name: str,
    ) -> TransientError:
        retry_after = policy.delay_for(attempt) if attempt < policy.max_attempts else None
        correlation_id = getattr(exc, "correlation_id", None)
        if isinstance(exc, TransientError):
            return TransientError(
                exc.message,
                exc.resource_type or resource_type,
                exc.resource_name or resource_name,
                retry_after=retry_after,
                attempt_count=attempt,
                correlation_id=exc.correlation_id,
                cause=exc.cause or exc,
            )
        return TransientError(
            f"{policy.activity_label} failed transiently: {exc}",
            resource_type,
            resource_name,
            retry_after=retry_after,
            attempt_count=attempt,
            correlation_id=correlation_id,
            cause=exc,
        )


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 2.0,
    activity_label: str = "operation",
    **kwargs: Any,
) -> T:
    """Convenience wrapper building a one-off policy and executor."""
    policy = RetryPolicy(
        max_attempts=max_attempts,
        base_delay=base_delay,
        activity_label=activity_label,
    )
    return await RetryExecutor().execute(operation, policy, **kwargs)
