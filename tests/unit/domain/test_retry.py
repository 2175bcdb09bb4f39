"""Unit tests for the retry executor."""

from __future__ import annotations

import asyncio

import pytest

from provisioner.domain.errors import (
    DependencyError,
    is_transient,
    ProvisioningFailedError,
    TransientError,
    ValidationError,
)
from provisioner.domain.models.policy import RetryPolicy
from provisioner.domain.ports.backend import BackendError
from provisioner.domain.services.retry import RetryExecutor


class FlakyOperation:
    """Fails with the given errors in order, then returns ``result``."""

    def __init__(self, errors: list[Exception], result: str = "ok") -> None:
        self._errors = list(errors)
        self._result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self._errors:
            raise self._errors.pop(0)
        return self._result


def throttled() -> BackendError:
    return BackendError(429, "TooManyRequests", "slow down")


class TestRetryExecutor:
    @pytest.mark.asyncio
    async def test_success_first_attempt(self, executor: RetryExecutor, sleeper) -> None:
        operation = FlakyOperation([])
        result = await executor.execute(operation, RetryPolicy(max_attempts=3, base_delay=1))
        assert result == "ok"
        assert operation.calls == 1
        assert sleeper.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [1, 2, 4])
    async def test_recovers_after_k_transient_failures(
        self, executor: RetryExecutor, sleeper, failures: int
    ) -> None:
        operation = FlakyOperation([throttled() for _ in range(failures)])
        policy = RetryPolicy(max_attempts=5, base_delay=1, activity_label="deploy")
        result = await executor.execute(operation, policy)
        assert result == "ok"
        assert operation.calls == failures + 1
        assert sleeper.delays == [1 * 2 ** i for i in range(failures)]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_transient_with_attempt_count(
        self, executor: RetryExecutor, sleeper
    ) -> None:
        operation = FlakyOperation([throttled() for _ in range(10)])
        policy = RetryPolicy(max_attempts=3, base_delay=0.5)
        with pytest.raises(TransientError) as exc_info:
            await executor.execute(
                operation, policy, resource_type="WebApp", resource_name="app-shop-dev"
            )
        assert exc_info.value.attempt_count == 3
        assert exc_info.value.resource_name == "app-shop-dev"
        assert isinstance(exc_info.value.cause, BackendError)
        assert operation.calls == 3
        assert sleeper.delays == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_explicit_transient_error_is_retried(
        self, executor: RetryExecutor, sleeper
    ) -> None:
        operation = FlakyOperation([TransientError("busy") for _ in range(5)])
        with pytest.raises(TransientError) as exc_info:
            await executor.execute(operation, RetryPolicy(max_attempts=2, base_delay=1))
        assert exc_info.value.message == "busy"
        assert exc_info.value.attempt_count == 2
        assert operation.calls == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad"),
            DependencyError("missing"),
            BackendError(400, "InvalidTemplate"),
            BackendError(403, "AuthorizationFailed"),
            BackendError(404, "ResourceNotFound"),
            ValueError("boom"),
        ],
    )
    async def test_fatal_error_raised_immediately(
        self, executor: RetryExecutor, sleeper, error: Exception
    ) -> None:
        operation = FlakyOperation([error])
        with pytest.raises(type(error)) as exc_info:
            await executor.execute(operation, RetryPolicy(max_attempts=5, base_delay=1))
        assert exc_info.value is error
        assert operation.calls == 1
        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_single_attempt_policy(self, executor: RetryExecutor, sleeper) -> None:
        operation = FlakyOperation([throttled()])
        with pytest.raises(TransientError) as exc_info:
            await executor.execute(operation, RetryPolicy(max_attempts=1, base_delay=1))
        assert exc_info.value.attempt_count == 1
        assert operation.calls == 1
        assert sleeper.delays == []

    @pytest.mark.asyncio
    async def test_backoff_is_non_decreasing(self, executor: RetryExecutor, sleeper) -> None:
        operation = FlakyOperation([throttled() for _ in range(5)])
        await executor.execute(operation, RetryPolicy(max_attempts=6, base_delay=0.25))
        assert sleeper.delays == sorted(sleeper.delays)

    @pytest.mark.asyncio
    async def test_final_error_has_no_retry_after(
        self, executor: RetryExecutor, sleeper
    ) -> None:
        operation = FlakyOperation([
            BackendError(503, "ServiceUnavailable", correlation_id="corr-9")
            for _ in range(2)
        ])
        with pytest.raises(TransientError) as exc_info:
            await executor.execute(operation, RetryPolicy(max_attempts=2, base_delay=3))
        assert sleeper.delays == [3]
        assert exc_info.value.retry_after is None
        assert exc_info.value.correlation_id == "corr-9"
        assert exc_info.value.__cause__ is exc_info.value.cause

    @pytest.mark.asyncio
    async def test_default_sleep_is_asyncio(self) -> None:
        executor = RetryExecutor()
        operation = FlakyOperation([throttled()])
        result = await executor.execute(operation, RetryPolicy(max_attempts=2, base_delay=0))
        assert result == "ok"


    @pytest.mark.asyncio
    async def test_each_backoff_reported_to_telemetry(
        self, executor: RetryExecutor, telemetry
    ) -> None:
        operation = FlakyOperation([throttled(), throttled()])
        policy = RetryPolicy(max_attempts=3, base_delay=1, activity_label="read_back")
        await executor.execute(operation, policy)
        assert telemetry.retries == ["read_back", "read_back"]

    @pytest.mark.asyncio
    async def test_fatal_failure_not_reported_as_retry(
        self, executor: RetryExecutor, telemetry
    ) -> None:
        operation = FlakyOperation([BackendError(400, "InvalidTemplate")])
        with pytest.raises(BackendError):
            await executor.execute(operation, RetryPolicy(max_attempts=3, base_delay=1))
        assert telemetry.retries == []


class TestClassification:
    @pytest.mark.parametrize(
        "error",
        [
            TransientError("t"),
            BackendError(429, "TooManyRequests"),
            BackendError(503, "ServiceUnavailable"),
            BackendError(500, "InternalServerError"),
            BackendError(409, "AnotherOperationInProgress"),
            BackendError(409, "Conflict"),
            BackendError(0, "Throttled"),
            ProvisioningFailedError("x", cause=TransientError("t")),
            asyncio.TimeoutError(),
            ConnectionResetError(),
        ],
    )
    def test_transient(self, error: Exception) -> None:
        assert is_transient(error)

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("v"),
            ProvisioningFailedError("x"),
            BackendError(400, "InvalidTemplate"),
            BackendError(403, "AuthorizationFailed"),
            BackendError(404, "ResourceGroupNotFound"),
            BackendError(404, "Throttled"),
            BackendError(409, "StorageAccountAlreadyTaken"),
            RuntimeError("r"),
        ],
    )
    def test_fatal(self, error: Exception) -> None:
        assert not is_transient(error)
