"""Structured exception taxonomy for provisioning failures.

Every failure that leaves the orchestrator is a :class:`ProvisioningError`.
The ``category`` attribute is the discriminant; the subclasses exist so that
call sites can also catch a single kind with ``except``. Errors that are not
part of the taxonomy are wrapped by :func:`wrap_error` into a
:class:`ProvisioningFailedError` whose category is ``UnknownError``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from enum import Enum
from typing import Any

import structlog

from provisioner.domain.models.base import utc_now
from provisioner.domain.ports.backend import BackendError


logger = structlog.get_logger(__name__)


class ErrorCategory(str, Enum):
    """Closed set of failure categories."""

    VALIDATION = "Validation"
    RESOURCE_EXISTS = "ResourceExists"
    DEPENDENCY = "Dependency"
    NETWORK_CONFIGURATION = "NetworkConfiguration"
    AUTHORIZATION = "Authorization"
    PROVISIONING_FAILED = "ProvisioningFailed"
    TRANSIENT = "Transient"
    UNKNOWN = "UnknownError"


class ProvisioningError(Exception):
    """Base type for all taxonomy errors."""

    category: ErrorCategory = ErrorCategory.UNKNOWN
    retryable: bool = False

    def __init__(
        self,
        message: str,
        resource_type: str = "",
        resource_name: str = "",
        *,
        correlation_id: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.resource_type = str(getattr(resource_type, "value", resource_type) or "")
        self.resource_name = resource_name
        self.correlation_id = correlation_id
        self.cause = cause
        self.timestamp: datetime = utc_now()
        if cause is not None:
            self.__cause__ = cause

    def details(self) -> dict[str, Any]:
        """Category-specific fields."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "category": self.category.value,
            "error_type": type(self).__name__,
            "message": self.message,
            "resource_type": self.resource_type,
            "resource_name": self.resource_name,
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": self.correlation_id,
            "retryable": self.retryable,
        }
        record.update(self.details())
        if self.cause is not None:
            record["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return record

    def __str__(self) -> str:
        subject = "/".join(p for p in (self.resource_type, self.resource_name) if p)
        prefix = f"[{self.category.value}] "
        return f"{prefix}{subject}: {self.message}" if subject else f"{prefix}{self.message}"


class ValidationError(ProvisioningError):
    """Input rejected by a naming or parameter rule."""

    category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        resource_type: str = "",
        resource_name: str = "",
        *,
        rule: str = "",
        provided_value: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, resource_type, resource_name, **kwargs)
        self.rule = rule
        self.provided_value = provided_value

    def details(self) -> dict[str, Any]:
        return {"rule": self.rule, "provided_value": self.provided_value}


class ResourceExistsError(ProvisioningError):
    """The resource already exists and the caller demanded a fresh create."""

    category = ErrorCategory.RESOURCE_EXISTS

    def __init__(
        self,
        message: str,
        resource_type: str = "",
        resource_name: str = "",
        *,
        resource_id: str = "",
        existing_state: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, resource_type, resource_name, **kwargs)
        self.resource_id = resource_id
        self.existing_state = existing_state

    def details(self) -> dict[str, Any]:
        return {"resource_id": self.resource_id, "existing_state": self.existing_state}


class DependencyError(ProvisioningError):
    """A prerequisite resource is missing or unusable."""

    category = ErrorCategory.DEPENDENCY

    def __init__(
        self,
        message: str,
        resource_type: str = "",
        resource_name: str = "",
        *,
        dependency_type: str = "",
        dependency_name: str = "",
        dependency_state: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, resource_type, resource_name, **kwargs)
        self.dependency_type = dependency_type
        self.dependency_name = dependency_name
        self.dependency_state = dependency_state

    def details(self) -> dict[str, Any]:
        return {
            "dependency_type": self.dependency_type,
            "dependency_name": self.dependency_name,
            "dependency_state": self.dependency_state,
        }


class NetworkConfigurationError(ProvisioningError):
    """A network prerequisite exists but is not in a usable shape."""

    category = ErrorCategory.NETWORK_CONFIGURATION

    def __init__(
        self,
        message: str,
        resource_type: str = "",
        resource_name: str = "",
        *,
        network_resource: str = "",
        detail: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, resource_type, resource_name, **kwargs)
        self.network_resource = network_resource
        self.detail = detail

    def details(self) -> dict[str, Any]:
        return {"network_resource": self.network_resource, "detail": self.detail}


class AuthorizationError(ProvisioningError):
    """The calling principal lacks a required permission."""

    category = ErrorCategory.AUTHORIZATION

    def __init__(
        self,
        message: str,
        resource_type: str = "",
        resource_name: str = "",
        *,
        principal: str = "",
        required_permission: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, resource_type, resource_name, **kwargs)
        self.principal = principal
        self.required_permission = required_permission

    def details(self) -> dict[str, Any]:
        return {
            "principal": self.principal,
            "required_permission": self.required_permission,
        }


class ProvisioningFailedError(ProvisioningError):
    """The backend rejected or failed the deployment.

    Retryable only when the underlying cause is itself transient.
    """

    category = ErrorCategory.PROVISIONING_FAILED

    def __init__(
        self,
        message: str,
        resource_type: str = "",
        resource_name: str = "",
        *,
        provisioning_state: str = "",
        deployment_id: str = "",
        error_details: str = "",
        category: ErrorCategory | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, resource_type, resource_name, **kwargs)
        self.provisioning_state = provisioning_state
        self.deployment_id = deployment_id
        self.error_details = error_details
        if category is not None:
            self.category = category
        self.retryable = self.cause is not None and is_transient(self.cause)

    def details(self) -> dict[str, Any]:
        return {
            "provisioning_state": self.provisioning_state,
            "deployment_id": self.deployment_id,
            "error_details": self.error_details,
        }


class TransientError(ProvisioningError):
    """A failure expected to clear up when retried after a delay."""

    category = ErrorCategory.TRANSIENT
    retryable = True

    def __init__(
        self,
        message: str,
        resource_type: str = "",
        resource_name: str = "",
        *,
        retry_after: float | None = None,
        attempt_count: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, resource_type, resource_name, **kwargs)
        self.retry_after = retry_after
        self.attempt_count = attempt_count

    def details(self) -> dict[str, Any]:
        return {"retry_after": self.retry_after, "attempt_count": self.attempt_count}


NON_RETRYABLE_CATEGORIES: frozenset[ErrorCategory] = frozenset({
    ErrorCategory.VALIDATION,
    ErrorCategory.RESOURCE_EXISTS,
    ErrorCategory.DEPENDENCY,
    ErrorCategory.NETWORK_CONFIGURATION,
    ErrorCategory.AUTHORIZATION,
})


TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

FATAL_STATUS_CODES: frozenset[int] = frozenset({400, 401, 403, 404, 422})

TRANSIENT_ERROR_CODES: frozenset[str] = frozenset({
    "TooManyRequests",
    "Throttled",
    "ServiceUnavailable",
    "InternalServerError",
    "AnotherOperationInProgress",
    "RetryableError",
    "Conflict",
})

# A 409 is only a "try again later" conflict when it carries one of these codes.
RETRYABLE_CONFLICT_CODES: frozenset[str] = frozenset({
    "Conflict",
    "AnotherOperationInProgress",
    "RetryableError",
})


def is_transient(exc: BaseException) -> bool:
    """Classify a failure as retryable or fatal."""
    if isinstance(exc, ProvisioningError):
        return exc.retryable
    if isinstance(exc, BackendError):
        if exc.status_code == 409:
            return exc.code in RETRYABLE_CONFLICT_CODES
        if exc.status_code in TRANSIENT_STATUS_CODES:
            return True
        if exc.status_code in FATAL_STATUS_CODES:
            return False
        return exc.code in TRANSIENT_ERROR_CODES
    return isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError))


def error_from_backend(
    exc: BackendError,
    resource_type: str = "",
    resource_name: str = "",
) -> ProvisioningError:
    """Map a fatal backend status onto a taxonomy error."""
    detail = exc.message or exc.code or f"HTTP {exc.status_code}"
    if exc.status_code in (401, 403):
        return AuthorizationError(
            f"Backend denied the request: {detail}",
            resource_type,
            resource_name,
            principal=exc.principal or "",
            required_permission=exc.code,
            correlation_id=exc.correlation_id,
            cause=exc,
        )
    return ProvisioningFailedError(
        f"Backend rejected the request ({exc.status_code} {exc.code}): {detail}",
        resource_type,
        resource_name,
        provisioning_state=exc.code or str(exc.status_code),
        error_details=detail,
        correlation_id=exc.correlation_id,
        cause=exc,
    )


def wrap_error(
    exc: BaseException,
    resource_type: str = "",
    resource_name: str = "",
    correlation_id: str | None = None,
) -> ProvisioningError:
    """Normalize any exception into a taxonomy error."""
    if isinstance(exc, ProvisioningError):
        return exc
    if isinstance(exc, BackendError):
        return error_from_backend(exc, resource_type, resource_name)
    return ProvisioningFailedError(
        f"Unexpected error: {exc}" if str(exc) else f"Unexpected {type(exc).__name__}",
        resource_type,
        resource_name,
        category=ErrorCategory.UNKNOWN,
        correlation_id=correlation_id,
        cause=exc,
    )


def report_error(
    exc: BaseException,
    *,
    reraise: bool = True,
    resource_type: str = "",
    resource_name: str = "",
    log: Any = None,
) -> ProvisioningError:
    """Log a failure with its structured record, then re-raise or swallow it.

    When ``reraise`` is false the normalized error is returned instead.
    """
    error = wrap_error(exc, resource_type, resource_name)
    (log or logger).error("provisioning_error", **error.to_dict())
    if reraise:
        if error is exc:
            raise error
        raise error from exc
    return error
