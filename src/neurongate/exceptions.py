"""Unified exception hierarchy for neurongate.

All errors raised by the gateway inherit from GatewayError. This module provides:
- Base exception hierarchy with stable error codes, kinds and HTTP statuses
- ErrorRegistry for protocol mapping
- error_response() for the caller-visible error shape
- gRPC status mapping and a unary handler decorator

The permission evaluator and the name guard never raise; services are the
single place that turns a negative decision into one of these errors.

Usage in services:
    from neurongate.exceptions import AuthorizationError, NotFoundError

    if not can_access(principal, database, namespace, AccessLevel.READ):
        raise AuthorizationError(f"No read access to {database}.{namespace}")
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar, cast

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class GatewayError(Exception):
    """Base exception for all neurongate errors.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "NOT_FOUND").
        kind: Caller-visible error category.
        http_status: HTTP status the category maps to.
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    kind: str = "internal"
    http_status: int = 500
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Caller-visible error shape."""
        return {"error": True, "message": self.message, "kind": self.kind}


class AuthenticationError(GatewayError):
    """Token missing, invalid or rejected by the identity service."""

    code: str = "UNAUTHENTICATED"
    kind: str = "authentication"
    http_status: int = 401
    message: str = "Authentication required"


class AuthorizationError(GatewayError):
    """Principal lacks the level required at a path."""

    code: str = "PERMISSION_DENIED"
    kind: str = "authorization"
    http_status: int = 403
    message: str = "Access denied"


class ValidationError(GatewayError):
    """Malformed name, command or protected-resource violation.

    Attributes:
        violations: Every rule that failed, in the order they were found.
    """

    code: str = "VALIDATION_ERROR"
    kind: str = "validation"
    http_status: int = 400
    message: str = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        violations: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        self.violations = list(violations or [])
        if message is None and self.violations:
            message = "; ".join(self.violations)
        super().__init__(message, code, **kwargs)


class NotFoundError(GatewayError):
    """Resource absent, or not visible from any reachable location."""

    code: str = "NOT_FOUND"
    kind: str = "not_found"
    http_status: int = 404
    message: str = "Resource not found"


class StoreError(GatewayError):
    """The document store rejected or failed a request."""

    code: str = "STORE_ERROR"
    kind: str = "store"
    http_status: int = 502
    message: str = "Store request failed"


class StoreTimeoutError(StoreError):
    """The store did not answer within the configured timeout."""

    code: str = "STORE_TIMEOUT"
    http_status: int = 504
    message: str = "Store request timed out"


class StoreUnavailableError(StoreError):
    """The store could not be reached at all."""

    code: str = "STORE_UNAVAILABLE"
    http_status: int = 503
    message: str = "Store unavailable"


class ExternalServiceError(GatewayError):
    """An upstream dependency other than the store failed."""

    code: str = "EXTERNAL_SERVICE_ERROR"
    kind: str = "external_service"
    http_status: int = 502
    message: str = "External service failure"


class ConfigurationError(GatewayError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"
    kind: str = "configuration"
    message: str = "Invalid configuration"


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[GatewayError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[GatewayError]] = {}

    def register(self, code: str, error_cls: type[GatewayError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[GatewayError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[GatewayError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("QUOTA_EXCEEDED")
        class QuotaExceededError(GatewayError):
            code = "QUOTA_EXCEEDED"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


for _cls in (
    GatewayError,
    AuthenticationError,
    AuthorizationError,
    ValidationError,
    NotFoundError,
    StoreError,
    StoreTimeoutError,
    StoreUnavailableError,
    ExternalServiceError,
    ConfigurationError,
):
    error_registry.register(_cls.code, _cls)
del _cls


def error_response(error: BaseException) -> dict[str, Any]:
    """Build the caller-visible error shape for any exception.

    Unclassified exceptions are reported as kind "internal" without leaking
    their message.
    """
    if isinstance(error, GatewayError):
        return error.to_dict()
    return {"error": True, "message": GatewayError.message, "kind": GatewayError.kind}


def http_status_for(error: BaseException) -> int:
    if isinstance(error, GatewayError):
        return error.http_status
    return GatewayError.http_status


# ---- gRPC Error Handling Utilities ------------------------------------------


def get_grpc_status_code(error: GatewayError) -> Any:
    """Map GatewayError to gRPC status code.

    Returns grpc.StatusCode value for the given error type.
    Import grpc locally to avoid hard dependency at module level.
    """
    import grpc

    error_to_status = {
        "UNAUTHENTICATED": grpc.StatusCode.UNAUTHENTICATED,
        "PERMISSION_DENIED": grpc.StatusCode.PERMISSION_DENIED,
        "VALIDATION_ERROR": grpc.StatusCode.INVALID_ARGUMENT,
        "NOT_FOUND": grpc.StatusCode.NOT_FOUND,
        "STORE_ERROR": grpc.StatusCode.UNAVAILABLE,
        "STORE_UNAVAILABLE": grpc.StatusCode.UNAVAILABLE,
        "STORE_TIMEOUT": grpc.StatusCode.DEADLINE_EXCEEDED,
        "EXTERNAL_SERVICE_ERROR": grpc.StatusCode.UNAVAILABLE,
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
    }
    return error_to_status.get(error.code, grpc.StatusCode.INTERNAL)


def grpc_error_handler(method):
    """Decorator for unary gRPC service methods with proper error handling.

    Catches GatewayError and sets appropriate gRPC status codes.

    Usage:
        @grpc_error_handler
        async def GetCommand(self, request, context):
            ...
    """

    @functools.wraps(method)
    async def wrapper(self, request, context):
        try:
            return await method(self, request, context)
        except GatewayError as e:
            status_code = get_grpc_status_code(e)
            error_message = f"[{e.code}] {e.message}"

            logger.error(
                "%s failed: %s",
                method.__name__,
                error_message,
                extra={
                    "error_code": e.code,
                    "error_details": e.details,
                },
            )

            context.set_trailing_metadata([("error-code", e.code)])
            await context.abort(status_code, error_message)
            return None

        except Exception as e:
            import grpc

            logger.exception("%s unexpected error: %s", method.__name__, e)
            await context.abort(grpc.StatusCode.INTERNAL, GatewayError.message)
            return None

    return wrapper


__all__ = [
    # Base hierarchy
    "GatewayError",
    "AuthenticationError",
    "AuthorizationError",
    "ValidationError",
    "NotFoundError",
    "StoreError",
    "StoreTimeoutError",
    "StoreUnavailableError",
    "ExternalServiceError",
    "ConfigurationError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # Response shapes
    "error_response",
    "http_status_for",
    # gRPC helpers
    "get_grpc_status_code",
    "grpc_error_handler",
]
