"""Exception hierarchy for authzcore.

Permission denial is never an exception: checks return ``None``/``False``.
Exceptions cover the cases a caller has to handle differently:

- ``InvalidHierarchyIdError``: a raw id does not denote an existing element
  (raised by API-boundary helpers to produce NOT_FOUND, never by the engine).
- ``PermissionDeniedError``: raised by API-boundary helpers only.
- ``StorageError``: the persistence collaborator failed; always propagated.
- ``ConfigurationError``: invalid settings.

Also provides an ``ErrorRegistry`` for protocol mapping and gRPC helpers.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar, cast

import grpc

__all__ = [
    # Base hierarchy
    "AuthzError",
    "ConfigurationError",
    "InvalidHierarchyIdError",
    "PermissionDeniedError",
    "StorageError",
    # Registry
    "ErrorRegistry",
    "error_registry",
    "register_error",
    # gRPC helpers
    "get_grpc_status_code",
    "grpc_error_handler",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class AuthzError(Exception):
    """Base exception for authzcore.

    Attributes:
        code: Stable error code string for protocol mapping.
        message: Human-readable error description.
        details: Additional context as keyword arguments.
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(self, message: str | None = None, code: str | None = None, **kwargs: Any) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = kwargs
        super().__init__(self.message)


class ConfigurationError(AuthzError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class InvalidHierarchyIdError(AuthzError):
    """A raw hierarchy id could not be resolved to an existing element."""

    code: str = "HIERARCHY_ID_NOT_FOUND"

    def __init__(self, hierarchy_id: Any, message: str | None = None, **kwargs: Any) -> None:
        self.hierarchy_id = hierarchy_id
        super().__init__(message or f"Invalid hierarchy id: {hierarchy_id}", **kwargs)


class PermissionDeniedError(AuthzError):
    """The caller lacks the permissions required for an operation."""

    code: str = "PERMISSION_DENIED"


class StorageError(AuthzError):
    """The role assignment store failed."""

    code: str = "STORAGE_ERROR"


# ---- Error Registry for Protocol Mapping ------------------------------------

_E = TypeVar("_E", bound=type[AuthzError])


class ErrorRegistry:
    """Registry for mapping internal errors to external protocol codes."""

    def __init__(self) -> None:
        self._errors: dict[str, type[AuthzError]] = {}

    def register(self, code: str, error_cls: type[AuthzError]) -> None:
        self._errors[code] = error_cls

    def get(self, code: str) -> type[AuthzError] | None:
        return self._errors.get(code)

    def all(self) -> dict[str, type[AuthzError]]:
        return dict(self._errors)


error_registry = ErrorRegistry()


def register_error(code: str) -> Callable[[_E], _E]:
    """Decorator to register a custom error type.

    Usage:
        @register_error("ROLE_CONFLICT")
        class RoleConflictError(AuthzError):
            code = "ROLE_CONFLICT"
    """

    def decorator(cls: _E) -> _E:
        error_registry.register(code, cls)
        return cls

    return cast(Callable[[_E], _E], decorator)


error_registry.register("INTERNAL_ERROR", AuthzError)
error_registry.register("CONFIGURATION_ERROR", ConfigurationError)
error_registry.register("HIERARCHY_ID_NOT_FOUND", InvalidHierarchyIdError)
error_registry.register("PERMISSION_DENIED", PermissionDeniedError)
error_registry.register("STORAGE_ERROR", StorageError)


# ---- gRPC Error Handling Utilities ------------------------------------------

_ERROR_TO_STATUS = {
    "UNAUTHENTICATED": grpc.StatusCode.UNAUTHENTICATED,
    "PERMISSION_DENIED": grpc.StatusCode.PERMISSION_DENIED,
    "HIERARCHY_ID_NOT_FOUND": grpc.StatusCode.NOT_FOUND,
    "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
    "STORAGE_ERROR": grpc.StatusCode.UNAVAILABLE,
}


def get_grpc_status_code(error: AuthzError) -> grpc.StatusCode:
    """Map an AuthzError to a gRPC status code (INTERNAL if unmapped)."""
    return _ERROR_TO_STATUS.get(error.code, grpc.StatusCode.INTERNAL)


def grpc_error_handler(method):
    """Decorator for unary gRPC service methods.

    Converts AuthzError into the mapped gRPC status and aborts the call.
    Unexpected exceptions abort with INTERNAL.

    Usage:
        @grpc_error_handler
        async def ListRepositories(self, request, context):
            ...
    """

    @functools.wraps(method)
    async def wrapper(self, request, context):
        try:
            return await method(self, request, context)
        except AuthzError as e:
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
            return

        except Exception as e:
            logger.exception("%s unexpected error: %s", method.__name__, e)
            await context.abort(
                grpc.StatusCode.INTERNAL,
                f"Unexpected {type(e).__name__}: {e}",
            )
            return

    return wrapper
