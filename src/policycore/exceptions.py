"""Unified exception hierarchy for policycore.

This module provides:
- Base exception hierarchy with stable error codes
- Request errors that carry the HTTP status surfaced at the boundary
- HTTP and gRPC status mapping helpers

The decision engine itself never raises. Errors here come from the
policy loaders, the request scope resolver and the enforcer.

Usage:
    from policycore.exceptions import ForbiddenError, InternalError

    try:
        policies = loader.load_policy_documents(opts)
    except ForbiddenError:
        ...  # 403
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import grpc

__all__ = [
    # Base hierarchy
    "PolicyCoreError",
    "ConfigurationError",
    "InvalidPolicyError",
    "RequestError",
    "BadRequestError",
    "ForbiddenError",
    "InternalError",
    "StorageError",
    # Status helpers
    "get_http_status",
    "get_grpc_status_code",
]

logger = logging.getLogger(__name__)


# ---- Exception Hierarchy ----------------------------------------------------


class PolicyCoreError(Exception):
    """Base exception for policycore.

    Attributes:
        code: Stable error code string for protocol mapping (e.g. "FORBIDDEN").
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


class ConfigurationError(PolicyCoreError):
    """Invalid or missing configuration."""

    code: str = "CONFIGURATION_ERROR"


class InvalidPolicyError(PolicyCoreError):
    """A stored policy could not be decoded into policy documents."""

    code: str = "INVALID_POLICY"
    message: str = "Policy document could not be decoded"


class RequestError(PolicyCoreError):
    """Error surfaced to the caller of an authorized endpoint.

    ``status_code`` is the HTTP status the boundary should respond with.
    """

    status_code: int = 500


class BadRequestError(RequestError):
    """Request parameters could not be resolved into permission scopes."""

    code: str = "BAD_REQUEST"
    message: str = "Bad request"
    status_code: int = 400


class ForbiddenError(RequestError):
    """Principal is not allowed to perform the request."""

    code: str = "FORBIDDEN"
    message: str = "Forbidden"
    status_code: int = 403


class InternalError(RequestError):
    """Policy could not be loaded (backing store or decoding failure)."""

    code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"
    status_code: int = 500


class StorageError(InternalError):
    """Role or policy store failure."""

    code: str = "STORAGE_ERROR"


# ---- Status Mapping ---------------------------------------------------------


def get_http_status(error: PolicyCoreError) -> int:
    """Map a PolicyCoreError to the HTTP status returned at the boundary.

    Request errors carry their own status. Anything else is a 500.
    """
    if isinstance(error, RequestError):
        return error.status_code
    return 500


def get_grpc_status_code(error: PolicyCoreError) -> grpc.StatusCode:
    """Map a PolicyCoreError to a gRPC status code.

    Import grpc locally to avoid hard dependency at module level.
    """
    import grpc

    error_to_status = {
        "BAD_REQUEST": grpc.StatusCode.INVALID_ARGUMENT,
        "FORBIDDEN": grpc.StatusCode.PERMISSION_DENIED,
        "CONFIGURATION_ERROR": grpc.StatusCode.FAILED_PRECONDITION,
        "INVALID_POLICY": grpc.StatusCode.INTERNAL,
        "STORAGE_ERROR": grpc.StatusCode.UNAVAILABLE,
        "INTERNAL_ERROR": grpc.StatusCode.INTERNAL,
    }
    return error_to_status.get(error.code, grpc.StatusCode.INTERNAL)
