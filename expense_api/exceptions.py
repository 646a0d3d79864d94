"""Error taxonomy shared by the writer, query service and HTTP surface."""
from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500
    code = "SERVICE_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": False, "message": self.message, "code": self.code}
        result.update(self.details)
        return result


class ValidationFailed(ServiceError):
    """Raised when an untrusted payload violates one or more input rules."""

    status_code = 400
    code = "VALIDATION_FAILED"

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        super().__init__("Validation failed", {"errors": errors})
        self.errors = errors


class NotFound(ServiceError):
    """Raised when the referenced identity does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class Conflict(ServiceError):
    """Raised when a uniqueness constraint is violated."""

    status_code = 409
    code = "CONFLICT"


class WriteFailure(ServiceError):
    """Raised when a database error aborts a transactional operation.

    The client only sees ``message``; ``detail`` keeps the database text
    for logs and non-production responses.
    """

    status_code = 500
    code = "WRITE_FAILURE"

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail


class PoolTimeout(ServiceError):
    """Raised when no pooled connection became available within the bound."""

    status_code = 503
    code = "POOL_TIMEOUT"

    def __init__(self, timeout: float) -> None:
        super().__init__("Database is busy, please retry later")
        self.timeout = timeout


__all__ = [
    "Conflict",
    "NotFound",
    "PoolTimeout",
    "ServiceError",
    "ValidationFailed",
    "WriteFailure",
]
