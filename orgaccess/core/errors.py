"""Service error taxonomy.

Every operation in ``orgaccess.core`` fails with one of these types. Each carries
the HTTP-style status code the API layer renders, so route handlers never
translate errors themselves.
"""
from __future__ import annotations
from typing import Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code = 500
    default_code = "SERVICE_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message
        self.error_code = error_code or self.default_code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def __str__(self):
        return self.message

    def to_dict(self) -> dict:
        """Convert to the JSON error body returned by the API."""
        return {
            "success": False,
            "error": self.message,
            "code": self.error_code,
        }


class ValidationError(ServiceError):
    """Raised when input is missing or malformed."""
    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(ServiceError):
    """Raised when the caller credential is missing or invalid."""
    status_code = 401
    default_code = "AUTH_ERROR"


class AuthorizationError(ServiceError):
    """Raised when the caller's role does not permit the action."""
    status_code = 403
    default_code = "FORBIDDEN"


class NotFoundError(ServiceError):
    """Raised when a target or token cannot be resolved."""
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(ServiceError):
    """Raised on uniqueness or state conflicts."""
    status_code = 409
    default_code = "CONFLICT"


class UpstreamError(ServiceError):
    """Raised when the identity provider or the store is unavailable or failing."""
    status_code = 500
    default_code = "UPSTREAM_ERROR"


class RollbackFailure(ServiceError):
    """Compensating action failed after a primary failure.

    Attributes:
        original: The error that triggered the compensation
        orphaned_account_id: Identity provider account left behind
    """
    status_code = 500
    default_code = "ROLLBACK_FAILURE"

    def __init__(self, original: Exception, orphaned_account_id: str, compensation_error: Exception):
        self.original = original
        self.orphaned_account_id = orphaned_account_id
        self.compensation_error = compensation_error
        super().__init__(
            f"{original} (rollback failed; identity {orphaned_account_id} requires manual cleanup)"
        )

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["orphanedAccountId"] = self.orphaned_account_id
        return body
