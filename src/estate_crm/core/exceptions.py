"""Custom exceptions for the estate_crm application.

Every exception carries the HTTP status code it maps to at the API boundary.
"""
from __future__ import annotations


class EstateCRMError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500
    default_message: str = "An error occurred. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(EstateCRMError):
    """Raised when required configuration is missing or invalid."""

    pass


# =============================================================================
# Auth Errors
# =============================================================================


class AuthenticationError(EstateCRMError):
    """Raised when a request carries no valid credential."""

    status_code = 401
    default_message = "Unauthorized"


class InvalidCredentialsError(AuthenticationError):
    """Raised when an email/password pair does not match an account."""

    default_message = "Invalid email or password"


class PermissionDeniedError(EstateCRMError):
    """Raised when an authenticated identity may not perform an action."""

    status_code = 403
    default_message = "Forbidden"


class InactiveAccountError(PermissionDeniedError):
    """Raised when a deactivated user tries to log in."""

    default_message = "Account is deactivated"


# =============================================================================
# Request Errors
# =============================================================================


class ValidationError(EstateCRMError):
    """Raised when input fails validation."""

    status_code = 400
    default_message = "Invalid request"


class InvalidStatusTransitionError(ValidationError):
    """Raised when a status change is not allowed by the transition table."""

    def __init__(self, entity: str, current: str, requested: str) -> None:
        super().__init__(
            f"Invalid {entity} status transition from {current} to {requested}"
        )
        self.entity = entity
        self.current = current
        self.requested = requested


class NotFoundError(EstateCRMError):
    """Raised when a referenced record does not exist."""

    status_code = 404
    default_message = "Not found"


class ConflictError(EstateCRMError):
    """Raised when a write would violate a uniqueness or integrity rule."""

    status_code = 409
    default_message = "Conflict"


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(EstateCRMError):
    """Base exception for database-related errors."""

    default_message = "Database error"


class BackendUnavailableError(DatabaseError):
    """Raised when the database cannot be reached."""

    status_code = 503
    default_message = "Database connection unavailable"


__all__ = [
    "EstateCRMError",
    "ConfigurationError",
    "AuthenticationError",
    "InvalidCredentialsError",
    "PermissionDeniedError",
    "InactiveAccountError",
    "ValidationError",
    "InvalidStatusTransitionError",
    "NotFoundError",
    "ConflictError",
    "DatabaseError",
    "BackendUnavailableError",
]
