"""
Error types raised by the journal services.

Each carries the HTTP status the API answers with; the handler in
src.main turns any of them into an ErrorResponse body whose "error"
field is the class name.
"""

from typing import Any


__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "UpstreamUnavailableError",
]


class AppException(Exception):
    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class AuthenticationError(AppException):
    """Missing, malformed or expired bearer token; bad login."""
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(AppException):
    """Authenticated, but acting on another user's trade."""
    status_code = 403
    default_message = "Not authorized"


class NotFoundError(AppException):
    status_code = 404
    default_message = "Resource not found"


class ValidationError(AppException):
    """
    Business rule violations that pass schema validation, e.g. a closed
    option trade without an exit date or a strategy with no option legs
    to value.
    """
    status_code = 400
    default_message = "Validation failed"


class ConflictError(AppException):
    """A conditional write found the row already changed (concurrent roll)."""
    status_code = 409
    default_message = "Trade was modified by another request"


class UpstreamUnavailableError(AppException):
    """Quote provider failed and there is no cached quote to fall back on."""
    status_code = 502
    default_message = "Quote provider unavailable"
