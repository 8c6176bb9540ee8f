"""Error taxonomy.

Learn: Every failure the API can report is one of these classes, each
carrying the HTTP status it maps to. Services and guards raise them,
the exception handlers registered in main.py turn them into responses.
Client errors (< 500) go back with their message as-is. Server errors
are logged with detail and answered with a generic message so internal
state never leaks to the caller.
"""

from typing import Optional


class DevPortalError(Exception):
    """Base class for all errors the API reports."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DevPortalError):
    """Malformed or missing request fields."""

    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(DevPortalError):
    """No credentials supplied where they are required."""

    status_code = 401
    default_message = "You must be authorized to access this endpoint"


class AuthorizationError(DevPortalError):
    """Valid identity, insufficient rights."""

    status_code = 403
    default_message = "You must be authorized to access this endpoint"


class InvalidSessionError(AuthorizationError):
    """A bearer token was supplied but matches no session."""

    default_message = "Invalid or expired session"


class NotFoundError(DevPortalError):
    status_code = 404
    default_message = "Not found"


class ConflictError(DevPortalError):
    status_code = 409
    default_message = "Conflict"


class IntegrityError(DevPortalError):
    """An internal invariant is broken, e.g. a session whose user is gone."""


class UpstreamError(DevPortalError):
    """An OAuth provider call failed or answered with an unexpected status."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
    ):
        self.provider = provider
        self.upstream_status = status_code
        super().__init__(f"{provider}: {message}")


class StoreError(DevPortalError):
    """The database is unavailable, failed, or timed out."""
