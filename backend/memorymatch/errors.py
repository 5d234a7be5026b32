"""
Error taxonomy for the API.

Every error raised by a handler or service is an ``APIError`` subclass carrying
the HTTP status it maps to. ``main`` turns them into the uniform
``{"success": false, "error": ..., "message": ...}`` response.
"""
from typing import Optional


class APIError(Exception):
    """Base class for errors reported to API clients."""

    status_code = 500
    default_error = "Internal server error"

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None):
        self.error = error or self.default_error
        self.message = message
        super().__init__(self.error)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.error}
        if self.message:
            body["message"] = self.message
        return body


class ValidationError(APIError):
    """Malformed, out-of-range or unknown input."""

    status_code = 400
    default_error = "Invalid request data"


class AuthError(APIError):
    """Missing or invalid credentials or token."""

    status_code = 401
    default_error = "Not authorized"


class NotFoundError(APIError):
    status_code = 404
    default_error = "Not found"


class ConflictError(APIError):
    """Request collides with existing state, e.g. a duplicate score."""

    status_code = 409
    default_error = "Conflict"


class InternalError(APIError):
    status_code = 500
    default_error = "Internal server error"
