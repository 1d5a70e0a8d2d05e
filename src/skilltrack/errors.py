"""Domain error taxonomy.

Services raise these directly; ``middleware.error_handler`` turns them into
``{"error": {...}}`` responses with the matching status code.
"""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for classified failures."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, details: Any = None) -> None:  # noqa: ANN401
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation error"


class InvalidOrExpiredToken(ValidationError):
    default_message = "Invalid or expired reset token"


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Unauthenticated"


class InvalidCredentials(Unauthenticated):
    """Same message for unknown email and wrong password."""

    default_message = "Invalid credentials"

    def __init__(self) -> None:
        super().__init__()


class Forbidden(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(AppError):
    status_code = 404
    default_message = "Not Found"


class Conflict(AppError):
    status_code = 409
    default_message = "Conflict"


class EmailConflict(Conflict):
    default_message = "Email is already registered"


class ServiceUnavailable(AppError):
    status_code = 503
    default_message = "Service unavailable"
