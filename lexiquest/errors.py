# lexiquest/errors.py
from __future__ import annotations

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base for every error rendered to the client as ``{"error": ...}``."""

    status_code = 500
    default_message = "Something went wrong!"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, **extra: Any):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, **self.extra}


class InvalidInput(AppError):
    status_code = 400
    default_message = "Invalid input"


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation failed"


class ConflictError(AppError):
    status_code = 400
    default_message = "User already exists with this email"


class AuthError(AppError):
    # login failures keep the 400 of the public contract
    status_code = 400
    default_message = "Invalid email or password"


class InvalidTokenError(AppError):
    status_code = 401
    default_message = "Invalid token"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Word not found"


class UpstreamError(AppError):
    status_code = 500
    default_message = "Internal server error"


class UpstreamTimeout(UpstreamError):
    status_code = 408
    default_message = "Request timeout"


class ServiceUnavailable(AppError):
    status_code = 503
    default_message = "Database not available. Please check your database connection."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, demo=True)


class InternalError(AppError):
    status_code = 500
