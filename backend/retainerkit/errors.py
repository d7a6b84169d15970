"""
Application error hierarchy for the RetainerKit backend.

Every domain failure carries the HTTP status it maps to, so request handlers
and the global exception handler can report it without re-classifying.
Store failures are not wrapped: SQLAlchemy errors propagate unchanged.
"""
from typing import Any, Dict

from fastapi import status


class AppError(Exception):
    """Base application error with an HTTP status."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API responses."""
        return {"detail": self.message}


class ValidationError(AppError):
    """Malformed id, out-of-range field or bad date ordering."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(AppError):
    """Missing, unknown or expired session."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(AppError):
    """Role gate rejection. The message never reveals whether a resource exists."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """Entity absent or outside the caller's workspace; both read the same."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class ConflictError(AppError):
    """Overlapping invoice period or duplicate unique key."""

    status_code = status.HTTP_409_CONFLICT
