from typing import Any, Optional
from fastapi import status

class AppError(Exception):
    """Base class for errors that map onto the API error envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, error: Optional[Any] = None):
        super().__init__(detail)
        self.detail = detail
        self.error = error

class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED

class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN

class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND

class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT

class InvalidStateError(ConflictError):
    """An action is not valid for the entity's current status."""
