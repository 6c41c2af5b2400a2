"""Error envelope and service exceptions.

Every error response uses the same shape::

    {"success": false, "error": {"code": ..., "message": ..., "user_message": ...}}
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Machine-readable error codes returned to clients."""

    INVALID_INPUT = "INVALID_INPUT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    LOCATION_UNRESOLVED = "LOCATION_UNRESOLVED"
    NO_PLACES_FOUND = "NO_PLACES_FOUND"
    GENERATION_FAILED = "GENERATION_FAILED"
    STORAGE_ERROR = "STORAGE_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    UNAUTHORIZED = "UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    API_ERROR = "API_ERROR"


class AppError(BaseModel):
    """Structured error payload."""

    code: ErrorCode
    message: str = Field(..., description="Technical message for logs/debugging")
    user_message: Optional[str] = Field(None, description="Message safe to show the user")


# HTTP status for each code when raised out of a route.
ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.LOCATION_UNRESOLVED: 500,
    ErrorCode.NO_PLACES_FOUND: 500,
    ErrorCode.GENERATION_FAILED: 500,
    ErrorCode.STORAGE_ERROR: 500,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.API_ERROR: 500,
}


class ServiceError(Exception):
    """Raised by services when a request cannot be completed."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        user_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.user_message = user_message

    @property
    def status_code(self) -> int:
        return ERROR_STATUS.get(self.code, 500)

    def to_app_error(self) -> AppError:
        return AppError(code=self.code, message=self.message, user_message=self.user_message)


class ExperienceGenerationError(ServiceError):
    """The experience pipeline reached a fatal state."""
