"""Shared API request/response models.

Domain models (Reservation, RoomAvailability, etc.) live in homestay.models;
this module holds HTTP-layer concerns only.
"""

from pydantic import BaseModel, ConfigDict, Field

from homestay.models.errors import ErrorCode, ToolError

__all__ = [
    "ErrorCode",
    "ToolError",
    "ValidationErrorDetail",
    "ValidationErrorResponse",
]


class ValidationErrorDetail(BaseModel):
    """Detail of a single request validation error."""

    model_config = ConfigDict(strict=True)

    loc: list[str | int] = Field(
        ...,
        description="Path to the field that failed validation",
        examples=[["body", "check_in"]],
    )
    msg: str = Field(..., examples=["Field required"])
    type: str = Field(..., examples=["missing"])


class ValidationErrorResponse(BaseModel):
    """Response body for request validation errors (HTTP 422)."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: str = "ERR_VALIDATION"
    message: str = "Request validation failed"
    recovery: str = "Check the request parameters and try again"
    details: list[ValidationErrorDetail] = Field(default_factory=list)
