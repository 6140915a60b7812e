"""Standard error codes for the booking core.

Every failure surfaced by a service is a ``BookingError`` subclass carrying an
``ErrorCode``. The API layer converts them to ``ToolError`` JSON bodies.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Error codes grouped by failure kind."""

    # Input validation (ERR_VAL_001-ERR_VAL_012)
    INVALID_DATE = "ERR_VAL_001"
    INVALID_TIME = "ERR_VAL_002"
    CHECKOUT_BEFORE_CHECKIN = "ERR_VAL_003"
    MINIMUM_DURATION_NOT_MET = "ERR_VAL_004"
    DATE_IN_PAST = "ERR_VAL_005"
    CHECKIN_CUTOFF_PASSED = "ERR_VAL_006"
    START_TIME_PASSED = "ERR_VAL_007"
    MISSING_FULL_NAME = "ERR_VAL_008"
    MISSING_PHONE = "ERR_VAL_009"
    MISSING_EMAIL = "ERR_VAL_010"
    INVALID_GUESTS = "ERR_VAL_011"
    INVALID_LOOKUP = "ERR_VAL_012"

    # Availability conflicts (ERR_CONFLICT_001-ERR_CONFLICT_002)
    DATES_UNAVAILABLE = "ERR_CONFLICT_001"
    CONCURRENT_UPDATE = "ERR_CONFLICT_002"

    # Missing entities (ERR_NF_001-ERR_NF_002)
    ROOM_NOT_FOUND = "ERR_NF_001"
    RESERVATION_NOT_FOUND = "ERR_NF_002"

    # Lifecycle state (ERR_STATE_001-ERR_STATE_004)
    INVALID_TRANSITION = "ERR_STATE_001"
    INSUFFICIENT_FUNDS = "ERR_STATE_002"
    FUNDS_ALREADY_RECEIVED = "ERR_STATE_003"
    NOT_CASH_RESERVATION = "ERR_STATE_004"

    # Caller authorization (ERR_AUTH_001-ERR_AUTH_004)
    AUTH_REQUIRED = "ERR_AUTH_001"
    ADMIN_REQUIRED = "ERR_AUTH_002"
    INVALID_WEBHOOK_KEY = "ERR_AUTH_003"
    NOT_RESERVATION_OWNER = "ERR_AUTH_004"


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    # Validation
    ErrorCode.INVALID_DATE: "Date must be in YYYY-MM-DD format",
    ErrorCode.INVALID_TIME: "Time must be in HH:MM format (00:00-23:59)",
    ErrorCode.CHECKOUT_BEFORE_CHECKIN: "Check-out must be after check-in",
    ErrorCode.MINIMUM_DURATION_NOT_MET: "Booking is shorter than the minimum duration",
    ErrorCode.DATE_IN_PAST: "Booking date is in the past",
    ErrorCode.CHECKIN_CUTOFF_PASSED: "Same-day check-in is closed for today",
    ErrorCode.START_TIME_PASSED: "Start time has already passed",
    ErrorCode.MISSING_FULL_NAME: "Guest full name is required",
    ErrorCode.MISSING_PHONE: "Guest phone number is required",
    ErrorCode.MISSING_EMAIL: "Guest email is required",
    ErrorCode.INVALID_GUESTS: "Number of guests must be at least 1",
    ErrorCode.INVALID_LOOKUP: "Provide a lookup code, or both phone and email",
    # Conflicts
    ErrorCode.DATES_UNAVAILABLE: "The requested time is not available",
    ErrorCode.CONCURRENT_UPDATE: "The room was being booked concurrently",
    # Not found
    ErrorCode.ROOM_NOT_FOUND: "Room not found",
    ErrorCode.RESERVATION_NOT_FOUND: "Reservation not found",
    # State
    ErrorCode.INVALID_TRANSITION: "Reservation cannot move to the requested status",
    ErrorCode.INSUFFICIENT_FUNDS: "Received funds do not cover the required amount",
    ErrorCode.FUNDS_ALREADY_RECEIVED: "Transfer funds were already received for this reservation",
    ErrorCode.NOT_CASH_RESERVATION: "Only cash reservations can be marked paid manually",
    # Authorization
    ErrorCode.AUTH_REQUIRED: "Authentication required to perform this action",
    ErrorCode.ADMIN_REQUIRED: "Staff privileges required to perform this action",
    ErrorCode.INVALID_WEBHOOK_KEY: "Invalid webhook API key",
    ErrorCode.NOT_RESERVATION_OWNER: "Reservation belongs to another user",
}

# Recovery suggestions for API clients
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.INVALID_DATE: "Send dates as YYYY-MM-DD",
    ErrorCode.INVALID_TIME: "Send times as HH:MM in 24-hour format",
    ErrorCode.CHECKOUT_BEFORE_CHECKIN: "Pick a check-out after the check-in",
    ErrorCode.MINIMUM_DURATION_NOT_MET: "Book at least one night, or at least one hour",
    ErrorCode.DATE_IN_PAST: "Choose today or a future date",
    ErrorCode.CHECKIN_CUTOFF_PASSED: "Choose tomorrow or book by the hour",
    ErrorCode.START_TIME_PASSED: "Choose a later start time",
    ErrorCode.MISSING_FULL_NAME: "Provide the guest's full name",
    ErrorCode.MISSING_PHONE: "Provide a contact phone number",
    ErrorCode.MISSING_EMAIL: "Provide a contact email",
    ErrorCode.INVALID_GUESTS: "Provide a positive number of guests",
    ErrorCode.INVALID_LOOKUP: "Search by lookup code or by phone and email",
    ErrorCode.DATES_UNAVAILABLE: "Check the availability calendar and pick another time",
    ErrorCode.CONCURRENT_UPDATE: "Try again in a moment",
    ErrorCode.ROOM_NOT_FOUND: "Verify the room ID",
    ErrorCode.RESERVATION_NOT_FOUND: "Verify the reservation ID or lookup code",
    ErrorCode.INVALID_TRANSITION: "Refresh the reservation and check its current status",
    ErrorCode.INSUFFICIENT_FUNDS: "Wait for the deposit to arrive before confirming",
    ErrorCode.FUNDS_ALREADY_RECEIVED: "Refund the guest and cancel with override",
    ErrorCode.NOT_CASH_RESERVATION: "Transfer payments are applied from bank notifications",
    ErrorCode.AUTH_REQUIRED: "Sign in and try again",
    ErrorCode.ADMIN_REQUIRED: "Ask a staff member to perform this action",
    ErrorCode.INVALID_WEBHOOK_KEY: "Verify the webhook API key configuration",
    ErrorCode.NOT_RESERVATION_OWNER: "Sign in with the account that made the booking",
}


class ToolError(BaseModel):
    """Standard error response body."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ToolError":
        """Create a ToolError from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error

        Returns:
            A ToolError with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class BookingError(Exception):
    """Base exception raised by booking operations."""

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_tool_error(self) -> ToolError:
        """Convert this exception to a ToolError for API responses."""
        return ToolError.from_code(self.code, self.details)


class ValidationError(BookingError):
    """Malformed or out-of-policy input."""


class ConflictError(BookingError):
    """The requested interval overlaps an active reservation."""


class NotFoundError(BookingError):
    """A referenced room or reservation does not exist."""


class StateError(BookingError):
    """A lifecycle transition or its guard was violated."""


class ForbiddenError(BookingError):
    """The caller is not allowed to perform the operation."""
