"""Pydantic models for homestay booking entities."""

from .availability import BlockingInterval, HourlySlot, RoomAvailability
from .enums import (
    BookingKind,
    PaymentMethod,
    PaymentProvider,
    PaymentStatus,
    ProcessingResult,
    ReservationStatus,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    BookingError,
    ConflictError,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    StateError,
    ToolError,
    ValidationError,
)
from .payment import LedgerEntry, PaymentNotification, ReconciliationResult
from .pricing import DayPrice, DepositQuote, PriceQuote
from .reservation import (
    ACTIVE_STATUSES,
    BookingInterval,
    Caller,
    CreateReservationResult,
    PaymentInstructions,
    Reservation,
    ReservationCreate,
    advance_payment_status,
    ensure_transition,
    settle_funds,
)
from .room import Room, RoomCreate

__all__ = [
    # Availability
    "BlockingInterval",
    "HourlySlot",
    "RoomAvailability",
    # Enums
    "BookingKind",
    "PaymentMethod",
    "PaymentProvider",
    "PaymentStatus",
    "ProcessingResult",
    "ReservationStatus",
    # Errors
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "BookingError",
    "ConflictError",
    "ErrorCode",
    "ForbiddenError",
    "NotFoundError",
    "StateError",
    "ToolError",
    "ValidationError",
    # Payment
    "LedgerEntry",
    "PaymentNotification",
    "ReconciliationResult",
    # Pricing
    "DayPrice",
    "DepositQuote",
    "PriceQuote",
    # Reservation
    "ACTIVE_STATUSES",
    "BookingInterval",
    "Caller",
    "CreateReservationResult",
    "PaymentInstructions",
    "Reservation",
    "ReservationCreate",
    "advance_payment_status",
    "ensure_transition",
    "settle_funds",
    # Room
    "Room",
    "RoomCreate",
]
