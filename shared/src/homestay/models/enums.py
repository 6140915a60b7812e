"""Enumeration types for booking data models."""

from enum import Enum


class BookingKind(str, Enum):
    """Granularity of a reservation."""

    OVERNIGHT = "overnight"
    HOURLY = "hourly"


class ReservationStatus(str, Enum):
    """Lifecycle status of a reservation."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELED = "canceled"


class PaymentMethod(str, Enum):
    """How the guest pays."""

    TRANSFER = "transfer"
    CASH = "cash"


class PaymentStatus(str, Enum):
    """How much of the reservation has been paid."""

    UNPAID = "unpaid"
    DEPOSIT_PAID = "deposit_paid"
    PAID = "paid"


class ProcessingResult(str, Enum):
    """Outcome of reconciling one payment notification."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    UNMATCHED = "unmatched"
    PENDING = "pending"


class PaymentProvider(str, Enum):
    """Payment notification sources."""

    SEPAY = "sepay"
