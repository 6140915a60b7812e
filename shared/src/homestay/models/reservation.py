"""Reservation models and lifecycle rules."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from .enums import BookingKind, PaymentMethod, PaymentStatus, ReservationStatus
from .errors import ErrorCode, ForbiddenError, StateError

ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})

# Legal status moves. Nothing leaves CANCELED.
ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset(
        {ReservationStatus.CONFIRMED, ReservationStatus.CANCELED}
    ),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.CANCELED}),
    ReservationStatus.CANCELED: frozenset(),
}

PAYMENT_STATUS_RANK: dict[PaymentStatus, int] = {
    PaymentStatus.UNPAID: 0,
    PaymentStatus.DEPOSIT_PAID: 1,
    PaymentStatus.PAID: 2,
}


def ensure_transition(current: ReservationStatus, target: ReservationStatus) -> None:
    """Raise StateError unless ``current -> target`` is a legal move."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise StateError(
            ErrorCode.INVALID_TRANSITION,
            {"from": current.value, "to": target.value},
        )


def advance_payment_status(
    current: PaymentStatus, candidate: PaymentStatus
) -> PaymentStatus:
    """Return the further-along of two payment statuses; never regresses."""
    if PAYMENT_STATUS_RANK[candidate] > PAYMENT_STATUS_RANK[current]:
        return candidate
    return current


def settle_funds(
    reservation: "Reservation", new_paid_amount: int
) -> tuple[PaymentStatus, ReservationStatus]:
    """Payment status and reservation status once ``new_paid_amount`` is in.

    Reaching the total marks the booking paid; reaching a non-zero deposit
    marks it deposit_paid. Either confirms a pending booking.
    """
    if new_paid_amount >= reservation.total_amount:
        candidate = PaymentStatus.PAID
    elif reservation.deposit_amount > 0 and new_paid_amount >= reservation.deposit_amount:
        candidate = PaymentStatus.DEPOSIT_PAID
    else:
        candidate = reservation.payment_status
    payment_status = advance_payment_status(reservation.payment_status, candidate)

    status = reservation.status
    if status == ReservationStatus.PENDING and payment_status != PaymentStatus.UNPAID:
        status = ReservationStatus.CONFIRMED
    return payment_status, status


class BookingInterval(BaseModel):
    """The time a reservation occupies.

    Overnight intervals are ``[check_in, check_out)`` in whole days. Hourly
    intervals sit on ``check_in`` between ``start_time`` and ``end_time``
    (``HH:MM``), and keep ``check_out == check_in``.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    kind: BookingKind
    check_in: dt.date
    check_out: dt.date
    start_time: str | None = None
    end_time: str | None = None

    @classmethod
    def overnight(cls, check_in: dt.date, check_out: dt.date) -> "BookingInterval":
        return cls(kind=BookingKind.OVERNIGHT, check_in=check_in, check_out=check_out)

    @classmethod
    def hourly(cls, date: dt.date, start_time: str, end_time: str) -> "BookingInterval":
        return cls(
            kind=BookingKind.HOURLY,
            check_in=date,
            check_out=date,
            start_time=start_time,
            end_time=end_time,
        )

    @property
    def is_hourly(self) -> bool:
        return self.kind == BookingKind.HOURLY


class Caller(BaseModel):
    """Identity of whoever invokes an operation."""

    model_config = ConfigDict(strict=True, frozen=True)

    user_id: int | None = Field(default=None, description="Stable numeric identity")
    is_admin: bool = Field(default=False)

    def require_admin(self) -> None:
        """Raise ForbiddenError unless the caller is staff."""
        if self.user_id is None:
            raise ForbiddenError(ErrorCode.AUTH_REQUIRED)
        if not self.is_admin:
            raise ForbiddenError(ErrorCode.ADMIN_REQUIRED)

    def require_signed_in(self) -> int:
        """Return the caller's user ID, raising ForbiddenError when anonymous."""
        if self.user_id is None:
            raise ForbiddenError(ErrorCode.AUTH_REQUIRED)
        return self.user_id

    def require_owner(self, owner_id: int | None) -> None:
        """Raise ForbiddenError unless the caller is staff or ``owner_id``."""
        user_id = self.require_signed_in()
        if not self.is_admin and user_id != owner_id:
            raise ForbiddenError(ErrorCode.NOT_RESERVATION_OWNER)


class Reservation(BaseModel):
    """A claim on a room for an interval, with its payment state.

    Amounts are integer currency units (VND).
    """

    model_config = ConfigDict(strict=True)

    reservation_id: int = Field(..., ge=1)
    room_id: int = Field(..., ge=1)
    user_id: int | None = Field(default=None, description="Creating caller, if signed in")
    full_name: str
    phone: str
    email: str
    guests: int = Field(default=1, ge=1)
    note: str | None = None
    interval: BookingInterval
    status: ReservationStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    total_amount: int = Field(..., ge=0)
    paid_amount: int = Field(default=0, ge=0)
    deposit_percent: int = Field(default=0, ge=0, le=100)
    deposit_amount: int = Field(default=0, ge=0)
    remainder_payment_method: PaymentMethod | None = Field(
        default=None, description="How the remainder is settled (transfer bookings)"
    )
    lookup_code: str = Field(..., examples=["NVH-7K2QXA"])
    order_code: str = Field(..., examples=["HS-42-NVH-7K2QXA"])
    expiration: dt.datetime = Field(..., description="Deadline for the first payment")
    created_at: dt.datetime
    updated_at: dt.datetime
    canceled_at: dt.datetime | None = None
    cancel_reason: str | None = None

    @property
    def kind(self) -> BookingKind:
        return self.interval.kind

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def required_funds(self) -> int:
        """Funds needed to confirm: the deposit if one is set, else the total."""
        return self.deposit_amount if self.deposit_amount > 0 else self.total_amount


class ReservationCreate(BaseModel):
    """Request to reserve a room.

    Overnight requests set ``check_out``; hourly requests set ``start_time``
    and ``end_time`` on ``check_in``.
    """

    model_config = ConfigDict(strict=False)

    room_id: int = Field(..., ge=1)
    full_name: str = ""
    phone: str = ""
    email: str = ""
    guests: int = 1
    note: str | None = None
    kind: BookingKind = BookingKind.OVERNIGHT
    check_in: str = Field(..., examples=["2024-06-01"])
    check_out: str | None = Field(default=None, examples=["2024-06-03"])
    start_time: str | None = Field(default=None, examples=["08:00"])
    end_time: str | None = Field(default=None, examples=["10:00"])
    payment_method: PaymentMethod = PaymentMethod.TRANSFER
    deposit_percent: int | None = Field(
        default=None,
        description="Requested deposit percent. Omit for the default, 0 to pay in full",
    )
    remainder_payment_method: PaymentMethod | None = None


class PaymentInstructions(BaseModel):
    """What the guest needs to pay by bank transfer."""

    model_config = ConfigDict(strict=True)

    bank_name: str
    account_number: str
    account_name: str
    amount_due: int = Field(..., ge=0, description="Amount to transfer now")
    total_amount: int = Field(..., ge=0)
    deposit_percent: int = Field(..., ge=0)
    deposit_amount: int = Field(..., ge=0)
    paid_amount: int = Field(..., ge=0)
    remainder_payment_method: PaymentMethod | None = None
    order_code: str = Field(..., description="Put this in the transfer narrative")
    qr_url: str | None = None
    expires_at: dt.datetime


class CreateReservationResult(BaseModel):
    """Outcome of a successful reservation create."""

    model_config = ConfigDict(strict=True)

    reservation: Reservation
    payment: PaymentInstructions | None = None
    next_step: str = Field(..., examples=["PAY_WITH_TRANSFER", "WAIT_ADMIN_CONFIRM"])
