"""API models for reservation and staff endpoints."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from homestay.models import DayPrice, PaymentInstructions, Reservation


class ReservationListResponse(BaseModel):
    """A list of reservations."""

    model_config = ConfigDict(strict=True)

    reservations: list[Reservation]
    total_count: int


class PaymentInstructionsResponse(BaseModel):
    """Current transfer instructions for a reservation."""

    model_config = ConfigDict(strict=True)

    reservation_id: int
    payment: PaymentInstructions


class CancelRequest(BaseModel):
    """Staff cancellation request."""

    model_config = ConfigDict(strict=False)

    reason: str | None = Field(default=None, examples=["guest asked to cancel"])
    override: bool = Field(
        default=False,
        description="Cancel even though transfer funds were received",
    )


class CashPaymentRequest(BaseModel):
    """Staff records cash collected for a reservation."""

    model_config = ConfigDict(strict=False)

    paid_amount: int | None = Field(
        default=None,
        ge=0,
        description="Amount collected; defaults to the reservation total",
        examples=[1500000],
    )


class DayPriceUpdateRequest(BaseModel):
    """Override the price of one day."""

    model_config = ConfigDict(strict=False)

    date: dt.date = Field(..., examples=["2024-06-01"])
    price: int = Field(..., examples=[900000])


class DayPriceListResponse(BaseModel):
    """Stored price overrides for a month."""

    model_config = ConfigDict(strict=True)

    room_id: int
    month: str
    day_prices: list[DayPrice]


class SweepResponse(BaseModel):
    """Result of an expiration sweep."""

    model_config = ConfigDict(strict=True)

    canceled: int = Field(..., ge=0, description="Reservations canceled by this sweep")


class PaymentRetryResponse(BaseModel):
    """Result of re-applying pending payment notifications."""

    model_config = ConfigDict(strict=True)

    retried: int = Field(..., ge=0, description="Pending notifications processed")
    applied: int = Field(..., ge=0, description="Notifications whose funds were applied")
