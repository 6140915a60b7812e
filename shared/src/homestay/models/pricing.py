"""Pricing models."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from .enums import BookingKind


class DayPrice(BaseModel):
    """Price override for one room on one date."""

    model_config = ConfigDict(strict=True)

    room_id: int = Field(..., ge=1)
    date: dt.date
    price: int = Field(..., ge=0)


class PriceQuote(BaseModel):
    """Total price for a proposed interval.

    Overnight quotes list the effective price of each night; hourly quotes
    carry the billed duration in minutes.
    """

    model_config = ConfigDict(strict=True)

    kind: BookingKind
    total_amount: int = Field(..., ge=0)
    nights: int = Field(default=0, ge=0)
    minutes: int = Field(default=0, ge=0)
    nightly_breakdown: dict[str, int] = Field(
        default_factory=dict,
        description="ISO date -> effective nightly price",
        examples=[{"2024-06-01": 750000, "2024-06-02": 750000}],
    )


class DepositQuote(BaseModel):
    """Deposit computed for a transfer reservation."""

    model_config = ConfigDict(strict=True)

    percent: int = Field(..., ge=0, le=100)
    amount: int = Field(..., ge=0)
    amount_due_now: int = Field(..., ge=0)
