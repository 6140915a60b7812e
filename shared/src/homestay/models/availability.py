"""Availability calendar models."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from .enums import BookingKind, ReservationStatus


class BlockingInterval(BaseModel):
    """A day range occupied by an active reservation.

    Hourly reservations occupy ``[date, date + 1)`` in this view.
    """

    model_config = ConfigDict(strict=True)

    reservation_id: int
    kind: BookingKind
    start: dt.date
    end: dt.date = Field(..., description="Exclusive end date")
    status: ReservationStatus


class HourlySlot(BaseModel):
    """An occupied window on a single date."""

    model_config = ConfigDict(strict=True)

    reservation_id: int
    start: str = Field(..., examples=["08:00"])
    end: str = Field(..., examples=["10:00", "24:00"])


class RoomAvailability(BaseModel):
    """Calendar view for a room."""

    model_config = ConfigDict(strict=True)

    room_id: int
    blocks: list[BlockingInterval] = Field(default_factory=list)
    month: str | None = None
    day_prices: dict[str, int] = Field(
        default_factory=dict, description="ISO date -> effective nightly price"
    )
    date: dt.date | None = None
    hourly_slots: list[HourlySlot] = Field(default_factory=list)
