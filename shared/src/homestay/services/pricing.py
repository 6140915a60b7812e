"""Pricing service for overnight and hourly rate calculation."""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from boto3.dynamodb.conditions import Key

from homestay.models import (
    BookingInterval,
    BookingKind,
    Caller,
    DayPrice,
    DepositQuote,
    PaymentMethod,
    PriceQuote,
    Room,
)
from homestay.utils.dates import date_range, month_bounds, parse_time
from homestay.utils.logging import get_logger

if TYPE_CHECKING:
    from homestay.config import BookingSettings

    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


class PricingService:
    """Service for pricing, deposits and per-day price overrides."""

    TABLE = "day-prices"

    def __init__(self, db: "DynamoDBService", settings: "BookingSettings") -> None:
        """Initialize pricing service.

        Args:
            db: DynamoDB service instance
            settings: Deposit bounds and defaults
        """
        self.db = db
        self.settings = settings

    def get_overrides(
        self,
        room_id: int,
        start: dt.date,
        end: dt.date,
    ) -> dict[dt.date, int]:
        """Get price overrides for ``[start, end)``.

        Args:
            room_id: Room to price
            start: First date
            end: Exclusive end date

        Returns:
            Map of date to override price; dates without overrides are absent
        """
        if end <= start:
            return {}
        last = end - dt.timedelta(days=1)
        items = self.db.query(
            self.TABLE,
            Key("room_id").eq(room_id)
            & Key("date").between(start.isoformat(), last.isoformat()),
        )
        return {dt.date.fromisoformat(item["date"]): int(item["price"]) for item in items}

    def quote_overnight(
        self, room: Room, check_in: dt.date, check_out: dt.date
    ) -> PriceQuote:
        """Sum the effective price of each night in ``[check_in, check_out)``."""
        overrides = self.get_overrides(room.room_id, check_in, check_out)
        breakdown = {
            d.isoformat(): overrides.get(d, room.nightly_rate)
            for d in date_range(check_in, check_out)
        }
        return PriceQuote(
            kind=BookingKind.OVERNIGHT,
            total_amount=sum(breakdown.values()),
            nights=len(breakdown),
            nightly_breakdown=breakdown,
        )

    def quote_hourly(self, room: Room, start_minute: int, end_minute: int) -> PriceQuote:
        """Price an hourly window as ``round(hours * hourly_rate)``, half-up."""
        minutes = end_minute - start_minute
        total = (Decimal(minutes) * Decimal(room.hourly_rate) / Decimal(60)).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
        return PriceQuote(
            kind=BookingKind.HOURLY,
            total_amount=int(total),
            minutes=minutes,
        )

    def quote(self, room: Room, interval: BookingInterval) -> PriceQuote:
        """Price a validated interval."""
        if interval.is_hourly:
            assert interval.start_time is not None and interval.end_time is not None
            return self.quote_hourly(
                room, parse_time(interval.start_time), parse_time(interval.end_time)
            )
        return self.quote_overnight(room, interval.check_in, interval.check_out)

    def compute_deposit(
        self,
        total_amount: int,
        payment_method: PaymentMethod,
        requested_percent: int | None,
    ) -> DepositQuote:
        """Work out the deposit for a reservation.

        Cash bookings carry no deposit. For transfers an omitted percent uses
        the configured default, an explicit 0 disables the deposit so the
        full total is due now, and anything else is clamped into the
        configured bounds.

        Args:
            total_amount: Reservation total
            payment_method: Transfer or cash
            requested_percent: Percent requested by the guest, if any

        Returns:
            DepositQuote with percent, amount and the amount due now
        """
        if payment_method == PaymentMethod.CASH:
            return DepositQuote(percent=0, amount=0, amount_due_now=total_amount)

        if requested_percent is None:
            percent = self.settings.deposit_default_percent
        elif requested_percent == 0:
            percent = 0
        else:
            percent = min(
                self.settings.deposit_max_percent,
                max(self.settings.deposit_min_percent, requested_percent),
            )

        amount = total_amount * percent // 100
        return DepositQuote(
            percent=percent,
            amount=amount,
            amount_due_now=amount if amount > 0 else total_amount,
        )

    def get_month_prices(self, room: Room, month: str) -> dict[str, int]:
        """Effective price of every day in a ``YYYY-MM`` month."""
        first, next_first = month_bounds(month)
        overrides = self.get_overrides(room.room_id, first, next_first)
        return {
            d.isoformat(): overrides.get(d, room.nightly_rate)
            for d in date_range(first, next_first)
        }

    def list_overrides(self, room_id: int, month: str) -> list[DayPrice]:
        """Stored overrides for a ``YYYY-MM`` month, in date order."""
        first, next_first = month_bounds(month)
        overrides = self.get_overrides(room_id, first, next_first)
        return [
            DayPrice(room_id=room_id, date=d, price=price)
            for d, price in sorted(overrides.items())
        ]

    def set_day_price(
        self, caller: Caller, room_id: int, date: dt.date, price: int
    ) -> DayPrice:
        """Upsert the override price of one day. Staff only.

        Negative prices are stored as 0.
        """
        caller.require_admin()
        day_price = DayPrice(room_id=room_id, date=date, price=max(0, price))
        self.db.put_item(self.TABLE, self._day_price_to_item(day_price))
        logger.info(
            "Day price set: room_id=%s date=%s price=%s by user=%s",
            room_id,
            date.isoformat(),
            day_price.price,
            caller.user_id,
        )
        return day_price

    def _day_price_to_item(self, day_price: DayPrice) -> dict[str, Any]:
        return {
            "room_id": day_price.room_id,
            "date": day_price.date.isoformat(),
            "price": day_price.price,
        }
