"""Availability rules and the room calendar.

Conflicts are judged on effective intervals: an overnight reservation holds
the whole days ``[check_in, check_out)``, an hourly one holds a minute window
on its date. Overnight blocks every hourly window on the days it covers.
"""

import datetime as dt
from typing import TYPE_CHECKING

from boto3.dynamodb.conditions import Attr, Key

from homestay.models import (
    ACTIVE_STATUSES,
    BlockingInterval,
    BookingInterval,
    BookingKind,
    ErrorCode,
    HourlySlot,
    Reservation,
    RoomAvailability,
    ValidationError,
)
from homestay.utils.dates import (
    MINUTES_PER_DAY,
    format_minutes,
    normalize_time,
    parse_iso_date,
    parse_time,
)
from homestay.utils.logging import get_logger

from .reservation_items import RESERVATIONS_TABLE, item_to_reservation

if TYPE_CHECKING:
    from homestay.config import BookingSettings

    from .dynamodb import DynamoDBService
    from .pricing import PricingService
    from .rooms import RoomService

logger = get_logger(__name__)

MIN_HOURLY_MINUTES = 60


def parse_interval(
    kind: BookingKind,
    check_in: str | dt.date,
    check_out: str | dt.date | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
) -> BookingInterval:
    """Build an interval from request fields.

    Raises:
        ValidationError: On malformed dates or times
    """
    date = parse_iso_date(check_in)
    if kind == BookingKind.HOURLY:
        if not start_time or not end_time:
            raise ValidationError(
                ErrorCode.INVALID_TIME, {"reason": "start_time and end_time are required"}
            )
        return BookingInterval.hourly(date, normalize_time(start_time), normalize_time(end_time))
    if check_out is None:
        raise ValidationError(ErrorCode.INVALID_DATE, {"reason": "check_out is required"})
    return BookingInterval.overnight(date, parse_iso_date(check_out))


def minute_window(interval: BookingInterval) -> tuple[int, int]:
    """Minutes-since-midnight window of an interval on its first day."""
    if interval.is_hourly:
        assert interval.start_time is not None and interval.end_time is not None
        return parse_time(interval.start_time), parse_time(interval.end_time)
    return 0, MINUTES_PER_DAY


def day_span(interval: BookingInterval) -> tuple[dt.date, dt.date]:
    """Whole-day range an interval touches; hourly is ``[date, date + 1)``."""
    if interval.is_hourly:
        return interval.check_in, interval.check_in + dt.timedelta(days=1)
    return interval.check_in, interval.check_out


def intervals_conflict(a: BookingInterval, b: BookingInterval) -> bool:
    """Return True if two intervals overlap under half-open semantics.

    Raises:
        ValidationError: If either hourly interval has a malformed time
    """
    if a.is_hourly and b.is_hourly:
        if a.check_in != b.check_in:
            return False
        a_start, a_end = minute_window(a)
        b_start, b_end = minute_window(b)
        return a_start < b_end and a_end > b_start

    # At least one overnight: compare whole-day spans.
    a_start, a_end = day_span(a)
    b_start, b_end = day_span(b)
    return a_start < b_end and a_end > b_start


def validate_interval(
    interval: BookingInterval, now: dt.datetime, settings: "BookingSettings"
) -> None:
    """Apply the booking edge-case policy before any store access.

    Args:
        interval: Proposed interval
        now: Current time (aware)
        settings: Supplies the local timezone and same-day cutoff hour

    Raises:
        ValidationError: If the interval is malformed, too short or too late
    """
    local_now = now.astimezone(settings.tz)
    today = local_now.date()

    if interval.is_hourly:
        start, end = minute_window(interval)
        if end <= start:
            raise ValidationError(ErrorCode.CHECKOUT_BEFORE_CHECKIN)
        if end - start < MIN_HOURLY_MINUTES:
            raise ValidationError(
                ErrorCode.MINIMUM_DURATION_NOT_MET, {"minimum_minutes": str(MIN_HOURLY_MINUTES)}
            )
        if interval.check_in < today:
            raise ValidationError(ErrorCode.DATE_IN_PAST)
        if interval.check_in == today and start <= local_now.hour * 60 + local_now.minute:
            raise ValidationError(ErrorCode.START_TIME_PASSED)
        return

    if interval.check_out < interval.check_in:
        raise ValidationError(ErrorCode.CHECKOUT_BEFORE_CHECKIN)
    if interval.check_out == interval.check_in:
        raise ValidationError(ErrorCode.MINIMUM_DURATION_NOT_MET, {"minimum_nights": "1"})
    if interval.check_in < today:
        raise ValidationError(ErrorCode.DATE_IN_PAST)
    if interval.check_in == today and local_now.hour >= settings.checkin_cutoff_hour:
        raise ValidationError(
            ErrorCode.CHECKIN_CUTOFF_PASSED,
            {"cutoff_hour": str(settings.checkin_cutoff_hour)},
        )


class AvailabilityService:
    """Service for conflict detection and the availability calendar."""

    def __init__(
        self,
        db: "DynamoDBService",
        rooms: "RoomService",
        pricing: "PricingService",
    ) -> None:
        """Initialize availability service.

        Args:
            db: DynamoDB service instance
            rooms: Room catalogue
            pricing: Pricing service (calendar day prices)
        """
        self.db = db
        self.rooms = rooms
        self.pricing = pricing

    def list_active(
        self,
        room_id: int,
        not_before: dt.date | None = None,
        consistent_read: bool = False,
    ) -> list[Reservation]:
        """Active (pending or confirmed) reservations for a room.

        Args:
            room_id: Room to query
            not_before: Skip reservations whose check-out is before this date
            consistent_read: Use a strongly consistent query

        Returns:
            Reservations ordered by ID
        """
        filter_expression = Attr("status").is_in([s.value for s in ACTIVE_STATUSES])
        if not_before is not None:
            filter_expression = filter_expression & Attr("check_out").gte(
                not_before.isoformat()
            )
        items = self.db.query(
            RESERVATIONS_TABLE,
            Key("room_id").eq(room_id),
            filter_expression=filter_expression,
            consistent_read=consistent_read,
        )
        return [item_to_reservation(item) for item in items]

    def find_conflicts(
        self,
        room_id: int,
        interval: BookingInterval,
        consistent_read: bool = True,
    ) -> list[Reservation]:
        """Active reservations on the room that overlap ``interval``."""
        candidates = self.list_active(
            room_id, not_before=interval.check_in, consistent_read=consistent_read
        )
        return [r for r in candidates if intervals_conflict(interval, r.interval)]

    def is_available(self, room_id: int, interval: BookingInterval) -> bool:
        return not self.find_conflicts(room_id, interval)

    def get_room_availability(
        self,
        room_id: int,
        month: str | None = None,
        date: dt.date | None = None,
    ) -> RoomAvailability:
        """Build the calendar view for a room.

        Args:
            room_id: Room to describe
            month: ``YYYY-MM`` to include effective day prices for
            date: Date to list occupied hourly windows for

        Returns:
            RoomAvailability with blocks, day prices and hourly slots

        Raises:
            NotFoundError: If the room does not exist
        """
        room = self.rooms.require_room(room_id)
        active = self.list_active(room_id)

        blocks = []
        for reservation in active:
            start, end = day_span(reservation.interval)
            blocks.append(
                BlockingInterval(
                    reservation_id=reservation.reservation_id,
                    kind=reservation.kind,
                    start=start,
                    end=end,
                    status=reservation.status,
                )
            )
        blocks.sort(key=lambda b: (b.start, b.reservation_id))

        return RoomAvailability(
            room_id=room_id,
            blocks=blocks,
            month=month,
            day_prices=self.pricing.get_month_prices(room, month) if month else {},
            date=date,
            hourly_slots=self._hourly_slots(active, date) if date else [],
        )

    def _hourly_slots(self, active: list[Reservation], date: dt.date) -> list[HourlySlot]:
        slots = []
        for reservation in active:
            interval = reservation.interval
            if interval.is_hourly and interval.check_in == date:
                start, end = minute_window(interval)
            elif not interval.is_hourly and interval.check_in <= date < interval.check_out:
                start, end = 0, MINUTES_PER_DAY
            else:
                continue
            slots.append(
                HourlySlot(
                    reservation_id=reservation.reservation_id,
                    start=format_minutes(start),
                    end=format_minutes(end),
                )
            )
        return sorted(slots, key=lambda s: s.start)
