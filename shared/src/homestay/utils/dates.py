"""Date and time helpers shared by pricing, availability and booking."""

import datetime as dt
import re
from collections.abc import Iterator

from homestay.models.errors import ErrorCode, ValidationError

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

MINUTES_PER_DAY = 24 * 60


def utc_now() -> dt.datetime:
    """Current time as an aware UTC datetime."""
    return dt.datetime.now(dt.UTC)


def parse_iso_date(value: str | dt.date) -> dt.date:
    """Parse a YYYY-MM-DD string.

    Args:
        value: Date string, or an already-parsed date

    Returns:
        The parsed date

    Raises:
        ValidationError: If the string is not a calendar date
    """
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(ErrorCode.INVALID_DATE, {"value": str(value)}) from e


def parse_time(value: str) -> int:
    """Parse an ``H:MM`` or ``HH:MM`` string to minutes since midnight.

    Args:
        value: Time string

    Returns:
        Minutes since midnight (0-1439)

    Raises:
        ValidationError: If the string is malformed or out of range
    """
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError(ErrorCode.INVALID_TIME, {"value": str(value)})
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValidationError(ErrorCode.INVALID_TIME, {"value": value})
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Render minutes since midnight as ``HH:MM`` (1440 renders as 24:00)."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """Validate a time string and return it zero-padded."""
    return format_minutes(parse_time(value))


def date_range(start: dt.date, end: dt.date) -> Iterator[dt.date]:
    """Yield each date in ``[start, end)``."""
    current = start
    while current < end:
        yield current
        current += dt.timedelta(days=1)


def month_bounds(month: str) -> tuple[dt.date, dt.date]:
    """Return ``(first_day, first_day_of_next_month)`` for ``YYYY-MM``.

    Raises:
        ValidationError: If the month string is malformed
    """
    first = parse_iso_date(f"{month}-01") if re.fullmatch(r"\d{4}-\d{2}", month) else None
    if first is None:
        raise ValidationError(ErrorCode.INVALID_DATE, {"month": month})
    if first.month == 12:
        return first, first.replace(year=first.year + 1, month=1)
    return first, first.replace(month=first.month + 1)


def to_iso(value: dt.datetime) -> str:
    """Serialize a datetime as a sortable UTC ISO-8601 string."""
    return value.astimezone(dt.UTC).isoformat(timespec="seconds")


def from_iso(value: str) -> dt.datetime:
    """Parse an ISO-8601 timestamp written by ``to_iso``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = dt.datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed
