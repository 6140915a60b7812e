"""Unit tests for the booking edge-case policy.

Times are judged in the configured local timezone (Asia/Ho_Chi_Minh,
UTC+7), so 03:00 UTC is 10:00 local.
"""

import datetime as dt

import pytest

from homestay.config import BookingSettings
from homestay.models import BookingInterval, ErrorCode, ValidationError
from homestay.services.availability import validate_interval

D = dt.date


def utc(day: int, hour: int, minute: int = 0) -> dt.datetime:
    return dt.datetime(2024, 6, day, hour, minute, tzinfo=dt.UTC)


@pytest.fixture
def policy() -> BookingSettings:
    return BookingSettings()


def assert_rejected(
    interval: BookingInterval, now: dt.datetime, settings: BookingSettings, code: ErrorCode
) -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_interval(interval, now, settings)
    assert exc_info.value.code == code


class TestOvernightPolicy:
    """Tests for overnight stays."""

    def test_future_stay_is_valid(self, policy: BookingSettings) -> None:
        validate_interval(BookingInterval.overnight(D(2024, 6, 10), D(2024, 6, 12)), utc(1, 3), policy)

    def test_same_day_before_cutoff_is_valid(self, policy: BookingSettings) -> None:
        # 13:59 local
        validate_interval(
            BookingInterval.overnight(D(2024, 6, 1), D(2024, 6, 2)), utc(1, 6, 59), policy
        )

    def test_same_day_at_cutoff_is_rejected(self, policy: BookingSettings) -> None:
        # 14:00 local
        assert_rejected(
            BookingInterval.overnight(D(2024, 6, 1), D(2024, 6, 2)),
            utc(1, 7),
            policy,
            ErrorCode.CHECKIN_CUTOFF_PASSED,
        )

    def test_next_day_after_cutoff_is_valid(self, policy: BookingSettings) -> None:
        validate_interval(
            BookingInterval.overnight(D(2024, 6, 2), D(2024, 6, 3)), utc(1, 10), policy
        )

    def test_cutoff_hour_is_configurable(self) -> None:
        late = BookingSettings(checkin_cutoff_hour=20)
        validate_interval(BookingInterval.overnight(D(2024, 6, 1), D(2024, 6, 2)), utc(1, 7), late)

    def test_zero_nights_is_rejected(self, policy: BookingSettings) -> None:
        assert_rejected(
            BookingInterval.overnight(D(2024, 6, 10), D(2024, 6, 10)),
            utc(1, 3),
            policy,
            ErrorCode.MINIMUM_DURATION_NOT_MET,
        )

    def test_check_out_before_check_in_is_rejected(self, policy: BookingSettings) -> None:
        assert_rejected(
            BookingInterval.overnight(D(2024, 6, 12), D(2024, 6, 10)),
            utc(1, 3),
            policy,
            ErrorCode.CHECKOUT_BEFORE_CHECKIN,
        )

    def test_past_check_in_is_rejected(self, policy: BookingSettings) -> None:
        assert_rejected(
            BookingInterval.overnight(D(2024, 5, 31), D(2024, 6, 2)),
            utc(1, 3),
            policy,
            ErrorCode.DATE_IN_PAST,
        )

    def test_today_is_the_local_date(self, policy: BookingSettings) -> None:
        # 18:00 UTC on May 31 is already June 1 locally
        now = dt.datetime(2024, 5, 31, 18, 0, tzinfo=dt.UTC)
        assert_rejected(
            BookingInterval.overnight(D(2024, 5, 31), D(2024, 6, 2)),
            now,
            policy,
            ErrorCode.DATE_IN_PAST,
        )


class TestHourlyPolicy:
    """Tests for hourly bookings."""

    def test_future_window_is_valid(self, policy: BookingSettings) -> None:
        validate_interval(BookingInterval.hourly(D(2024, 6, 10), "08:00", "10:00"), utc(1, 3), policy)

    def test_end_not_after_start_is_rejected(self, policy: BookingSettings) -> None:
        assert_rejected(
            BookingInterval.hourly(D(2024, 6, 10), "10:00", "10:00"),
            utc(1, 3),
            policy,
            ErrorCode.CHECKOUT_BEFORE_CHECKIN,
        )

    def test_shorter_than_an_hour_is_rejected(self, policy: BookingSettings) -> None:
        assert_rejected(
            BookingInterval.hourly(D(2024, 6, 10), "08:00", "08:30"),
            utc(1, 3),
            policy,
            ErrorCode.MINIMUM_DURATION_NOT_MET,
        )

    def test_exactly_one_hour_is_valid(self, policy: BookingSettings) -> None:
        validate_interval(BookingInterval.hourly(D(2024, 6, 10), "08:00", "09:00"), utc(1, 3), policy)

    def test_started_window_today_is_rejected(self, policy: BookingSettings) -> None:
        assert_rejected(
            BookingInterval.hourly(D(2024, 6, 1), "09:00", "11:00"),
            utc(1, 3),
            policy,
            ErrorCode.START_TIME_PASSED,
        )

    def test_window_starting_now_is_rejected(self, policy: BookingSettings) -> None:
        assert_rejected(
            BookingInterval.hourly(D(2024, 6, 1), "10:00", "11:00"),
            utc(1, 3),
            policy,
            ErrorCode.START_TIME_PASSED,
        )

    def test_later_window_today_is_valid(self, policy: BookingSettings) -> None:
        validate_interval(BookingInterval.hourly(D(2024, 6, 1), "10:30", "11:30"), utc(1, 3), policy)

    def test_past_date_is_rejected(self, policy: BookingSettings) -> None:
        assert_rejected(
            BookingInterval.hourly(D(2024, 5, 30), "08:00", "10:00"),
            utc(1, 3),
            policy,
            ErrorCode.DATE_IN_PAST,
        )
