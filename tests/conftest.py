"""Pytest configuration and fixtures for homestay booking tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto (all tables from the shared schema)
- A controllable clock and booking settings
- Service instances wired the way the API wires them
- Sample rooms, callers and reservation requests
"""

import datetime as dt
import os
from collections.abc import Callable, Generator
from typing import Any

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-homestay")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SEPAY_API_KEY", "test-sepay-key")
os.environ.setdefault("SEPAY_BANK_NAME", "MBBank")
os.environ.setdefault("SEPAY_BANK_ACCOUNT", "0123456789")
os.environ.setdefault("SEPAY_ACCOUNT_NAME", "NGUYEN VAN A")
os.environ.setdefault("SEPAY_BANK_BIN", "970422")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

from homestay.config import BankAccount, BookingSettings  # noqa: E402
from homestay.models import Caller, ReservationCreate, RoomCreate  # noqa: E402
from homestay.services.notification_hooks import NotificationHooks  # noqa: E402
from homestay.services.schema import create_tables  # noqa: E402

TABLE_PREFIX = os.environ["DYNAMODB_TABLE_PREFIX"]

# 10:00 in Asia/Ho_Chi_Minh
FIXED_NOW = dt.datetime(2024, 6, 1, 3, 0, tzinfo=dt.UTC)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: dt.datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += dt.timedelta(seconds=seconds)


# === State Reset ===


@pytest.fixture(autouse=True)
def reset_state() -> Generator[None, None, None]:
    """Reset cached services, settings and the DynamoDB singleton.

    This ensures tests using mock_aws get fresh instances inside the mock
    context rather than reusing ones built for a previous test.
    """
    from homestay_api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def dynamodb_tables(aws_credentials: None) -> Generator[Any, None, None]:
    """Mocked DynamoDB with every table created; yields the client."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        create_tables(client, TABLE_PREFIX)
        yield client


@pytest.fixture
def db(dynamodb_tables: Any) -> Any:
    """DynamoDBService bound to the mocked tables."""
    from homestay.services.dynamodb import DynamoDBService

    return DynamoDBService("test")


# === Settings and Clock ===


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings() -> BookingSettings:
    """Default booking settings with a receiving bank account."""
    return BookingSettings(
        environment="test",
        bank=BankAccount(
            bank_name="MBBank",
            account_number="0123456789",
            account_name="NGUYEN VAN A",
            bank_bin="970422",
        ),
    )


# === Services ===


class RecordingHooks(NotificationHooks):
    """Notification hooks that remember what they were called with."""

    def __init__(self) -> None:
        self.events: list[tuple[str, int]] = []

    def reservation_created(self, reservation: Any) -> None:
        self.events.append(("created", reservation.reservation_id))

    def payment_confirmed(self, reservation: Any, amount: int) -> None:
        self.events.append(("payment_confirmed", reservation.reservation_id))

    def reservation_canceled(self, reservation: Any) -> None:
        self.events.append(("canceled", reservation.reservation_id))

    def reservation_synced(self, reservation: Any) -> None:
        self.events.append(("synced", reservation.reservation_id))

    def named(self, name: str) -> list[int]:
        return [rid for event, rid in self.events if event == name]


@pytest.fixture
def hooks() -> RecordingHooks:
    return RecordingHooks()


@pytest.fixture
def rooms(db: Any) -> Any:
    from homestay.services.rooms import RoomService

    return RoomService(db)


@pytest.fixture
def pricing(db: Any, settings: BookingSettings) -> Any:
    from homestay.services.pricing import PricingService

    return PricingService(db, settings)


@pytest.fixture
def availability(db: Any, rooms: Any, pricing: Any) -> Any:
    from homestay.services.availability import AvailabilityService

    return AvailabilityService(db, rooms, pricing)


@pytest.fixture
def booking(
    db: Any,
    rooms: Any,
    pricing: Any,
    availability: Any,
    settings: BookingSettings,
    hooks: RecordingHooks,
    clock: FrozenClock,
) -> Any:
    from homestay.services.booking import BookingService

    return BookingService(
        db, rooms, pricing, availability, settings, hooks=hooks, clock=clock
    )


@pytest.fixture
def reconciler(
    db: Any, booking: Any, settings: BookingSettings, hooks: RecordingHooks, clock: FrozenClock
) -> Any:
    from homestay.services.reconciler import PaymentReconciler

    return PaymentReconciler(db, booking, settings, hooks=hooks, clock=clock)


@pytest.fixture
def sweeper(db: Any, hooks: RecordingHooks, clock: FrozenClock) -> Any:
    from homestay.services.expiration import ExpirationSweeper

    return ExpirationSweeper(db, hooks=hooks, clock=clock)


# === Sample Data ===


@pytest.fixture
def room(rooms: Any) -> Any:
    """Room 1 at 750,000 per night and 80,000 per hour."""
    return rooms.create_room(
        RoomCreate(name="Homestay Deluxe", nightly_rate=750000, hourly_rate=80000),
        room_id=1,
    )


@pytest.fixture
def guest() -> Caller:
    return Caller(user_id=7)


@pytest.fixture
def staff() -> Caller:
    return Caller(user_id=1, is_admin=True)


@pytest.fixture
def make_request() -> Callable[..., ReservationCreate]:
    """Factory for reservation requests; overnight 2024-06-10 to 2024-06-12 by default."""

    def _make(**overrides: Any) -> ReservationCreate:
        data: dict[str, Any] = {
            "room_id": 1,
            "full_name": "Nguyen Van A",
            "phone": "0901234567",
            "email": "guest@example.com",
            "check_in": "2024-06-10",
            "check_out": "2024-06-12",
        }
        data.update(overrides)
        return ReservationCreate(**data)

    return _make


@pytest.fixture
def sepay_payload() -> Callable[..., dict[str, Any]]:
    """Factory for SePay webhook bodies."""

    def _make(
        content: str, amount: int, reference: str | None = "FT24153001", **extra: Any
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "id": 92704,
            "gateway": "MBBank",
            "transactionDate": "2024-06-01 10:01:00",
            "accountNumber": "0123456789",
            "content": content,
            "transferType": "in",
            "transferAmount": amount,
        }
        if reference is not None:
            body["referenceCode"] = reference
        else:
            body.pop("id")
        body.update(extra)
        return body

    return _make
