"""Fixtures for API route tests.

Routes use the cached service providers from homestay_api.dependencies,
built lazily inside the mock_aws context of ``dynamodb_tables``.
"""

import datetime as dt
from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient

from homestay.models import Room, RoomCreate


@pytest.fixture
def client(dynamodb_tables: Any) -> TestClient:
    from homestay_api.main import app

    return TestClient(app)


@pytest.fixture
def api_room(dynamodb_tables: Any) -> Room:
    """Room 1 at 750,000 per night and 80,000 per hour."""
    from homestay_api.dependencies import get_room_service

    return get_room_service().create_room(
        RoomCreate(name="Homestay Deluxe", nightly_rate=750000, hourly_rate=80000),
        room_id=1,
    )


@pytest.fixture
def guest_headers() -> dict[str, str]:
    return {"x-user-id": "7"}


@pytest.fixture
def staff_headers() -> dict[str, str]:
    return {"x-user-id": "1", "x-user-admin": "true"}


@pytest.fixture
def webhook_headers() -> dict[str, str]:
    return {"Authorization": "Apikey test-sepay-key"}


def future_date(offset: int = 0) -> str:
    """ISO date 30+ days ahead so past-date checks never trip."""
    return (dt.date.today() + dt.timedelta(days=30 + offset)).isoformat()


@pytest.fixture
def booking_body() -> Callable[..., dict[str, Any]]:
    """Factory for reservation request bodies; two nights by default."""

    def _make(**overrides: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "room_id": 1,
            "full_name": "Nguyen Van A",
            "phone": "0901234567",
            "email": "guest@example.com",
            "check_in": future_date(0),
            "check_out": future_date(2),
        }
        body.update(overrides)
        return body

    return _make


@pytest.fixture
def dates() -> Callable[[int], str]:
    return future_date
