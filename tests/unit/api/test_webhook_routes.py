"""Tests for the SePay webhook endpoint."""

from collections.abc import Callable
from typing import Any

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def pending(
    client: TestClient,
    api_room: Any,
    guest_headers: dict[str, str],
    booking_body: Callable[..., dict[str, Any]],
) -> dict[str, Any]:
    """Pending transfer reservation: total 1,500,000, deposit 450,000."""
    return client.post("/api/reservations", json=booking_body(), headers=guest_headers).json()[
        "reservation"
    ]


def transfer(content: str, amount: int, reference: str = "FT24153001") -> dict[str, Any]:
    return {
        "id": 92704,
        "gateway": "MBBank",
        "transactionDate": "2024-06-01 10:01:00",
        "accountNumber": "0123456789",
        "content": content,
        "transferType": "in",
        "transferAmount": amount,
        "referenceCode": reference,
    }


class TestWebhookAuth:
    """Tests for the Apikey check."""

    def test_missing_key(self, client: TestClient, pending: dict[str, Any]) -> None:
        response = client.post("/api/webhooks/sepay", json=transfer(pending["order_code"], 450000))

        assert response.status_code == 401
        assert response.json()["error_code"] == "ERR_AUTH_003"

    def test_wrong_key(self, client: TestClient, pending: dict[str, Any]) -> None:
        response = client.post(
            "/api/webhooks/sepay",
            json=transfer(pending["order_code"], 450000),
            headers={"Authorization": "Apikey wrong"},
        )

        assert response.status_code == 401

    def test_rejected_call_changes_nothing(
        self, client: TestClient, pending: dict[str, Any]
    ) -> None:
        client.post("/api/webhooks/sepay", json=transfer(pending["order_code"], 1500000))

        stored = client.get(f"/api/reservations/{pending['reservation_id']}").json()
        assert stored["paid_amount"] == 0
        assert stored["status"] == "pending"


class TestWebhookProcessing:
    """Tests for notifications that pass authentication."""

    def test_deposit_is_applied(
        self, client: TestClient, pending: dict[str, Any], webhook_headers: dict[str, str]
    ) -> None:
        response = client.post(
            "/api/webhooks/sepay",
            json=transfer(f"{pending['order_code']} chuyen tien", 450000),
            headers=webhook_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "transaction_id": "FT24153001",
            "processing_result": "applied",
            "reservation_id": pending["reservation_id"],
        }
        stored = client.get(f"/api/reservations/{pending['reservation_id']}").json()
        assert stored["status"] == "confirmed"
        assert stored["payment_status"] == "deposit_paid"

    def test_redelivery_is_a_duplicate(
        self, client: TestClient, pending: dict[str, Any], webhook_headers: dict[str, str]
    ) -> None:
        body = transfer(pending["order_code"], 450000)
        client.post("/api/webhooks/sepay", json=body, headers=webhook_headers)

        response = client.post("/api/webhooks/sepay", json=body, headers=webhook_headers)

        assert response.status_code == 200
        assert response.json()["processing_result"] == "duplicate"
        stored = client.get(f"/api/reservations/{pending['reservation_id']}").json()
        assert stored["paid_amount"] == 450000

    def test_unknown_narrative_is_unmatched(
        self, client: TestClient, pending: dict[str, Any], webhook_headers: dict[str, str]
    ) -> None:
        response = client.post(
            "/api/webhooks/sepay",
            json=transfer("tien nha thang 6", 450000),
            headers=webhook_headers,
        )

        assert response.status_code == 200
        assert response.json()["processing_result"] == "unmatched"
        assert response.json()["reservation_id"] is None

    def test_outgoing_transfer_is_ignored(
        self, client: TestClient, pending: dict[str, Any], webhook_headers: dict[str, str]
    ) -> None:
        body = transfer(pending["order_code"], 450000)
        body["transferType"] = "out"

        response = client.post("/api/webhooks/sepay", json=body, headers=webhook_headers)

        assert response.json()["processing_result"] == "ignored"

    def test_invalid_json_is_acknowledged(
        self, client: TestClient, api_room: Any, webhook_headers: dict[str, str]
    ) -> None:
        response = client.post(
            "/api/webhooks/sepay",
            content=b"not json",
            headers={**webhook_headers, "Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json()["processing_result"] == "ignored"
