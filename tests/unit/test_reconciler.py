"""Unit tests for PaymentReconciler.

Transfers are matched to reservations by the order code or lookup code in
their narrative, and each (provider, transaction_id) is applied at most once.
"""

from collections.abc import Callable
from typing import Any

import pytest

from homestay.models import (
    Caller,
    PaymentMethod,
    PaymentNotification,
    PaymentStatus,
    ProcessingResult,
    ReservationStatus,
)
from homestay.services.sepay import normalize_payload


@pytest.fixture
def transfer_booking(
    booking: Any, room: Any, guest: Caller, make_request: Callable[..., Any]
) -> Any:
    """Pending transfer reservation: total 1,500,000, deposit 450,000."""
    return booking.create(guest, make_request()).reservation


def notify(
    sepay_payload: Callable[..., dict[str, Any]],
    content: str,
    amount: int,
    reference: str | None = "FT1",
    **extra: Any,
) -> PaymentNotification:
    return normalize_payload(sepay_payload(content, amount, reference, **extra))


class TestApply:
    """Tests for notifications that pay a reservation."""

    def test_full_payment_marks_paid_and_confirms(
        self,
        reconciler: Any,
        booking: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        result = reconciler.reconcile(
            notify(sepay_payload, f"{transfer_booking.order_code} chuyen tien", 1500000)
        )

        assert result.processing_result == ProcessingResult.APPLIED
        assert result.reservation_id == transfer_booking.reservation_id
        assert result.payment_status == PaymentStatus.PAID
        assert result.paid_amount == 1500000
        assert result.confirmed is True
        stored = booking.get_reservation(transfer_booking.reservation_id)
        assert stored.status == ReservationStatus.CONFIRMED
        assert stored.payment_status == PaymentStatus.PAID

    def test_deposit_confirms(
        self,
        reconciler: Any,
        booking: Any,
        hooks: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        result = reconciler.reconcile(notify(sepay_payload, transfer_booking.order_code, 450000))

        assert result.payment_status == PaymentStatus.DEPOSIT_PAID
        assert result.confirmed is True
        assert hooks.named("payment_confirmed") == [transfer_booking.reservation_id]
        stored = booking.get_reservation(transfer_booking.reservation_id)
        assert stored.paid_amount == 450000
        assert stored.status == ReservationStatus.CONFIRMED

    def test_partial_payments_accumulate(
        self,
        reconciler: Any,
        booking: Any,
        hooks: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        first = reconciler.reconcile(
            notify(sepay_payload, transfer_booking.order_code, 100000, reference="FT1")
        )

        assert first.processing_result == ProcessingResult.APPLIED
        assert first.payment_status == PaymentStatus.UNPAID
        assert first.confirmed is False
        assert hooks.named("payment_confirmed") == []

        second = reconciler.reconcile(
            notify(sepay_payload, transfer_booking.order_code, 350000, reference="FT2")
        )

        assert second.paid_amount == 450000
        assert second.payment_status == PaymentStatus.DEPOSIT_PAID
        assert second.confirmed is True

    def test_remainder_after_deposit_marks_paid(
        self,
        reconciler: Any,
        booking: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        reconciler.reconcile(notify(sepay_payload, transfer_booking.order_code, 450000, reference="FT1"))
        result = reconciler.reconcile(
            notify(sepay_payload, transfer_booking.order_code, 1050000, reference="FT2")
        )

        assert result.payment_status == PaymentStatus.PAID
        assert result.confirmed is False
        assert booking.get_reservation(transfer_booking.reservation_id).paid_amount == 1500000

    def test_matches_lookup_code_anywhere(
        self,
        reconciler: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        content = f"MBVCB.123 thanh toan {transfer_booking.lookup_code.lower()} phong"

        result = reconciler.reconcile(notify(sepay_payload, content, 450000))

        assert result.processing_result == ProcessingResult.APPLIED
        assert result.reservation_id == transfer_booking.reservation_id

    def test_falls_back_to_lookup_code_when_id_is_unknown(
        self,
        reconciler: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        content = f"HS-999-{transfer_booking.lookup_code}"

        result = reconciler.reconcile(notify(sepay_payload, content, 450000))

        assert result.reservation_id == transfer_booking.reservation_id


class TestIdempotency:
    """Tests for redelivered notifications."""

    def test_redelivery_is_applied_once(
        self,
        reconciler: Any,
        booking: Any,
        hooks: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        notification = notify(sepay_payload, transfer_booking.order_code, 450000)

        first = reconciler.reconcile(notification)
        second = reconciler.reconcile(notification)

        assert first.processing_result == ProcessingResult.APPLIED
        assert second.processing_result == ProcessingResult.DUPLICATE
        assert booking.get_reservation(transfer_booking.reservation_id).paid_amount == 450000
        assert hooks.named("payment_confirmed") == [transfer_booking.reservation_id]

    def test_missing_transaction_id_is_synthesized(
        self,
        reconciler: Any,
        booking: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        notification = notify(sepay_payload, transfer_booking.order_code, 450000, reference=None)

        first = reconciler.reconcile(notification)
        second = reconciler.reconcile(
            notify(sepay_payload, transfer_booking.order_code, 450000, reference=None)
        )

        assert notification.transaction_id.startswith("noid_")
        assert first.processing_result == ProcessingResult.APPLIED
        assert second.processing_result == ProcessingResult.DUPLICATE
        assert booking.get_reservation(transfer_booking.reservation_id).paid_amount == 450000

    def test_concurrent_delivery_reports_duplicate(
        self,
        reconciler: Any,
        booking: Any,
        db: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        """The same notification committed between our read and our write."""
        notification = notify(sepay_payload, transfer_booking.order_code, 450000)
        original = db.transact_write

        def racing(items: list[dict[str, Any]]) -> bool:
            db.transact_write = original
            reconciler.reconcile(notification)
            return original(items)

        db.transact_write = racing

        result = reconciler.reconcile(notification)

        assert result.processing_result == ProcessingResult.DUPLICATE
        assert booking.get_reservation(transfer_booking.reservation_id).paid_amount == 450000

    def test_ledger_records_each_transaction(
        self,
        reconciler: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        reconciler.reconcile(notify(sepay_payload, transfer_booking.order_code, 450000))

        entry = reconciler.get_ledger_entry("sepay", "FT1")

        assert entry.processing_result == ProcessingResult.APPLIED
        assert entry.reservation_id == transfer_booking.reservation_id
        assert entry.amount == 450000


class TestNotApplied:
    """Tests for notifications that are recorded but move no funds."""

    def test_unmatched_narrative(
        self,
        reconciler: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        result = reconciler.reconcile(notify(sepay_payload, "tien nha thang 6", 450000))

        assert result.processing_result == ProcessingResult.UNMATCHED
        assert result.reservation_id is None
        assert reconciler.get_ledger_entry("sepay", "FT1").processing_result == ProcessingResult.UNMATCHED

    def test_outgoing_transfer_is_ignored(
        self,
        reconciler: Any,
        booking: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        result = reconciler.reconcile(
            notify(sepay_payload, transfer_booking.order_code, 450000, transferType="out")
        )

        assert result.processing_result == ProcessingResult.IGNORED
        assert booking.get_reservation(transfer_booking.reservation_id).paid_amount == 0

    def test_zero_amount_is_ignored(
        self,
        reconciler: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        result = reconciler.reconcile(notify(sepay_payload, transfer_booking.order_code, 0))

        assert result.processing_result == ProcessingResult.IGNORED

    def test_failed_status_is_ignored(
        self,
        reconciler: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        result = reconciler.reconcile(
            notify(sepay_payload, transfer_booking.order_code, 450000, status="failed")
        )

        assert result.processing_result == ProcessingResult.IGNORED

    def test_cash_reservation_is_ignored(
        self,
        reconciler: Any,
        booking: Any,
        room: Any,
        guest: Caller,
        make_request: Callable[..., Any],
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        cash = booking.create(
            guest, make_request(payment_method=PaymentMethod.CASH)
        ).reservation

        result = reconciler.reconcile(notify(sepay_payload, cash.order_code, 1500000))

        assert result.processing_result == ProcessingResult.IGNORED
        assert result.reservation_id == cash.reservation_id
        assert booking.get_reservation(cash.reservation_id).paid_amount == 0

    def test_canceled_reservation_is_ignored(
        self,
        reconciler: Any,
        booking: Any,
        staff: Caller,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        booking.cancel(staff, transfer_booking.reservation_id)

        result = reconciler.reconcile(notify(sepay_payload, transfer_booking.order_code, 450000))

        assert result.processing_result == ProcessingResult.IGNORED
        stored = booking.get_reservation(transfer_booking.reservation_id)
        assert stored.status == ReservationStatus.CANCELED
        assert stored.paid_amount == 0

    def test_fully_paid_reservation_is_ignored(
        self,
        reconciler: Any,
        booking: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> None:
        reconciler.reconcile(notify(sepay_payload, transfer_booking.order_code, 1500000, reference="FT1"))

        result = reconciler.reconcile(
            notify(sepay_payload, transfer_booking.order_code, 100000, reference="FT2")
        )

        assert result.processing_result == ProcessingResult.IGNORED
        assert booking.get_reservation(transfer_booking.reservation_id).paid_amount == 1500000


class TestPendingRetry:
    """Tests for notifications that keep losing write races."""

    @pytest.fixture
    def pending(
        self,
        reconciler: Any,
        db: Any,
        transfer_booking: Any,
        sepay_payload: Callable[..., dict[str, Any]],
    ) -> Any:
        """Reconcile while every transaction is cancelled, then restore writes."""
        notification = notify(sepay_payload, transfer_booking.order_code, 450000)
        original = db.transact_write
        db.transact_write = lambda items: False
        try:
            result = reconciler.reconcile(notification)
        finally:
            db.transact_write = original
        return notification, result

    def test_exhausted_attempts_are_recorded_as_pending(
        self, reconciler: Any, booking: Any, transfer_booking: Any, pending: Any
    ) -> None:
        _, result = pending

        entry = reconciler.get_ledger_entry("sepay", "FT1")

        assert result.processing_result == ProcessingResult.PENDING
        assert result.reservation_id == transfer_booking.reservation_id
        assert entry.processing_result == ProcessingResult.PENDING
        assert entry.reservation_id == transfer_booking.reservation_id
        assert entry.amount == 450000
        assert booking.get_reservation(transfer_booking.reservation_id).paid_amount == 0

    def test_retry_applies_pending_once(
        self,
        reconciler: Any,
        booking: Any,
        hooks: Any,
        transfer_booking: Any,
        pending: Any,
    ) -> None:
        results = reconciler.retry_pending()

        stored = booking.get_reservation(transfer_booking.reservation_id)
        assert [r.processing_result for r in results] == [ProcessingResult.APPLIED]
        assert stored.paid_amount == 450000
        assert stored.status == ReservationStatus.CONFIRMED
        assert reconciler.get_ledger_entry("sepay", "FT1").processing_result == (
            ProcessingResult.APPLIED
        )
        assert reconciler.retry_pending() == []
        assert hooks.named("payment_confirmed") == [transfer_booking.reservation_id]

    def test_redelivery_applies_pending(
        self, reconciler: Any, booking: Any, transfer_booking: Any, pending: Any
    ) -> None:
        notification, _ = pending

        redelivered = reconciler.reconcile(notification)
        again = reconciler.reconcile(notification)

        assert redelivered.processing_result == ProcessingResult.APPLIED
        assert again.processing_result == ProcessingResult.DUPLICATE
        assert booking.get_reservation(transfer_booking.reservation_id).paid_amount == 450000

    def test_retry_after_cancel_is_ignored(
        self,
        reconciler: Any,
        booking: Any,
        staff: Caller,
        transfer_booking: Any,
        pending: Any,
    ) -> None:
        booking.cancel(staff, transfer_booking.reservation_id)

        results = reconciler.retry_pending()

        assert [r.processing_result for r in results] == [ProcessingResult.IGNORED]
        assert reconciler.get_ledger_entry("sepay", "FT1").processing_result == (
            ProcessingResult.IGNORED
        )
        assert booking.get_reservation(transfer_booking.reservation_id).paid_amount == 0

    def test_nothing_pending(self, reconciler: Any, transfer_booking: Any) -> None:
        assert reconciler.retry_pending() == []
