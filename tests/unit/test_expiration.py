"""Unit tests for ExpirationSweeper."""

from collections.abc import Callable
from typing import Any

from homestay.models import Caller, PaymentMethod, ReservationStatus
from homestay.services.sepay import normalize_payload


class TestSweep:
    """Pending transfer bookings lapse RESERVATION_TTL_SECONDS (300) after creation."""

    def test_expired_unpaid_booking_is_canceled(
        self,
        sweeper: Any,
        booking: Any,
        hooks: Any,
        clock: Any,
        room: Any,
        guest: Caller,
        make_request: Callable[..., Any],
    ) -> None:
        reservation = booking.create(guest, make_request()).reservation
        clock.advance(301)

        assert sweeper.sweep() == 1

        stored = booking.get_reservation(reservation.reservation_id)
        assert stored.status == ReservationStatus.CANCELED
        assert stored.cancel_reason == "expired_unpaid"
        assert stored.canceled_at == clock.now
        assert hooks.named("canceled") == [reservation.reservation_id]

    def test_second_sweep_is_a_no_op(
        self,
        sweeper: Any,
        booking: Any,
        hooks: Any,
        clock: Any,
        room: Any,
        guest: Caller,
        make_request: Callable[..., Any],
    ) -> None:
        booking.create(guest, make_request())
        clock.advance(301)
        sweeper.sweep()

        assert sweeper.sweep() == 0
        assert len(hooks.named("canceled")) == 1

    def test_booking_within_window_is_kept(
        self,
        sweeper: Any,
        booking: Any,
        clock: Any,
        room: Any,
        guest: Caller,
        make_request: Callable[..., Any],
    ) -> None:
        reservation = booking.create(guest, make_request()).reservation
        clock.advance(299)

        assert sweeper.sweep() == 0
        assert booking.get_reservation(reservation.reservation_id).status == ReservationStatus.PENDING

    def test_cash_booking_is_kept(
        self,
        sweeper: Any,
        booking: Any,
        clock: Any,
        room: Any,
        guest: Caller,
        make_request: Callable[..., Any],
    ) -> None:
        booking.create(guest, make_request(payment_method=PaymentMethod.CASH))
        clock.advance(3600)

        assert sweeper.sweep() == 0

    def test_booking_with_deposit_is_kept(
        self,
        sweeper: Any,
        booking: Any,
        reconciler: Any,
        clock: Any,
        room: Any,
        guest: Caller,
        make_request: Callable[..., Any],
    ) -> None:
        reservation = booking.create(guest, make_request()).reservation
        reconciler.reconcile(
            normalize_payload(
                {"referenceCode": "FT1", "transferAmount": 450000, "content": reservation.order_code}
            )
        )
        clock.advance(3600)

        assert sweeper.sweep() == 0
        assert booking.get_reservation(reservation.reservation_id).status == ReservationStatus.CONFIRMED

    def test_expired_interval_can_be_booked_again(
        self,
        sweeper: Any,
        booking: Any,
        clock: Any,
        room: Any,
        guest: Caller,
        make_request: Callable[..., Any],
    ) -> None:
        booking.create(guest, make_request())
        clock.advance(301)
        sweeper.sweep()

        again = booking.create(guest, make_request()).reservation

        assert again.status == ReservationStatus.PENDING

    def test_payment_after_expiry_is_not_applied(
        self,
        sweeper: Any,
        booking: Any,
        reconciler: Any,
        clock: Any,
        room: Any,
        guest: Caller,
        make_request: Callable[..., Any],
    ) -> None:
        reservation = booking.create(guest, make_request()).reservation
        clock.advance(301)
        sweeper.sweep()

        result = reconciler.reconcile(
            normalize_payload(
                {"referenceCode": "FT9", "transferAmount": 450000, "content": reservation.order_code}
            )
        )

        assert result.processing_result.value == "ignored"
        assert booking.get_reservation(reservation.reservation_id).paid_amount == 0
