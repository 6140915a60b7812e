"""Conversion between Reservation models and reservation table items."""

import datetime as dt
from typing import Any

from homestay.models import (
    BookingInterval,
    BookingKind,
    PaymentMethod,
    PaymentStatus,
    Reservation,
    ReservationStatus,
)
from homestay.utils.dates import from_iso, to_iso

RESERVATIONS_TABLE = "reservations"
RESERVATION_ID_INDEX = "reservation_id-index"
CONTACT_INDEX = "contact-index"
STATUS_INDEX = "status-index"
USER_INDEX = "user_id-index"


def reservation_key(reservation: Reservation) -> dict[str, Any]:
    return {"room_id": reservation.room_id, "reservation_id": reservation.reservation_id}


def item_to_interval(item: dict[str, Any]) -> BookingInterval:
    """Read just the occupied interval of a reservation item."""
    return BookingInterval(
        kind=BookingKind(item["kind"]),
        check_in=dt.date.fromisoformat(item["check_in"]),
        check_out=dt.date.fromisoformat(item["check_out"]),
        start_time=item.get("start_time"),
        end_time=item.get("end_time"),
    )


def item_to_reservation(item: dict[str, Any]) -> Reservation:
    """Convert DynamoDB item to Reservation model."""
    remainder = item.get("remainder_payment_method")
    canceled_at = item.get("canceled_at")
    return Reservation(
        reservation_id=int(item["reservation_id"]),
        room_id=int(item["room_id"]),
        user_id=int(item["user_id"]) if item.get("user_id") is not None else None,
        full_name=item["full_name"],
        phone=item["phone"],
        email=item["email"],
        guests=int(item.get("guests", 1)),
        note=item.get("note"),
        interval=item_to_interval(item),
        status=ReservationStatus(item["status"]),
        payment_method=PaymentMethod(item["payment_method"]),
        payment_status=PaymentStatus(item["payment_status"]),
        total_amount=int(item["total_amount"]),
        paid_amount=int(item.get("paid_amount", 0)),
        deposit_percent=int(item.get("deposit_percent", 0)),
        deposit_amount=int(item.get("deposit_amount", 0)),
        remainder_payment_method=PaymentMethod(remainder) if remainder else None,
        lookup_code=item["lookup_code"],
        order_code=item["order_code"],
        expiration=from_iso(item["expiration"]),
        created_at=from_iso(item["created_at"]),
        updated_at=from_iso(item["updated_at"]),
        canceled_at=from_iso(canceled_at) if canceled_at else None,
        cancel_reason=item.get("cancel_reason"),
    )


def reservation_to_item(reservation: Reservation) -> dict[str, Any]:
    """Convert Reservation model to a DynamoDB item (None fields omitted)."""
    interval = reservation.interval
    item: dict[str, Any] = {
        "room_id": reservation.room_id,
        "reservation_id": reservation.reservation_id,
        "user_id": reservation.user_id,
        "full_name": reservation.full_name,
        "phone": reservation.phone,
        "email": reservation.email,
        "guests": reservation.guests,
        "note": reservation.note,
        "kind": interval.kind.value,
        "check_in": interval.check_in.isoformat(),
        "check_out": interval.check_out.isoformat(),
        "start_time": interval.start_time,
        "end_time": interval.end_time,
        "status": reservation.status.value,
        "payment_method": reservation.payment_method.value,
        "payment_status": reservation.payment_status.value,
        "total_amount": reservation.total_amount,
        "paid_amount": reservation.paid_amount,
        "deposit_percent": reservation.deposit_percent,
        "deposit_amount": reservation.deposit_amount,
        "remainder_payment_method": (
            reservation.remainder_payment_method.value
            if reservation.remainder_payment_method
            else None
        ),
        "lookup_code": reservation.lookup_code,
        "order_code": reservation.order_code,
        "expiration": to_iso(reservation.expiration),
        "created_at": to_iso(reservation.created_at),
        "updated_at": to_iso(reservation.updated_at),
        "canceled_at": to_iso(reservation.canceled_at) if reservation.canceled_at else None,
        "cancel_reason": reservation.cancel_reason,
    }
    return {k: v for k, v in item.items() if v is not None}
