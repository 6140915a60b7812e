"""Cancels pending transfer reservations whose payment window has lapsed."""

import datetime as dt
from collections.abc import Callable
from typing import TYPE_CHECKING

from boto3.dynamodb.conditions import Attr, Key

from homestay.models import PaymentMethod, PaymentStatus, ReservationStatus
from homestay.utils.dates import to_iso, utc_now
from homestay.utils.logging import get_logger

from .notification_hooks import NotificationHooks, dispatch
from .reservation_items import (
    RESERVATIONS_TABLE,
    STATUS_INDEX,
    item_to_reservation,
)

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

EXPIRED_REASON = "expired_unpaid"


class ExpirationSweeper:
    """Sweeps expired, unpaid transfer reservations to canceled.

    Each cancel re-asserts the expiry predicate in its condition, so sweeps
    may run concurrently or repeatedly without double-cancelling or touching
    a reservation that got paid in the meantime.
    """

    def __init__(
        self,
        db: "DynamoDBService",
        hooks: NotificationHooks | None = None,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        self.db = db
        self.hooks = hooks or NotificationHooks()
        self.clock = clock

    def sweep(self) -> int:
        """Cancel every expired unpaid pending transfer reservation.

        Returns:
            Number of reservations this call canceled
        """
        now = to_iso(self.clock())
        candidates = self.db.query(
            RESERVATIONS_TABLE,
            Key("status").eq(ReservationStatus.PENDING.value) & Key("expiration").lt(now),
            index_name=STATUS_INDEX,
            filter_expression=Attr("payment_method").eq(PaymentMethod.TRANSFER.value)
            & Attr("payment_status").ne(PaymentStatus.PAID.value),
        )

        canceled = 0
        for item in candidates:
            attrs = self.db.update_item(
                RESERVATIONS_TABLE,
                {"room_id": item["room_id"], "reservation_id": item["reservation_id"]},
                "SET #status = :canceled, canceled_at = :now, updated_at = :now, "
                "cancel_reason = :reason",
                {
                    ":canceled": ReservationStatus.CANCELED.value,
                    ":pending": ReservationStatus.PENDING.value,
                    ":paid": PaymentStatus.PAID.value,
                    ":transfer": PaymentMethod.TRANSFER.value,
                    ":now": now,
                    ":reason": EXPIRED_REASON,
                },
                expression_attribute_names={"#status": "status"},
                condition_expression=(
                    "#status = :pending AND payment_method = :transfer "
                    "AND payment_status <> :paid AND expiration < :now"
                ),
            )
            if attrs is None:
                continue
            canceled += 1
            reservation = item_to_reservation(attrs)
            logger.info(
                "Reservation %s expired unpaid (deadline %s)",
                reservation.reservation_id,
                to_iso(reservation.expiration),
            )
            dispatch(self.hooks.reservation_canceled, reservation)
            dispatch(self.hooks.reservation_synced, reservation)

        if canceled:
            logger.info("Expiration sweep canceled %s reservation(s)", canceled)
        return canceled
