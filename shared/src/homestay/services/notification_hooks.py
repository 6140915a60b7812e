"""Outbound notification hooks.

Delivery (email, chat bot, spreadsheet export) lives outside the core. The
services call these hooks after their writes commit; a failing hook is logged
and never undoes or fails the operation that triggered it.
"""

from collections.abc import Callable
from typing import Any

from homestay.models import Reservation
from homestay.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationHooks:
    """Default hooks: log each event. Subclass to deliver notifications."""

    def reservation_created(self, reservation: Reservation) -> None:
        logger.info(
            "Reservation created: id=%s code=%s room=%s total=%s",
            reservation.reservation_id,
            reservation.lookup_code,
            reservation.room_id,
            reservation.total_amount,
        )

    def payment_confirmed(self, reservation: Reservation, amount: int) -> None:
        logger.info(
            "Payment confirmed: id=%s amount=%s paid=%s status=%s",
            reservation.reservation_id,
            amount,
            reservation.paid_amount,
            reservation.payment_status.value,
        )

    def reservation_canceled(self, reservation: Reservation) -> None:
        logger.info(
            "Reservation canceled: id=%s reason=%s",
            reservation.reservation_id,
            reservation.cancel_reason,
        )

    def reservation_synced(self, reservation: Reservation) -> None:
        """Called whenever a reservation's stored state changed."""
        logger.debug("Reservation changed: id=%s", reservation.reservation_id)


def dispatch(hook: Callable[..., Any], *args: Any) -> None:
    """Invoke a hook, logging instead of raising on failure."""
    try:
        hook(*args)
    except Exception:
        logger.exception("Notification hook %s failed", getattr(hook, "__name__", hook))
