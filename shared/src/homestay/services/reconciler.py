"""Idempotent reconciliation of payment notifications.

The ledger row for ``(provider, transaction_id)`` is written with
``attribute_not_exists`` in the same transaction that adds the funds to the
reservation. A redelivered notification fails that condition and is reported
as a duplicate without touching the reservation.

A notification that keeps losing races against other writes to its
reservation is recorded as ``pending``. ``retry_pending`` (and any redelivery)
applies it later by flipping that row to ``applied`` in the same transaction
as the funds update.
"""

import datetime as dt
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from homestay.models import (
    LedgerEntry,
    PaymentMethod,
    PaymentNotification,
    PaymentStatus,
    ProcessingResult,
    ReconciliationResult,
    Reservation,
    ReservationStatus,
    settle_funds,
)
from homestay.utils.dates import from_iso, to_iso, utc_now
from homestay.utils.logging import get_logger, log_payment_operation, log_webhook_event

from .notification_hooks import NotificationHooks, dispatch
from .reference_extractors import get_extractor
from .reservation_items import RESERVATIONS_TABLE, reservation_key
from .sepay import is_incoming_success

if TYPE_CHECKING:
    from homestay.config import BookingSettings

    from .booking import BookingService
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

MAX_APPLY_ATTEMPTS = 5


class PaymentReconciler:
    """Matches notifications to reservations and applies their funds once."""

    LEDGER_TABLE = "payment-ledger"
    RESULT_INDEX = "processing_result-index"

    def __init__(
        self,
        db: "DynamoDBService",
        bookings: "BookingService",
        settings: "BookingSettings",
        hooks: NotificationHooks | None = None,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        self.db = db
        self.bookings = bookings
        self.settings = settings
        self.hooks = hooks or NotificationHooks()
        self.clock = clock

    def reconcile(self, notification: PaymentNotification) -> ReconciliationResult:
        """Record a notification and apply its funds if it pays a reservation.

        Args:
            notification: Normalized provider notification

        Returns:
            ReconciliationResult describing what happened
        """
        existing = self.get_ledger_entry(notification.provider, notification.transaction_id)
        if existing is not None:
            if existing.processing_result == ProcessingResult.PENDING:
                return self._apply(notification, recorded=True)
            return self._finish(notification, ProcessingResult.DUPLICATE)

        if not is_incoming_success(notification):
            return self._record_only(notification, ProcessingResult.IGNORED)

        return self._apply(notification, recorded=False)

    def retry_pending(self) -> list[ReconciliationResult]:
        """Re-apply every notification recorded as pending, oldest first.

        Returns:
            One result per pending ledger row
        """
        items = self.db.query_by_gsi(
            self.LEDGER_TABLE,
            self.RESULT_INDEX,
            "processing_result",
            ProcessingResult.PENDING.value,
        )
        results: list[ReconciliationResult] = []
        for item in items:
            entry = self._item_to_ledger_entry(item)
            notification = PaymentNotification(
                provider=entry.provider,
                transaction_id=entry.transaction_id,
                amount=entry.amount,
                narrative=entry.narrative,
                direction=entry.direction,
                status=entry.status,
            )
            results.append(self._apply(notification, recorded=True))
        if results:
            logger.info(
                "Retried %s pending payments (%s applied)",
                len(results),
                sum(r.processing_result == ProcessingResult.APPLIED for r in results),
            )
        return results

    def get_ledger_entry(self, provider: str, transaction_id: str) -> LedgerEntry | None:
        item = self.db.get_item(
            self.LEDGER_TABLE,
            {"provider": provider, "transaction_id": transaction_id},
            consistent_read=True,
        )
        return self._item_to_ledger_entry(item) if item else None

    def _apply(self, notification: PaymentNotification, recorded: bool) -> ReconciliationResult:
        """Add the notification's funds to its reservation.

        ``recorded`` is True when a pending ledger row already exists for the
        notification; it is then updated instead of inserted.
        """
        reservation_id: int | None = None
        for attempt in range(1, MAX_APPLY_ATTEMPTS + 1):
            reservation = self._match(notification)
            if reservation is None:
                return self._settle_without_funds(
                    notification, ProcessingResult.UNMATCHED, None, recorded
                )
            reservation_id = reservation.reservation_id
            if not self._accepts_funds(reservation):
                return self._settle_without_funds(
                    notification, ProcessingResult.IGNORED, reservation_id, recorded
                )

            new_paid = reservation.paid_amount + notification.amount
            payment_status, status = settle_funds(reservation, new_paid)
            ops = [
                self._ledger_op(notification, reservation_id, recorded),
                self._reservation_op(reservation, new_paid, payment_status, status),
            ]
            if self.db.transact_write(ops):
                return self._applied(notification, reservation, new_paid, payment_status, status)

            entry = self.get_ledger_entry(notification.provider, notification.transaction_id)
            if entry is not None and entry.processing_result != ProcessingResult.PENDING:
                return self._finish(notification, ProcessingResult.DUPLICATE)
            # Another delivery may have parked the row as pending meanwhile.
            recorded = entry is not None
            logger.info(
                "Reservation %s changed while applying %s (attempt %s), retrying",
                reservation_id,
                notification.transaction_id,
                attempt,
            )

        logger.warning(
            "Could not apply payment %s after %s attempts, leaving it pending",
            notification.transaction_id,
            MAX_APPLY_ATTEMPTS,
        )
        if recorded:
            return self._finish(notification, ProcessingResult.PENDING, reservation_id)
        return self._record_only(notification, ProcessingResult.PENDING, reservation_id)

    # Matching

    def _match(self, notification: PaymentNotification) -> Reservation | None:
        extractor = get_extractor(notification.provider, self.settings)
        for reference in extractor.extract(notification.narrative):
            if reference.reservation_id is not None:
                reservation = self.bookings.get_reservation(reference.reservation_id)
            elif reference.lookup_code:
                reservation = self.bookings.get_by_lookup_code(reference.lookup_code)
            else:
                reservation = None
            if reservation is not None:
                return reservation
        return None

    @staticmethod
    def _accepts_funds(reservation: Reservation) -> bool:
        return (
            reservation.payment_method == PaymentMethod.TRANSFER
            and reservation.payment_status != PaymentStatus.PAID
            and reservation.is_active
        )

    # Writes

    def _ledger_op(
        self,
        notification: PaymentNotification,
        reservation_id: int,
        recorded: bool,
    ) -> dict[str, Any]:
        if not recorded:
            entry = self._ledger_entry(notification, ProcessingResult.APPLIED, reservation_id)
            return self.db.put_op(
                self.LEDGER_TABLE,
                self._ledger_entry_to_item(entry),
                condition_expression="attribute_not_exists(transaction_id)",
            )
        return self.db.update_op(
            self.LEDGER_TABLE,
            self._ledger_key(notification),
            "SET processing_result = :result, reservation_id = :rid",
            {
                ":result": ProcessingResult.APPLIED.value,
                ":rid": reservation_id,
                ":pending": ProcessingResult.PENDING.value,
            },
            condition_expression="processing_result = :pending",
        )

    def _reservation_op(
        self,
        reservation: Reservation,
        new_paid: int,
        payment_status: PaymentStatus,
        status: ReservationStatus,
    ) -> dict[str, Any]:
        return self.db.update_op(
            RESERVATIONS_TABLE,
            reservation_key(reservation),
            "SET paid_amount = :paid, payment_status = :pstatus, "
            "#status = :status, updated_at = :now",
            {
                ":paid": new_paid,
                ":pstatus": payment_status.value,
                ":status": status.value,
                ":now": to_iso(self.clock()),
                ":old_paid": reservation.paid_amount,
                ":old_status": reservation.status.value,
            },
            expression_attribute_names={"#status": "status"},
            condition_expression="paid_amount = :old_paid AND #status = :old_status",
        )

    def _record_only(
        self,
        notification: PaymentNotification,
        result: ProcessingResult,
        reservation_id: int | None = None,
    ) -> ReconciliationResult:
        entry = self._ledger_entry(notification, result, reservation_id)
        inserted = self.db.put_item(
            self.LEDGER_TABLE,
            self._ledger_entry_to_item(entry),
            condition_expression="attribute_not_exists(transaction_id)",
        )
        if not inserted:
            return self._finish(notification, ProcessingResult.DUPLICATE)
        return self._finish(notification, result, reservation_id)

    def _settle_without_funds(
        self,
        notification: PaymentNotification,
        result: ProcessingResult,
        reservation_id: int | None,
        recorded: bool,
    ) -> ReconciliationResult:
        """Record an outcome that moves no money."""
        if not recorded:
            return self._record_only(notification, result, reservation_id)

        expression = "SET processing_result = :result"
        values: dict[str, Any] = {
            ":result": result.value,
            ":pending": ProcessingResult.PENDING.value,
        }
        if reservation_id is not None:
            expression += ", reservation_id = :rid"
            values[":rid"] = reservation_id
        attrs = self.db.update_item(
            self.LEDGER_TABLE,
            self._ledger_key(notification),
            expression,
            values,
            condition_expression="processing_result = :pending",
        )
        if attrs is None:
            return self._finish(notification, ProcessingResult.DUPLICATE)
        return self._finish(notification, result, reservation_id)

    def _applied(
        self,
        notification: PaymentNotification,
        before: Reservation,
        new_paid: int,
        payment_status: PaymentStatus,
        status: ReservationStatus,
    ) -> ReconciliationResult:
        reservation = before.model_copy(
            update={"paid_amount": new_paid, "payment_status": payment_status, "status": status}
        )
        log_payment_operation(
            logger,
            "apply_transfer",
            reservation_id=reservation.reservation_id,
            amount=notification.amount,
            paid_amount=new_paid,
            payment_status=payment_status.value,
            transaction_id=notification.transaction_id,
        )
        if payment_status != before.payment_status:
            dispatch(self.hooks.payment_confirmed, reservation, notification.amount)
        dispatch(self.hooks.reservation_synced, reservation)

        result = self._finish(
            notification, ProcessingResult.APPLIED, reservation.reservation_id
        )
        return result.model_copy(
            update={
                "paid_amount": new_paid,
                "payment_status": payment_status,
                "confirmed": before.status != status and status == ReservationStatus.CONFIRMED,
            }
        )

    def _finish(
        self,
        notification: PaymentNotification,
        result: ProcessingResult,
        reservation_id: int | None = None,
    ) -> ReconciliationResult:
        log_webhook_event(
            logger,
            notification.provider,
            notification.transaction_id,
            result=result.value,
            reservation_id=reservation_id,
            amount=notification.amount,
        )
        return ReconciliationResult(
            processing_result=result,
            transaction_id=notification.transaction_id,
            reservation_id=reservation_id,
        )

    # Ledger items

    def _ledger_entry(
        self,
        notification: PaymentNotification,
        result: ProcessingResult,
        reservation_id: int | None,
    ) -> LedgerEntry:
        return LedgerEntry(
            provider=notification.provider,
            transaction_id=notification.transaction_id,
            amount=notification.amount,
            narrative=notification.narrative,
            direction=notification.direction,
            status=notification.status,
            received_at=self.clock(),
            reservation_id=reservation_id,
            processing_result=result,
        )

    @staticmethod
    def _ledger_key(notification: PaymentNotification) -> dict[str, Any]:
        return {"provider": notification.provider, "transaction_id": notification.transaction_id}

    def _ledger_entry_to_item(self, entry: LedgerEntry) -> dict[str, Any]:
        item: dict[str, Any] = {
            "provider": entry.provider,
            "transaction_id": entry.transaction_id,
            "amount": entry.amount,
            "narrative": entry.narrative,
            "direction": entry.direction,
            "status": entry.status,
            "received_at": to_iso(entry.received_at),
            "processing_result": entry.processing_result.value,
        }
        if entry.reservation_id is not None:
            item["reservation_id"] = entry.reservation_id
        return item

    def _item_to_ledger_entry(self, item: dict[str, Any]) -> LedgerEntry:
        """Convert DynamoDB item to LedgerEntry model."""
        reservation_id = item.get("reservation_id")
        return LedgerEntry(
            provider=item["provider"],
            transaction_id=item["transaction_id"],
            amount=int(item["amount"]),
            narrative=item.get("narrative", ""),
            direction=item.get("direction", ""),
            status=item.get("status", ""),
            received_at=from_iso(item["received_at"]),
            reservation_id=int(reservation_id) if reservation_id is not None else None,
            processing_result=ProcessingResult(item["processing_result"]),
        )
