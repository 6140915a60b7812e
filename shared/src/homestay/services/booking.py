"""Reservation lifecycle: creation, lookups and staff operations.

Creation is serialized per room with an optimistic lock: the transaction
that inserts a reservation also bumps the room's ``version`` on the
condition that it still holds the value read before the conflict check. Two
concurrent creates for the same room cannot both commit; the loser re-runs
the conflict check against the winner's row.
"""

import datetime as dt
import secrets
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from boto3.dynamodb.conditions import Attr, Key

from homestay.models import (
    Caller,
    ConflictError,
    CreateReservationResult,
    ErrorCode,
    ForbiddenError,
    NotFoundError,
    PaymentInstructions,
    PaymentMethod,
    PaymentStatus,
    Reservation,
    ReservationCreate,
    ReservationStatus,
    StateError,
    ValidationError,
    ensure_transition,
)
from homestay.utils.dates import to_iso, utc_now
from homestay.utils.logging import get_logger, log_payment_operation

from .availability import parse_interval, validate_interval
from .notification_hooks import NotificationHooks, dispatch
from .reservation_items import (
    CONTACT_INDEX,
    RESERVATION_ID_INDEX,
    RESERVATIONS_TABLE,
    STATUS_INDEX,
    USER_INDEX,
    item_to_reservation,
    reservation_key,
    reservation_to_item,
)
from .sepay import build_qr_url

if TYPE_CHECKING:
    from homestay.config import BookingSettings

    from .availability import AvailabilityService
    from .dynamodb import DynamoDBService
    from .pricing import PricingService
    from .rooms import RoomService

logger = get_logger(__name__)

LOOKUP_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
LOOKUP_CODE_LENGTH = 6

NEXT_STEP_TRANSFER = "PAY_WITH_TRANSFER"
NEXT_STEP_WAIT_ADMIN = "WAIT_ADMIN_CONFIRM"

SEARCH_LIMIT = 200


def _matches_search(reservation: Reservation, needle: str) -> bool:
    if needle.isascii() and needle.isdigit() and int(needle) == reservation.reservation_id:
        return True
    lowered = needle.lower()
    return (
        lowered in reservation.lookup_code.lower()
        or lowered in reservation.full_name.lower()
        or needle in reservation.phone
    )


class BookingService:
    """Service for the reservation lifecycle."""

    LOOKUP_TABLE = "lookup-codes"

    def __init__(
        self,
        db: "DynamoDBService",
        rooms: "RoomService",
        pricing: "PricingService",
        availability: "AvailabilityService",
        settings: "BookingSettings",
        hooks: NotificationHooks | None = None,
        clock: Callable[[], dt.datetime] = utc_now,
    ) -> None:
        """Initialize booking service.

        Args:
            db: DynamoDB service instance
            rooms: Room catalogue
            pricing: Pricing and deposit calculation
            availability: Conflict detection
            settings: Booking configuration
            hooks: Notification hooks (logging defaults when omitted)
            clock: Returns the current aware datetime
        """
        self.db = db
        self.rooms = rooms
        self.pricing = pricing
        self.availability = availability
        self.settings = settings
        self.hooks = hooks or NotificationHooks()
        self.clock = clock

    # =========================================================================
    # Creation
    # =========================================================================

    def create(self, caller: Caller, request: ReservationCreate) -> CreateReservationResult:
        """Validate, price and atomically insert a reservation.

        Args:
            caller: Who is booking; must be signed in
            request: Room, guest contact, interval and payment choice

        Returns:
            The pending reservation plus transfer instructions when paying by transfer

        Raises:
            ForbiddenError: If the caller is anonymous
            ValidationError: On bad contact fields or interval
            NotFoundError: If the room does not exist
            ConflictError: If the interval overlaps an active reservation
        """
        if caller.user_id is None:
            raise ForbiddenError(ErrorCode.AUTH_REQUIRED)

        full_name, phone, email = self._validate_contact(request)
        if request.guests < 1:
            raise ValidationError(ErrorCode.INVALID_GUESTS)

        now = self.clock()
        interval = parse_interval(
            request.kind,
            request.check_in,
            request.check_out,
            request.start_time,
            request.end_time,
        )
        validate_interval(interval, now, self.settings)

        room = self.rooms.require_room(request.room_id)
        quote = self.pricing.quote(room, interval)
        deposit = self.pricing.compute_deposit(
            quote.total_amount, request.payment_method, request.deposit_percent
        )
        remainder = None
        if request.payment_method == PaymentMethod.TRANSFER:
            remainder = request.remainder_payment_method or PaymentMethod.CASH

        reservation_id = self.db.next_sequence("reservation_id")
        lookup_code = self.generate_lookup_code()

        for attempt in range(1, self.settings.create_max_attempts + 1):
            version = self.rooms.require_room(room.room_id, consistent_read=True).version
            conflicts = self.availability.find_conflicts(room.room_id, interval)
            if conflicts:
                raise ConflictError(
                    ErrorCode.DATES_UNAVAILABLE,
                    {
                        "room_id": str(room.room_id),
                        "conflicting_reservations": ",".join(
                            str(r.reservation_id) for r in conflicts
                        ),
                    },
                )

            now = self.clock()
            reservation = Reservation(
                reservation_id=reservation_id,
                room_id=room.room_id,
                user_id=caller.user_id,
                full_name=full_name,
                phone=phone,
                email=email,
                guests=request.guests,
                note=(request.note or "").strip() or None,
                interval=interval,
                status=ReservationStatus.PENDING,
                payment_method=request.payment_method,
                payment_status=PaymentStatus.UNPAID,
                total_amount=quote.total_amount,
                paid_amount=0,
                deposit_percent=deposit.percent,
                deposit_amount=deposit.amount,
                remainder_payment_method=remainder,
                lookup_code=lookup_code,
                order_code=f"{self.settings.order_prefix}-{reservation_id}-{lookup_code}",
                expiration=now + dt.timedelta(seconds=self.settings.reservation_ttl_seconds),
                created_at=now,
                updated_at=now,
            )

            if self.db.transact_write(self._create_ops(reservation, version)):
                break

            if self._lookup_code_taken(lookup_code):
                logger.info("Lookup code collision on %s, regenerating", lookup_code)
                lookup_code = self.generate_lookup_code()
            else:
                logger.info(
                    "Room %s changed during create (attempt %s), rechecking",
                    room.room_id,
                    attempt,
                )
        else:
            raise ConflictError(ErrorCode.CONCURRENT_UPDATE, {"room_id": str(room.room_id)})

        logger.info(
            "Reservation %s created for room %s (%s, total=%s, method=%s)",
            reservation.reservation_id,
            reservation.room_id,
            reservation.kind.value,
            reservation.total_amount,
            reservation.payment_method.value,
        )
        dispatch(self.hooks.reservation_created, reservation)
        dispatch(self.hooks.reservation_synced, reservation)

        if reservation.payment_method == PaymentMethod.TRANSFER:
            return CreateReservationResult(
                reservation=reservation,
                payment=self.payment_instructions(reservation),
                next_step=NEXT_STEP_TRANSFER,
            )
        return CreateReservationResult(reservation=reservation, next_step=NEXT_STEP_WAIT_ADMIN)

    def generate_lookup_code(self) -> str:
        """Random ``<PREFIX>-XXXXXX`` code from an unambiguous alphabet."""
        body = "".join(secrets.choice(LOOKUP_CODE_ALPHABET) for _ in range(LOOKUP_CODE_LENGTH))
        return f"{self.settings.lookup_code_prefix}-{body}"

    def _create_ops(self, reservation: Reservation, room_version: int) -> list[dict[str, Any]]:
        return [
            self.db.put_op(
                RESERVATIONS_TABLE,
                reservation_to_item(reservation),
                condition_expression="attribute_not_exists(reservation_id)",
            ),
            self.db.put_op(
                self.LOOKUP_TABLE,
                {
                    "lookup_code": reservation.lookup_code,
                    "room_id": reservation.room_id,
                    "reservation_id": reservation.reservation_id,
                },
                condition_expression="attribute_not_exists(lookup_code)",
            ),
            self.db.update_op(
                self.rooms.TABLE,
                {"room_id": reservation.room_id},
                "SET #v = :next",
                {":current": room_version, ":next": room_version + 1},
                expression_attribute_names={"#v": "version"},
                condition_expression="#v = :current",
            ),
        ]

    def _lookup_code_taken(self, lookup_code: str) -> bool:
        return (
            self.db.get_item(
                self.LOOKUP_TABLE, {"lookup_code": lookup_code}, consistent_read=True
            )
            is not None
        )

    def _validate_contact(self, request: ReservationCreate) -> tuple[str, str, str]:
        full_name = request.full_name.strip()
        phone = request.phone.strip()
        email = request.email.strip().lower()
        if not full_name:
            raise ValidationError(ErrorCode.MISSING_FULL_NAME)
        if not phone:
            raise ValidationError(ErrorCode.MISSING_PHONE)
        if not email:
            raise ValidationError(ErrorCode.MISSING_EMAIL)
        return full_name, phone, email

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_reservation(self, reservation_id: int) -> Reservation | None:
        """Get a reservation by ID with a consistent read of the base row."""
        key = self._key_for_id(reservation_id)
        if key is None:
            return None
        item = self.db.get_item(RESERVATIONS_TABLE, key, consistent_read=True)
        return item_to_reservation(item) if item else None

    def require_reservation(self, reservation_id: int) -> Reservation:
        reservation = self.get_reservation(reservation_id)
        if reservation is None:
            raise NotFoundError(
                ErrorCode.RESERVATION_NOT_FOUND, {"reservation_id": str(reservation_id)}
            )
        return reservation

    def get_by_lookup_code(self, lookup_code: str) -> Reservation | None:
        """Get a reservation by its public code (case-insensitive)."""
        code = lookup_code.strip().upper()
        if not code:
            return None
        guard = self.db.get_item(self.LOOKUP_TABLE, {"lookup_code": code})
        if not guard:
            return None
        item = self.db.get_item(
            RESERVATIONS_TABLE,
            {"room_id": int(guard["room_id"]), "reservation_id": int(guard["reservation_id"])},
            consistent_read=True,
        )
        return item_to_reservation(item) if item else None

    def find_by_contact(
        self, phone: str, email: str, limit: int | None = None
    ) -> list[Reservation]:
        """Newest reservations matching both phone and email.

        Args:
            phone: Guest phone number
            email: Guest email (case-insensitive)
            limit: Max results; defaults to the configured contact lookup limit

        Returns:
            Reservations, newest first
        """
        phone = phone.strip()
        email = email.strip().lower()
        if not phone or not email:
            raise ValidationError(ErrorCode.INVALID_LOOKUP)
        items = self.db.query_by_gsi(
            RESERVATIONS_TABLE,
            CONTACT_INDEX,
            "phone",
            phone,
            filter_expression=Attr("email").eq(email),
            limit=limit or self.settings.contact_lookup_limit,
            scan_index_forward=False,
        )
        return [item_to_reservation(item) for item in items]

    def list_for_room(self, room_id: int) -> list[Reservation]:
        items = self.db.query(RESERVATIONS_TABLE, Key("room_id").eq(room_id))
        return [item_to_reservation(item) for item in items]

    def list_for_user(self, caller: Caller) -> list[Reservation]:
        """The signed-in caller's own reservations, newest first.

        Raises:
            ForbiddenError: If the caller is anonymous
        """
        user_id = caller.require_signed_in()
        items = self.db.query_by_gsi(
            RESERVATIONS_TABLE,
            USER_INDEX,
            "user_id",
            user_id,
            scan_index_forward=False,
        )
        return [item_to_reservation(item) for item in items]

    def search(
        self,
        caller: Caller,
        query: str | None = None,
        status: ReservationStatus | None = None,
        limit: int = SEARCH_LIMIT,
    ) -> list[Reservation]:
        """Staff search across every room, newest first.

        Args:
            caller: Staff caller
            query: Matches the reservation ID exactly, or part of the lookup
                code, guest name (both case-insensitive) or phone
            status: Only reservations in this status
            limit: Max results

        Raises:
            ForbiddenError: If the caller is not staff
        """
        caller.require_admin()
        if status is not None:
            items = self.db.query_by_gsi(RESERVATIONS_TABLE, STATUS_INDEX, "status", status.value)
        else:
            items = self.db.scan(RESERVATIONS_TABLE)

        found = [item_to_reservation(item) for item in items]
        needle = (query or "").strip()
        if needle:
            found = [r for r in found if _matches_search(r, needle)]
        found.sort(key=lambda r: r.reservation_id, reverse=True)
        return found[:limit]

    def _key_for_id(self, reservation_id: int) -> dict[str, Any] | None:
        items = self.db.query_by_gsi(
            RESERVATIONS_TABLE, RESERVATION_ID_INDEX, "reservation_id", reservation_id
        )
        if not items:
            return None
        return {"room_id": int(items[0]["room_id"]), "reservation_id": reservation_id}

    def payment_instructions(self, reservation: Reservation) -> PaymentInstructions:
        """Transfer instructions for what is due now.

        Unpaid bookings owe the rest of the deposit (or of the total when
        there is none). After that, the remainder is due by transfer only if
        the guest chose to settle it by transfer. Cash and canceled bookings
        owe nothing by transfer.
        """
        if (
            reservation.payment_method == PaymentMethod.CASH
            or reservation.status == ReservationStatus.CANCELED
        ):
            amount_due = 0
        elif reservation.payment_status == PaymentStatus.UNPAID:
            amount_due = max(0, reservation.required_funds - reservation.paid_amount)
        elif (
            reservation.payment_status == PaymentStatus.DEPOSIT_PAID
            and reservation.remainder_payment_method == PaymentMethod.TRANSFER
        ):
            amount_due = max(0, reservation.total_amount - reservation.paid_amount)
        else:
            amount_due = 0

        bank = self.settings.bank
        qr_url = None
        if amount_due > 0 and bank.account_number:
            qr_url = build_qr_url(
                self.settings.qr_url_template, bank, amount_due, reservation.order_code
            )
        return PaymentInstructions(
            bank_name=bank.bank_name,
            account_number=bank.account_number,
            account_name=bank.account_name,
            amount_due=amount_due,
            total_amount=reservation.total_amount,
            deposit_percent=reservation.deposit_percent,
            deposit_amount=reservation.deposit_amount,
            paid_amount=reservation.paid_amount,
            remainder_payment_method=reservation.remainder_payment_method,
            order_code=reservation.order_code,
            qr_url=qr_url,
            expires_at=reservation.expiration,
        )

    # =========================================================================
    # Staff operations
    # =========================================================================

    def confirm(self, caller: Caller, reservation_id: int) -> Reservation:
        """Staff confirmation of a pending reservation.

        Transfer bookings need funds covering the deposit (or the total when
        there is no deposit). Confirming an already confirmed booking is a no-op.

        Raises:
            ForbiddenError: If the caller is not staff
            StateError: If the booking is canceled or short of funds
        """
        caller.require_admin()
        reservation = self.require_reservation(reservation_id)
        if reservation.status == ReservationStatus.CONFIRMED:
            return reservation
        ensure_transition(reservation.status, ReservationStatus.CONFIRMED)
        if (
            reservation.payment_method == PaymentMethod.TRANSFER
            and reservation.paid_amount < reservation.required_funds
        ):
            raise StateError(
                ErrorCode.INSUFFICIENT_FUNDS,
                {
                    "paid_amount": str(reservation.paid_amount),
                    "required": str(reservation.required_funds),
                },
            )
        updated = self._write_changes(
            reservation,
            {"status": ReservationStatus.CONFIRMED.value},
        )
        logger.info("Reservation %s confirmed by user %s", reservation_id, caller.user_id)
        dispatch(self.hooks.reservation_synced, updated)
        return updated

    def mark_cash_paid(
        self, caller: Caller, reservation_id: int, paid_amount: int | None = None
    ) -> Reservation:
        """Staff records cash received; the booking becomes paid and confirmed.

        Args:
            caller: Staff caller
            reservation_id: Cash reservation
            paid_amount: Amount collected; defaults to the total. Never lowers
                the amount already recorded.

        Raises:
            ForbiddenError: If the caller is not staff
            StateError: If the booking pays by transfer or is canceled
        """
        caller.require_admin()
        reservation = self.require_reservation(reservation_id)
        if reservation.payment_method != PaymentMethod.CASH:
            raise StateError(
                ErrorCode.NOT_CASH_RESERVATION, {"reservation_id": str(reservation_id)}
            )
        if reservation.status == ReservationStatus.CANCELED:
            raise StateError(
                ErrorCode.INVALID_TRANSITION,
                {"from": ReservationStatus.CANCELED.value, "to": PaymentStatus.PAID.value},
            )

        collected = reservation.total_amount if paid_amount is None else paid_amount
        new_paid = max(reservation.paid_amount, collected)
        status = reservation.status
        if status == ReservationStatus.PENDING:
            status = ReservationStatus.CONFIRMED
        updated = self._write_changes(
            reservation,
            {
                "paid_amount": new_paid,
                "payment_status": PaymentStatus.PAID.value,
                "status": status.value,
            },
        )
        log_payment_operation(
            logger,
            "mark_cash_paid",
            reservation_id=reservation_id,
            amount=new_paid - reservation.paid_amount,
            paid_amount=new_paid,
            payment_status=PaymentStatus.PAID.value,
            staff_user_id=caller.user_id,
        )
        dispatch(self.hooks.payment_confirmed, updated, new_paid - reservation.paid_amount)
        dispatch(self.hooks.reservation_synced, updated)
        return updated

    def cancel(
        self,
        caller: Caller,
        reservation_id: int,
        reason: str | None = None,
        override: bool = False,
    ) -> Reservation:
        """Staff cancellation.

        Cancelling a canceled reservation returns it unchanged. A transfer
        booking that has received funds is only canceled with ``override``.

        Raises:
            ForbiddenError: If the caller is not staff
            StateError: If transfer funds exist and override is not set
        """
        caller.require_admin()
        reservation = self.require_reservation(reservation_id)
        if reservation.status == ReservationStatus.CANCELED:
            return reservation
        if (
            reservation.payment_method == PaymentMethod.TRANSFER
            and reservation.paid_amount > 0
            and not override
        ):
            raise StateError(
                ErrorCode.FUNDS_ALREADY_RECEIVED,
                {"paid_amount": str(reservation.paid_amount)},
            )
        ensure_transition(reservation.status, ReservationStatus.CANCELED)

        now = self.clock()
        updated = self._write_changes(
            reservation,
            {
                "status": ReservationStatus.CANCELED.value,
                "canceled_at": to_iso(now),
                "cancel_reason": (reason or "").strip() or "canceled_by_staff",
            },
        )
        logger.info(
            "Reservation %s canceled by user %s (override=%s)",
            reservation_id,
            caller.user_id,
            override,
        )
        dispatch(self.hooks.reservation_canceled, updated)
        dispatch(self.hooks.reservation_synced, updated)
        return updated

    def _write_changes(self, reservation: Reservation, changes: dict[str, Any]) -> Reservation:
        """Apply changes if the row still has the status and paid amount we read.

        Raises:
            ConflictError: If the row changed underneath us
        """
        changes = {**changes, "updated_at": to_iso(self.clock())}
        names = {f"#f{i}": name for i, name in enumerate(changes)}
        values: dict[str, Any] = {f":v{i}": value for i, value in enumerate(changes.values())}
        values[":expected_status"] = reservation.status.value
        values[":expected_paid"] = reservation.paid_amount
        names["#status"] = "status"
        attrs = self.db.update_item(
            RESERVATIONS_TABLE,
            reservation_key(reservation),
            "SET " + ", ".join(f"#f{i} = :v{i}" for i in range(len(changes))),
            values,
            expression_attribute_names=names,
            condition_expression="#status = :expected_status AND paid_amount = :expected_paid",
        )
        if attrs is None:
            raise ConflictError(
                ErrorCode.CONCURRENT_UPDATE, {"reservation_id": str(reservation.reservation_id)}
            )
        return item_to_reservation(attrs)
