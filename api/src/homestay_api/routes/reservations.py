"""Reservation endpoints for guests.

Provides REST endpoints for:
- Creating reservations (signed-in caller required)
- Looking up reservations by ID, lookup code, or phone + email
- Listing the signed-in caller's own reservations
- Fetching current transfer instructions (owner or staff)

The gateway passes the caller identity via x-user-id / x-user-admin headers.
"""

from fastapi import APIRouter, Depends, Query
from starlette.status import HTTP_201_CREATED

from homestay.models import (
    Caller,
    CreateReservationResult,
    ErrorCode,
    NotFoundError,
    Reservation,
    ReservationCreate,
    ValidationError,
)
from homestay.services.booking import BookingService
from homestay.services.expiration import ExpirationSweeper
from homestay.utils.logging import get_logger
from homestay_api.dependencies import get_booking_service, get_expiration_sweeper
from homestay_api.models import PaymentInstructionsResponse, ReservationListResponse
from homestay_api.security import get_caller

logger = get_logger(__name__)

router = APIRouter(tags=["reservations"])


def sweep_expired(sweeper: ExpirationSweeper) -> None:
    """Run an opportunistic expiration sweep before serving a read.

    A failed sweep is logged; the read proceeds with whatever is stored.
    """
    try:
        sweeper.sweep()
    except Exception:
        logger.exception("Opportunistic expiration sweep failed")


@router.post(
    "/reservations",
    summary="Create reservation",
    description="""
Reserve a room overnight (`check_in`/`check_out`) or by the hour
(`check_in` plus `start_time`/`end_time`).

**Requires a signed-in caller.**

Transfer bookings are held for a few minutes while the guest pays the
deposit (or the full amount with `deposit_percent: 0`); the response carries
the bank details, order code and QR link to pay with.
""",
    response_model=CreateReservationResult,
    status_code=HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid contact details or interval"},
        403: {"description": "Caller not signed in"},
        404: {"description": "Room not found"},
        409: {"description": "Interval overlaps an existing booking"},
    },
)
async def create_reservation(
    body: ReservationCreate,
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> CreateReservationResult:
    return service.create(caller, body)


@router.get(
    "/reservations/lookup",
    summary="Find reservations",
    description="Find a reservation by its lookup code, or the latest ones for a phone and email.",
    response_model=ReservationListResponse,
)
async def lookup_reservations(
    code: str | None = Query(default=None, examples=["NVH-7K2QXA"]),
    phone: str | None = Query(default=None),
    email: str | None = Query(default=None),
    service: BookingService = Depends(get_booking_service),
    sweeper: ExpirationSweeper = Depends(get_expiration_sweeper),
) -> ReservationListResponse:
    sweep_expired(sweeper)
    if code and code.strip():
        reservation = service.get_by_lookup_code(code)
        found = [reservation] if reservation else []
    elif phone and email:
        found = service.find_by_contact(phone, email)
    else:
        raise ValidationError(ErrorCode.INVALID_LOOKUP)
    return ReservationListResponse(reservations=found, total_count=len(found))


@router.get(
    "/reservations/mine",
    summary="List my reservations",
    description="The signed-in caller's reservations, newest first.",
    response_model=ReservationListResponse,
    responses={403: {"description": "Caller not signed in"}},
)
async def list_my_reservations(
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
    sweeper: ExpirationSweeper = Depends(get_expiration_sweeper),
) -> ReservationListResponse:
    caller.require_signed_in()
    sweep_expired(sweeper)
    found = service.list_for_user(caller)
    return ReservationListResponse(reservations=found, total_count=len(found))


@router.get(
    "/reservations/{reservation_id}",
    summary="Get reservation",
    response_model=Reservation,
    responses={404: {"description": "Reservation not found"}},
)
async def get_reservation(
    reservation_id: int,
    service: BookingService = Depends(get_booking_service),
) -> Reservation:
    return service.require_reservation(reservation_id)


@router.get(
    "/reservations/{reservation_id}/payment",
    summary="Get transfer instructions",
    description="Bank details and the amount currently due by transfer.",
    response_model=PaymentInstructionsResponse,
    responses={
        403: {"description": "Caller is neither the booking's owner nor staff"},
        404: {"description": "Reservation not found"},
    },
)
async def get_payment_instructions(
    reservation_id: int,
    caller: Caller = Depends(get_caller),
    service: BookingService = Depends(get_booking_service),
) -> PaymentInstructionsResponse:
    caller.require_signed_in()
    reservation = service.get_reservation(reservation_id)
    if reservation is None:
        raise NotFoundError(
            ErrorCode.RESERVATION_NOT_FOUND, {"reservation_id": str(reservation_id)}
        )
    caller.require_owner(reservation.user_id)
    return PaymentInstructionsResponse(
        reservation_id=reservation_id,
        payment=service.payment_instructions(reservation),
    )
