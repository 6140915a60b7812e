"""Staff endpoints.

All routes require ``x-user-admin: true`` from the gateway.
"""

from fastapi import APIRouter, Depends, Query
from starlette.status import HTTP_201_CREATED

from homestay.models import (
    Caller,
    DayPrice,
    ProcessingResult,
    Reservation,
    ReservationStatus,
    Room,
    RoomCreate,
)
from homestay.services.booking import BookingService
from homestay.services.expiration import ExpirationSweeper
from homestay.services.pricing import PricingService
from homestay.services.reconciler import PaymentReconciler
from homestay.services.rooms import RoomService
from homestay_api.dependencies import (
    get_booking_service,
    get_expiration_sweeper,
    get_payment_reconciler,
    get_pricing_service,
    get_room_service,
)
from homestay_api.models import (
    CancelRequest,
    CashPaymentRequest,
    DayPriceListResponse,
    DayPriceUpdateRequest,
    PaymentRetryResponse,
    ReservationListResponse,
    SweepResponse,
)
from homestay_api.routes.reservations import sweep_expired
from homestay_api.security import require_admin

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={403: {"description": "Staff privileges required"}},
)


@router.post(
    "/rooms",
    summary="Add room",
    response_model=Room,
    status_code=HTTP_201_CREATED,
)
async def create_room(
    body: RoomCreate,
    caller: Caller = Depends(require_admin),
    rooms: RoomService = Depends(get_room_service),
) -> Room:
    return rooms.create_room(body)


@router.get(
    "/rooms/{room_id}/reservations",
    summary="List room reservations",
    response_model=ReservationListResponse,
)
async def list_room_reservations(
    room_id: int,
    caller: Caller = Depends(require_admin),
    rooms: RoomService = Depends(get_room_service),
    service: BookingService = Depends(get_booking_service),
) -> ReservationListResponse:
    rooms.require_room(room_id)
    found = service.list_for_room(room_id)
    return ReservationListResponse(reservations=found, total_count=len(found))


@router.get(
    "/rooms/{room_id}/day-prices",
    summary="List day price overrides",
    response_model=DayPriceListResponse,
)
async def list_day_prices(
    room_id: int,
    month: str = Query(..., examples=["2024-06"]),
    caller: Caller = Depends(require_admin),
    pricing: PricingService = Depends(get_pricing_service),
) -> DayPriceListResponse:
    return DayPriceListResponse(
        room_id=room_id,
        month=month,
        day_prices=pricing.list_overrides(room_id, month),
    )


@router.put(
    "/rooms/{room_id}/day-prices",
    summary="Set day price",
    description="Override the nightly price of one date. Negative prices are stored as 0.",
    response_model=DayPrice,
)
async def set_day_price(
    room_id: int,
    body: DayPriceUpdateRequest,
    caller: Caller = Depends(require_admin),
    rooms: RoomService = Depends(get_room_service),
    pricing: PricingService = Depends(get_pricing_service),
) -> DayPrice:
    rooms.require_room(room_id)
    return pricing.set_day_price(caller, room_id, body.date, body.price)


@router.get(
    "/reservations",
    summary="Search reservations",
    description="""
Search reservations across all rooms, newest first.

`q` matches a reservation ID exactly, or part of a lookup code, guest name
or phone number. `status` keeps only reservations in that status.
""",
    response_model=ReservationListResponse,
)
async def search_reservations(
    q: str | None = Query(default=None, examples=["NVH-7K2"]),
    status: ReservationStatus | None = Query(default=None),
    caller: Caller = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
    sweeper: ExpirationSweeper = Depends(get_expiration_sweeper),
) -> ReservationListResponse:
    sweep_expired(sweeper)
    found = service.search(caller, query=q, status=status)
    return ReservationListResponse(reservations=found, total_count=len(found))


@router.post(
    "/reservations/{reservation_id}/confirm",
    summary="Confirm reservation",
    response_model=Reservation,
    responses={409: {"description": "Canceled, or transfer funds below the deposit"}},
)
async def confirm_reservation(
    reservation_id: int,
    caller: Caller = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
) -> Reservation:
    return service.confirm(caller, reservation_id)


@router.post(
    "/reservations/{reservation_id}/cash-payment",
    summary="Record cash payment",
    response_model=Reservation,
    responses={409: {"description": "Not a cash reservation, or canceled"}},
)
async def record_cash_payment(
    reservation_id: int,
    body: CashPaymentRequest | None = None,
    caller: Caller = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
) -> Reservation:
    paid_amount = body.paid_amount if body else None
    return service.mark_cash_paid(caller, reservation_id, paid_amount)


@router.post(
    "/reservations/{reservation_id}/cancel",
    summary="Cancel reservation",
    response_model=Reservation,
    responses={409: {"description": "Transfer funds received and override not set"}},
)
async def cancel_reservation(
    reservation_id: int,
    body: CancelRequest | None = None,
    caller: Caller = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
) -> Reservation:
    body = body or CancelRequest()
    return service.cancel(caller, reservation_id, reason=body.reason, override=body.override)


@router.post(
    "/expirations/sweep",
    summary="Cancel expired unpaid reservations",
    response_model=SweepResponse,
)
async def sweep_expirations(
    caller: Caller = Depends(require_admin),
    sweeper: ExpirationSweeper = Depends(get_expiration_sweeper),
) -> SweepResponse:
    return SweepResponse(canceled=sweeper.sweep())


@router.post(
    "/payments/retry",
    summary="Re-apply pending payments",
    description="Apply payment notifications left pending after repeated write conflicts.",
    response_model=PaymentRetryResponse,
)
async def retry_pending_payments(
    caller: Caller = Depends(require_admin),
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
) -> PaymentRetryResponse:
    results = reconciler.retry_pending()
    return PaymentRetryResponse(
        retried=len(results),
        applied=sum(r.processing_result == ProcessingResult.APPLIED for r in results),
    )
