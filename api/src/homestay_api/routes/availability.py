"""Room and availability calendar endpoints (public)."""

from fastapi import APIRouter, Depends, Query

from homestay.models import Room, RoomAvailability
from homestay.services.availability import AvailabilityService
from homestay.services.expiration import ExpirationSweeper
from homestay.services.rooms import RoomService
from homestay.utils.dates import parse_iso_date
from homestay_api.dependencies import (
    get_availability_service,
    get_expiration_sweeper,
    get_room_service,
)
from homestay_api.routes.reservations import sweep_expired

router = APIRouter(tags=["availability"])


@router.get(
    "/rooms/{room_id}",
    summary="Get room",
    response_model=Room,
    responses={404: {"description": "Room not found"}},
)
async def get_room(
    room_id: int,
    rooms: RoomService = Depends(get_room_service),
) -> Room:
    return rooms.require_room(room_id)


@router.get(
    "/availability/{room_id}",
    summary="Availability calendar",
    description="""
Occupied day ranges for a room, plus optionally:

- `month=YYYY-MM`: the effective price of every day that month
- `date=YYYY-MM-DD`: the occupied time windows on that date
  (a night stay covering the date shows as `00:00`-`24:00`)
""",
    response_model=RoomAvailability,
    responses={
        400: {"description": "Malformed month or date"},
        404: {"description": "Room not found"},
    },
)
async def get_availability(
    room_id: int,
    month: str | None = Query(default=None, examples=["2024-06"]),
    date: str | None = Query(default=None, examples=["2024-06-01"]),
    service: AvailabilityService = Depends(get_availability_service),
    sweeper: ExpirationSweeper = Depends(get_expiration_sweeper),
) -> RoomAvailability:
    sweep_expired(sweeper)
    return service.get_room_availability(
        room_id,
        month=month,
        date=parse_iso_date(date) if date else None,
    )
