"""Room model."""

from pydantic import BaseModel, ConfigDict, Field


class Room(BaseModel):
    """A rentable unit with default overnight and hourly rates."""

    model_config = ConfigDict(strict=True)

    room_id: int = Field(..., ge=1, description="Numeric room ID")
    name: str = Field(..., description="Display name", examples=["Homestay Deluxe"])
    nightly_rate: int = Field(
        ..., ge=0, description="Default price per night", examples=[750000]
    )
    hourly_rate: int = Field(
        ..., ge=0, description="Price per hour for hourly bookings", examples=[80000]
    )
    version: int = Field(
        default=0, ge=0, description="Incremented by every reservation insert"
    )


class RoomCreate(BaseModel):
    """Data required to add a room to the catalogue."""

    model_config = ConfigDict(strict=False)

    name: str = Field(..., min_length=1)
    nightly_rate: int = Field(..., ge=0)
    hourly_rate: int = Field(..., ge=0)
