"""Room catalogue service."""

from typing import TYPE_CHECKING, Any

from homestay.models import ErrorCode, NotFoundError, Room, RoomCreate
from homestay.utils.logging import get_logger

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


class RoomService:
    """Service for creating and reading rooms."""

    TABLE = "rooms"

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def create_room(self, data: RoomCreate, room_id: int | None = None) -> Room:
        """Add a room to the catalogue.

        Args:
            data: Room name and default rates
            room_id: Explicit ID (seeding); allocated from a counter when omitted

        Returns:
            The stored Room
        """
        if room_id is None:
            room_id = self.db.next_sequence("room_id")
        else:
            self.db.raise_sequence("room_id", room_id)
        room = Room(
            room_id=room_id,
            name=data.name.strip(),
            nightly_rate=data.nightly_rate,
            hourly_rate=data.hourly_rate,
            version=0,
        )
        self.db.put_item(self.TABLE, room.model_dump())
        logger.info("Room created: room_id=%s name=%s", room.room_id, room.name)
        return room

    def get_room(self, room_id: int, consistent_read: bool = False) -> Room | None:
        item = self.db.get_item(
            self.TABLE, {"room_id": room_id}, consistent_read=consistent_read
        )
        if not item:
            return None
        return self._item_to_room(item)

    def require_room(self, room_id: int, consistent_read: bool = False) -> Room:
        """Get a room or raise NotFoundError."""
        room = self.get_room(room_id, consistent_read=consistent_read)
        if room is None:
            raise NotFoundError(ErrorCode.ROOM_NOT_FOUND, {"room_id": str(room_id)})
        return room

    def _item_to_room(self, item: dict[str, Any]) -> Room:
        """Convert DynamoDB item to Room model."""
        return Room(
            room_id=int(item["room_id"]),
            name=item["name"],
            nightly_rate=int(item["nightly_rate"]),
            hourly_rate=int(item["hourly_rate"]),
            version=int(item.get("version", 0)),
        )
