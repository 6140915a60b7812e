"""Unit tests for the seed script."""

from typing import Any

import boto3

from scripts.seed_data import clear_table, seed_rooms


class TestSeedRooms:
    """Tests for seeding the default room."""

    def test_creates_default_room(self, db: Any, rooms: Any) -> None:
        created = seed_rooms(db)

        room = rooms.get_room(1)
        assert created == [1]
        assert room.name == "Homestay Deluxe"
        assert room.nightly_rate == 750000
        assert room.hourly_rate == 80000

    def test_is_idempotent(self, db: Any) -> None:
        seed_rooms(db)

        assert seed_rooms(db) == []

    def test_new_rooms_get_ids_after_seeded_ones(self, db: Any) -> None:
        seed_rooms(db)

        assert db.next_sequence("room_id") == 2


class TestClearTable:
    """Tests for wiping a table."""

    def test_deletes_every_item(self, db: Any, rooms: Any) -> None:
        seed_rooms(db)
        resource = boto3.resource("dynamodb", region_name="eu-west-1")

        assert clear_table(resource, f"{db.name_prefix}-rooms") == 1
        assert rooms.get_room(1) is None
