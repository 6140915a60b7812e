#!/usr/bin/env python3
"""Create tables and seed a development database.

Creates any missing DynamoDB tables and adds the default room
("Homestay Deluxe", 750,000 per night, 80,000 per hour).

Usage:
    python scripts/seed_data.py --env dev
    python scripts/seed_data.py --env dev --clear-first
    python scripts/seed_data.py --env dev --endpoint-url http://localhost:8000
"""

import argparse
import os
import sys
from typing import Any

import boto3

from homestay.models import RoomCreate
from homestay.services.dynamodb import DynamoDBService
from homestay.services.rooms import RoomService
from homestay.services.schema import create_tables, table_definitions

DEFAULT_ROOMS: list[dict[str, Any]] = [
    {"room_id": 1, "name": "Homestay Deluxe", "nightly_rate": 750000, "hourly_rate": 80000},
]


def get_prefix(env: str) -> str:
    """Table name prefix for an environment."""
    return os.environ.get("DYNAMODB_TABLE_PREFIX", f"homestay-{env}")


def seed_rooms(db: DynamoDBService) -> list[int]:
    """Add the default rooms that are not present yet.

    Returns:
        IDs of the rooms that were created
    """
    rooms = RoomService(db)
    created = []
    for data in DEFAULT_ROOMS:
        if rooms.get_room(data["room_id"]) is not None:
            db.raise_sequence("room_id", data["room_id"])
            print(f"  = room {data['room_id']} already exists")
            continue
        room = rooms.create_room(
            RoomCreate(
                name=data["name"],
                nightly_rate=data["nightly_rate"],
                hourly_rate=data["hourly_rate"],
            ),
            room_id=data["room_id"],
        )
        created.append(room.room_id)
        print(f"  + room {room.room_id}: {room.name}")
    return created


def clear_table(resource: Any, table_name: str) -> int:
    """Delete every item in a table.

    Returns:
        Number of items deleted
    """
    table = resource.Table(table_name)
    key_attrs = [k["AttributeName"] for k in table.key_schema]
    deleted = 0
    scan_kwargs: dict[str, Any] = {}
    while True:
        response = table.scan(**scan_kwargs)
        with table.batch_writer() as batch:
            for item in response.get("Items", []):
                batch.delete_item(Key={k: item[k] for k in key_attrs})
                deleted += 1
        if not response.get("LastEvaluatedKey"):
            return deleted
        scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]


def main() -> int:
    """Run the seed script."""
    parser = argparse.ArgumentParser(description="Create tables and seed development data")
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="Target environment (default: dev)",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_DEFAULT_REGION", "ap-southeast-1"),
        help="AWS region (default: AWS_DEFAULT_REGION or ap-southeast-1)",
    )
    parser.add_argument(
        "--endpoint-url",
        default=None,
        help="DynamoDB endpoint, e.g. http://localhost:8000 for DynamoDB Local",
    )
    parser.add_argument(
        "--clear-first",
        action="store_true",
        help="Delete all items before seeding",
    )
    args = parser.parse_args()

    if args.env == "prod":
        confirm = input("WARNING: You are about to modify PRODUCTION data. Type 'yes' to continue: ")
        if confirm.lower() != "yes":
            print("Aborted.")
            return 1

    os.environ["AWS_DEFAULT_REGION"] = args.region
    os.environ["ENVIRONMENT"] = args.env
    if args.endpoint_url:
        os.environ["AWS_ENDPOINT_URL_DYNAMODB"] = args.endpoint_url

    prefix = get_prefix(args.env)
    print(f"\nSeeding {args.env} environment (prefix: {prefix}, region: {args.region})\n")

    client = boto3.client("dynamodb")
    created = create_tables(client, prefix)
    for name in created:
        client.get_waiter("table_exists").wait(TableName=name)
        print(f"  + table {name}")

    if args.clear_first:
        resource = boto3.resource("dynamodb")
        for definition in table_definitions(prefix):
            count = clear_table(resource, definition["TableName"])
            print(f"  Cleared {count} items from {definition['TableName']}")

    seed_rooms(DynamoDBService(args.env))
    print("\nSeed completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
