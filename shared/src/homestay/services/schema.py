"""DynamoDB table definitions.

Used by the seed script for local environments and by the test suite.
Deployed environments create the same tables from infrastructure code.
"""

from typing import Any


def _attrs(*pairs: tuple[str, str]) -> list[dict[str, str]]:
    return [{"AttributeName": name, "AttributeType": kind} for name, kind in pairs]


def _key(hash_key: str, range_key: str | None = None) -> list[dict[str, str]]:
    schema = [{"AttributeName": hash_key, "KeyType": "HASH"}]
    if range_key:
        schema.append({"AttributeName": range_key, "KeyType": "RANGE"})
    return schema


def table_definitions(prefix: str) -> list[dict[str, Any]]:
    """CreateTable requests for every table, named ``<prefix>-<table>``."""
    return [
        {
            "TableName": f"{prefix}-rooms",
            "KeySchema": _key("room_id"),
            "AttributeDefinitions": _attrs(("room_id", "N")),
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{prefix}-day-prices",
            "KeySchema": _key("room_id", "date"),
            "AttributeDefinitions": _attrs(("room_id", "N"), ("date", "S")),
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{prefix}-reservations",
            "KeySchema": _key("room_id", "reservation_id"),
            "AttributeDefinitions": _attrs(
                ("room_id", "N"),
                ("reservation_id", "N"),
                ("phone", "S"),
                ("status", "S"),
                ("expiration", "S"),
                ("user_id", "N"),
            ),
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "reservation_id-index",
                    "KeySchema": _key("reservation_id"),
                    "Projection": {"ProjectionType": "KEYS_ONLY"},
                },
                {
                    "IndexName": "contact-index",
                    "KeySchema": _key("phone", "reservation_id"),
                    "Projection": {"ProjectionType": "ALL"},
                },
                {
                    "IndexName": "status-index",
                    "KeySchema": _key("status", "expiration"),
                    "Projection": {"ProjectionType": "ALL"},
                },
                {
                    "IndexName": "user_id-index",
                    "KeySchema": _key("user_id", "reservation_id"),
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{prefix}-lookup-codes",
            "KeySchema": _key("lookup_code"),
            "AttributeDefinitions": _attrs(("lookup_code", "S")),
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{prefix}-payment-ledger",
            "KeySchema": _key("provider", "transaction_id"),
            "AttributeDefinitions": _attrs(
                ("provider", "S"),
                ("transaction_id", "S"),
                ("processing_result", "S"),
                ("received_at", "S"),
            ),
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "processing_result-index",
                    "KeySchema": _key("processing_result", "received_at"),
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{prefix}-counters",
            "KeySchema": _key("counter_name"),
            "AttributeDefinitions": _attrs(("counter_name", "S")),
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]


def create_tables(client: Any, prefix: str) -> list[str]:
    """Create any missing tables with a boto3 DynamoDB client.

    Returns:
        Names of the tables that were created
    """
    existing = set(client.list_tables().get("TableNames", []))
    created = []
    for definition in table_definitions(prefix):
        if definition["TableName"] in existing:
            continue
        client.create_table(**definition)
        created.append(definition["TableName"])
    return created
