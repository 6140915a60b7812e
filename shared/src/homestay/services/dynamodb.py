"""DynamoDB service wrapper for table operations."""

import os
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

_serializer = TypeSerializer()

# Module-level singleton for connection reuse
_dynamodb_service_instance: "DynamoDBService | None" = None


def get_dynamodb_service(environment: str | None = None) -> "DynamoDBService":
    """Get or create the singleton DynamoDB service instance.

    Args:
        environment: Deployment name; ignored once the instance exists

    Returns:
        The process-wide DynamoDBService
    """
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(environment)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Drop the singleton so the next call builds clients afresh (tests)."""
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


def serialize_item(item: dict[str, Any]) -> dict[str, Any]:
    """Convert a plain item to DynamoDB's typed attribute format.

    None values are dropped rather than stored as NULL.
    """
    return {k: _serializer.serialize(v) for k, v in item.items() if v is not None}


class DynamoDBService:
    """Service for DynamoDB operations with environment-aware table names."""

    def __init__(self, environment: str | None = None) -> None:
        """Initialize DynamoDB service.

        Args:
            environment: Deployment name used in table names; ENVIRONMENT when omitted
        """
        self.environment = environment or os.getenv("ENVIRONMENT", "dev")
        # DYNAMODB_TABLE_PREFIX wins over the environment-derived name
        self.name_prefix = os.getenv(
            "DYNAMODB_TABLE_PREFIX", f"homestay-{self.environment}"
        )
        self._dynamodb = boto3.resource("dynamodb")
        self._client = boto3.client("dynamodb")

    def _table_name(self, table: str) -> str:
        """Get full table name with prefix."""
        return f"{self.name_prefix}-{table}"

    def _get_table(self, table: str) -> Any:
        """Get DynamoDB table resource."""
        return self._dynamodb.Table(self._table_name(table))

    # Single-item reads and writes

    def get_item(
        self,
        table: str,
        key: dict[str, Any],
        consistent_read: bool = False,
    ) -> dict[str, Any] | None:
        """Get a single item by key.

        Args:
            table: Unprefixed table name
            key: Partition (and sort) key values
            consistent_read: Use a strongly consistent read

        Returns:
            The item, or None when the key is absent
        """
        response = self._get_table(table).get_item(
            Key=key, ConsistentRead=consistent_read
        )
        item: dict[str, Any] | None = response.get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Put an item into the table.

        Args:
            table: Unprefixed table name
            item: Full item, key attributes included
            condition_expression: Guard the put must satisfy

        Returns:
            False when the condition check rejected the write
        """
        try:
            kwargs: dict[str, Any] = {"Item": item}
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            self._get_table(table).put_item(**kwargs)
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return False
            raise

    def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any] | None:
        """Update an item with expressions.

        Args:
            table: Unprefixed table name
            key: Partition (and sort) key values
            update_expression: SET/ADD/REMOVE expression
            expression_attribute_values: Placeholder values
            expression_attribute_names: Placeholders for reserved attribute names
            condition_expression: Guard the update must satisfy

        Returns:
            All attributes after the update, or None when the condition failed
        """
        try:
            kwargs: dict[str, Any] = {
                "Key": key,
                "UpdateExpression": update_expression,
                "ExpressionAttributeValues": expression_attribute_values,
                "ReturnValues": "ALL_NEW",
            }
            if expression_attribute_names:
                kwargs["ExpressionAttributeNames"] = expression_attribute_names
            if condition_expression:
                kwargs["ConditionExpression"] = condition_expression

            response = self._get_table(table).update_item(**kwargs)
            attrs: dict[str, Any] | None = response.get("Attributes")
            return attrs
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            raise

    def query(
        self,
        table: str,
        key_condition: Any,
        index_name: str | None = None,
        filter_expression: Any | None = None,
        limit: int | None = None,
        scan_index_forward: bool = True,
        consistent_read: bool = False,
    ) -> list[dict[str, Any]]:
        """Query table or GSI, following pagination.

        Args:
            table: Unprefixed table name
            key_condition: boto3 Key condition
            index_name: Secondary index to query instead of the table
            filter_expression: Post-read filter on non-key attributes
            limit: Stop after this many items
            scan_index_forward: Ascending sort key order when True
            consistent_read: Strongly consistent read (base table only)

        Returns:
            Matching items in key order
        """
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": key_condition,
            "ScanIndexForward": scan_index_forward,
        }
        if index_name:
            kwargs["IndexName"] = index_name
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression
        if consistent_read:
            kwargs["ConsistentRead"] = True

        items: list[dict[str, Any]] = []
        while True:
            response = self._get_table(table).query(**kwargs)
            items.extend(response.get("Items", []))
            if limit and len(items) >= limit:
                return items[:limit]
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def scan(
        self,
        table: str,
        filter_expression: Any | None = None,
    ) -> list[dict[str, Any]]:
        """Read every item of a table, following pagination.

        Only for small tables and staff tools; request paths use queries.
        """
        kwargs: dict[str, Any] = {}
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression

        items: list[dict[str, Any]] = []
        while True:
            response = self._get_table(table).scan(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def transact_write(
        self,
        items: list[dict[str, Any]],
    ) -> bool:
        """Execute transactional write for multiple items.

        Args:
            items: List of TransactWriteItem dicts (typed attribute format)

        Returns:
            True if successful, False if transaction was cancelled
        """
        try:
            self._client.transact_write_items(TransactItems=items)  # type: ignore[arg-type]
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "TransactionCanceledException":
                return False
            raise

    # Transaction item builders

    def put_op(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
        expression_attribute_names: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Build a Put entry for ``transact_write``."""
        put: dict[str, Any] = {
            "TableName": self._table_name(table),
            "Item": serialize_item(item),
        }
        if condition_expression:
            put["ConditionExpression"] = condition_expression
        if expression_attribute_names:
            put["ExpressionAttributeNames"] = expression_attribute_names
        return {"Put": put}

    def update_op(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """Build an Update entry for ``transact_write``."""
        update: dict[str, Any] = {
            "TableName": self._table_name(table),
            "Key": serialize_item(key),
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": serialize_item(expression_attribute_values),
        }
        if expression_attribute_names:
            update["ExpressionAttributeNames"] = expression_attribute_names
        if condition_expression:
            update["ConditionExpression"] = condition_expression
        return {"Update": update}

    # Index queries and counters

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: Any,
        sort_key_condition: Any | None = None,
        filter_expression: Any | None = None,
        limit: int | None = None,
        scan_index_forward: bool = True,
    ) -> list[dict[str, Any]]:
        """Query a GSI by partition key.

        Args:
            table: Unprefixed table name
            index_name: GSI name
            partition_key_name: Index partition key attribute
            partition_key_value: Partition key value to match
            sort_key_condition: Extra condition on the index sort key
            filter_expression: Optional filter on non-key attributes
            limit: Stop after this many items
            scan_index_forward: Ascending sort key order when True

        Returns:
            Matching items in key order
        """
        key_condition = Key(partition_key_name).eq(partition_key_value)
        if sort_key_condition is not None:
            key_condition = key_condition & sort_key_condition

        return self.query(
            table,
            key_condition,
            index_name=index_name,
            filter_expression=filter_expression,
            limit=limit,
            scan_index_forward=scan_index_forward,
        )

    def next_sequence(self, counter_name: str) -> int:
        """Atomically allocate the next value of a named counter.

        Args:
            counter_name: Counter key (e.g. "reservation_id")

        Returns:
            The newly allocated value, starting at 1
        """
        attrs = self.update_item(
            table="counters",
            key={"counter_name": counter_name},
            update_expression="ADD current_value :one",
            expression_attribute_values={":one": 1},
        )
        assert attrs is not None
        return int(attrs["current_value"])

    def raise_sequence(self, counter_name: str, at_least: int) -> None:
        """Move a counter up to ``at_least`` if it is below it.

        Used when IDs are assigned explicitly so later allocations skip them.
        """
        self.update_item(
            table="counters",
            key={"counter_name": counter_name},
            update_expression="SET current_value = if_not_exists(current_value, :zero)",
            expression_attribute_values={":zero": 0},
        )
        self.update_item(
            table="counters",
            key={"counter_name": counter_name},
            update_expression="SET current_value = :floor",
            expression_attribute_values={":floor": at_least},
            condition_expression="current_value < :floor",
        )
