"""
DynamoDB record backend for OAuth tokens and calendar selections.

Mirrors the ``SQLiteStore`` interface for hosted deployments; the table uses
``pk`` as its partition key and ``sk`` as its sort key.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from crm_calendar.clients.record_store import PersistenceError
from crm_calendar.core.config import StorageSettings


class DynamoDBClient:
    """Simple CRUD operations for token and selection storage."""

    def __init__(self, settings: StorageSettings, table: Any = None) -> None:
        self._settings = settings
        if table is None:
            if not settings.dynamodb_table_name:
                raise ValueError("DYNAMODB_TABLE_NAME is required for the dynamodb backend.")
            resource = boto3.resource("dynamodb", region_name=settings.region_name)
            table = resource.Table(settings.dynamodb_table_name)
        self._table = table

    def put_item(self, item: Dict[str, Any]) -> None:
        """Put an item in the DynamoDB table, replacing any existing item."""
        if not item.get("pk") or not item.get("sk"):
            raise ValueError("Item must include 'pk' and 'sk' keys")
        try:
            self._table.put_item(Item=item)
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(str(exc)) from exc

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        """Retrieve an item using its key."""
        try:
            response = self._table.get_item(Key={"pk": partition_key, "sk": sort_key})
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(str(exc)) from exc
        return response.get("Item")

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        try:
            self._table.delete_item(Key={"pk": partition_key, "sk": sort_key})
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(str(exc)) from exc

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]:
        """Query items under one partition whose sort key starts with a prefix."""
        condition = Key("pk").eq(partition_key) & Key("sk").begins_with(sort_key_prefix)
        items: list[Dict[str, Any]] = []
        query_kwargs: Dict[str, Any] = {"KeyConditionExpression": condition}
        try:
            while True:
                response = self._table.query(**query_kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                query_kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(str(exc)) from exc
        return items

    def delete_items_with_prefix(self, *, partition_key: str, sort_key_prefix: str) -> int:
        items = self.list_items_with_prefix(
            partition_key=partition_key, sort_key_prefix=sort_key_prefix
        )
        try:
            with self._table.batch_writer() as batch:
                for item in items:
                    batch.delete_item(Key={"pk": item["pk"], "sk": item["sk"]})
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(str(exc)) from exc
        return len(items)


__all__ = ["DynamoDBClient"]
