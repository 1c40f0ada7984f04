"""
DynamoDB storage implementations.

Two tables are used:
- the future table, keyed by (identifier, time) with an ``expiry`` TTL
  attribute, holding samples the time store cannot accept yet
- the identifier table, keyed by identifier, listing every series to ingest
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from tiered_timeseries.storage.aws import AWSClientFactory
from tiered_timeseries.storage.interfaces import (
    FutureItemRepository,
    IdentifierRepository,
    TransientStorageError,
    translate_aws_error,
)
from tiered_timeseries.types import ChunkResult, StoredFutureItem

logger = logging.getLogger(__name__)

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def serialize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a plain dict to DynamoDB attribute values."""
    return {key: _serializer.serialize(value) for key, value in item.items()}


def deserialize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Convert DynamoDB attribute values to a plain dict."""
    return {key: _deserializer.deserialize(value) for key, value in item.items()}


def item_to_future(item: Dict[str, Any]) -> StoredFutureItem:
    """Map a deserialized future-table item to a StoredFutureItem."""
    return StoredFutureItem(
        identifier=str(item["identifier"]),
        time=int(item["time"]),
        value=str(item.get("value", "")),
        metadata=str(item.get("metadata", "")),
        document=str(item.get("document", "")),
        expiry=int(item.get("expiry", 0)),
    )


class DynamoDBFutureItemRepository(FutureItemRepository):
    """DynamoDB implementation of the ephemeral future-sample store."""

    def __init__(
        self,
        clients: AWSClientFactory,
        table_name: str,
        max_unprocessed_retries: int = 3,
        backoff_seconds: float = 0.05,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the future-item repository.

        Args:
            clients: Factory for ``dynamodb`` clients
            table_name: Future table name
            max_unprocessed_retries: Resubmissions of ``UnprocessedItems``
            backoff_seconds: Base delay, doubled on each resubmission
            sleep: Awaitable sleep function
        """
        self._clients = clients
        self._table_name = table_name
        self._max_unprocessed_retries = max_unprocessed_retries
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep

    async def batch_write(self, items: List[StoredFutureItem]) -> ChunkResult:
        """Upsert one chunk of items, resubmitting unprocessed items with backoff."""
        pending = [
            {"PutRequest": {"Item": serialize_item(item.model_dump())}} for item in items
        ]

        try:
            async with self._clients.client("dynamodb") as client:
                attempt = 0
                while pending:
                    response = await client.batch_write_item(
                        RequestItems={self._table_name: pending}
                    )
                    pending = response.get("UnprocessedItems", {}).get(self._table_name, [])
                    if not pending or attempt >= self._max_unprocessed_retries:
                        break

                    delay = self._backoff_seconds * (2 ** attempt)
                    logger.debug(
                        f"{len(pending)} unprocessed items, retrying in {delay:.2f}s"
                    )
                    await self._sleep(delay)
                    attempt += 1
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, "DynamoDB BatchWriteItem") from e

        if pending:
            keys = [
                _item_key(deserialize_item(request["PutRequest"]["Item"]))
                for request in pending
            ]
            raise TransientStorageError(
                f"DynamoDB BatchWriteItem left {len(pending)}/{len(items)} items "
                f"unprocessed in {self._table_name} after "
                f"{self._max_unprocessed_retries} retries: {keys}",
                code="UnprocessedItems",
            )

        return ChunkResult(size=len(items), written=len(items))

    async def query_range(
        self, identifier: str, start_seconds: int, end_seconds: int
    ) -> List[StoredFutureItem]:
        """Query items for an identifier with time between the bounds (inclusive)."""
        params: Dict[str, Any] = {
            "TableName": self._table_name,
            "KeyConditionExpression": "#pc = :id AND #sc BETWEEN :begin AND :end",
            "ExpressionAttributeNames": {"#pc": "identifier", "#sc": "time"},
            "ExpressionAttributeValues": serialize_item({
                ":id": identifier,
                ":begin": start_seconds,
                ":end": end_seconds,
            }),
        }

        results: List[StoredFutureItem] = []
        try:
            async with self._clients.client("dynamodb") as client:
                while True:
                    response = await client.query(**params)
                    for raw in response.get("Items", []):
                        results.append(item_to_future(deserialize_item(raw)))

                    last_key = response.get("LastEvaluatedKey")
                    if not last_key:
                        break
                    params["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, "DynamoDB Query") from e

        return results


class DynamoDBIdentifierRepository(IdentifierRepository):
    """DynamoDB implementation of the identifier source."""

    def __init__(self, clients: AWSClientFactory, table_name: str):
        self._clients = clients
        self._table_name = table_name

    async def scan_identifiers(self) -> List[str]:
        """Scan the whole identifier table, following pagination."""
        params: Dict[str, Any] = {
            "TableName": self._table_name,
            "ProjectionExpression": "#id",
            "ExpressionAttributeNames": {"#id": "identifier"},
        }

        identifiers: List[str] = []
        try:
            async with self._clients.client("dynamodb") as client:
                while True:
                    response = await client.scan(**params)
                    for raw in response.get("Items", []):
                        item = deserialize_item(raw)
                        if "identifier" in item:
                            identifiers.append(str(item["identifier"]))

                    last_key = response.get("LastEvaluatedKey")
                    if not last_key:
                        break
                    params["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, "DynamoDB Scan") from e

        logger.info(f"Scan succeeded: {len(identifiers)} identifiers in {self._table_name}")
        return identifiers

    async def add_identifier(self, identifier: str) -> None:
        try:
            async with self._clients.client("dynamodb") as client:
                await client.put_item(
                    TableName=self._table_name,
                    Item=serialize_item({"identifier": identifier}),
                )
        except (ClientError, BotoCoreError) as e:
            raise translate_aws_error(e, "DynamoDB PutItem") from e


def _item_key(item: Dict[str, Any]) -> str:
    return f"{item.get('identifier')}@{item.get('time')}"
