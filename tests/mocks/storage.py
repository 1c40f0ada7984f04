"""
Mock storage implementations for testing.

These mocks provide in-memory implementations of the storage interfaces
for use during development and testing.
"""

import itertools
import time
from typing import Dict, List, Optional, Set, Tuple

from tiered_timeseries.config import FUTURE_CHUNK_SIZE, TIMESERIES_CHUNK_SIZE
from tiered_timeseries.query.relative_time import MS_PER_HOUR, NOW_EXPRESSION
from tiered_timeseries.storage.interfaces import StorageError
from tiered_timeseries.storage.queue.interface import Message, QueueRepository
from tiered_timeseries.types import (
    ChunkResult,
    QueryRow,
    RejectedRecord,
    StoredFutureItem,
    StoredPastRecord,
)


def _resolve_expression(expression: str, now_ms: int) -> int:
    if expression == NOW_EXPRESSION:
        return now_ms
    hours = int(expression[len("ago("):-len("h)")])
    return now_ms - hours * MS_PER_HOUR


class MockTimeSeriesRepository:
    """
    In-memory time store.

    Records are keyed by (identifier, time); a write with a version at
    least as high as the stored one replaces it, like Timestream upserts.
    """

    def __init__(self, now_ms: Optional[int] = None, clock=time.time):
        self._records: Dict[Tuple[str, int], StoredPastRecord] = {}
        self._now_ms = now_ms
        self._clock = clock
        self.write_calls: List[int] = []
        self.queries: List[Tuple[str, str, str]] = []
        self.fail_on_calls: Set[int] = set()
        self.reject_indexes: Dict[int, List[int]] = {}
        self.query_error: Optional[Exception] = None
        self.rows_override: Optional[List[QueryRow]] = None

    @property
    def records(self) -> List[StoredPastRecord]:
        return list(self._records.values())

    async def write_records(self, records: List[StoredPastRecord]) -> ChunkResult:
        """Store a chunk, honouring configured failures and rejections."""
        if len(records) > TIMESERIES_CHUNK_SIZE:
            raise AssertionError(f"Chunk of {len(records)} exceeds the time store limit")

        call = len(self.write_calls)
        self.write_calls.append(len(records))

        if call in self.fail_on_calls:
            raise StorageError("Simulated write failure", code="InternalServerException")

        rejected_indexes = self.reject_indexes.get(call, [])
        for index, record in enumerate(records):
            if index in rejected_indexes:
                continue
            key = (record.identifier, record.time)
            existing = self._records.get(key)
            if existing is None or record.version >= existing.version:
                self._records[key] = record

        return ChunkResult(
            size=len(records),
            written=len(records) - len(rejected_indexes),
            rejected=[RejectedRecord(index=i, reason="Simulated rejection") for i in rejected_indexes],
        )

    async def query(self, identifier: str, start: str, end: str) -> List[QueryRow]:
        """Return rows in the resolved range, newest first."""
        self.queries.append((identifier, start, end))
        if self.query_error is not None:
            raise self.query_error
        if self.rows_override is not None:
            return list(self.rows_override)

        now_ms = self._now_ms if self._now_ms is not None else int(self._clock() * 1000)
        start_ms = _resolve_expression(start, now_ms)
        end_ms = _resolve_expression(end, now_ms)

        rows = [
            QueryRow(identifier=r.identifier, cpu=r.value, time=r.time * 1000)
            for r in self._records.values()
            if r.identifier == identifier and start_ms <= r.time * 1000 <= end_ms
        ]
        rows.sort(key=lambda row: row.time, reverse=True)
        return rows


class MockFutureItemRepository:
    """In-memory future store with upsert by (identifier, time)."""

    def __init__(self):
        self._items: Dict[Tuple[str, int], StoredFutureItem] = {}
        self.write_calls: List[int] = []
        self.range_queries: List[Tuple[str, int, int]] = []
        self.fail_on_calls: Set[int] = set()
        self.query_error: Optional[Exception] = None

    @property
    def items(self) -> Dict[Tuple[str, int], StoredFutureItem]:
        return dict(self._items)

    async def batch_write(self, items: List[StoredFutureItem]) -> ChunkResult:
        if len(items) > FUTURE_CHUNK_SIZE:
            raise AssertionError(f"Chunk of {len(items)} exceeds the future store limit")

        call = len(self.write_calls)
        self.write_calls.append(len(items))

        if call in self.fail_on_calls:
            raise StorageError("Simulated batch write failure", code="ProvisionedThroughputExceededException")

        for item in items:
            self._items[item.key] = item
        return ChunkResult(size=len(items), written=len(items))

    async def query_range(
        self, identifier: str, start_seconds: int, end_seconds: int
    ) -> List[StoredFutureItem]:
        self.range_queries.append((identifier, start_seconds, end_seconds))
        if self.query_error is not None:
            raise self.query_error

        matches = [
            item
            for (item_id, item_time), item in self._items.items()
            if item_id == identifier and start_seconds <= item_time <= end_seconds
        ]
        return sorted(matches, key=lambda item: item.time)


class MockIdentifierRepository:
    """In-memory identifier table (scan may return duplicates)."""

    def __init__(self, identifiers: Optional[List[str]] = None):
        self._identifiers: List[str] = list(identifiers or [])
        self.scan_error: Optional[Exception] = None

    async def scan_identifiers(self) -> List[str]:
        if self.scan_error is not None:
            raise self.scan_error
        return list(self._identifiers)

    async def add_identifier(self, identifier: str) -> None:
        if identifier not in self._identifiers:
            self._identifiers.append(identifier)


class MockParameterStore:
    """In-memory parameter store counting lookups."""

    def __init__(self, parameters: Optional[Dict[str, str]] = None):
        self._parameters = dict(parameters or {})
        self.lookups: List[str] = []

    def set(self, name: str, value: str) -> None:
        self._parameters[name] = value

    async def get_parameter(self, name: str) -> Optional[str]:
        self.lookups.append(name)
        return self._parameters.get(name)


class MockQueueRepository(QueueRepository):
    """
    In-memory queue with at-least-once semantics.

    Received messages stay in the queue until acknowledged, so a message
    that is not acknowledged is returned again by the next ``receive``.
    """

    def __init__(self):
        self._queues: Dict[str, List[Message]] = {}
        self._ids = itertools.count(1)
        self.published: List[Tuple[str, Message]] = []
        self.acknowledged: List[str] = []
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def publish_batch(self, queue_name: str, messages: List[Message]) -> List[str]:
        ids = []
        for message in messages:
            broker_id = f"msg-{next(self._ids)}"
            queued = Message(body=message.body, message_id=broker_id, headers=message.headers)
            self._queues.setdefault(queue_name, []).append(queued)
            self.published.append((queue_name, message))
            ids.append(broker_id)
        return ids

    def put_raw(self, queue_name: str, body, message_id: Optional[str] = None) -> Message:
        message = Message(body=body, message_id=message_id or f"msg-{next(self._ids)}")
        self._queues.setdefault(queue_name, []).append(message)
        return message

    async def receive(
        self,
        queue_name: str,
        max_messages: int = 10,
        wait_seconds: int = 20,
        visibility_timeout: Optional[int] = None,
    ) -> List[Message]:
        messages = self._queues.get(queue_name, [])[:max_messages]
        for message in messages:
            message.delivery_count += 1
            message.receipt_handle = f"rh-{message.message_id}-{message.delivery_count}"
        return messages

    async def acknowledge(self, queue_name: str, message: Message) -> None:
        queue = self._queues.get(queue_name, [])
        self._queues[queue_name] = [m for m in queue if m.message_id != message.message_id]
        self.acknowledged.append(message.message_id)

    async def get_queue_size(self, queue_name: str) -> int:
        return len(self._queues.get(queue_name, []))
