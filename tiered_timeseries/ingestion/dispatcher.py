"""
Identifier dispatcher.

Scans the identifier table, groups identifiers into dispatch batches and
publishes one queue message per batch. Each message is later picked up by
an ingestion worker.
"""

import logging
import time
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from tiered_timeseries.config import BATCH_SIZE, Settings
from tiered_timeseries.ingestion.batching import batch_identifiers, unique_identifiers
from tiered_timeseries.observability.metrics import batches_dispatched_counter
from tiered_timeseries.storage.interfaces import IdentifierRepository
from tiered_timeseries.storage.queue.interface import Message, QueueRepository

logger = logging.getLogger(__name__)


class DispatchSummary(BaseModel):
    """Result of one dispatch run."""

    identifiers: int
    batches: int
    message_ids: List[str] = Field(default_factory=list)


class IdentifierDispatcher:
    """Turns the identifier table into dispatch messages."""

    def __init__(
        self,
        identifiers: IdentifierRepository,
        queue: QueueRepository,
        queue_name: str,
        batch_size: int = BATCH_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        self._identifiers = identifiers
        self._queue = queue
        self._queue_name = queue_name
        self._batch_size = batch_size
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clients=None) -> "IdentifierDispatcher":
        """
        Build a dispatcher backed by DynamoDB and SQS.

        Raises:
            ConfigurationError: If dispatch settings are incomplete
        """
        from tiered_timeseries.storage import (
            AWSClientFactory,
            DynamoDBIdentifierRepository,
            SQSQueueRepository,
        )

        settings.require_dispatch()
        clients = clients or AWSClientFactory.from_settings(settings)
        return cls(
            identifiers=DynamoDBIdentifierRepository(clients, settings.identifier_table),
            queue=SQSQueueRepository(clients),
            queue_name=settings.identifier_queue,
        )

    async def dispatch(self, uid: Optional[int] = None) -> DispatchSummary:
        """
        Publish a message for every batch of known identifiers.

        Args:
            uid: Run id for batch ids (defaults to the current epoch ms)

        Returns:
            DispatchSummary

        Raises:
            StorageError: If the identifier scan fails
            QueueError: If any message could not be published
        """
        if uid is None:
            uid = int(self._clock() * 1000)

        identifiers = unique_identifiers(await self._identifiers.scan_identifiers())
        batches = batch_identifiers(identifiers, batch_size=self._batch_size, uid=uid)

        if not batches:
            logger.info("No identifiers found, nothing to dispatch")
            return DispatchSummary(identifiers=0, batches=0)

        logger.info(
            f"Creating {len(batches)} queue messages for {len(identifiers)} identifiers"
        )
        logger.debug(f"Example first batch: {batches[0].model_dump()}")

        messages = [
            Message(body=batch.to_message_body(), message_id=batch.id) for batch in batches
        ]
        message_ids = await self._queue.publish_batch(self._queue_name, messages)
        batches_dispatched_counter.inc(len(message_ids))

        return DispatchSummary(
            identifiers=len(identifiers),
            batches=len(batches),
            message_ids=message_ids,
        )
