"""
Ingestion worker - consumes dispatch batches from the queue.

This service is responsible for:
- Long-polling the dispatch queue for batches
- Running the ingestion pipeline for each batch
- Acknowledging batches that were fully written

Batches that fail (malformed body, failed chunk writes, storage errors)
stay on the queue; they are redelivered after the visibility timeout and
reach the dead-letter queue after repeated failures.

Run with ``python -m tiered_timeseries.worker``.
"""

import asyncio
import json
import logging
import os
import signal
import sys
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from tiered_timeseries.config import ConfigurationError, get_settings
from tiered_timeseries.ingestion.credentials import CredentialError
from tiered_timeseries.ingestion.pipeline import IngestionError, IngestionPipeline
from tiered_timeseries.observability.logging import setup_logging
from tiered_timeseries.storage.interfaces import StorageError
from tiered_timeseries.storage.queue.interface import Message, QueueRepository
from tiered_timeseries.types import DispatchBatch

logger = logging.getLogger(__name__)


class PollResult(BaseModel):
    """Counts for one receive round."""

    received: int = 0
    processed: int = 0
    failed: int = 0
    malformed: int = 0


def parse_batch(message: Message) -> DispatchBatch:
    """
    Parse a received message into a DispatchBatch.

    Raises:
        ValueError: If the body is not a JSON object with an identifier list
    """
    body: Any = message.body
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body)
        except json.JSONDecodeError as e:
            raise ValueError(f"Message body is not JSON: {e}") from e

    if not isinstance(body, dict) or not isinstance(body.get("identifiers"), list):
        raise ValueError("Message body has no 'identifiers' list")

    try:
        return DispatchBatch(id=message.message_id or "unknown", identifiers=body["identifiers"])
    except ValidationError as e:
        raise ValueError(f"Invalid identifiers in message body: {e}") from e


class QueueConsumer:
    """Pulls dispatch batches from the queue and feeds them to the pipeline."""

    def __init__(
        self,
        queue: QueueRepository,
        pipeline: IngestionPipeline,
        queue_name: str,
        max_messages: int = 10,
        wait_seconds: int = 20,
    ):
        self._queue = queue
        self._pipeline = pipeline
        self._queue_name = queue_name
        self._max_messages = max_messages
        self._wait_seconds = wait_seconds
        self.running = False

    async def handle_message(self, message: Message, result: PollResult) -> None:
        try:
            batch = parse_batch(message)
        except ValueError as e:
            logger.error(f"Malformed message {message.message_id}: {e}")
            result.malformed += 1
            return

        try:
            await self._pipeline.run(batch)
        except IngestionError as e:
            logger.error(
                f"Batch {batch.id} failed (delivery {message.delivery_count}), "
                f"leaving it for redelivery: {e}"
            )
            result.failed += 1
            return
        except (StorageError, CredentialError) as e:
            logger.error(f"Batch {batch.id} aborted, leaving it for redelivery: {e}")
            result.failed += 1
            return
        except Exception as e:
            logger.error(
                f"Unexpected error in batch {batch.id}, leaving it for redelivery: {e}",
                exc_info=True,
            )
            result.failed += 1
            return

        await self._queue.acknowledge(self._queue_name, message)
        result.processed += 1

    async def poll_once(self) -> PollResult:
        """
        Receive one round of messages and process them in order.

        Returns:
            PollResult with per-outcome counts
        """
        messages = await self._queue.receive(
            self._queue_name,
            max_messages=self._max_messages,
            wait_seconds=self._wait_seconds,
        )
        result = PollResult(received=len(messages))

        for message in messages:
            await self.handle_message(message, result)

        if messages:
            logger.info(
                f"Processed {result.processed}/{result.received} messages "
                f"({result.failed} failed, {result.malformed} malformed)"
            )
        return result

    async def run_forever(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Poll until ``stop_event`` is set."""
        stop_event = stop_event or asyncio.Event()
        self.running = True
        logger.info(f"Worker consuming from {self._queue_name}")

        try:
            while not stop_event.is_set():
                try:
                    await self.poll_once()
                except StorageError as e:
                    logger.error(f"Receive failed: {e}")
                    await asyncio.sleep(1)
        finally:
            self.running = False
            logger.info("Worker stopped")


async def main() -> None:
    """Main entry point for the ingestion worker."""
    from tiered_timeseries.storage import AWSClientFactory, SQSQueueRepository

    settings = get_settings()
    try:
        settings.require_ingestion()
        if not settings.identifier_queue:
            raise ConfigurationError(["IDENTIFIER_QUEUE"], role="worker")
    except ConfigurationError as e:
        logger.error(f"Worker cannot start: {e}")
        sys.exit(1)

    clients = AWSClientFactory.from_settings(settings)
    queue = SQSQueueRepository(clients)
    consumer = QueueConsumer(
        queue=queue,
        pipeline=IngestionPipeline.from_settings(settings, clients=clients),
        queue_name=settings.identifier_queue,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_event.set)

    await queue.connect()
    try:
        await consumer.run_forever(stop_event)
    finally:
        await queue.close()


if __name__ == "__main__":
    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        json_format=os.getenv("LOG_JSON", "true").lower() == "true",
    )
    asyncio.run(main())
