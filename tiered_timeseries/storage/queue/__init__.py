"""Message Queue storage implementations."""

from tiered_timeseries.storage.queue.interface import (
    Message,
    QueueRepository,
)
from tiered_timeseries.storage.queue.sqs import SQSQueueRepository

__all__ = [
    "QueueRepository",
    "Message",
    "SQSQueueRepository",
]
