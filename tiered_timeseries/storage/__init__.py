"""
Storage layer for the tiered time-series service.

This package provides interfaces and AWS implementations for the time
store, the future-sample store, the identifier source, the dispatch queue
and the parameter store.
"""

# Interface exports
from tiered_timeseries.storage.interfaces import (
    FutureItemRepository,
    IdentifierRepository,
    ParameterStore,
    QueueError,
    StorageError,
    TimeSeriesRepository,
    TransientStorageError,
)

# Concrete implementations
from tiered_timeseries.storage.aws import AWSClientFactory
from tiered_timeseries.storage.dynamodb import (
    DynamoDBFutureItemRepository,
    DynamoDBIdentifierRepository,
)
from tiered_timeseries.storage.parameters import SSMParameterStore
from tiered_timeseries.storage.queue import Message, QueueRepository, SQSQueueRepository
from tiered_timeseries.storage.timeseries import TimestreamTimeSeriesRepository

__all__ = [
    # Interfaces
    "TimeSeriesRepository",
    "FutureItemRepository",
    "IdentifierRepository",
    "ParameterStore",
    "QueueRepository",
    "Message",
    # Exceptions
    "StorageError",
    "TransientStorageError",
    "QueueError",
    # AWS implementations
    "AWSClientFactory",
    "TimestreamTimeSeriesRepository",
    "DynamoDBFutureItemRepository",
    "DynamoDBIdentifierRepository",
    "SSMParameterStore",
    "SQSQueueRepository",
]
