"""
Mock implementations for testing.

In-memory stores and a fake aioboto3 session so tests run without AWS.
"""

from tests.mocks.aws import FakeSession, client_error
from tests.mocks.storage import (
    MockFutureItemRepository,
    MockIdentifierRepository,
    MockParameterStore,
    MockQueueRepository,
    MockTimeSeriesRepository,
)

__all__ = [
    "FakeSession",
    "client_error",
    "MockTimeSeriesRepository",
    "MockFutureItemRepository",
    "MockIdentifierRepository",
    "MockParameterStore",
    "MockQueueRepository",
]
