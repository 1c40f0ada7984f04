"""
Storage layer interface contracts.

This module defines Protocol classes for the stores the service talks to,
plus the storage exception hierarchy. The AWS adapters and the in-memory
test doubles both implement these contracts.
"""

from typing import List, Optional, Protocol

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from tiered_timeseries.types import (
    ChunkResult,
    QueryRow,
    StoredFutureItem,
    StoredPastRecord,
)


# ============================================================================
# Repository Interfaces (Protocol-based for type checking)
# ============================================================================


class TimeSeriesRepository(Protocol):
    """Append-only time-partitioned store for past samples."""

    async def write_records(self, records: List[StoredPastRecord]) -> ChunkResult:
        """
        Write one chunk of records.

        Args:
            records: At most 100 records

        Returns:
            Chunk result; records the store refused are listed in
            ``rejected`` and do not make the call fail

        Raises:
            StorageError: If the write fails as a whole
        """
        ...

    async def query(self, identifier: str, start: str, end: str) -> List[QueryRow]:
        """
        Query rows for an identifier between two relative-time expressions.

        Args:
            identifier: Series identifier
            start: Lower bound expression, e.g. ``ago(3h)``
            end: Upper bound expression, e.g. ``now()``

        Returns:
            Rows ordered by time, most recent first

        Raises:
            StorageError: If the query fails
        """
        ...


class FutureItemRepository(Protocol):
    """Ephemeral key-value store for future samples."""

    async def batch_write(self, items: List[StoredFutureItem]) -> ChunkResult:
        """
        Upsert one chunk of items keyed by (identifier, time).

        Args:
            items: At most 25 items

        Returns:
            Chunk result; items that could not be written are in ``rejected``

        Raises:
            StorageError: If the write fails as a whole
        """
        ...

    async def query_range(
        self, identifier: str, start_seconds: int, end_seconds: int
    ) -> List[StoredFutureItem]:
        """
        Return items for an identifier with ``start <= time <= end``.

        Raises:
            StorageError: If the query fails
        """
        ...


class IdentifierRepository(Protocol):
    """Source of known identifiers."""

    async def scan_identifiers(self) -> List[str]:
        """Return every stored identifier (may contain duplicates)."""
        ...

    async def add_identifier(self, identifier: str) -> None:
        """Register an identifier."""
        ...


class ParameterStore(Protocol):
    """Secret / parameter lookup."""

    async def get_parameter(self, name: str) -> Optional[str]:
        """Return the decrypted value of a parameter, or None if it has none."""
        ...


# ============================================================================
# Exceptions
# ============================================================================


class StorageError(Exception):
    """Base exception for storage operations."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


class TransientStorageError(StorageError):
    """Throttling or connectivity failure that persisted through client retries."""

    pass


class QueueError(StorageError):
    """Exception for dispatch queue operations."""

    pass


TRANSIENT_ERROR_CODES = frozenset({
    "ThrottlingException",
    "Throttling",
    "ProvisionedThroughputExceededException",
    "RequestLimitExceeded",
    "InternalServerError",
    "InternalServerException",
    "ServiceUnavailable",
    "ServiceUnavailableException",
})


def translate_aws_error(error: Exception, operation: str) -> StorageError:
    """
    Convert a botocore error into the storage exception hierarchy.

    Args:
        error: Exception raised by an AWS client call
        operation: Human readable operation name for the message

    Returns:
        TransientStorageError for throttling/connectivity, StorageError otherwise
    """
    if isinstance(error, ClientError):
        code = error.response.get("Error", {}).get("Code", "Unknown")
        message = error.response.get("Error", {}).get("Message", str(error))
        cls = TransientStorageError if code in TRANSIENT_ERROR_CODES else StorageError
        return cls(f"{operation} failed: {code}: {message}", code=code)

    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return TransientStorageError(f"{operation} failed: {error}", code=type(error).__name__)

    if isinstance(error, BotoCoreError):
        return StorageError(f"{operation} failed: {error}", code=type(error).__name__)

    return StorageError(f"{operation} failed: {error}")
