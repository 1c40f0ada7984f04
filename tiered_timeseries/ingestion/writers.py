"""
Chunked writers for both storage tiers.

Each writer splits its input into backend-sized chunks and submits them one
at a time, awaiting each acknowledgement before sending the next. Every
chunk yields a ChunkResult:

- partial rejection: logged and counted, the remaining chunks still run
- failed write (StorageError): recorded as a failed chunk, the remaining
  chunks still run, and the caller decides what to do with the report

Anything that is not a StorageError propagates immediately.
"""

import logging
from typing import Generic, List, Sequence, TypeVar

from tiered_timeseries.config import FUTURE_CHUNK_SIZE, TIMESERIES_CHUNK_SIZE
from tiered_timeseries.observability.metrics import (
    rejected_records_counter,
    write_chunks_counter,
)
from tiered_timeseries.storage.interfaces import (
    FutureItemRepository,
    StorageError,
    TimeSeriesRepository,
)
from tiered_timeseries.types import (
    ChunkResult,
    StoredFutureItem,
    StoredPastRecord,
    WriteReport,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> List[Sequence[T]]:
    """Split a sequence into consecutive chunks of at most ``size``."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [items[start:start + size] for start in range(0, len(items), size)]


class ChunkedWriter(Generic[T]):
    """Base class for writers that submit bounded chunks sequentially."""

    store_name = "store"

    def __init__(self, chunk_size: int):
        self.chunk_size = chunk_size

    async def _write_chunk(self, chunk: List[T]) -> ChunkResult:
        raise NotImplementedError

    async def write(self, items: Sequence[T]) -> WriteReport:
        """
        Write all items in chunks.

        Args:
            items: Items to write (not modified)

        Returns:
            WriteReport with one ChunkResult per chunk
        """
        report = WriteReport(store=self.store_name)
        chunks = chunked(items, self.chunk_size)

        logger.info(
            f"Putting {len(items)} records into {self.store_name} "
            f"in {len(chunks)} chunks"
        )

        for index, chunk in enumerate(chunks):
            try:
                result = await self._write_chunk(list(chunk))
            except StorageError as e:
                logger.error(
                    f"Error writing chunk {index} ({len(chunk)} records) "
                    f"to {self.store_name}: {e}"
                )
                result = ChunkResult(size=len(chunk), error=str(e))
                write_chunks_counter.labels(store=self.store_name, outcome="failure").inc()
            else:
                if result.rejected:
                    logger.warning(
                        f"{self.store_name} rejected records in chunk {index}: "
                        f"{[r.model_dump() for r in result.rejected]}"
                    )
                    rejected_records_counter.labels(store=self.store_name).inc(
                        len(result.rejected)
                    )
                    write_chunks_counter.labels(store=self.store_name, outcome="partial").inc()
                else:
                    logger.debug(f"Write of chunk {index} to {self.store_name} successful")
                    write_chunks_counter.labels(store=self.store_name, outcome="success").inc()

            result.index = index
            report.chunks.append(result)

        return report


class TimeSeriesWriter(ChunkedWriter[StoredPastRecord]):
    """Appends past records to the time store, 100 per call."""

    store_name = "timeseries"

    def __init__(
        self,
        repository: TimeSeriesRepository,
        chunk_size: int = TIMESERIES_CHUNK_SIZE,
    ):
        super().__init__(chunk_size)
        self._repository = repository

    async def _write_chunk(self, chunk: List[StoredPastRecord]) -> ChunkResult:
        return await self._repository.write_records(chunk)


class FutureStoreWriter(ChunkedWriter[StoredFutureItem]):
    """Upserts future items into the ephemeral store, 25 per call."""

    store_name = "future"

    def __init__(
        self,
        repository: FutureItemRepository,
        chunk_size: int = FUTURE_CHUNK_SIZE,
    ):
        super().__init__(chunk_size)
        self._repository = repository

    async def _write_chunk(self, chunk: List[StoredFutureItem]) -> ChunkResult:
        return await self._repository.batch_write(chunk)
