"""
Test fixtures and sample data for development and testing.

This module provides factories for samples, stored records and wired-up
pipelines backed by the in-memory mocks.
"""

from typing import Iterable, List, Optional

from tiered_timeseries.ingestion.credentials import CredentialCache
from tiered_timeseries.ingestion.pipeline import IngestionPipeline
from tiered_timeseries.ingestion.writers import FutureStoreWriter, TimeSeriesWriter
from tiered_timeseries.types import Sample, StoredFutureItem, StoredPastRecord
from tests.mocks import MockFutureItemRepository, MockTimeSeriesRepository


# Fixed reference time: 2022-06-02T06:43:41Z
NOW_SECONDS = 1654152221
NOW_MS = NOW_SECONDS * 1000


class FixedClock:
    """Callable clock returning a settable epoch-seconds value."""

    def __init__(self, seconds: float = NOW_SECONDS):
        self.seconds = seconds

    def __call__(self) -> float:
        return self.seconds

    def advance(self, seconds: float) -> None:
        self.seconds += seconds


# ============================================================================
# Sample Data
# ============================================================================


def create_sample(
    identifier: str = "11111",
    time: int = NOW_SECONDS,
    value: str = "50",
    metadata: str = "",
) -> Sample:
    """Create a sample."""
    return Sample(identifier=identifier, time=time, value=value, metadata=metadata)


def create_samples(
    count: int,
    identifier: str = "11111",
    start: int = NOW_SECONDS - 86400,
    step: int = 300,
) -> List[Sample]:
    """Create evenly spaced samples starting at ``start``."""
    return [
        create_sample(identifier=identifier, time=start + i * step, value=str(i % 100))
        for i in range(count)
    ]


def create_past_records(count: int, identifier: str = "11111") -> List[StoredPastRecord]:
    """Create time-store records in the past."""
    return [
        StoredPastRecord.from_sample(sample, version=NOW_MS)
        for sample in create_samples(count, identifier=identifier)
    ]


def create_future_items(count: int, identifier: str = "11111") -> List[StoredFutureItem]:
    """Create future-store items after the reference time."""
    return [
        StoredFutureItem.from_sample(sample, expiry=NOW_SECONDS + 7 * 86400)
        for sample in create_samples(count, identifier=identifier, start=NOW_SECONDS + 60)
    ]


# ============================================================================
# Sample Sources
# ============================================================================


class StaticSampleSource:
    """Sample source returning fixed samples per identifier."""

    def __init__(self, samples: Iterable[Sample]):
        self._samples = list(samples)
        self.fetched: List[str] = []
        self.api_keys: List[str] = []

    async def fetch(self, identifier: str, api_key: str) -> List[Sample]:
        self.fetched.append(identifier)
        self.api_keys.append(api_key)
        return [s for s in self._samples if s.identifier == identifier]


# ============================================================================
# Pipelines
# ============================================================================


def create_pipeline(
    source,
    timeseries: Optional[MockTimeSeriesRepository] = None,
    future_items: Optional[MockFutureItemRepository] = None,
    credentials: Optional[CredentialCache] = None,
    clock: Optional[FixedClock] = None,
    fetch_concurrency: int = 1,
) -> IngestionPipeline:
    """Wire an ingestion pipeline to in-memory stores."""
    return IngestionPipeline(
        source=source,
        timeseries_writer=TimeSeriesWriter(timeseries or MockTimeSeriesRepository()),
        future_writer=FutureStoreWriter(future_items or MockFutureItemRepository()),
        credentials=credentials or CredentialCache(value="test-api-key"),
        fetch_concurrency=fetch_concurrency,
        clock=clock or FixedClock(),
    )
