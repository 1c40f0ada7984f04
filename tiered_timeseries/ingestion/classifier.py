"""
Past/future classification of samples.

A sample strictly older than the ingestion snapshot goes to the time store;
anything at or after the snapshot goes to the future store. The snapshot is
taken once per batch so every sample in it is judged against the same
instant.
"""

from typing import Iterable, List, NamedTuple

from tiered_timeseries.types import Sample, StoredFutureItem, StoredPastRecord

SECONDS_PER_DAY = 24 * 60 * 60


class Classification(NamedTuple):
    past: List[Sample]
    future: List[Sample]


def classify(samples: Iterable[Sample], now_seconds: int) -> Classification:
    """
    Split samples into past and future.

    Args:
        samples: Samples to route
        now_seconds: Ingestion snapshot in epoch seconds

    Returns:
        Classification with every sample in exactly one list, order preserved
    """
    past: List[Sample] = []
    future: List[Sample] = []

    for sample in samples:
        if sample.time < now_seconds:
            past.append(sample)
        else:
            future.append(sample)

    return Classification(past=past, future=future)


def to_past_records(samples: Iterable[Sample], now_seconds: int) -> List[StoredPastRecord]:
    """Map past samples to time-store records versioned by the snapshot (ms)."""
    version = now_seconds * 1000
    return [StoredPastRecord.from_sample(sample, version=version) for sample in samples]


def to_future_items(
    samples: Iterable[Sample], now_seconds: int, ttl_days: int = 7
) -> List[StoredFutureItem]:
    """Map future samples to store items expiring ``ttl_days`` after the snapshot."""
    expiry = now_seconds + ttl_days * SECONDS_PER_DAY
    return [StoredFutureItem.from_sample(sample, expiry=expiry) for sample in samples]
