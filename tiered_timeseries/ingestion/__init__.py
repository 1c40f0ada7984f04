"""
Ingestion: identifier dispatch, sample classification and tiered writes.
"""

from tiered_timeseries.ingestion.batching import batch_identifiers, unique_identifiers
from tiered_timeseries.ingestion.classifier import (
    Classification,
    classify,
    to_future_items,
    to_past_records,
)
from tiered_timeseries.ingestion.credentials import CredentialCache, CredentialError
from tiered_timeseries.ingestion.dispatcher import DispatchSummary, IdentifierDispatcher
from tiered_timeseries.ingestion.pipeline import IngestionError, IngestionPipeline
from tiered_timeseries.ingestion.source import SampleSource, StubSampleSource
from tiered_timeseries.ingestion.writers import (
    FutureStoreWriter,
    TimeSeriesWriter,
    chunked,
)

__all__ = [
    "batch_identifiers",
    "unique_identifiers",
    "Classification",
    "classify",
    "to_past_records",
    "to_future_items",
    "CredentialCache",
    "CredentialError",
    "DispatchSummary",
    "IdentifierDispatcher",
    "IngestionError",
    "IngestionPipeline",
    "SampleSource",
    "StubSampleSource",
    "TimeSeriesWriter",
    "FutureStoreWriter",
    "chunked",
]
