"""
Shared type definitions for the tiered time-series service.

These models are the contract between the dispatcher, the ingestion
pipeline, the storage adapters and the query path.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from tiered_timeseries.config import IDENTIFIER_DIMENSION, MEASURE_NAME


# ============================================================================
# Core Data Models
# ============================================================================


class Sample(BaseModel):
    """A single time-stamped value produced by a sample source."""

    identifier: str
    time: int  # epoch seconds
    value: str
    metadata: str = ""

    model_config = {"frozen": True}


class DispatchBatch(BaseModel):
    """A group of identifiers processed by one ingestion run."""

    id: str
    identifiers: List[str] = Field(default_factory=list)

    def to_message_body(self) -> Dict[str, Any]:
        """Body published to the dispatch queue."""
        return {"identifiers": list(self.identifiers)}


class StoredPastRecord(BaseModel):
    """A past sample in the time store's record shape."""

    identifier: str
    value: str
    time: int  # epoch seconds
    version: int  # higher version overwrites an existing record

    model_config = {"frozen": True}

    @classmethod
    def from_sample(cls, sample: Sample, version: int) -> "StoredPastRecord":
        return cls(
            identifier=sample.identifier,
            value=sample.value,
            time=sample.time,
            version=version,
        )

    def to_timestream(self) -> Dict[str, Any]:
        """Render as a Timestream ``WriteRecords`` record."""
        return {
            "Dimensions": [{"Name": IDENTIFIER_DIMENSION, "Value": self.identifier}],
            "MeasureName": MEASURE_NAME,
            "MeasureValue": self.value,
            "MeasureValueType": "VARCHAR",
            "Time": str(self.time),
            "TimeUnit": "SECONDS",
            "Version": self.version,
        }


class StoredFutureItem(BaseModel):
    """A future sample in the ephemeral store, keyed by (identifier, time)."""

    identifier: str
    time: int  # epoch seconds, sort key
    value: str
    metadata: str = ""
    document: str  # JSON of the original sample
    expiry: int  # epoch seconds, TTL attribute

    model_config = {"frozen": True}

    @classmethod
    def from_sample(cls, sample: Sample, expiry: int) -> "StoredFutureItem":
        return cls(
            identifier=sample.identifier,
            time=sample.time,
            value=sample.value,
            metadata=sample.metadata,
            document=json.dumps(sample.model_dump()),
            expiry=expiry,
        )

    @property
    def key(self) -> tuple:
        return (self.identifier, self.time)


# ============================================================================
# Query Models
# ============================================================================


class QueryRow(BaseModel):
    """One row of a query result; ``time`` is epoch milliseconds."""

    identifier: str
    cpu: str
    time: int


class QueryResult(BaseModel):
    """Rows from both tiers, returned side by side without merging."""

    historical_rows: List[QueryRow] = Field(default_factory=list, alias="historicalRows")
    future_rows: List[QueryRow] = Field(default_factory=list, alias="futureRows")

    model_config = {"populate_by_name": True}


# ============================================================================
# Write Results
# ============================================================================


class RejectedRecord(BaseModel):
    """A record the backend refused within an otherwise accepted chunk."""

    index: int
    reason: Optional[str] = None
    key: Optional[str] = None


class ChunkResult(BaseModel):
    """Outcome of a single chunk write."""

    index: int = 0
    size: int
    written: int = 0
    rejected: List[RejectedRecord] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        """True when the chunk write itself failed (not a partial rejection)."""
        return self.error is not None


class WriteReport(BaseModel):
    """Aggregated outcome of writing one subset to one store."""

    store: str
    chunks: List[ChunkResult] = Field(default_factory=list)

    @property
    def written(self) -> int:
        return sum(chunk.written for chunk in self.chunks)

    @property
    def rejected(self) -> int:
        return sum(len(chunk.rejected) for chunk in self.chunks)

    @property
    def failed_chunks(self) -> List[ChunkResult]:
        return [chunk for chunk in self.chunks if chunk.failed]

    @property
    def ok(self) -> bool:
        return not self.failed_chunks


class IngestionReport(BaseModel):
    """Summary of one pipeline run over a dispatch batch."""

    batch_id: str
    identifiers: List[str]
    now_seconds: int
    fetched: int = 0
    past: int = 0
    future: int = 0
    timeseries: Optional[WriteReport] = None
    future_store: Optional[WriteReport] = None

    @property
    def ok(self) -> bool:
        reports = [r for r in (self.timeseries, self.future_store) if r is not None]
        return all(report.ok for report in reports)

    @property
    def failures(self) -> List[str]:
        messages = []
        for report in (self.timeseries, self.future_store):
            if report is None:
                continue
            for chunk in report.failed_chunks:
                messages.append(f"{report.store} chunk {chunk.index}: {chunk.error}")
        return messages
