"""
Ingestion pipeline orchestrator.

Runs one dispatch batch end to end:
1. Resolve the upstream API key (before any fetch)
2. Fetch samples for every identifier (bounded concurrency)
3. Classify all fetched samples against one ``now`` snapshot
4. Write past samples to the time store and future samples to the
   future store, skipping an empty subset

If any chunk write failed, the run raises IngestionError with the full
report so the batch is redelivered by the queue. Both tiers are safe to
rewrite: future items upsert by key and past records carry a version
taken from the snapshot.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from tiered_timeseries.config import Settings
from tiered_timeseries.ingestion.classifier import (
    classify,
    to_future_items,
    to_past_records,
)
from tiered_timeseries.ingestion.credentials import CredentialCache
from tiered_timeseries.ingestion.source import SampleSource, StubSampleSource
from tiered_timeseries.ingestion.writers import FutureStoreWriter, TimeSeriesWriter
from tiered_timeseries.observability.logging import log_context
from tiered_timeseries.observability.metrics import (
    batch_duration,
    batches_processed_counter,
    samples_classified_counter,
    track_duration,
)
from tiered_timeseries.query.relative_time import round_half_up
from tiered_timeseries.types import DispatchBatch, IngestionReport, Sample

logger = logging.getLogger(__name__)


class IngestionError(Exception):
    """Raised when a batch finished with failed chunk writes."""

    def __init__(self, report: IngestionReport):
        self.report = report
        failures = "; ".join(report.failures)
        super().__init__(f"Batch {report.batch_id} had failed writes: {failures}")


class IngestionPipeline:
    """Fetch, classify and write one dispatch batch at a time."""

    def __init__(
        self,
        source: SampleSource,
        timeseries_writer: TimeSeriesWriter,
        future_writer: FutureStoreWriter,
        credentials: CredentialCache,
        fetch_concurrency: int = 1,
        future_ttl_days: int = 7,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the pipeline.

        Args:
            source: Upstream sample source
            timeseries_writer: Writer for past records
            future_writer: Writer for future items
            credentials: Cache holding the upstream API key
            fetch_concurrency: Identifiers fetched at once (1 = sequential)
            future_ttl_days: Lifetime of future items after ingestion
            clock: Wall clock in epoch seconds
        """
        if fetch_concurrency < 1:
            raise ValueError("fetch_concurrency must be at least 1")

        self._source = source
        self._timeseries_writer = timeseries_writer
        self._future_writer = future_writer
        self._credentials = credentials
        self._fetch_concurrency = fetch_concurrency
        self._future_ttl_days = future_ttl_days
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        clients=None,
        source: Optional[SampleSource] = None,
    ) -> "IngestionPipeline":
        """
        Build a pipeline backed by AWS stores.

        Raises:
            ConfigurationError: If ingestion settings are incomplete
        """
        from tiered_timeseries.storage import (
            AWSClientFactory,
            DynamoDBFutureItemRepository,
            SSMParameterStore,
            TimestreamTimeSeriesRepository,
        )

        settings.require_ingestion()
        clients = clients or AWSClientFactory.from_settings(settings)

        credentials = CredentialCache(
            value=settings.source_api_key,
            parameter_name=settings.source_api_key_parameter,
            parameter_store=SSMParameterStore(clients),
            ttl_seconds=settings.credential_ttl_seconds,
            name="source API key",
        )

        return cls(
            source=source or StubSampleSource(),
            timeseries_writer=TimeSeriesWriter(
                TimestreamTimeSeriesRepository(
                    clients, settings.ts_db_name, settings.ts_table_name
                )
            ),
            future_writer=FutureStoreWriter(
                DynamoDBFutureItemRepository(clients, settings.future_table)
            ),
            credentials=credentials,
            fetch_concurrency=settings.fetch_concurrency,
            future_ttl_days=settings.future_ttl_days,
        )

    async def _fetch_all(self, identifiers: List[str], api_key: str) -> List[Sample]:
        semaphore = asyncio.Semaphore(self._fetch_concurrency)

        async def fetch_one(identifier: str) -> List[Sample]:
            async with semaphore:
                samples = await self._source.fetch(identifier, api_key)
                logger.debug(f"Fetched {len(samples)} samples for {identifier}")
                return samples

        results = await asyncio.gather(*(fetch_one(i) for i in identifiers))

        samples: List[Sample] = []
        for batch_samples in results:
            samples.extend(batch_samples)
        return samples

    @track_duration(batch_duration)
    async def run(self, batch: DispatchBatch) -> IngestionReport:
        """
        Process one dispatch batch.

        Args:
            batch: Identifiers to ingest

        Returns:
            IngestionReport for the batch

        Raises:
            IngestionError: If any chunk write failed
            CredentialError: If the API key cannot be resolved
        """
        with log_context(batch_id=batch.id):
            api_key = await self._credentials.get()

            samples = await self._fetch_all(batch.identifiers, api_key)

            now_seconds = round_half_up(self._clock())
            past, future = classify(samples, now_seconds)

            samples_classified_counter.labels(tier="past").inc(len(past))
            samples_classified_counter.labels(tier="future").inc(len(future))
            logger.info(
                f"Batch {batch.id}: {len(samples)} samples for "
                f"{len(batch.identifiers)} identifiers ({len(past)} past, {len(future)} future)"
            )

            report = IngestionReport(
                batch_id=batch.id,
                identifiers=list(batch.identifiers),
                now_seconds=now_seconds,
                fetched=len(samples),
                past=len(past),
                future=len(future),
            )

            if past:
                report.timeseries = await self._timeseries_writer.write(
                    to_past_records(past, now_seconds)
                )

            if future:
                report.future_store = await self._future_writer.write(
                    to_future_items(future, now_seconds, ttl_days=self._future_ttl_days)
                )

            if not report.ok:
                batches_processed_counter.labels(outcome="failure").inc()
                raise IngestionError(report)

            batches_processed_counter.labels(outcome="success").inc()
            logger.info(f"Batch {batch.id} done")
            return report
