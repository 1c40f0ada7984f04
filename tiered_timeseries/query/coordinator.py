"""
Query coordinator.

Serves a range query across both storage tiers. The time store is always
read; the future store is read only when the historical rows do not reach
the end of the requested window.
"""

import logging
import time
from typing import Callable, List

from tiered_timeseries.config import Settings
from tiered_timeseries.observability.metrics import (
    future_store_fallback_counter,
    query_requests_counter,
)
from tiered_timeseries.query.relative_time import round_half_up, to_relative_expression
from tiered_timeseries.storage.interfaces import (
    FutureItemRepository,
    TimeSeriesRepository,
)
from tiered_timeseries.types import QueryResult, QueryRow, StoredFutureItem

logger = logging.getLogger(__name__)


def should_query_future_store(historical_rows: List[QueryRow], end_ms: int) -> bool:
    """
    Decide whether the future store has to be read.

    ``historical_rows`` are ordered newest first, so the first row is the
    most recent one.
    """
    if not historical_rows:
        return True
    return historical_rows[0].time < end_ms


def future_item_to_row(item: StoredFutureItem) -> QueryRow:
    return QueryRow(identifier=item.identifier, cpu=item.value, time=item.time * 1000)


class QueryCoordinator:
    """Reads a time window for one identifier from both tiers."""

    def __init__(
        self,
        timeseries: TimeSeriesRepository,
        future_items: FutureItemRepository,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the coordinator.

        Args:
            timeseries: Time store repository
            future_items: Future store repository
            clock: Wall clock in epoch seconds
        """
        self._timeseries = timeseries
        self._future_items = future_items
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clients=None) -> "QueryCoordinator":
        from tiered_timeseries.storage import (
            AWSClientFactory,
            DynamoDBFutureItemRepository,
            TimestreamTimeSeriesRepository,
        )

        clients = clients or AWSClientFactory.from_settings(settings)
        return cls(
            timeseries=TimestreamTimeSeriesRepository(
                clients, settings.ts_db_name, settings.ts_table_name
            ),
            future_items=DynamoDBFutureItemRepository(clients, settings.future_table),
        )

    async def query(self, identifier: str, start_ms: int, end_ms: int) -> QueryResult:
        """
        Query both tiers for ``identifier`` between two epoch-ms bounds.

        Args:
            identifier: Series identifier
            start_ms: Window start in epoch milliseconds
            end_ms: Window end in epoch milliseconds

        Returns:
            QueryResult with historical and future rows, unmerged

        Raises:
            StorageError: If a store query fails
        """
        query_requests_counter.inc()
        now_ms = int(self._clock() * 1000)

        start_expr = to_relative_expression(start_ms, now_ms)
        end_expr = to_relative_expression(end_ms, now_ms)
        logger.debug(f"Querying {identifier} between {start_expr} and {end_expr}")

        historical_rows = await self._timeseries.query(identifier, start_expr, end_expr)

        future_rows: List[QueryRow] = []
        if should_query_future_store(historical_rows, end_ms):
            future_store_fallback_counter.inc()
            items = await self._future_items.query_range(
                identifier,
                round_half_up(start_ms / 1000),
                round_half_up(end_ms / 1000),
            )
            future_rows = [future_item_to_row(item) for item in items]

        logger.info(
            f"Query for {identifier}: {len(historical_rows)} historical rows, "
            f"{len(future_rows)} future rows"
        )
        return QueryResult(historical_rows=historical_rows, future_rows=future_rows)
