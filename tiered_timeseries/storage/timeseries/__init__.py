"""TimeSeries storage implementations."""

from tiered_timeseries.storage.timeseries.timestream import (
    TimestreamTimeSeriesRepository,
    build_range_query,
    iso_to_epoch_ms,
)

__all__ = [
    "TimestreamTimeSeriesRepository",
    "build_range_query",
    "iso_to_epoch_ms",
]
