"""
Prometheus metrics for the tiered time-series service.

This module defines and exports Prometheus metrics for monitoring:
- Samples classified per tier
- Write chunk outcomes per store
- Dispatch and batch processing outcomes
- Query requests and ephemeral-store fallbacks
- API request latencies
"""

import time
from functools import wraps
from typing import Callable

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    Info,
    generate_latest,
)

from tiered_timeseries import __version__


# Create a custom registry for this application
metrics_registry = CollectorRegistry()


# ============================================================================
# Ingestion Metrics
# ============================================================================

samples_classified_counter = Counter(
    "samples_classified_total",
    "Total number of samples routed to a storage tier",
    ["tier"],  # past, future
    registry=metrics_registry,
)

write_chunks_counter = Counter(
    "write_chunks_total",
    "Total number of chunk writes",
    ["store", "outcome"],  # outcome: success, partial, failure
    registry=metrics_registry,
)

rejected_records_counter = Counter(
    "rejected_records_total",
    "Total number of records rejected by a store",
    ["store"],
    registry=metrics_registry,
)

batches_processed_counter = Counter(
    "dispatch_batches_processed_total",
    "Total number of dispatch batches processed by the pipeline",
    ["outcome"],  # success, failure
    registry=metrics_registry,
)

batches_dispatched_counter = Counter(
    "dispatch_batches_published_total",
    "Total number of dispatch batches published to the queue",
    registry=metrics_registry,
)

batch_duration = Histogram(
    "dispatch_batch_duration_seconds",
    "Pipeline duration per dispatch batch in seconds",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    registry=metrics_registry,
)

# ============================================================================
# Query Metrics
# ============================================================================

query_requests_counter = Counter(
    "timeseries_queries_total",
    "Total number of range queries served",
    registry=metrics_registry,
)

future_store_fallback_counter = Counter(
    "future_store_queries_total",
    "Range queries that also read the ephemeral store",
    registry=metrics_registry,
)

api_request_duration = Histogram(
    "api_request_duration_seconds",
    "API request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
    registry=metrics_registry,
)

# ============================================================================
# Application Info
# ============================================================================

app_info = Info(
    "app",
    "Application information",
    registry=metrics_registry,
)

app_info.info({
    "name": "tiered-timeseries",
    "version": __version__,
})


# ============================================================================
# Decorators
# ============================================================================

def track_duration(histogram: Histogram):
    """
    Decorator to observe an async function's duration on a histogram.

    Example:
        @track_duration(batch_duration)
        async def run(batch):
            pass
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                return await func(*args, **kwargs)
            finally:
                histogram.observe(time.perf_counter() - start_time)

        return wrapper
    return decorator


# ============================================================================
# Metrics Endpoint Handler
# ============================================================================

def get_metrics() -> bytes:
    """Get Prometheus metrics in text format."""
    return generate_latest(metrics_registry)


__all__ = [
    "CONTENT_TYPE_LATEST",
    "metrics_registry",
    "samples_classified_counter",
    "write_chunks_counter",
    "rejected_records_counter",
    "batches_processed_counter",
    "batches_dispatched_counter",
    "batch_duration",
    "query_requests_counter",
    "future_store_fallback_counter",
    "api_request_duration",
    "track_duration",
    "get_metrics",
]
