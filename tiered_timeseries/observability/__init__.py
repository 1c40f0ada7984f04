"""
Observability module for logging and metrics.

- Structured JSON logging with scoped context
- Prometheus metrics for ingestion and query paths
"""

from tiered_timeseries.observability.logging import (
    get_logger,
    log_context,
    setup_logging,
)
from tiered_timeseries.observability.metrics import (
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "log_context",
    # Metrics
    "metrics_registry",
    "get_metrics",
]
