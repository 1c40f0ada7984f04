"""
Tiered time-series ingestion and query service.

Past samples land in an append-only time store, future samples in an
expiring key-value store; range queries read both.
"""

__version__ = "1.0.0"
