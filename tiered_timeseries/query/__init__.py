"""
Read path: range queries across the time store and the future store.
"""

from tiered_timeseries.query.coordinator import (
    QueryCoordinator,
    future_item_to_row,
    should_query_future_store,
)
from tiered_timeseries.query.relative_time import (
    MS_PER_HOUR,
    NOW_EXPRESSION,
    round_half_up,
    to_relative_expression,
)

__all__ = [
    "QueryCoordinator",
    "future_item_to_row",
    "should_query_future_store",
    "MS_PER_HOUR",
    "NOW_EXPRESSION",
    "round_half_up",
    "to_relative_expression",
]
