"""
Relative-time expressions for the time store's query language.

Timestream cannot address absolute future instants in a range filter, so
absolute request bounds are rewritten as offsets from the current time.
"""

import math

MS_PER_HOUR = 60 * 60 * 1000
NOW_EXPRESSION = "now()"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (``2.5 -> 3``, ``-2.5 -> -2``)."""
    return int(math.floor(value + 0.5))


def to_relative_expression(timestamp_ms: int, now_ms: int) -> str:
    """
    Express an absolute timestamp relative to ``now_ms``.

    Args:
        timestamp_ms: Absolute time in epoch milliseconds
        now_ms: Current time in epoch milliseconds

    Returns:
        ``ago(<N>h)`` for timestamps before now, otherwise ``now()``
    """
    if timestamp_ms < now_ms:
        hours = round_half_up((now_ms - timestamp_ms) / MS_PER_HOUR)
        return f"ago({hours}h)"
    return NOW_EXPRESSION
