"""
Identifier batching.

Splits the known identifiers into small dispatch groups so that each
ingestion run stays well inside its time budget.
"""

import time
from typing import Iterable, List, Optional

from tiered_timeseries.config import BATCH_SIZE
from tiered_timeseries.types import DispatchBatch


def unique_identifiers(identifiers: Iterable[str]) -> List[str]:
    """Deduplicate identifiers, keeping first-seen order."""
    return list(dict.fromkeys(identifiers))


def batch_identifiers(
    identifiers: Iterable[str],
    batch_size: int = BATCH_SIZE,
    uid: Optional[int] = None,
) -> List[DispatchBatch]:
    """
    Partition identifiers into dispatch batches.

    Walks the identifiers in order, emitting a batch every ``batch_size``
    identifiers and a final partial batch for any remainder.

    Args:
        identifiers: Deduplicated identifiers
        batch_size: Maximum identifiers per batch
        uid: Run id used in batch ids (defaults to the current epoch ms)

    Returns:
        Batches with ids ``"{index}-{uid}"``
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    if uid is None:
        uid = int(time.time() * 1000)

    batches: List[DispatchBatch] = []
    current: List[str] = []

    for identifier in identifiers:
        current.append(identifier)
        if len(current) == batch_size:
            batches.append(DispatchBatch(id=f"{len(batches)}-{uid}", identifiers=current))
            current = []

    if current:
        batches.append(DispatchBatch(id=f"{len(batches)}-{uid}", identifiers=current))

    return batches
