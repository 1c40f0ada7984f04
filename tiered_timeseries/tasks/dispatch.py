"""
Celery task for dispatching identifiers to the ingestion queue.
"""

import asyncio
import logging
from typing import Any, Dict

from celery import Task

from tiered_timeseries.config import get_settings
from tiered_timeseries.ingestion.dispatcher import IdentifierDispatcher
from tiered_timeseries.storage.interfaces import StorageError
from tiered_timeseries.tasks import app

logger = logging.getLogger(__name__)


class DispatchTask(Task):
    """Base class for dispatch tasks; retries store and queue failures."""

    autoretry_for = (StorageError,)
    retry_kwargs = {"max_retries": 3}
    retry_backoff = True
    retry_backoff_max = 600  # 10 minutes
    retry_jitter = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        """Handle task failure."""
        logger.error(f"Dispatch task {task_id} failed: {exc}\nInfo: {einfo}")


@app.task(base=DispatchTask, name="tiered_timeseries.tasks.dispatch.dispatch_identifiers_task")
def dispatch_identifiers_task() -> Dict[str, Any]:
    """
    Publish one queue message per batch of known identifiers.

    Returns:
        Dictionary with identifier and batch counts

    Raises:
        ConfigurationError: If dispatch settings are missing (not retried)
    """
    logger.info("Starting identifier dispatch")

    summary = asyncio.run(_dispatch_async())
    logger.info(
        f"Dispatch complete: {summary['batches']} batches "
        f"for {summary['identifiers']} identifiers"
    )
    return summary


async def _dispatch_async() -> Dict[str, Any]:
    dispatcher = IdentifierDispatcher.from_settings(get_settings())
    summary = await dispatcher.dispatch()
    return summary.model_dump()
