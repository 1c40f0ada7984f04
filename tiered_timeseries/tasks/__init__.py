"""
Celery configuration for the tiered time-series service.

The only periodic job is the daily identifier dispatch. The broker
defaults to SQS (``sqs://``); results are not stored.
"""

import logging
import os

from celery import Celery
from celery.schedules import crontab

logger = logging.getLogger(__name__)


# Celery configuration
class CeleryConfig:
    """Celery configuration class."""

    # Broker settings
    broker_url = os.getenv("CELERY_BROKER_URL", "sqs://")
    broker_transport_options = {
        "region": os.getenv("AWS_REGION", "us-west-2"),
    }
    task_ignore_result = True

    # Task settings
    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]
    timezone = "UTC"
    enable_utc = True

    # Task execution settings
    task_acks_late = True  # Acknowledge task after completion
    task_reject_on_worker_lost = True  # Requeue tasks if worker crashes
    worker_prefetch_multiplier = 1

    task_default_queue = "tiered-timeseries-dispatch"

    # Beat schedule (periodic tasks)
    beat_schedule = {
        # Dispatch all identifiers daily at 01:00 UTC
        "dispatch-identifiers-daily": {
            "task": "tiered_timeseries.tasks.dispatch.dispatch_identifiers_task",
            "schedule": crontab(hour=1, minute=0),
        },
    }

    # Logging
    worker_hijack_root_logger = False
    worker_log_format = "[%(asctime)s: %(levelname)s/%(processName)s] %(message)s"
    worker_task_log_format = "[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s"


# Create Celery app
app = Celery("tiered_timeseries", include=["tiered_timeseries.tasks.dispatch"])
app.config_from_object(CeleryConfig)


@app.on_after_finalize.connect
def setup_task_monitoring(sender, **kwargs):
    """Log once the app is finalized."""
    logger.info("Celery app finalized and ready")


def get_scheduled_tasks():
    """
    Get the configured periodic tasks.

    Returns:
        Dictionary of beat schedule entries
    """
    return dict(app.conf.beat_schedule)


__all__ = ["app", "CeleryConfig", "get_scheduled_tasks"]
