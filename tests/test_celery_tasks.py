"""
Tests for Celery tasks.

These tests verify that tasks are properly configured and can be executed.
Uses Celery's eager mode for synchronous task execution.
"""

import pytest
from unittest.mock import AsyncMock, Mock, patch

from celery.schedules import crontab

from tiered_timeseries.ingestion.dispatcher import DispatchSummary
from tiered_timeseries.storage.interfaces import QueueError
from tiered_timeseries.tasks import app, get_scheduled_tasks
from tiered_timeseries.tasks.dispatch import DispatchTask, dispatch_identifiers_task


# Fixtures

@pytest.fixture(scope="session")
def celery_config():
    """Configure Celery for testing."""
    return {
        "broker_url": "memory://",
        "task_always_eager": True,  # Execute tasks synchronously
        "task_eager_propagates": True,  # Propagate exceptions
    }


@pytest.fixture(scope="session")
def celery_app(celery_config):
    """Configure the Celery app for testing."""
    app.conf.update(celery_config)
    return app


def _mock_dispatcher(summary=None, error=None):
    dispatcher = Mock()
    dispatcher.dispatch = AsyncMock(return_value=summary, side_effect=error)
    return dispatcher


# Schedule Tests

def test_daily_dispatch_schedule():
    schedule = get_scheduled_tasks()

    entry = schedule["dispatch-identifiers-daily"]
    assert entry["task"] == "tiered_timeseries.tasks.dispatch.dispatch_identifiers_task"
    assert entry["schedule"] == crontab(hour=1, minute=0)


def test_task_is_registered(celery_app):
    assert "tiered_timeseries.tasks.dispatch.dispatch_identifiers_task" in celery_app.tasks


def test_retry_configuration():
    assert DispatchTask.retry_kwargs == {"max_retries": 3}
    assert DispatchTask.retry_backoff is True


# Dispatch Task Tests

def test_dispatch_task_returns_summary(celery_app):
    summary = DispatchSummary(identifiers=3, batches=2, message_ids=["m1", "m2"])

    with patch(
        "tiered_timeseries.tasks.dispatch.IdentifierDispatcher.from_settings",
        return_value=_mock_dispatcher(summary),
    ), patch("tiered_timeseries.tasks.dispatch.get_settings"):
        result = dispatch_identifiers_task.apply()

    assert result.successful()
    assert result.result == {"identifiers": 3, "batches": 2, "message_ids": ["m1", "m2"]}


def test_dispatch_task_propagates_queue_errors(celery_app):
    dispatcher = _mock_dispatcher(error=QueueError("1/2 messages failed to publish"))

    with patch(
        "tiered_timeseries.tasks.dispatch.IdentifierDispatcher.from_settings",
        return_value=dispatcher,
    ), patch("tiered_timeseries.tasks.dispatch.get_settings"):
        with pytest.raises(QueueError):
            dispatch_identifiers_task.apply()

    assert dispatcher.dispatch.await_count >= 1
