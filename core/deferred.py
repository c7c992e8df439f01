"""
Queueing helpers for Celery tasks fired from request-handling code.
"""
import logging

from django.db import transaction

logger = logging.getLogger(__name__)


def enqueue(task, *args) -> None:
    # Don't fail the caller if task queuing fails
    try:
        task.delay(*args)
    except Exception as e:
        logger.error(f"Failed to queue {task.name}: {e}")


def enqueue_on_commit(task, *args) -> None:
    """Queue `task` once the surrounding transaction commits."""
    transaction.on_commit(lambda: enqueue(task, *args))
