"""
Celery application configuration.
Sets up Celery with Redis broker and result backend.
"""
import logging
from celery import Celery
from celery.signals import task_failure, task_postrun, task_prerun, worker_init

from wallvault.config import settings
from wallvault.utils.logging import configure_logging
from wallvault.utils.metrics import (
    celery_tasks_completed_total,
    celery_tasks_failed_total,
    celery_tasks_running,
)
from wallvault.workers.metrics_server import start_metrics_server

logger = logging.getLogger(__name__)

# Create Celery app
celery_app = Celery(
    "wallvault",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "wallvault.tasks.migrate_to_r2",
    ]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    # Migration batches run one at a time per worker
    worker_prefetch_multiplier=1,
    worker_concurrency=1,
)


@worker_init.connect
def worker_init_handler(sender=None, **kwargs):
    """Configure logging and metrics when a worker boots."""
    configure_logging('wallvault-worker', settings.log_level)
    try:
        start_metrics_server(port=settings.worker_metrics_port)
    except OSError as e:
        logger.warning(f"Failed to start metrics server: {e}")


# Celery signal handlers for metrics
@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, **kwds):
    """Track task start."""
    celery_tasks_running.labels(task=task.name if task else "unknown").inc()


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, state=None, **kwds):
    """Track task completion."""
    task_name = task.name if task else "unknown"
    celery_tasks_running.labels(task=task_name).dec()
    celery_tasks_completed_total.labels(task=task_name, state=state or "unknown").inc()


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, **kwds):
    """Track task failures."""
    celery_tasks_failed_total.labels(task=sender.name if sender else "unknown").inc()
