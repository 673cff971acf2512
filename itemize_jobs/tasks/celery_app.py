"""Celery application bootstrap."""

from __future__ import annotations

from celery import Celery
from celery.signals import setup_logging

from itemize_jobs.core.config import get_config
from itemize_jobs.core.logging_config import configure_logging
from itemize_jobs.tasks.scheduler import init_scheduler

config = get_config()

celery_app = Celery(
    "itemize_jobs",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
    include=["itemize_jobs.tasks.maintenance_tasks"],
)
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
)

# Local/dev convenience: run tasks synchronously when requested.
if config.CELERY_TASK_ALWAYS_EAGER:
    celery_app.conf.task_always_eager = True


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    configure_logging()


scheduler = init_scheduler(celery_app, config)
