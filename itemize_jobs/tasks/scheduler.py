"""Cron trigger for the maintenance jobs.

``init_scheduler`` returns a handle that owns the Celery beat entries. The
handle goes disabled -> enabled once; starting it again is a logged no-op.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime
from functools import partial
from zoneinfo import ZoneInfo

from celery import Celery
from celery.schedules import crontab
from celery.signals import beat_init

from itemize_jobs.core.config import Config, get_config

logger = logging.getLogger(__name__)

INVOICE_JOBS_TASK = "invoices.run_all"
SIGNATURE_REMINDERS_TASK = "signatures.send_reminders"
INVOICE_JOBS_ENTRY = "invoice-jobs-daily"
SIGNATURE_REMINDERS_ENTRY = "signature-reminders-hourly"


class SchedulerState(str, enum.Enum):
    DISABLED = "disabled"
    ENABLED = "enabled"


def _now_in(timezone_name: str) -> datetime:
    return datetime.now(ZoneInfo(timezone_name))


def zoned_crontab(timezone_name: str, **fields) -> crontab:
    """A crontab evaluated against wall-clock time in ``timezone_name``."""
    return crontab(nowfun=partial(_now_in, timezone_name), **fields)


class JobScheduler:
    def __init__(self, app: Celery, config: Config) -> None:
        self.app = app
        self.config = config
        self.state = SchedulerState.DISABLED

    @property
    def enabled(self) -> bool:
        return self.state == SchedulerState.ENABLED

    def build_beat_schedule(self) -> dict[str, dict]:
        return {
            INVOICE_JOBS_ENTRY: {
                "task": INVOICE_JOBS_TASK,
                "schedule": zoned_crontab(self.config.INVOICE_JOBS_TIMEZONE, minute=0, hour=6),
            },
            SIGNATURE_REMINDERS_ENTRY: {
                "task": SIGNATURE_REMINDERS_TASK,
                "schedule": zoned_crontab(self.config.SIGNATURE_JOBS_TIMEZONE, minute=0),
            },
        }

    def start(self) -> "JobScheduler":
        if self.enabled:
            logger.warning("scheduler.already_started", extra={"event": "scheduler.already_started"})
            return self

        beat_schedule = dict(self.app.conf.beat_schedule or {})
        beat_schedule.update(self.build_beat_schedule())
        self.app.conf.beat_schedule = beat_schedule

        if self.config.is_development:
            beat_init.connect(self._run_on_startup, weak=False)

        self.state = SchedulerState.ENABLED
        logger.info(
            "scheduler.started",
            extra={
                "event": "scheduler.started",
                "invoice_timezone": self.config.INVOICE_JOBS_TIMEZONE,
                "signature_timezone": self.config.SIGNATURE_JOBS_TIMEZONE,
            },
        )
        return self

    def _run_on_startup(self, sender=None, **kwargs) -> None:
        # Development only: surface regressions without waiting for 06:00.
        logger.info(
            "scheduler.startup_run.queued",
            extra={"event": "scheduler.startup_run.queued", "countdown": self.config.STARTUP_RUN_DELAY_SECONDS},
        )
        self.app.send_task(INVOICE_JOBS_TASK, kwargs={"trigger": "startup"}, countdown=self.config.STARTUP_RUN_DELAY_SECONDS)


def init_scheduler(app: Celery, config: Config | None = None) -> JobScheduler:
    """Create and enable the scheduler handle for ``app``."""
    return JobScheduler(app, config or get_config()).start()
