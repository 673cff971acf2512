from __future__ import annotations

from dataclasses import replace

import pytest
from celery import Celery

import itemize_jobs.tasks.scheduler as scheduler_module
from itemize_jobs.core.config import get_config
from itemize_jobs.tasks.scheduler import (
    INVOICE_JOBS_ENTRY,
    INVOICE_JOBS_TASK,
    SIGNATURE_REMINDERS_ENTRY,
    SIGNATURE_REMINDERS_TASK,
    JobScheduler,
    SchedulerState,
)


class _RecordingSignal:
    def __init__(self):
        self.receivers = []

    def connect(self, receiver, weak=True):
        self.receivers.append(receiver)
        return receiver


@pytest.fixture
def app():
    return Celery("itemize_jobs_test")


@pytest.fixture
def config():
    return replace(get_config(), ENV="test", INVOICE_JOBS_TIMEZONE="Europe/Berlin", SIGNATURE_JOBS_TIMEZONE="Asia/Tokyo")


def test_scheduler_starts_disabled(app, config):
    scheduler = JobScheduler(app, config)
    assert scheduler.state == SchedulerState.DISABLED
    assert not app.conf.beat_schedule


def test_start_registers_daily_and_hourly_entries(app, config):
    scheduler = JobScheduler(app, config).start()

    assert scheduler.enabled
    daily = app.conf.beat_schedule[INVOICE_JOBS_ENTRY]
    hourly = app.conf.beat_schedule[SIGNATURE_REMINDERS_ENTRY]
    assert daily["task"] == INVOICE_JOBS_TASK
    assert daily["schedule"].hour == {6}
    assert daily["schedule"].minute == {0}
    assert hourly["task"] == SIGNATURE_REMINDERS_TASK
    assert hourly["schedule"].minute == {0}
    assert len(hourly["schedule"].hour) == 24


def test_schedules_run_in_their_configured_timezones(app, config):
    JobScheduler(app, config).start()

    assert app.conf.beat_schedule[INVOICE_JOBS_ENTRY]["schedule"].nowfun().tzinfo.key == "Europe/Berlin"
    assert app.conf.beat_schedule[SIGNATURE_REMINDERS_ENTRY]["schedule"].nowfun().tzinfo.key == "Asia/Tokyo"


def test_second_start_is_a_no_op(app, config):
    scheduler = JobScheduler(app, config).start()
    first_schedule = app.conf.beat_schedule[INVOICE_JOBS_ENTRY]

    assert scheduler.start() is scheduler
    assert app.conf.beat_schedule[INVOICE_JOBS_ENTRY] is first_schedule
    assert scheduler.state == SchedulerState.ENABLED


def test_existing_beat_entries_are_kept(app, config):
    app.conf.beat_schedule = {"cleanup": {"task": "other.cleanup", "schedule": 60.0}}
    JobScheduler(app, config).start()
    assert set(app.conf.beat_schedule) == {"cleanup", INVOICE_JOBS_ENTRY, SIGNATURE_REMINDERS_ENTRY}


def test_startup_run_only_hooked_in_development(app, config, monkeypatch):
    signal = _RecordingSignal()
    monkeypatch.setattr(scheduler_module, "beat_init", signal)

    JobScheduler(app, config).start()
    assert signal.receivers == []

    dev_scheduler = JobScheduler(Celery("itemize_jobs_dev"), replace(config, ENV="development")).start()
    assert signal.receivers == [dev_scheduler._run_on_startup]


def test_startup_run_queues_invoice_batch_after_delay(app, config, monkeypatch):
    sent = []
    monkeypatch.setattr(app, "send_task", lambda name, **kwargs: sent.append((name, kwargs)))
    scheduler = JobScheduler(app, replace(config, ENV="development", STARTUP_RUN_DELAY_SECONDS=5))

    scheduler._run_on_startup(sender=None)

    assert sent == [(INVOICE_JOBS_TASK, {"kwargs": {"trigger": "startup"}, "countdown": 5})]
