from __future__ import annotations

import logging
from typing import Any

from itemize_jobs.database.db import get_session_factory
from itemize_jobs.jobs.runner import JobRunner, default_registry, run_all_invoice_jobs
from itemize_jobs.tasks.celery_app import celery_app
from itemize_jobs.tasks.scheduler import INVOICE_JOBS_TASK, SIGNATURE_REMINDERS_TASK

logger = logging.getLogger(__name__)


@celery_app.task(name=INVOICE_JOBS_TASK)
def run_invoice_jobs_task(trigger: str = "scheduled") -> dict[str, Any]:
    report = run_all_invoice_jobs(get_session_factory(), trigger=trigger)
    if report is None:
        return {"status": "failed"}
    return {
        "status": "succeeded" if report.succeeded else "partial",
        "run_id": report.run_id,
        "failed_jobs": report.failed_jobs,
    }


@celery_app.task(name=SIGNATURE_REMINDERS_TASK)
def send_signature_reminders_task(trigger: str = "scheduled") -> dict[str, Any]:
    report = JobRunner([default_registry.get("signatures.reminders")]).run(get_session_factory(), trigger=trigger)
    outcome = report.outcomes[0]
    summary = outcome.result.as_dict() if outcome.result is not None else None
    return {"status": outcome.status, "run_id": report.run_id, "summary": summary}
