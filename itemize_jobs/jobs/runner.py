"""Job registry and the sequential job runner."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import sessionmaker

from itemize_jobs.core.logging import after_job, before_job
from itemize_jobs.database.db import get_session_factory
from itemize_jobs.jobs.invoice_jobs import (
    find_invoices_needing_reminders,
    run_estimate_expiry_check,
    run_overdue_detection,
    run_recurring_invoice_generation,
)
from itemize_jobs.jobs.signature_jobs import run_signature_reminder_jobs

logger = logging.getLogger(__name__)

JobFunc = Callable[[sessionmaker], Any]

INVOICE_BATCH = ("invoices.overdue", "invoices.recurring", "estimates.expiry")


@dataclass(frozen=True)
class JobDescriptor:
    name: str
    func: JobFunc


@dataclass
class JobOutcome:
    name: str
    status: str
    duration_ms: int
    result: Any = None
    error: str | None = None

    @property
    def result_count(self) -> int | None:
        return len(self.result) if isinstance(self.result, (list, tuple)) else None


@dataclass
class JobRunReport:
    run_id: str
    trigger: str
    outcomes: list[JobOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(outcome.status == "succeeded" for outcome in self.outcomes)

    @property
    def failed_jobs(self) -> list[str]:
        return [outcome.name for outcome in self.outcomes if outcome.status != "succeeded"]


class JobRegistry:
    """Named jobs available to the runner, the scheduler and the admin API."""

    def __init__(self) -> None:
        self._jobs: dict[str, JobDescriptor] = {}

    def register(self, name: str, func: JobFunc) -> None:
        self._jobs[name] = JobDescriptor(name=name, func=func)

    def get(self, name: str) -> JobDescriptor:
        if name not in self._jobs:
            raise KeyError(f"Unknown job: {name}")
        return self._jobs[name]

    def keys(self) -> list[str]:
        return sorted(self._jobs.keys())

    def batch(self, names: Sequence[str]) -> list[JobDescriptor]:
        return [self.get(name) for name in names]


def build_default_registry() -> JobRegistry:
    registry = JobRegistry()
    registry.register("invoices.overdue", run_overdue_detection)
    registry.register("invoices.recurring", run_recurring_invoice_generation)
    registry.register("estimates.expiry", run_estimate_expiry_check)
    registry.register("invoices.payment_reminders", find_invoices_needing_reminders)
    registry.register("signatures.reminders", run_signature_reminder_jobs)
    return registry


default_registry = build_default_registry()


def default_invoice_jobs() -> list[JobDescriptor]:
    return default_registry.batch(INVOICE_BATCH)


class JobRunner:
    """Runs jobs one after another; a failing job never stops the next one."""

    def __init__(self, jobs: Sequence[JobDescriptor]) -> None:
        self.jobs = list(jobs)

    def run(self, session_factory: sessionmaker | None = None, trigger: str = "scheduled") -> JobRunReport:
        session_factory = session_factory or get_session_factory()
        report = JobRunReport(run_id=f"run-{uuid.uuid4().hex}", trigger=trigger)

        for job in self.jobs:
            logger.info("job.start", extra=before_job(job.name, report.run_id, trigger))
            started = time.monotonic()
            try:
                result = job.func(session_factory)
            except Exception as exc:
                duration_ms = int((time.monotonic() - started) * 1000)
                report.outcomes.append(
                    JobOutcome(name=job.name, status="failed", duration_ms=duration_ms, error=f"{exc.__class__.__name__}: {exc}")
                )
                logger.exception("job.failed", extra=after_job(job.name, report.run_id, "failed", trigger, duration_ms=duration_ms))
                continue

            duration_ms = int((time.monotonic() - started) * 1000)
            report.outcomes.append(JobOutcome(name=job.name, status="succeeded", duration_ms=duration_ms, result=result))
            logger.info("job.finish", extra=after_job(job.name, report.run_id, "succeeded", trigger, duration_ms=duration_ms))

        return report


def run_all_invoice_jobs(
    session_factory: sessionmaker | None = None,
    jobs: Sequence[JobDescriptor] | None = None,
    trigger: str = "scheduled",
) -> JobRunReport | None:
    """Run the invoice batch; fatal errors are logged, never raised to the caller."""
    logger.info("invoice_jobs.batch.start", extra={"event": "invoice_jobs.batch.start", "trigger": trigger})
    try:
        report = JobRunner(jobs if jobs is not None else default_invoice_jobs()).run(session_factory, trigger=trigger)
    except Exception:
        logger.exception("invoice_jobs.batch.crashed", extra={"event": "invoice_jobs.batch.crashed", "trigger": trigger})
        return None

    logger.info(
        "invoice_jobs.batch.finish",
        extra={"event": "invoice_jobs.batch.finish", "trigger": trigger, "failed_jobs": report.failed_jobs},
    )
    return report


def run_jobs_now(
    session_factory: sessionmaker | None = None,
    jobs: Sequence[JobDescriptor] | None = None,
) -> dict[str, Any]:
    """Run the invoice batch synchronously for admin/testing use."""
    logger.info("invoice_jobs.manual.start", extra={"event": "invoice_jobs.manual.start"})
    try:
        report = JobRunner(jobs if jobs is not None else default_invoice_jobs()).run(session_factory, trigger="manual")
    except Exception as exc:
        logger.exception("invoice_jobs.manual.failed", extra={"event": "invoice_jobs.manual.failed"})
        return {"success": False, "message": str(exc)}

    if report.succeeded:
        return {"success": True, "message": "Jobs completed successfully"}
    return {"success": False, "message": f"Jobs failed: {', '.join(report.failed_jobs)}"}
