"""Administrative job trigger endpoints for API v1."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, HTTPException, Query, status

from itemize_jobs.database.db import get_session_factory
from itemize_jobs.jobs.invoice_jobs import find_invoices_needing_reminders
from itemize_jobs.jobs.runner import JobRunner, default_registry, run_jobs_now
from itemize_jobs.schemas.jobs import JobOutcomeResponse, JobRunResponse, ManualRunResponse

router = APIRouter(prefix="/admin", tags=["jobs"])


@router.post("/jobs/run", response_model=ManualRunResponse)
def run_invoice_jobs_now() -> ManualRunResponse:
    return ManualRunResponse(**run_jobs_now(get_session_factory()))


@router.get("/jobs")
def list_jobs() -> dict:
    return {"jobs": default_registry.keys()}


@router.post("/jobs/{job_name}/run", response_model=JobRunResponse)
def run_single_job(job_name: str) -> JobRunResponse:
    try:
        job = default_registry.get(job_name)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job not found: {job_name}") from exc

    report = JobRunner([job]).run(get_session_factory(), trigger="manual")
    return JobRunResponse(
        run_id=report.run_id,
        trigger=report.trigger,
        succeeded=report.succeeded,
        outcomes=[
            JobOutcomeResponse(
                name=outcome.name,
                status=outcome.status,
                duration_ms=outcome.duration_ms,
                error=outcome.error,
                result_count=outcome.result_count,
            )
            for outcome in report.outcomes
        ],
    )


@router.get("/invoices/payment-reminders")
def list_payment_reminder_candidates(on: date | None = Query(default=None)) -> dict:
    rows = find_invoices_needing_reminders(get_session_factory(), today=on)
    return {
        "items": [
            {**row, "due_date": row["due_date"].isoformat(), "amount_due": str(row["amount_due"])}
            for row in rows
        ],
        "total": len(rows),
    }
