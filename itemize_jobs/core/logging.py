"""Structured logging helpers for background jobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LogContext:
    """Normalized context fields expected in structured logs."""

    job_name: str | None = None
    run_id: str | None = None
    tenant_id: int | None = None
    trigger: str | None = None


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Build a normalized structured log payload."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "job_name": context.job_name,
        "run_id": context.run_id,
        "tenant_id": context.tenant_id,
        "trigger": context.trigger,
    }
    payload.update(fields)
    return payload


def before_job(job_name: str, run_id: str, trigger: str | None = None) -> dict[str, Any]:
    """Build pre-job log payload."""
    return build_log_event(
        event="job.start",
        context=LogContext(job_name=job_name, run_id=run_id, trigger=trigger),
    )


def after_job(job_name: str, run_id: str, status: str, trigger: str | None = None, **fields: Any) -> dict[str, Any]:
    """Build post-job log payload."""
    return build_log_event(
        event="job.finish" if status == "succeeded" else "job.failed",
        context=LogContext(job_name=job_name, run_id=run_id, trigger=trigger),
        status=status,
        finished_at=datetime.now(timezone.utc).isoformat(),
        **fields,
    )
