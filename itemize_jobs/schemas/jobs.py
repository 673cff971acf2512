"""Job run request/response schemas for API contracts."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ManualRunResponse(BaseModel):
    success: bool
    message: str


class JobOutcomeResponse(BaseModel):
    name: str
    status: str
    duration_ms: int = Field(ge=0)
    error: str | None = None
    result_count: int | None = None


class JobRunResponse(BaseModel):
    run_id: str
    trigger: str
    succeeded: bool
    outcomes: list[JobOutcomeResponse]
