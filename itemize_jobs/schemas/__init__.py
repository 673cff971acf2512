"""Pydantic schemas for stored payloads and API contracts."""

from itemize_jobs.schemas.jobs import JobOutcomeResponse, JobRunResponse, ManualRunResponse
from itemize_jobs.schemas.line_items import TemplateLineItem, parse_template_items

__all__ = [
    "JobOutcomeResponse",
    "JobRunResponse",
    "ManualRunResponse",
    "TemplateLineItem",
    "parse_template_items",
]
