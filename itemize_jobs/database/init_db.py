"""Create the job tables for local development and tests."""

from __future__ import annotations

import logging

from itemize_jobs.database.db import get_engine
from itemize_jobs.models import Base

logger = logging.getLogger(__name__)


def init_db(engine=None) -> None:
    target = engine or get_engine()
    Base.metadata.create_all(bind=target)
    logger.info("database.tables.created", extra={"event": "database.tables.created", "tables": sorted(Base.metadata.tables)})
