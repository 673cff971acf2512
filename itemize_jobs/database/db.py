"""Engine and session factory shared by every job, the API and the CLI."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from itemize_jobs.core.config import get_config

logger = logging.getLogger(__name__)

config = get_config()
DATABASE_URL = config.DATABASE_URL


def _engine_options(database_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": config.DEBUG}
    if database_url.startswith("sqlite"):
        # Celery's eager mode and TestClient run jobs off the creating thread.
        options["connect_args"] = {"check_same_thread": False}
        return options
    options.update(pool_pre_ping=True, pool_recycle=3600, pool_size=5, max_overflow=10)
    return options


def _configure_engine(database_url: str) -> None:
    global DATABASE_URL, engine, SessionLocal
    DATABASE_URL = database_url
    engine = create_engine(database_url, **_engine_options(database_url))
    # Job results are read after commit, so instances must not expire.
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


_configure_engine(DATABASE_URL)


def get_engine() -> Engine:
    return engine


def get_session_factory() -> sessionmaker:
    """Return the shared session factory handed to every job."""
    return SessionLocal


def get_active_database_url() -> str:
    return DATABASE_URL


@contextmanager
def get_db_session(session_factory: sessionmaker | None = None) -> Generator[Session, None, None]:
    """Open one session from ``session_factory`` and always close it.

    Transactions are committed or rolled back by the caller; anything left
    open when the block exits is rolled back by ``close()``.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
    finally:
        db.close()


def verify_database_connection() -> bool:
    """Run ``SELECT 1`` against the active engine."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception(
            "database.connection_failed",
            extra={"event": "database.connection_failed", "database_url_scheme": DATABASE_URL.split("://", 1)[0]},
        )
        return False
    return True
