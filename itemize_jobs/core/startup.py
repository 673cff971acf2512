"""Process bootstrap shared by the API, the CLI and the worker."""

from __future__ import annotations

import logging

from itemize_jobs.core.config import get_config
from itemize_jobs.core.exceptions import ConfigurationError
from itemize_jobs.core.logging_config import configure_logging
from itemize_jobs.database.db import get_active_database_url, verify_database_connection

logger = logging.getLogger(__name__)


def validate_startup_config() -> None:
    """Refuse to start without a reachable database."""
    config = get_config()
    scheme = get_active_database_url().split("://", 1)[0]
    if not verify_database_connection():
        raise ConfigurationError(f"Database connectivity check failed ({scheme}).")

    if config.is_production and scheme == "sqlite":
        logger.warning("startup.production.sqlite_detected", extra={"event": "startup.production.sqlite_detected"})
    if config.is_production and config.SMTP_SANDBOX_MODE:
        logger.warning("startup.production.email_sandbox", extra={"event": "startup.production.email_sandbox"})

    logger.info(
        "startup.config.validated",
        extra={
            "event": "startup.config.validated",
            "env": config.ENV,
            "database_url_scheme": scheme,
            "invoice_jobs_timezone": config.INVOICE_JOBS_TIMEZONE,
            "signature_jobs_timezone": config.SIGNATURE_JOBS_TIMEZONE,
        },
    )


def bootstrap() -> None:
    configure_logging()
    validate_startup_config()
