"""JSON line logging for the API process, the CLI and Celery workers."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from itemize_jobs.core.config import get_config

_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}
_QUIET_IN_PRODUCTION = ("sqlalchemy.engine", "celery", "kombu")


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        # Job payloads carry their own timestamp; keep the record's.
        extras.pop("timestamp", None)
        payload.update(extras)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        # Dates and Decimals from job results are logged as strings.
        return json.dumps(payload, ensure_ascii=True, default=str)


def _build_handlers(log_file: str) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    return handlers


def configure_logging(force: bool = False) -> None:
    """Install the JSON handlers on the root logger once per process."""
    config = get_config()
    root = logging.getLogger()
    if root.handlers and not force:
        return

    for handler in list(root.handlers):
        root.removeHandler(handler)

    root.setLevel(getattr(logging, config.LOG_LEVEL, logging.INFO))
    formatter = JsonFormatter()
    for handler in _build_handlers(config.LOG_FILE):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    if config.is_production:
        for name in _QUIET_IN_PRODUCTION:
            logging.getLogger(name).setLevel(logging.WARNING)
