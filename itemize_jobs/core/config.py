"""Configuration module for the Itemize jobs service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from itemize_jobs.core.exceptions import ConfigurationError

load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    FRONTEND_URL: str
    INVOICE_JOBS_TIMEZONE: str
    SIGNATURE_JOBS_TIMEZONE: str
    STARTUP_RUN_DELAY_SECONDS: int
    DEFAULT_SENDER_NAME: str
    SMTP_SERVER: str | None
    SMTP_PORT: int
    SMTP_USERNAME: str | None
    SMTP_PASSWORD: str | None
    SMTP_FROM_EMAIL: str
    SMTP_SANDBOX_MODE: bool
    REDIS_URL: str
    CELERY_BROKER_URL: str
    CELERY_RESULT_BACKEND: str
    CELERY_TASK_ALWAYS_EAGER: bool
    API_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: str

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.ENV == "development"


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=False)
    redis_url = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    config = Config(
        APP_NAME="Itemize Jobs",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./itemize.db"),
        FRONTEND_URL=os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/"),
        INVOICE_JOBS_TIMEZONE=os.getenv("INVOICE_JOBS_TIMEZONE", "America/New_York"),
        SIGNATURE_JOBS_TIMEZONE=os.getenv("SIGNATURE_JOBS_TIMEZONE", "America/New_York"),
        STARTUP_RUN_DELAY_SECONDS=int(os.getenv("STARTUP_RUN_DELAY_SECONDS", "5")),
        DEFAULT_SENDER_NAME=os.getenv("DEFAULT_SENDER_NAME", "Itemize"),
        SMTP_SERVER=os.getenv("SMTP_SERVER"),
        SMTP_PORT=int(os.getenv("SMTP_PORT", "587")),
        SMTP_USERNAME=os.getenv("SMTP_USERNAME"),
        SMTP_PASSWORD=os.getenv("SMTP_PASSWORD"),
        SMTP_FROM_EMAIL=os.getenv("SMTP_FROM_EMAIL", "noreply@itemize.cloud"),
        SMTP_SANDBOX_MODE=_as_bool(os.getenv("SMTP_SANDBOX_MODE"), default=resolved_env != "production"),
        REDIS_URL=redis_url,
        CELERY_BROKER_URL=os.getenv("CELERY_BROKER_URL", redis_url),
        CELERY_RESULT_BACKEND=os.getenv("CELERY_RESULT_BACKEND", redis_url),
        CELERY_TASK_ALWAYS_EAGER=_as_bool(os.getenv("CELERY_TASK_ALWAYS_EAGER")),
        API_PREFIX=os.getenv("API_PREFIX", "/api/v1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", ""),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2"}:
        raise ConfigurationError(
            "DATABASE_URL must use sqlite:// or postgresql:// style URL."
        )
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def _validate_timezone(name: str, value: str) -> None:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"{name} is not a known timezone: {value!r}.") from exc


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)
    _validate_timezone("INVOICE_JOBS_TIMEZONE", config.INVOICE_JOBS_TIMEZONE)
    _validate_timezone("SIGNATURE_JOBS_TIMEZONE", config.SIGNATURE_JOBS_TIMEZONE)

    if config.STARTUP_RUN_DELAY_SECONDS < 0:
        raise ConfigurationError("STARTUP_RUN_DELAY_SECONDS must be >= 0.")
    if not config.FRONTEND_URL.startswith(("http://", "https://")):
        raise ConfigurationError("FRONTEND_URL must be an http(s) URL.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and "change_me" in config.DATABASE_URL.lower():
        raise ConfigurationError("Production DATABASE_URL uses placeholder credentials.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
