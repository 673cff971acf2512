"""Base class for services that work inside a caller's transaction."""

from __future__ import annotations

from sqlalchemy.orm import Session


class BaseService:
    """Holds the caller's SQLAlchemy session.

    Services flush but never commit or roll back; the job that opened the
    session owns the transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
