"""Signature reminder job.

Sends due reminders to recipients who still have to sign. A fresh signing
token is issued with every reminder, which invalidates earlier links.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from itemize_jobs.core.config import Config, get_config
from itemize_jobs.core.exceptions import DeliveryNotRecordedError, NotificationError
from itemize_jobs.database.db import get_db_session
from itemize_jobs.models import (
    DeliveryStatus,
    RecipientStatus,
    ReminderStatus,
    RoutingMode,
    RoutingStatus,
    SignatureAuditLog,
    SignatureDocument,
    SignatureRecipient,
    SignatureReminder,
)
from itemize_jobs.models.base import utcnow
from itemize_jobs.services.email_service import (
    EmailService,
    SignatureReminderNotification,
    SignatureReminderNotifier,
)
from itemize_jobs.services.signing_tokens import build_signing_url, generate_token, hash_token

logger = logging.getLogger(__name__)

FINISHED_RECIPIENT_STATUSES = (RecipientStatus.SIGNED, RecipientStatus.DECLINED)


@dataclass
class ReminderDispatchSummary:
    sent: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    deferred: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, list[int]]:
        return {"sent": self.sent, "skipped": self.skipped, "deferred": self.deferred, "failed": self.failed}


def _due_reminder_ids(session: Session, now: datetime) -> list[int]:
    stmt = (
        select(SignatureReminder.id)
        .join(SignatureRecipient, SignatureRecipient.id == SignatureReminder.recipient_id)
        .join(SignatureDocument, SignatureDocument.id == SignatureReminder.document_id)
        .where(SignatureReminder.status == ReminderStatus.PENDING, SignatureReminder.scheduled_at <= now)
        .order_by(SignatureReminder.scheduled_at, SignatureReminder.id)
    )
    return list(session.scalars(stmt))


def _is_turn_pending(document: SignatureDocument, recipient: SignatureRecipient) -> bool:
    routing_mode = document.routing_mode or RoutingMode.PARALLEL
    return routing_mode == RoutingMode.SEQUENTIAL and recipient.routing_status != RoutingStatus.ACTIVE


def _record_delivery_failure(session: Session, reminder_id: int, error: str) -> None:
    reminder = session.get(SignatureReminder, reminder_id)
    if reminder is None:
        return
    reminder.delivery_status = DeliveryStatus.FAILED
    reminder.delivery_attempts = (reminder.delivery_attempts or 0) + 1
    reminder.last_delivery_error = error[:2000]
    session.add(
        SignatureAuditLog(
            document_id=reminder.document_id,
            recipient_id=reminder.recipient_id,
            event_type="reminder_failed",
            description="Signature reminder could not be delivered",
            event_metadata={"attempts": reminder.delivery_attempts},
        )
    )
    session.commit()


def _send_reminder(
    session: Session,
    reminder: SignatureReminder,
    notifier: SignatureReminderNotifier,
    config: Config,
    now: datetime,
) -> None:
    recipient = reminder.recipient
    document = reminder.document
    token = generate_token()

    notification = SignatureReminderNotification(
        to=recipient.email,
        recipient_name=recipient.name,
        document_title=document.title,
        sender_name=document.sender_name or config.DEFAULT_SENDER_NAME,
        message=document.message,
        signing_url=build_signing_url(config.FRONTEND_URL, token),
        expires_at=document.expires_at,
    )
    try:
        delivered = notifier.send_signature_reminder(notification)
    except Exception as exc:
        raise NotificationError(f"{exc.__class__.__name__}: {exc}") from exc
    if not delivered:
        raise NotificationError("notifier reported the reminder as undelivered")

    # Persist the new token only once the link carrying it has gone out.
    recipient.signing_token_hash = hash_token(token)
    recipient.token_expires_at = document.expires_at
    recipient.status = RecipientStatus.SENT
    recipient.sent_at = now

    reminder.status = ReminderStatus.SENT
    reminder.sent_at = now
    reminder.delivery_status = DeliveryStatus.DELIVERED
    reminder.delivery_attempts = (reminder.delivery_attempts or 0) + 1
    reminder.last_delivery_error = None

    session.add(
        SignatureAuditLog(
            document_id=document.id,
            recipient_id=recipient.id,
            event_type="reminder_sent",
            description="Signature reminder sent",
            created_at=now,
        )
    )
    try:
        session.commit()
    except SQLAlchemyError as exc:
        # The email already carries a token whose hash was never stored.
        raise DeliveryNotRecordedError(f"{exc.__class__.__name__}: {exc}") from exc


def run_signature_reminder_jobs(
    session_factory: sessionmaker | None = None,
    notifier: SignatureReminderNotifier | None = None,
    config: Config | None = None,
    now: datetime | None = None,
) -> ReminderDispatchSummary:
    """Dispatch every pending reminder whose scheduled time has passed."""
    config = config or get_config()
    notifier = notifier or EmailService(config)
    now = now or utcnow()
    summary = ReminderDispatchSummary()

    with get_db_session(session_factory) as session:
        reminder_ids = _due_reminder_ids(session, now)
        session.rollback()

        for reminder_id in reminder_ids:
            try:
                reminder = session.get(SignatureReminder, reminder_id)
                if reminder is None or reminder.recipient is None:
                    continue

                if reminder.recipient.status in FINISHED_RECIPIENT_STATUSES:
                    reminder.status = ReminderStatus.SKIPPED
                    session.commit()
                    summary.skipped.append(reminder_id)
                    continue

                if _is_turn_pending(reminder.document, reminder.recipient):
                    # Not this signer's turn yet; re-evaluated on a later tick.
                    summary.deferred.append(reminder_id)
                    continue

                _send_reminder(session, reminder, notifier, config, now)
                summary.sent.append(reminder_id)
            except NotificationError as exc:
                session.rollback()
                logger.warning(
                    "signature_jobs.reminder.undelivered",
                    extra={"event": "signature_jobs.reminder.undelivered", "reminder_id": reminder_id, "error": str(exc)},
                )
                try:
                    _record_delivery_failure(session, reminder_id, str(exc))
                except Exception:
                    session.rollback()
                    logger.exception(
                        "signature_jobs.reminder.failure_not_recorded",
                        extra={"event": "signature_jobs.reminder.failure_not_recorded", "reminder_id": reminder_id},
                    )
                summary.failed.append(reminder_id)
            except DeliveryNotRecordedError as exc:
                session.rollback()
                logger.error(
                    "signature_jobs.reminder.sent_not_recorded",
                    extra={
                        "event": "signature_jobs.reminder.sent_not_recorded",
                        "reminder_id": reminder_id,
                        "error": str(exc),
                    },
                )
                summary.failed.append(reminder_id)
            except Exception:
                session.rollback()
                logger.exception(
                    "signature_jobs.reminder.failed",
                    extra={"event": "signature_jobs.reminder.failed", "reminder_id": reminder_id},
                )
                summary.failed.append(reminder_id)

    logger.info(
        "signature_jobs.reminders.finish",
        extra={
            "event": "signature_jobs.reminders.finish",
            "sent": len(summary.sent),
            "skipped": len(summary.skipped),
            "deferred": len(summary.deferred),
            "failed": len(summary.failed),
        },
    )
    return summary
