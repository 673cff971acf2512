from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from itemize_jobs.core.config import get_config
from itemize_jobs.jobs.signature_jobs import run_signature_reminder_jobs
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
from itemize_jobs.services.signing_tokens import hash_token

NOW = datetime(2024, 5, 1, 12, 0, 0)


class RecordingNotifier:
    def __init__(self, delivered: bool = True, error: Exception | None = None) -> None:
        self.delivered = delivered
        self.error = error
        self.sent = []

    def send_signature_reminder(self, notification) -> bool:
        self.sent.append(notification)
        if self.error is not None:
            raise self.error
        return self.delivered


@pytest.fixture
def config():
    return replace(get_config(), FRONTEND_URL="https://app.itemize.test")


def _document(session, tenant_id, routing_mode=RoutingMode.PARALLEL, **fields):
    document = SignatureDocument(
        tenant_id=tenant_id,
        title=fields.pop("title", "Master Services Agreement"),
        message="Please review section 4.",
        sender_name=fields.pop("sender_name", "Dana Scully"),
        routing_mode=routing_mode,
        expires_at=NOW + timedelta(days=14),
        **fields,
    )
    session.add(document)
    session.commit()
    return document


def _recipient(session, tenant_id, document, email, **fields):
    recipient = SignatureRecipient(tenant_id=tenant_id, document_id=document.id, email=email, name=email.split("@")[0], **fields)
    session.add(recipient)
    session.commit()
    return recipient


def _reminder(session, document, recipient, scheduled_at=NOW - timedelta(minutes=5)):
    reminder = SignatureReminder(document_id=document.id, recipient_id=recipient.id, scheduled_at=scheduled_at)
    session.add(reminder)
    session.commit()
    return reminder


def test_sequential_routing_only_reminds_the_active_signer(session_factory, session, tenant_id, config):
    document = _document(session, tenant_id, routing_mode=RoutingMode.SEQUENTIAL)
    first = _recipient(session, tenant_id, document, "r1@client.test", signing_order=1, routing_status=RoutingStatus.ACTIVE)
    second = _recipient(session, tenant_id, document, "r2@client.test", signing_order=2, routing_status=RoutingStatus.PENDING)
    first_reminder = _reminder(session, document, first)
    second_reminder = _reminder(session, document, second)
    notifier = RecordingNotifier()

    summary = run_signature_reminder_jobs(session_factory, notifier=notifier, config=config, now=NOW)

    assert summary.sent == [first_reminder.id]
    assert summary.deferred == [second_reminder.id]
    assert [notification.to for notification in notifier.sent] == ["r1@client.test"]

    session.expire_all()
    sent = session.get(SignatureReminder, first_reminder.id)
    assert sent.status == ReminderStatus.SENT
    assert sent.delivery_status == DeliveryStatus.DELIVERED
    assert sent.sent_at is not None

    deferred = session.get(SignatureReminder, second_reminder.id)
    assert deferred.status == ReminderStatus.PENDING
    assert deferred.delivery_status == DeliveryStatus.NONE
    assert deferred.sent_at is None
    assert session.get(SignatureRecipient, second.id).signing_token_hash is None


def test_sent_reminder_rotates_token_and_writes_audit_entry(session_factory, session, tenant_id, config):
    document = _document(session, tenant_id)
    recipient = _recipient(session, tenant_id, document, "signer@client.test", signing_token_hash="0" * 64)
    _reminder(session, document, recipient)
    notifier = RecordingNotifier()

    run_signature_reminder_jobs(session_factory, notifier=notifier, config=config, now=NOW)

    notification = notifier.sent[0]
    assert notification.signing_url.startswith("https://app.itemize.test/sign/")
    assert notification.sender_name == "Dana Scully"
    assert notification.document_title == "Master Services Agreement"
    token = notification.signing_url.rsplit("/", 1)[1]

    session.expire_all()
    refreshed = session.get(SignatureRecipient, recipient.id)
    assert refreshed.signing_token_hash == hash_token(token)
    assert refreshed.status == RecipientStatus.SENT
    assert refreshed.token_expires_at is not None
    events = session.query(SignatureAuditLog).filter(SignatureAuditLog.recipient_id == recipient.id).all()
    assert [event.event_type for event in events] == ["reminder_sent"]


def test_finished_recipients_are_skipped_without_notification(session_factory, session, tenant_id, config):
    document = _document(session, tenant_id)
    signed = _recipient(session, tenant_id, document, "signed@client.test", status=RecipientStatus.SIGNED)
    declined = _recipient(session, tenant_id, document, "declined@client.test", status=RecipientStatus.DECLINED)
    signed_reminder = _reminder(session, document, signed)
    declined_reminder = _reminder(session, document, declined)
    notifier = RecordingNotifier()

    summary = run_signature_reminder_jobs(session_factory, notifier=notifier, config=config, now=NOW)

    assert sorted(summary.skipped) == sorted([signed_reminder.id, declined_reminder.id])
    assert notifier.sent == []
    session.expire_all()
    assert session.get(SignatureReminder, signed_reminder.id).status == ReminderStatus.SKIPPED
    assert session.get(SignatureReminder, declined_reminder.id).status == ReminderStatus.SKIPPED


def test_future_reminders_are_not_due(session_factory, session, tenant_id, config):
    document = _document(session, tenant_id)
    recipient = _recipient(session, tenant_id, document, "later@client.test")
    reminder = _reminder(session, document, recipient, scheduled_at=NOW + timedelta(hours=1))
    notifier = RecordingNotifier()

    summary = run_signature_reminder_jobs(session_factory, notifier=notifier, config=config, now=NOW)

    assert summary.as_dict() == {"sent": [], "skipped": [], "deferred": [], "failed": []}
    session.expire_all()
    assert session.get(SignatureReminder, reminder.id).status == ReminderStatus.PENDING


@pytest.mark.parametrize(
    "notifier",
    [RecordingNotifier(delivered=False), RecordingNotifier(error=ConnectionError("smtp down"))],
    ids=["undelivered", "raised"],
)
def test_failed_delivery_keeps_reminder_pending_and_retryable(session_factory, session, tenant_id, config, notifier):
    document = _document(session, tenant_id)
    recipient = _recipient(session, tenant_id, document, "retry@client.test")
    reminder = _reminder(session, document, recipient)

    summary = run_signature_reminder_jobs(session_factory, notifier=notifier, config=config, now=NOW)

    assert summary.failed == [reminder.id]
    session.expire_all()
    refreshed = session.get(SignatureReminder, reminder.id)
    assert refreshed.status == ReminderStatus.PENDING
    assert refreshed.delivery_status == DeliveryStatus.FAILED
    assert refreshed.delivery_attempts == 1
    assert refreshed.last_delivery_error
    assert session.get(SignatureRecipient, recipient.id).signing_token_hash is None
    events = session.query(SignatureAuditLog).filter(SignatureAuditLog.document_id == document.id).all()
    assert [event.event_type for event in events] == ["reminder_failed"]

    retry = run_signature_reminder_jobs(session_factory, notifier=RecordingNotifier(), config=config, now=NOW)
    assert retry.sent == [reminder.id]


def test_default_sender_name_is_used_when_document_has_none(session_factory, session, tenant_id, config):
    document = _document(session, tenant_id, sender_name=None)
    recipient = _recipient(session, tenant_id, document, "anon@client.test")
    _reminder(session, document, recipient)
    notifier = RecordingNotifier()

    run_signature_reminder_jobs(session_factory, notifier=notifier, config=config, now=NOW)

    assert notifier.sent[0].sender_name == config.DEFAULT_SENDER_NAME


class _CommitFailsSession(Session):
    def commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))


def test_commit_failure_after_delivery_is_logged_separately(session_factory, session, tenant_id, config, caplog):
    document = _document(session, tenant_id)
    recipient = _recipient(session, tenant_id, document, "locked@client.test")
    reminder = _reminder(session, document, recipient)
    notifier = RecordingNotifier()
    failing_factory = sessionmaker(bind=session_factory.kw["bind"], class_=_CommitFailsSession, expire_on_commit=False)

    summary = run_signature_reminder_jobs(failing_factory, notifier=notifier, config=config, now=NOW)

    assert len(notifier.sent) == 1
    assert summary.failed == [reminder.id]
    events = [getattr(record, "event", None) for record in caplog.records]
    assert "signature_jobs.reminder.sent_not_recorded" in events
    assert "signature_jobs.reminder.failed" not in events
    session.expire_all()
    assert session.get(SignatureReminder, reminder.id).status == ReminderStatus.PENDING
    assert session.get(SignatureRecipient, recipient.id).signing_token_hash is None
