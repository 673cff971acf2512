from __future__ import annotations

import html
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from itemize_jobs.core.config import Config, get_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html_body: str
    text_body: str


@dataclass(frozen=True)
class SignatureReminderNotification:
    to: str
    recipient_name: str | None
    document_title: str | None
    sender_name: str
    message: str | None
    signing_url: str
    expires_at: datetime | None


class SignatureReminderNotifier(Protocol):
    def send_signature_reminder(self, notification: SignatureReminderNotification) -> bool: ...


def _format_date(value: datetime) -> str:
    return value.strftime("%B %d, %Y").replace(" 0", " ")


def build_signature_reminder_email(notification: SignatureReminderNotification) -> EmailTemplate:
    title = notification.document_title or "Document"
    greeting = notification.recipient_name or "there"
    subject = f"Reminder: Please sign {title}"

    text_lines = [
        f"Hi {greeting},",
        "",
        f"This is a reminder to sign {notification.document_title or 'the document'} from {notification.sender_name}.",
    ]
    if notification.message:
        text_lines += ["", notification.message]
    text_lines += ["", f"Review and sign: {notification.signing_url}"]
    if notification.expires_at:
        text_lines += ["", f"Expires on {_format_date(notification.expires_at)}"]

    parts = [
        '<h1 style="font-size: 22px; margin: 0 0 16px; color: #111827;">Signature Reminder</h1>',
        f"<p>Hi {html.escape(greeting)},</p>",
        f"<p>This is a reminder to sign {html.escape(notification.document_title or 'the document')} "
        f"from {html.escape(notification.sender_name)}.</p>",
    ]
    if notification.message:
        parts.append(f'<div style="white-space: pre-wrap;">{html.escape(notification.message)}</div>')
    parts.append(
        f'<p style="text-align: center;"><a href="{html.escape(notification.signing_url, quote=True)}">Review and Sign</a></p>'
    )
    if notification.expires_at:
        parts.append(f'<p style="color: #6b7280; font-size: 13px;">Expires on {_format_date(notification.expires_at)}</p>')

    return EmailTemplate(subject=subject, html_body="".join(parts), text_body="\n".join(text_lines))


class EmailService:
    def __init__(self, config: Config | None = None) -> None:
        cfg = config or get_config()
        self.smtp_host = cfg.SMTP_SERVER
        self.smtp_port = cfg.SMTP_PORT
        self.smtp_user = cfg.SMTP_USERNAME
        self.smtp_password = cfg.SMTP_PASSWORD
        self.from_email = cfg.SMTP_FROM_EMAIL
        self.sandbox_mode = cfg.SMTP_SANDBOX_MODE

    def send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        if self.sandbox_mode:
            logger.info("email.sandbox.sent", extra={"event": "email.sandbox.sent", "to_email": to_email, "subject": subject})
            return True

        if not (self.smtp_host and self.smtp_user and self.smtp_password):
            logger.error("email.send.misconfigured", extra={"event": "email.send.misconfigured", "to_email": to_email})
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = self.from_email
            msg["To"] = to_email
            msg.attach(MIMEText(text_body, "plain"))
            msg.attach(MIMEText(html_body, "html"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, [to_email], msg.as_string())
            return True
        except (smtplib.SMTPException, OSError):
            logger.exception("email.send.failed", extra={"event": "email.send.failed", "to_email": to_email})
            return False

    def send_signature_reminder(self, notification: SignatureReminderNotification) -> bool:
        template = build_signature_reminder_email(notification)
        return self.send_email(notification.to, template.subject, template.html_body, template.text_body)
