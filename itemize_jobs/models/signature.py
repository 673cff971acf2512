"""E-signature document, recipient, reminder and audit models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from itemize_jobs.models.base import AuditMixin, Base, TenantScopedMixin, enum_column, utcnow
from itemize_jobs.models.enums import (
    DeliveryStatus,
    DocumentStatus,
    RecipientStatus,
    ReminderStatus,
    RoutingMode,
    RoutingStatus,
)


class SignatureDocument(Base, AuditMixin, TenantScopedMixin):
    __tablename__ = "signature_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str | None] = mapped_column(Text)
    status: Mapped[DocumentStatus] = mapped_column(enum_column(DocumentStatus, length=30), default=DocumentStatus.DRAFT, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sender_name: Mapped[str | None] = mapped_column(String(255))
    sender_email: Mapped[str | None] = mapped_column(String(255))
    routing_mode: Mapped[RoutingMode | None] = mapped_column(enum_column(RoutingMode), default=RoutingMode.PARALLEL)

    recipients = relationship("SignatureRecipient", back_populates="document", order_by="SignatureRecipient.signing_order")


class SignatureRecipient(Base, AuditMixin, TenantScopedMixin):
    __tablename__ = "signature_recipients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    document_id: Mapped[int] = mapped_column(ForeignKey("signature_documents.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str | None] = mapped_column(String(255))
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    signing_order: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    routing_status: Mapped[RoutingStatus | None] = mapped_column(enum_column(RoutingStatus), default=RoutingStatus.PENDING)
    status: Mapped[RecipientStatus] = mapped_column(enum_column(RecipientStatus), default=RecipientStatus.PENDING, nullable=False)
    signing_token_hash: Mapped[str | None] = mapped_column(String(64), index=True)
    token_expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    document = relationship("SignatureDocument", back_populates="recipients")


class SignatureReminder(Base):
    __tablename__ = "signature_reminders"
    __table_args__ = (Index("idx_signature_reminders_status_scheduled", "status", "scheduled_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    document_id: Mapped[int] = mapped_column(ForeignKey("signature_documents.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id: Mapped[int | None] = mapped_column(ForeignKey("signature_recipients.id", ondelete="SET NULL"))
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[ReminderStatus] = mapped_column(enum_column(ReminderStatus), default=ReminderStatus.PENDING, nullable=False)
    # Delivery outcome, tracked apart from the reminder lifecycle.
    delivery_status: Mapped[DeliveryStatus] = mapped_column(enum_column(DeliveryStatus), default=DeliveryStatus.NONE, nullable=False)
    delivery_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_delivery_error: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    document = relationship("SignatureDocument")
    recipient = relationship("SignatureRecipient")


class SignatureAuditLog(Base):
    __tablename__ = "signature_audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    document_id: Mapped[int] = mapped_column(ForeignKey("signature_documents.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id: Mapped[int | None] = mapped_column(ForeignKey("signature_recipients.id", ondelete="SET NULL"), index=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    event_metadata: Mapped[dict | None] = mapped_column("metadata", JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
