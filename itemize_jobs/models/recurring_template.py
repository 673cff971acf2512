"""Recurring invoice template model module."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from itemize_jobs.models.base import AuditMixin, Base, TenantScopedMixin, enum_column
from itemize_jobs.models.enums import DiscountType, RecurringFrequency, TemplateStatus


class RecurringInvoiceTemplate(Base, AuditMixin, TenantScopedMixin):
    __tablename__ = "recurring_invoice_templates"
    __table_args__ = (
        Index("idx_recurring_templates_status_next_run", "status", "next_run_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    template_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_id: Mapped[int | None] = mapped_column(ForeignKey("contacts.id", ondelete="SET NULL"))
    customer_name: Mapped[str | None] = mapped_column(String(255))
    customer_email: Mapped[str | None] = mapped_column(String(255))
    frequency: Mapped[RecurringFrequency] = mapped_column(enum_column(RecurringFrequency), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date)
    next_run_date: Mapped[date | None] = mapped_column(Date)
    last_generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[TemplateStatus] = mapped_column(enum_column(TemplateStatus), default=TemplateStatus.ACTIVE, nullable=False)
    # Line items as stored by the editor; may arrive as a JSON string from older rows.
    items: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    subtotal: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    discount_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    discount_type: Mapped[DiscountType | None] = mapped_column(enum_column(DiscountType, length=10))
    discount_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    payment_terms: Mapped[str | None] = mapped_column(String(50))
    # Invoice this template was copied from; kept as a plain id to avoid a cyclic FK.
    source_invoice_id: Mapped[int | None] = mapped_column(Integer)
    created_by: Mapped[int | None] = mapped_column(Integer)

    contact = relationship("Contact")
