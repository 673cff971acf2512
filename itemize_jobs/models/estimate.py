"""Estimate (quote) model module."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from itemize_jobs.models.base import AuditMixin, Base, TenantScopedMixin, enum_column
from itemize_jobs.models.enums import EstimateStatus


class Estimate(Base, AuditMixin, TenantScopedMixin):
    __tablename__ = "estimates"
    __table_args__ = (UniqueConstraint("tenant_id", "estimate_number", name="uq_estimates_tenant_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    estimate_number: Mapped[str] = mapped_column(String(50), nullable=False)
    contact_id: Mapped[int | None] = mapped_column(ForeignKey("contacts.id", ondelete="SET NULL"))
    customer_name: Mapped[str | None] = mapped_column(String(255))
    customer_email: Mapped[str | None] = mapped_column(String(255))
    issue_date: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    valid_until: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    total: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    status: Mapped[EstimateStatus] = mapped_column(enum_column(EstimateStatus), default=EstimateStatus.DRAFT, nullable=False)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    converted_invoice_id: Mapped[int | None] = mapped_column(ForeignKey("invoices.id", ondelete="SET NULL"))
