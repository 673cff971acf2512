"""Per-tenant payment and invoice numbering settings."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from itemize_jobs.models.base import AuditMixin, Base

DEFAULT_INVOICE_PREFIX = "INV-"


class PaymentSettings(Base, AuditMixin):
    __tablename__ = "payment_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenants.id", ondelete="CASCADE"), unique=True, nullable=False)
    invoice_prefix: Mapped[str | None] = mapped_column(String(10), default=DEFAULT_INVOICE_PREFIX)
    # Next number to hand out, not the last one consumed.
    next_invoice_number: Mapped[int | None] = mapped_column(Integer, default=1)
    default_payment_terms: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    business_name: Mapped[str | None] = mapped_column(String(255))
    business_email: Mapped[str | None] = mapped_column(String(255))
