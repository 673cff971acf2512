"""Organization that owns invoices, estimates and signature documents."""

from __future__ import annotations

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from itemize_jobs.models.base import AuditMixin, Base


class Tenant(Base, AuditMixin):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_key: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Suspended organizations keep their rows; jobs still process them.
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
