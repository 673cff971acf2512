"""Per-tenant invoice number allocation."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import func, update

from itemize_jobs.models import DEFAULT_INVOICE_PREFIX, PaymentSettings
from itemize_jobs.models.base import utcnow
from itemize_jobs.services.base_service import BaseService

INVOICE_NUMBER_WIDTH = 5


@dataclass(frozen=True)
class AllocatedNumber:
    prefix: str
    sequence: int

    @property
    def invoice_number(self) -> str:
        return format_invoice_number(self.prefix, self.sequence)


def format_invoice_number(prefix: str | None, sequence: int) -> str:
    return f"{prefix or DEFAULT_INVOICE_PREFIX}{sequence:0{INVOICE_NUMBER_WIDTH}d}"


class InvoiceNumberAllocator(BaseService):
    """Hands out invoice numbers inside the caller's transaction.

    The counter row stores the next available number. Allocation is a single
    ``UPDATE ... RETURNING`` so two concurrent runs can never read the same
    value; the caller owns commit/rollback.
    """

    def allocate(self, tenant_id: int) -> AllocatedNumber:
        stmt = (
            update(PaymentSettings)
            .where(PaymentSettings.tenant_id == tenant_id)
            .values(
                next_invoice_number=func.coalesce(PaymentSettings.next_invoice_number, 1) + 1,
                updated_at=utcnow(),
            )
            .returning(PaymentSettings.invoice_prefix, PaymentSettings.next_invoice_number)
            .execution_options(synchronize_session=False)
        )
        row = self.db.execute(stmt).first()
        if row is not None:
            return AllocatedNumber(prefix=row.invoice_prefix or DEFAULT_INVOICE_PREFIX, sequence=row.next_invoice_number - 1)

        # First invoice for this tenant: consume 1 and leave 2 as next available.
        self.db.add(PaymentSettings(tenant_id=tenant_id, invoice_prefix=DEFAULT_INVOICE_PREFIX, next_invoice_number=2))
        self.db.flush()
        return AllocatedNumber(prefix=DEFAULT_INVOICE_PREFIX, sequence=1)
