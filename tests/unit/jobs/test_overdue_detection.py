from __future__ import annotations

from datetime import date
from decimal import Decimal

from itemize_jobs.jobs.invoice_jobs import run_overdue_detection
from itemize_jobs.models import Invoice, InvoiceStatus

TODAY = date(2024, 3, 10)


def _invoice(tenant_id: int, number: str, status: InvoiceStatus, due: date, amount_due: str) -> Invoice:
    return Invoice(
        tenant_id=tenant_id,
        invoice_number=number,
        due_date=due,
        total=Decimal("100.00"),
        amount_due=Decimal(amount_due),
        status=status,
    )


def _seed(session, tenant_id):
    session.add_all(
        [
            _invoice(tenant_id, "INV-00001", InvoiceStatus.SENT, date(2024, 3, 1), "100.00"),
            _invoice(tenant_id, "INV-00002", InvoiceStatus.VIEWED, date(2024, 3, 9), "40.00"),
            _invoice(tenant_id, "INV-00003", InvoiceStatus.PARTIAL, date(2024, 2, 1), "25.00"),
            _invoice(tenant_id, "INV-00004", InvoiceStatus.SENT, TODAY, "100.00"),
            _invoice(tenant_id, "INV-00005", InvoiceStatus.VIEWED, date(2024, 3, 1), "0"),
            _invoice(tenant_id, "INV-00006", InvoiceStatus.DRAFT, date(2024, 3, 1), "100.00"),
            _invoice(tenant_id, "INV-00007", InvoiceStatus.PAID, date(2024, 3, 1), "0"),
        ]
    )
    session.commit()


def _statuses(session) -> dict[str, InvoiceStatus]:
    session.expire_all()
    return {invoice.invoice_number: invoice.status for invoice in session.query(Invoice).all()}


def test_past_due_open_invoices_become_overdue(session_factory, session, tenant_id):
    _seed(session, tenant_id)

    rows = run_overdue_detection(session_factory, today=TODAY)

    assert sorted(row["invoice_number"] for row in rows) == ["INV-00001", "INV-00002", "INV-00003"]
    assert all(row["tenant_id"] == tenant_id for row in rows)
    statuses = _statuses(session)
    assert statuses["INV-00001"] == InvoiceStatus.OVERDUE
    assert statuses["INV-00002"] == InvoiceStatus.OVERDUE
    assert statuses["INV-00003"] == InvoiceStatus.OVERDUE


def test_due_today_zero_balance_and_non_open_invoices_are_left_alone(session_factory, session, tenant_id):
    _seed(session, tenant_id)

    run_overdue_detection(session_factory, today=TODAY)

    statuses = _statuses(session)
    assert statuses["INV-00004"] == InvoiceStatus.SENT
    assert statuses["INV-00005"] == InvoiceStatus.VIEWED
    assert statuses["INV-00006"] == InvoiceStatus.DRAFT
    assert statuses["INV-00007"] == InvoiceStatus.PAID


def test_second_run_changes_nothing(session_factory, session, tenant_id):
    _seed(session, tenant_id)

    first = run_overdue_detection(session_factory, today=TODAY)
    second = run_overdue_detection(session_factory, today=TODAY)

    assert len(first) == 3
    assert second == []
