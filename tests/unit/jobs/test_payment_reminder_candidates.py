from __future__ import annotations

from datetime import date
from decimal import Decimal

from itemize_jobs.jobs.invoice_jobs import find_invoices_needing_reminders
from itemize_jobs.models import Contact, Invoice, InvoiceStatus, PaymentSettings

TODAY = date(2024, 4, 10)


def _invoice(tenant_id, number, status, due, email="ap@client.test", amount_due="50.00", contact_id=None):
    return Invoice(
        tenant_id=tenant_id,
        invoice_number=number,
        due_date=due,
        total=Decimal("50.00"),
        amount_due=Decimal(amount_due),
        status=status,
        customer_email=email,
        contact_id=contact_id,
    )


def test_due_soon_and_recently_overdue_invoices_are_found(session_factory, session, tenant_id):
    contact = Contact(tenant_id=tenant_id, email="contact@client.test")
    session.add_all([contact, PaymentSettings(tenant_id=tenant_id, business_name="Acme Co")])
    session.commit()
    session.add_all(
        [
            _invoice(tenant_id, "DUE-SOON", InvoiceStatus.SENT, date(2024, 4, 12)),
            _invoice(tenant_id, "TOO-FAR", InvoiceStatus.SENT, date(2024, 4, 20)),
            _invoice(tenant_id, "RECENT-OVERDUE", InvoiceStatus.OVERDUE, date(2024, 3, 20), email=None, contact_id=contact.id),
            _invoice(tenant_id, "OLD-OVERDUE", InvoiceStatus.OVERDUE, date(2024, 2, 1)),
            _invoice(tenant_id, "NO-EMAIL", InvoiceStatus.SENT, date(2024, 4, 11), email=None),
            _invoice(tenant_id, "PAID", InvoiceStatus.PAID, date(2024, 4, 11), amount_due="0"),
        ]
    )
    session.commit()

    rows = find_invoices_needing_reminders(session_factory, today=TODAY)

    assert [row["invoice_number"] for row in rows] == ["RECENT-OVERDUE", "DUE-SOON"]
    assert rows[0]["email"] == "contact@client.test"
    assert rows[1]["business_name"] == "Acme Co"
