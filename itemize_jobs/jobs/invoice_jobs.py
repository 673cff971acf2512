"""Invoice background jobs.

- overdue invoice detection
- recurring invoice generation
- estimate expiry
- payment reminder candidates (read only)

Every job takes the shared session factory, opens one session for its
duration and always closes it before returning.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session, sessionmaker

from itemize_jobs.core.config import get_config
from itemize_jobs.database.db import get_db_session
from itemize_jobs.models import (
    Contact,
    Estimate,
    EstimateStatus,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    PaymentSettings,
    RecurringInvoiceTemplate,
    TemplateStatus,
)
from itemize_jobs.models.base import utcnow
from itemize_jobs.schemas.line_items import parse_template_items
from itemize_jobs.services.invoice_numbering import InvoiceNumberAllocator
from itemize_jobs.services.recurrence import calculate_next_run_date, compute_due_date, price_line

logger = logging.getLogger(__name__)

OVERDUE_CANDIDATE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.PARTIAL)
REMINDER_CANDIDATE_STATUSES = OVERDUE_CANDIDATE_STATUSES + (InvoiceStatus.OVERDUE,)
REMINDER_DUE_SOON_DAYS = 3
REMINDER_OVERDUE_WINDOW_DAYS = 30


def business_today() -> date:
    """Today's date in the timezone the invoice schedule runs in."""
    return datetime.now(ZoneInfo(get_config().INVOICE_JOBS_TIMEZONE)).date()


def run_overdue_detection(session_factory: sessionmaker | None = None, today: date | None = None) -> list[dict[str, Any]]:
    """Mark sent/viewed/partial invoices past their due date as overdue."""
    today = today or business_today()
    with get_db_session(session_factory) as session:
        logger.info("invoice_jobs.overdue.start", extra={"event": "invoice_jobs.overdue.start", "today": today.isoformat()})
        try:
            stmt = (
                update(Invoice)
                .where(
                    Invoice.status.in_(OVERDUE_CANDIDATE_STATUSES),
                    Invoice.due_date < today,
                    Invoice.amount_due > 0,
                )
                .values(status=InvoiceStatus.OVERDUE, updated_at=utcnow())
                .returning(Invoice.id, Invoice.invoice_number, Invoice.tenant_id)
                .execution_options(synchronize_session=False)
            )
            rows = [
                {"id": row.id, "invoice_number": row.invoice_number, "tenant_id": row.tenant_id}
                for row in session.execute(stmt)
            ]
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("invoice_jobs.overdue.failed", extra={"event": "invoice_jobs.overdue.failed"})
            raise

    for row in rows:
        logger.info(
            "invoice_jobs.overdue.marked",
            extra={"event": "invoice_jobs.overdue.marked", "invoice_id": row["id"], "invoice_number": row["invoice_number"]},
        )
    logger.info("invoice_jobs.overdue.finish", extra={"event": "invoice_jobs.overdue.finish", "count": len(rows)})
    return rows


def _due_template_ids(session: Session, today: date) -> list[int]:
    stmt = (
        select(RecurringInvoiceTemplate.id)
        .where(
            RecurringInvoiceTemplate.status == TemplateStatus.ACTIVE,
            RecurringInvoiceTemplate.next_run_date <= today,
            or_(RecurringInvoiceTemplate.end_date.is_(None), RecurringInvoiceTemplate.end_date >= today),
        )
        .order_by(RecurringInvoiceTemplate.next_run_date, RecurringInvoiceTemplate.id)
    )
    return list(session.scalars(stmt))


def _generate_from_template(session: Session, template: RecurringInvoiceTemplate, today: date) -> dict[str, Any]:
    """Create one invoice from a template and advance the template.

    Runs inside the caller's transaction; raises on any bad data so the
    caller can roll back just this template.
    """
    items = parse_template_items(template.items)
    allocated = InvoiceNumberAllocator(db=session).allocate(template.tenant_id)
    contact_email = template.contact.email if template.contact is not None else None

    invoice = Invoice(
        tenant_id=template.tenant_id,
        invoice_number=allocated.invoice_number,
        contact_id=template.contact_id,
        customer_name=template.customer_name,
        customer_email=template.customer_email or contact_email,
        issue_date=today,
        due_date=compute_due_date(today, template.payment_terms),
        subtotal=template.subtotal or 0,
        tax_amount=template.tax_amount or 0,
        discount_amount=template.discount_amount or 0,
        discount_type=template.discount_type,
        discount_value=template.discount_value or 0,
        total=template.total or 0,
        amount_paid=0,
        amount_due=template.total or 0,
        currency=template.currency,
        status=InvoiceStatus.DRAFT,
        notes=template.notes,
        recurring_template_id=template.id,
        created_by=template.created_by,
    )
    session.add(invoice)
    session.flush()

    for position, item in enumerate(items):
        tax_amount, total = price_line(item.quantity, item.unit_price, item.tax_rate)
        session.add(
            InvoiceItem(
                invoice_id=invoice.id,
                tenant_id=template.tenant_id,
                product_id=item.product_id,
                name=item.name,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                tax_rate=item.tax_rate,
                tax_amount=tax_amount,
                total=total,
                sort_order=position,
            )
        )

    next_run_date = calculate_next_run_date(template.next_run_date, template.frequency)
    if template.end_date is not None and next_run_date > template.end_date:
        template.status = TemplateStatus.COMPLETED
        template.next_run_date = template.end_date
    else:
        template.next_run_date = next_run_date
    template.last_generated_at = utcnow()
    session.flush()

    return {
        "template_id": template.id,
        "template_name": template.template_name,
        "invoice_id": invoice.id,
        "invoice_number": invoice.invoice_number,
    }


def run_recurring_invoice_generation(
    session_factory: sessionmaker | None = None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Generate invoices from every due recurring template, one transaction per template."""
    today = today or business_today()
    generated: list[dict[str, Any]] = []

    with get_db_session(session_factory) as session:
        logger.info("invoice_jobs.recurring.start", extra={"event": "invoice_jobs.recurring.start", "today": today.isoformat()})
        template_ids = _due_template_ids(session, today)
        session.rollback()

        for template_id in template_ids:
            try:
                template = session.get(RecurringInvoiceTemplate, template_id)
                if template is None:
                    continue
                result = _generate_from_template(session, template, today)
                session.commit()
            except Exception:
                session.rollback()
                logger.exception(
                    "invoice_jobs.recurring.template_failed",
                    extra={"event": "invoice_jobs.recurring.template_failed", "template_id": template_id},
                )
                continue

            generated.append(result)
            logger.info(
                "invoice_jobs.recurring.generated",
                extra={
                    "event": "invoice_jobs.recurring.generated",
                    "template_id": result["template_id"],
                    "invoice_id": result["invoice_id"],
                    "invoice_number": result["invoice_number"],
                },
            )

    logger.info("invoice_jobs.recurring.finish", extra={"event": "invoice_jobs.recurring.finish", "count": len(generated)})
    return generated


def run_estimate_expiry_check(session_factory: sessionmaker | None = None, today: date | None = None) -> list[dict[str, Any]]:
    """Mark sent estimates past valid_until as expired."""
    today = today or business_today()
    with get_db_session(session_factory) as session:
        try:
            stmt = (
                update(Estimate)
                .where(Estimate.status == EstimateStatus.SENT, Estimate.valid_until < today)
                .values(status=EstimateStatus.EXPIRED, updated_at=utcnow())
                .returning(Estimate.id, Estimate.estimate_number, Estimate.tenant_id)
                .execution_options(synchronize_session=False)
            )
            rows = [
                {"id": row.id, "estimate_number": row.estimate_number, "tenant_id": row.tenant_id}
                for row in session.execute(stmt)
            ]
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("invoice_jobs.estimates.failed", extra={"event": "invoice_jobs.estimates.failed"})
            raise

    logger.info("invoice_jobs.estimates.expired", extra={"event": "invoice_jobs.estimates.expired", "count": len(rows)})
    return rows


def find_invoices_needing_reminders(
    session_factory: sessionmaker | None = None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """Invoices due within three days, or overdue by at most thirty days, that have an email to send to."""
    today = today or business_today()
    due_soon = and_(
        Invoice.due_date.between(today, today + timedelta(days=REMINDER_DUE_SOON_DAYS)),
        Invoice.status != InvoiceStatus.OVERDUE,
    )
    recently_overdue = and_(
        Invoice.status == InvoiceStatus.OVERDUE,
        Invoice.due_date > today - timedelta(days=REMINDER_OVERDUE_WINDOW_DAYS),
    )
    stmt = (
        select(Invoice, Contact.email, PaymentSettings.business_name, PaymentSettings.business_email)
        .outerjoin(Contact, Contact.id == Invoice.contact_id)
        .outerjoin(PaymentSettings, PaymentSettings.tenant_id == Invoice.tenant_id)
        .where(
            Invoice.status.in_(REMINDER_CANDIDATE_STATUSES),
            Invoice.amount_due > 0,
            or_(Invoice.customer_email.is_not(None), Contact.email.is_not(None)),
            or_(due_soon, recently_overdue),
        )
        .order_by(Invoice.due_date.asc(), Invoice.id.asc())
    )

    with get_db_session(session_factory) as session:
        rows = [
            {
                "id": invoice.id,
                "tenant_id": invoice.tenant_id,
                "invoice_number": invoice.invoice_number,
                "status": invoice.status.value,
                "due_date": invoice.due_date,
                "amount_due": invoice.amount_due,
                "email": invoice.customer_email or contact_email,
                "business_name": business_name,
                "business_email": business_email,
            }
            for invoice, contact_email, business_name, business_email in session.execute(stmt)
        ]

    logger.info("invoice_jobs.reminders.found", extra={"event": "invoice_jobs.reminders.found", "count": len(rows)})
    return rows
