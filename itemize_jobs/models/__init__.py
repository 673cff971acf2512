"""SQLAlchemy models for the tables touched by background jobs."""

from itemize_jobs.models.base import Base
from itemize_jobs.models.contact import Contact
from itemize_jobs.models.enums import (
    DeliveryStatus,
    DiscountType,
    DocumentStatus,
    EstimateStatus,
    InvoiceStatus,
    RecipientStatus,
    RecurringFrequency,
    ReminderStatus,
    RoutingMode,
    RoutingStatus,
    TemplateStatus,
)
from itemize_jobs.models.estimate import Estimate
from itemize_jobs.models.invoice import Invoice, InvoiceItem
from itemize_jobs.models.payment_settings import DEFAULT_INVOICE_PREFIX, PaymentSettings
from itemize_jobs.models.recurring_template import RecurringInvoiceTemplate
from itemize_jobs.models.signature import (
    SignatureAuditLog,
    SignatureDocument,
    SignatureRecipient,
    SignatureReminder,
)
from itemize_jobs.models.tenant import Tenant

__all__ = [
    "Base",
    "Contact",
    "DEFAULT_INVOICE_PREFIX",
    "DeliveryStatus",
    "DiscountType",
    "DocumentStatus",
    "Estimate",
    "EstimateStatus",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "PaymentSettings",
    "RecipientStatus",
    "RecurringFrequency",
    "RecurringInvoiceTemplate",
    "ReminderStatus",
    "RoutingMode",
    "RoutingStatus",
    "SignatureAuditLog",
    "SignatureDocument",
    "SignatureRecipient",
    "SignatureReminder",
    "TemplateStatus",
    "Tenant",
]
