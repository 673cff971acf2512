"""Date arithmetic for recurring invoice templates."""

from __future__ import annotations

import re
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from dateutil.relativedelta import relativedelta

from itemize_jobs.core.exceptions import ValidationError
from itemize_jobs.models.enums import RecurringFrequency

DEFAULT_PAYMENT_TERMS_DAYS = 30
CENTS = Decimal("0.01")

_PERIODS = {
    RecurringFrequency.WEEKLY: relativedelta(weeks=1),
    RecurringFrequency.MONTHLY: relativedelta(months=1),
    RecurringFrequency.QUARTERLY: relativedelta(months=3),
    RecurringFrequency.YEARLY: relativedelta(years=1),
}


def calculate_next_run_date(current: date, frequency: RecurringFrequency | str) -> date:
    """Advance a run date by one period.

    Month steps clamp to the month end and the clamped day carries forward:
    Jan 31 -> Feb 29 -> Mar 29.
    """
    try:
        period = _PERIODS[RecurringFrequency(frequency)]
    except (KeyError, ValueError) as exc:
        raise ValidationError(f"Unsupported recurring frequency: {frequency!r}") from exc
    return current + period


def parse_payment_terms(payment_terms: str | int | None) -> int:
    """Return payment terms in days ("30", 30 and "Net 30" are all 30)."""
    if payment_terms is None or payment_terms == "":
        return DEFAULT_PAYMENT_TERMS_DAYS
    if isinstance(payment_terms, int):
        days = payment_terms
    else:
        match = re.search(r"\d+", str(payment_terms))
        if match is None:
            raise ValidationError(f"Payment terms are not a number of days: {payment_terms!r}")
        days = int(match.group())
    if days < 0:
        raise ValidationError("Payment terms must not be negative.")
    return days


def compute_due_date(issue_date: date, payment_terms: str | int | None) -> date:
    return issue_date + timedelta(days=parse_payment_terms(payment_terms))


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def price_line(quantity: Decimal, unit_price: Decimal, tax_rate: Decimal) -> tuple[Decimal, Decimal]:
    """Return (tax_amount, total including tax) for one line.

    Tax is taken on the unrounded line amount; each stored value is rounded
    to cents once.
    """
    line_total = quantity * unit_price
    tax_amount = line_total * tax_rate / Decimal("100")
    return to_cents(tax_amount), to_cents(line_total + tax_amount)
