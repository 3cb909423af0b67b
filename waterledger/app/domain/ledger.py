"""Pure ledger arithmetic.

Every derived field in the system is produced by one of the helpers below and
applied explicitly by the repositories after a mutation and before the
session is flushed. Nothing here touches the database, which keeps the
reconciliation rules easy to test in isolation:

* ``pending_balance = total_billed - total_paid`` on a customer;
* ``total_amount = quantity * price_per_bottle``,
  ``pending_amount = total_amount - paid_amount`` and a three-way
  ``payment_status`` on a bulk order;
* a delivery bills ``price_per_bottle * quantity``.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from zoneinfo import ZoneInfo

from .enums import PaymentStatus

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Return ``value`` as a two-decimal :class:`~decimal.Decimal`."""

    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def delivery_amount(price_per_bottle: Any, quantity: int) -> Decimal:
    """Amount billed for ``quantity`` bottles at ``price_per_bottle``."""

    return to_money(to_money(price_per_bottle) * quantity)


def payment_status(paid_amount: Any, total_amount: Any) -> PaymentStatus:
    """Classify a bulk order payment.

    Nothing paid is ``pending``, reaching the total is ``paid`` and anything
    in between is ``partial``. A zero-value order with nothing paid stays
    ``pending``.
    """

    paid = to_money(paid_amount)
    if paid == ZERO:
        return PaymentStatus.PENDING
    if paid >= to_money(total_amount):
        return PaymentStatus.PAID
    return PaymentStatus.PARTIAL


def refresh_customer_balance(customer: Any) -> Any:
    """Recompute ``pending_balance`` from the customer's running totals."""

    customer.total_billed = to_money(customer.total_billed)
    customer.total_paid = to_money(customer.total_paid)
    customer.pending_balance = customer.total_billed - customer.total_paid
    return customer


def adjust_customer(customer: Any, billed_delta: Any = 0, paid_delta: Any = 0) -> Any:
    """Apply ledger deltas to ``customer`` and refresh its balance."""

    customer.total_billed = to_money(customer.total_billed) + to_money(billed_delta)
    customer.total_paid = to_money(customer.total_paid) + to_money(paid_delta)
    return refresh_customer_balance(customer)


def refresh_bulk_order(order: Any) -> Any:
    """Recompute every derived amount on a bulk order."""

    order.price_per_bottle = to_money(order.price_per_bottle)
    order.paid_amount = to_money(order.paid_amount)
    order.total_amount = to_money(order.price_per_bottle * int(order.quantity))
    order.pending_amount = order.total_amount - order.paid_amount
    order.payment_status = payment_status(order.paid_amount, order.total_amount).value
    return order


def local_today(tz: str) -> date:
    """Current calendar day in ``tz``."""

    return datetime.now(ZoneInfo(tz)).date()


def calendar_day(value: date | datetime | str | None, tz: str) -> date:
    """Normalize ``value`` to the calendar day it falls on in ``tz``.

    ``None`` means today. Naive datetimes are taken as local wall time;
    aware datetimes are converted to ``tz`` first. Strings accept ISO dates
    (``2024-03-05``) and ISO datetimes (``2024-03-05T18:30:00Z``).
    """

    if value is None:
        return local_today(tz)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text) if "T" in text else date.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"invalid date: {value!r}") from exc
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(tz))
        return value.date()
    return value


def month_start(day: date, months_back: int = 0) -> date:
    """First day of the month ``months_back`` months before ``day``'s month."""

    index = day.year * 12 + (day.month - 1) - months_back
    return date(index // 12, index % 12 + 1, 1)


def parse_month(value: str | None) -> tuple[int, int]:
    """Parse ``YYYY-MM`` into ``(year, month)``."""

    if not value:
        raise ValueError("Month parameter is required (format: YYYY-MM)")
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except ValueError as exc:
        raise ValueError("Month parameter must use the format YYYY-MM") from exc
    return parsed.year, parsed.month


def month_days(year: int, month: int) -> list[date]:
    """Every calendar day of ``year``-``month`` in order."""

    first = date(year, month, 1)
    following = month_start(date(year, month, 28) + timedelta(days=4))
    return [first + timedelta(days=i) for i in range((following - first).days)]


def day_start_utc(day: date, tz: str) -> datetime:
    """UTC instant at which ``day`` begins in ``tz``."""

    return datetime.combine(day, time.min, ZoneInfo(tz)).astimezone(timezone.utc)


def day_end_utc(day: date, tz: str) -> datetime:
    """UTC instant at which the day after ``day`` begins in ``tz``."""

    return day_start_utc(day + timedelta(days=1), tz)
