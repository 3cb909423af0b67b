from datetime import date, datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from waterledger.app.domain.enums import PaymentStatus
from waterledger.app.domain.ledger import (
    adjust_customer,
    calendar_day,
    day_start_utc,
    delivery_amount,
    month_days,
    month_start,
    parse_month,
    payment_status,
    refresh_bulk_order,
    to_money,
)


def test_to_money_rounds_to_cents():
    assert to_money(None) == Decimal("0.00")
    assert to_money(12.345) == Decimal("12.35")
    assert to_money("50") == Decimal("50.00")


def test_delivery_amount_is_price_times_quantity():
    assert delivery_amount(Decimal("50"), 2) == Decimal("100.00")
    assert delivery_amount("30.50", 3) == Decimal("91.50")
    assert delivery_amount(50, 0) == Decimal("0.00")


@pytest.mark.parametrize(
    "paid,total,expected",
    [
        (0, 4500, PaymentStatus.PENDING),
        (2250, 4500, PaymentStatus.PARTIAL),
        (4500, 4500, PaymentStatus.PAID),
        (5000, 4500, PaymentStatus.PAID),
        (0, 0, PaymentStatus.PENDING),
    ],
)
def test_payment_status(paid, total, expected):
    assert payment_status(paid, total) is expected


def test_adjust_customer_keeps_pending_balance_consistent():
    customer = SimpleNamespace(total_billed=Decimal("0"), total_paid=Decimal("0"))
    adjust_customer(customer, billed_delta=100)
    adjust_customer(customer, paid_delta=40)
    adjust_customer(customer, billed_delta=-50, paid_delta=10)
    assert customer.total_billed == Decimal("50.00")
    assert customer.total_paid == Decimal("50.00")
    assert customer.pending_balance == customer.total_billed - customer.total_paid


def test_refresh_bulk_order_derives_totals():
    order = SimpleNamespace(quantity=100, price_per_bottle=45, paid_amount=2250)
    refresh_bulk_order(order)
    assert order.total_amount == Decimal("4500.00")
    assert order.pending_amount == Decimal("2250.00")
    assert order.payment_status == "partial"

    order.paid_amount = 4500
    refresh_bulk_order(order)
    assert order.pending_amount == Decimal("0.00")
    assert order.payment_status == "paid"


def test_calendar_day_normalizes_inputs():
    tz = "Asia/Kolkata"
    assert calendar_day("2024-03-05", tz) == date(2024, 3, 5)
    assert calendar_day(date(2024, 3, 5), tz) == date(2024, 3, 5)
    # 20:00 UTC is already the next day in India.
    assert calendar_day("2024-03-05T20:00:00Z", tz) == date(2024, 3, 6)
    assert calendar_day(datetime(2024, 3, 5, 20, tzinfo=timezone.utc), "UTC") == date(2024, 3, 5)
    with pytest.raises(ValueError):
        calendar_day("not-a-date", tz)


def test_month_helpers():
    assert month_start(date(2024, 3, 15)) == date(2024, 3, 1)
    assert month_start(date(2024, 3, 15), 5) == date(2023, 10, 1)
    assert month_start(date(2024, 12, 31), -1) == date(2025, 1, 1)
    assert len(month_days(2024, 2)) == 29
    assert len(month_days(2023, 2)) == 28
    assert month_days(2024, 12)[-1] == date(2024, 12, 31)
    assert parse_month("2024-02") == (2024, 2)
    with pytest.raises(ValueError, match="required"):
        parse_month(None)
    with pytest.raises(ValueError, match="YYYY-MM"):
        parse_month("02-2024")


def test_day_start_utc_uses_local_midnight():
    start = day_start_utc(date(2024, 3, 5), "Asia/Kolkata")
    assert start == datetime(2024, 3, 4, 18, 30, tzinfo=timezone.utc)
