"""Helpers for dashboard aggregates."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.enums import OPEN_PAYMENT_STATUSES
from ..domain.ledger import ZERO, day_start_utc, local_today, month_start, to_money
from ..models import BulkOrder, DailyCustomer, DailyDelivery

MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


async def _delivery_totals(
    session: AsyncSession, business_id: str, start: date, end: date | None = None
) -> tuple[Decimal, int]:
    """Sum billed amount and quantity for deliveries dated ``[start, end)``."""

    stmt = select(
        func.coalesce(func.sum(DailyDelivery.amount_billed), 0),
        func.coalesce(func.sum(DailyDelivery.quantity_delivered), 0),
    ).where(DailyDelivery.business_id == business_id, DailyDelivery.delivery_date >= start)
    if end is not None:
        stmt = stmt.where(DailyDelivery.delivery_date < end)
    amount, quantity = (await session.execute(stmt)).one()
    return to_money(amount), int(quantity or 0)


async def _bulk_total(
    session: AsyncSession, business_id: str, start: date, tz: str, end: date | None = None
) -> Decimal:
    """Sum ``total_amount`` of bulk orders created from local day ``start``."""

    stmt = select(func.coalesce(func.sum(BulkOrder.total_amount), 0)).where(
        BulkOrder.business_id == business_id,
        BulkOrder.created_at >= day_start_utc(start, tz),
    )
    if end is not None:
        stmt = stmt.where(BulkOrder.created_at < day_start_utc(end, tz))
    return to_money(await session.scalar(stmt))


async def kpis(session: AsyncSession, business_id: str, tz: str) -> dict:
    """Return headline figures for the dashboard tiles.

    Deliveries count by ``delivery_date`` and bulk orders by ``created_at``.
    Apart from today and the current month the windows are open ended, so
    future-dated deliveries are included.
    """

    today = local_today(tz)
    this_month = month_start(today)
    next_month = month_start(today, -1)
    three_months = month_start(today, 2)
    six_months = month_start(today, 5)
    year_start = date(today.year, 1, 1)

    today_total, today_quantity = await _delivery_totals(
        session, business_id, today, today + timedelta(days=1)
    )

    async def income(start: date, end: date | None = None) -> Decimal:
        delivered, _ = await _delivery_totals(session, business_id, start, end)
        return delivered + await _bulk_total(session, business_id, start, tz, end)

    customers = (
        await session.execute(
            select(DailyCustomer.pending_balance, DailyCustomer.is_active).where(
                DailyCustomer.business_id == business_id
            )
        )
    ).all()
    customer_pending = sum((to_money(p) for p, _ in customers), ZERO)
    bulk_pending = to_money(
        await session.scalar(
            select(func.coalesce(func.sum(BulkOrder.pending_amount), 0)).where(
                BulkOrder.business_id == business_id,
                BulkOrder.payment_status.in_([s.value for s in OPEN_PAYMENT_STATUSES]),
            )
        )
    )

    return {
        "todayTotal": today_total,
        "todayQuantity": today_quantity,
        "monthlyIncome": await income(this_month, next_month),
        "threeMonthIncome": await income(three_months),
        "sixMonthIncome": await income(six_months),
        "yearlyIncome": await income(year_start),
        "pendingPayments": customer_pending + bulk_pending,
        "activeCustomers": sum(1 for _, active in customers if active),
        "totalCustomers": len(customers),
    }


async def revenue_trend(
    session: AsyncSession, business_id: str, tz: str, days: int = 30
) -> list[dict]:
    """Per-day billed amount and quantity since ``days`` days ago, oldest first."""

    since = local_today(tz) - timedelta(days=days)
    result = await session.execute(
        select(
            DailyDelivery.delivery_date,
            func.sum(DailyDelivery.amount_billed),
            func.sum(DailyDelivery.quantity_delivered),
        )
        .where(DailyDelivery.business_id == business_id, DailyDelivery.delivery_date >= since)
        .group_by(DailyDelivery.delivery_date)
        .order_by(DailyDelivery.delivery_date)
    )
    return [
        {"date": d.isoformat(), "amount": to_money(amount), "quantity": int(qty or 0)}
        for d, amount, qty in result.all()
    ]


def _as_local(value: datetime, tz: str) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz))


async def monthly_comparison(session: AsyncSession, business_id: str, tz: str) -> list[dict]:
    """Delivery and bulk-order income per month over the trailing six months.

    A month appears when it has deliveries or bulk orders; the missing side
    counts as zero.
    """

    since = month_start(local_today(tz), 5)
    year_col = extract("year", DailyDelivery.delivery_date)
    month_col = extract("month", DailyDelivery.delivery_date)
    result = await session.execute(
        select(year_col, month_col, func.sum(DailyDelivery.amount_billed))
        .where(DailyDelivery.business_id == business_id, DailyDelivery.delivery_date >= since)
        .group_by(year_col, month_col)
    )
    deliveries = {(int(y), int(m)): to_money(amount) for y, m, amount in result.all()}

    # Bulk orders are bucketed by the local month they were created in.
    rows = await session.execute(
        select(BulkOrder.created_at, BulkOrder.total_amount).where(
            BulkOrder.business_id == business_id,
            BulkOrder.created_at >= day_start_utc(since, tz),
        )
    )
    bulk: dict[tuple[int, int], Decimal] = {}
    for created_at, amount in rows.all():
        local = _as_local(created_at, tz)
        key = (local.year, local.month)
        bulk[key] = bulk.get(key, ZERO) + to_money(amount)

    months = []
    for year, month in sorted(set(deliveries) | set(bulk)):
        delivered = deliveries.get((year, month), ZERO)
        ordered = bulk.get((year, month), ZERO)
        months.append(
            {
                "month": f"{MONTH_NAMES[month - 1]} {year}",
                "deliveries": delivered,
                "bulkOrders": ordered,
                "total": delivered + ordered,
            }
        )
    return months
