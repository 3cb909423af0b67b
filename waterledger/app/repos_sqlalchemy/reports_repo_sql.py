"""Report rows and CSV exports.

Reports are read-only views over customers, bulk orders and deliveries with
per-report totals. ``start_date``/``end_date`` are inclusive local calendar
days: customers and bulk orders are windowed on ``created_at``, deliveries
on ``delivery_date``.
"""

from __future__ import annotations

import csv
from datetime import datetime, timezone
from zoneinfo import ZoneInfo
from io import StringIO
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.ledger import ZERO, calendar_day, day_end_utc, day_start_utc, to_money
from ..errors import ValidationError
from ..models import BulkOrder, DailyCustomer, User
from . import bulk_orders_repo_sql, deliveries_repo_sql

EXPORT_TYPES = ("customers", "bulk-orders", "deliveries")


def _created_window(column, start_date: Any, end_date: Any, tz: str) -> list:
    clauses = []
    try:
        if start_date:
            clauses.append(column >= day_start_utc(calendar_day(start_date, tz), tz))
        if end_date:
            clauses.append(column < day_end_utc(calendar_day(end_date, tz), tz))
    except ValueError as exc:
        raise ValidationError("Dates must be valid ISO dates") from exc
    return clauses


async def customer_payments(
    session: AsyncSession,
    business_id: str,
    *,
    tz: str,
    start_date: Any = None,
    end_date: Any = None,
) -> tuple[list[dict], dict]:
    stmt = (
        select(DailyCustomer)
        .where(
            DailyCustomer.business_id == business_id,
            *_created_window(DailyCustomer.created_at, start_date, end_date, tz),
        )
        .order_by(DailyCustomer.name)
    )
    customers = list((await session.execute(stmt)).scalars())
    rows = [
        {
            "id": c.id,
            "name": c.name,
            "phone": c.phone,
            "address": c.address,
            "bottleType": c.bottle_type,
            "pricePerBottle": to_money(c.price_per_bottle),
            "totalBilled": to_money(c.total_billed),
            "totalPaid": to_money(c.total_paid),
            "pendingBalance": to_money(c.pending_balance),
            "isActive": c.is_active,
        }
        for c in customers
    ]
    totals = {
        "totalBilled": sum((r["totalBilled"] for r in rows), ZERO),
        "totalPaid": sum((r["totalPaid"] for r in rows), ZERO),
        "totalPending": sum((r["pendingBalance"] for r in rows), ZERO),
    }
    return rows, totals


async def bulk_orders(
    session: AsyncSession,
    business_id: str,
    *,
    tz: str,
    payment_status: str | None = None,
    start_date: Any = None,
    end_date: Any = None,
) -> tuple[list[dict], dict]:
    orders = await bulk_orders_repo_sql.list_orders(
        session,
        business_id,
        tz=tz,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
    )
    creator_ids = {o.created_by for o in orders if o.created_by is not None}
    creators: dict[int, str] = {}
    if creator_ids:
        result = await session.execute(select(User.id, User.name).where(User.id.in_(creator_ids)))
        creators = dict(result.all())

    rows = [
        {
            "id": o.id,
            "customerName": o.customer_name,
            "phone": o.phone,
            "eventType": o.event_type,
            "quantity": o.quantity,
            "bottleType": o.bottle_type,
            "pricePerBottle": to_money(o.price_per_bottle),
            "totalAmount": to_money(o.total_amount),
            "paidAmount": to_money(o.paid_amount),
            "pendingAmount": to_money(o.pending_amount),
            "paymentStatus": o.payment_status,
            "deliveryDates": list(o.delivery_dates or []),
            "createdAt": o.created_at,
            "createdBy": creators.get(o.created_by),
        }
        for o in orders
    ]
    totals = {
        "totalOrders": len(rows),
        "totalAmount": sum((r["totalAmount"] for r in rows), ZERO),
        "totalPaid": sum((r["paidAmount"] for r in rows), ZERO),
        "totalPending": sum((r["pendingAmount"] for r in rows), ZERO),
    }
    return rows, totals


async def delivery_summary(
    session: AsyncSession,
    business_id: str,
    *,
    tz: str,
    start_date: Any = None,
    end_date: Any = None,
) -> tuple[list[dict], dict]:
    found = await deliveries_repo_sql.list_deliveries(
        session, business_id, tz=tz, start_date=start_date, end_date=end_date
    )
    rows = [
        {
            "id": d.id,
            "customerName": c.name,
            "customerPhone": c.phone,
            "bottleType": c.bottle_type,
            "deliveryDate": d.delivery_date,
            "delivered": d.delivered,
            "quantityDelivered": d.quantity_delivered,
            "amountBilled": to_money(d.amount_billed),
            "isPaid": d.is_paid,
            "paidAmount": to_money(d.paid_amount),
            "deliveredBy": deliverer,
            "notes": d.notes,
        }
        for d, c, deliverer in found
    ]
    totals = {
        "totalDeliveries": len(rows),
        "totalQuantity": sum(r["quantityDelivered"] for r in rows),
        "totalBilled": sum((r["amountBilled"] for r in rows), ZERO),
        "totalPaid": sum((r["paidAmount"] for r in rows), ZERO),
    }
    return rows, totals


def _created_day(value: datetime | None, tz: str) -> str:
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(tz)).date().isoformat()


async def export_csv(
    session: AsyncSession,
    business_id: str,
    report_type: str | None,
    *,
    tz: str,
    start_date: Any = None,
    end_date: Any = None,
) -> tuple[str, str]:
    """Render one report as CSV and return ``(filename, content)``.

    The customers export ignores the date window and lists every customer.
    """

    if not report_type:
        raise ValidationError("Report type is required (customers, bulk-orders, deliveries)")
    if report_type not in EXPORT_TYPES:
        raise ValidationError("Invalid report type")

    buf = StringIO()
    writer = csv.writer(buf)
    if report_type == "customers":
        rows, _ = await customer_payments(session, business_id, tz=tz)
        writer.writerow(
            [
                "Name",
                "Phone",
                "Address",
                "Bottle Type",
                "Price Per Bottle",
                "Total Billed",
                "Total Paid",
                "Pending Balance",
                "Status",
            ]
        )
        for r in rows:
            writer.writerow(
                [
                    r["name"],
                    r["phone"],
                    r["address"],
                    r["bottleType"],
                    r["pricePerBottle"],
                    r["totalBilled"],
                    r["totalPaid"],
                    r["pendingBalance"],
                    "Active" if r["isActive"] else "Inactive",
                ]
            )
    elif report_type == "bulk-orders":
        orders = (
            await session.execute(
                select(BulkOrder)
                .where(
                    BulkOrder.business_id == business_id,
                    *_created_window(BulkOrder.created_at, start_date, end_date, tz),
                )
                .order_by(BulkOrder.created_at.desc(), BulkOrder.id.desc())
            )
        ).scalars()
        writer.writerow(
            [
                "Customer Name",
                "Phone",
                "Event Type",
                "Quantity",
                "Bottle Type",
                "Price Per Bottle",
                "Total Amount",
                "Paid Amount",
                "Pending Amount",
                "Payment Status",
                "Created Date",
            ]
        )
        for o in orders:
            writer.writerow(
                [
                    o.customer_name,
                    o.phone,
                    o.event_type,
                    o.quantity,
                    o.bottle_type,
                    to_money(o.price_per_bottle),
                    to_money(o.total_amount),
                    to_money(o.paid_amount),
                    to_money(o.pending_amount),
                    o.payment_status,
                    _created_day(o.created_at, tz),
                ]
            )
    else:
        found = await deliveries_repo_sql.list_deliveries(
            session, business_id, tz=tz, start_date=start_date, end_date=end_date
        )
        writer.writerow(
            [
                "Customer Name",
                "Phone",
                "Delivery Date",
                "Quantity",
                "Amount Billed",
                "Paid Amount",
                "Payment Status",
            ]
        )
        for d, c, _ in found:
            writer.writerow(
                [
                    c.name,
                    c.phone,
                    d.delivery_date.isoformat(),
                    d.quantity_delivered,
                    to_money(d.amount_billed),
                    to_money(d.paid_amount),
                    "Paid" if d.is_paid else "Pending",
                ]
            )

    stamp = int(datetime.now(timezone.utc).timestamp() * 1000)
    filename = f"{report_type.replace('-', '_')}_{stamp}.csv"
    return filename, buf.getvalue()
