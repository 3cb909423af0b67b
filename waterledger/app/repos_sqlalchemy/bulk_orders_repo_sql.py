"""Bulk event orders.

A bulk order is settled on its own and never touches customer ledgers.
``total_amount``, ``pending_amount`` and ``payment_status`` are refreshed by
:func:`refresh_bulk_order` on every write path.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Caller
from ..domain.enums import PaymentStatus
from ..domain.ledger import (
    ZERO,
    calendar_day,
    day_end_utc,
    day_start_utc,
    refresh_bulk_order,
    to_money,
)
from ..errors import NotFoundError, ValidationError
from ..models import BulkOrder
from ..routes_metrics import ledger_operations_total

ORDER_FIELDS = (
    "customer_name",
    "phone",
    "address",
    "event_type",
    "quantity",
    "bottle_type",
    "price_per_bottle",
    "notes",
)


def normalize_dates(values: list[Any] | None, tz: str) -> list[str]:
    """Turn ``values`` into ordered ISO calendar days, requiring at least one."""

    if not values:
        raise ValidationError("At least one delivery date is required")
    try:
        return [calendar_day(v, tz).isoformat() for v in values]
    except ValueError as exc:
        raise ValidationError("Delivery dates must be valid ISO dates") from exc


def _check_amounts(order: BulkOrder) -> None:
    if order.quantity is None or int(order.quantity) < 1:
        raise ValidationError("Quantity must be at least 1")
    if to_money(order.price_per_bottle) < ZERO:
        raise ValidationError("Price per bottle must be a positive number")
    if to_money(order.paid_amount) < ZERO:
        raise ValidationError("Paid amount must be a positive number")


async def get(session: AsyncSession, business_id: str, order_id: int) -> BulkOrder:
    order = (
        await session.execute(
            select(BulkOrder).where(BulkOrder.id == order_id, BulkOrder.business_id == business_id)
        )
    ).scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order not found")
    return order


async def list_orders(
    session: AsyncSession,
    business_id: str,
    *,
    tz: str,
    payment_status: str | None = None,
    start_date: Any = None,
    end_date: Any = None,
) -> list[BulkOrder]:
    """Orders newest first, filtered by status and ``created_at`` window.

    The window is made of inclusive local calendar days.
    """

    stmt = select(BulkOrder).where(BulkOrder.business_id == business_id)
    if payment_status:
        try:
            status = PaymentStatus(payment_status)
        except ValueError as exc:
            raise ValidationError("Payment status must be pending, partial or paid") from exc
        stmt = stmt.where(BulkOrder.payment_status == status.value)
    try:
        if start_date:
            start = day_start_utc(calendar_day(start_date, tz), tz)
            stmt = stmt.where(BulkOrder.created_at >= start)
        if end_date:
            end = day_end_utc(calendar_day(end_date, tz), tz)
            stmt = stmt.where(BulkOrder.created_at < end)
    except ValueError as exc:
        raise ValidationError("Dates must be valid ISO dates") from exc
    stmt = stmt.order_by(BulkOrder.created_at.desc(), BulkOrder.id.desc())
    return list((await session.execute(stmt)).scalars())


async def create(
    session: AsyncSession, caller: Caller, data: dict[str, Any], *, tz: str
) -> BulkOrder:
    order = BulkOrder(
        business_id=caller.business_id,
        created_by=caller.user_id,
        delivery_dates=normalize_dates(data.get("delivery_dates"), tz),
        paid_amount=to_money(data.get("paid_amount")),
        **{k: v for k, v in data.items() if k in ORDER_FIELDS and v is not None},
    )
    _check_amounts(order)
    refresh_bulk_order(order)
    session.add(order)
    await session.commit()
    ledger_operations_total.labels(operation="create_bulk_order").inc()
    return order


async def update(
    session: AsyncSession,
    business_id: str,
    order_id: int,
    changes: dict[str, Any],
    *,
    tz: str,
) -> BulkOrder:
    """Patch an order and refresh its derived amounts.

    ``paid_amount`` is not editable here; payments go through
    :func:`record_payment`.
    """

    order = await get(session, business_id, order_id)
    for field in ORDER_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(order, field, changes[field])
    if changes.get("delivery_dates") is not None:
        order.delivery_dates = normalize_dates(changes["delivery_dates"], tz)
    _check_amounts(order)
    refresh_bulk_order(order)
    await session.commit()
    ledger_operations_total.labels(operation="update_bulk_order").inc()
    return order


async def record_payment(
    session: AsyncSession, business_id: str, order_id: int, paid_amount: Any
) -> BulkOrder:
    """Replace the amount paid so far and refresh the settlement state."""

    paid = to_money(paid_amount)
    if paid < ZERO:
        raise ValidationError("Paid amount must be a positive number")
    order = await get(session, business_id, order_id)
    order.paid_amount = paid
    refresh_bulk_order(order)
    await session.commit()
    ledger_operations_total.labels(operation="record_bulk_order_payment").inc()
    return order


async def remove(session: AsyncSession, business_id: str, order_id: int) -> None:
    order = await get(session, business_id, order_id)
    await session.delete(order)
    await session.commit()
