"""Delivery ledger: recording, correcting and paying for daily deliveries.

Every mutation here touches two rows, the delivery and its customer, and
commits them together. The customer row is loaded with
:func:`customers_repo_sql.get` using ``lock=True`` before any delta is
applied, so concurrent ledger operations for one customer queue up on the
row lock instead of overwriting each other's totals.

The ``(customer_id, delivery_date)`` unique constraint is the only guard
against a second row for the same day; a violation rolls the whole
operation back and surfaces as :class:`ConflictError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import Caller
from ..domain.ledger import (
    ZERO,
    adjust_customer,
    calendar_day,
    delivery_amount,
    local_today,
    month_days,
    parse_month,
    to_money,
)
from ..errors import DUPLICATE_DELIVERY, ConflictError, NotFoundError, ValidationError
from ..models import DailyCustomer, DailyDelivery, User
from ..routes_metrics import delivery_conflicts_total, ledger_operations_total
from . import customers_repo_sql

logger = logging.getLogger(__name__)

UNIQUE_MARKERS = ("uq_delivery_customer_day", "daily_deliveries.customer_id")


@dataclass
class MarkResult:
    """Snapshot returned by :func:`mark_delivery`."""

    delivery_id: int
    customer_id: int
    delivered: bool
    quantity_delivered: int
    amount_billed: Decimal
    delivery_date: date
    total_billed: Decimal

    def as_dict(self) -> dict[str, Any]:
        return {
            "deliveryId": self.delivery_id,
            "customerId": self.customer_id,
            "delivered": self.delivered,
            "quantityDelivered": self.quantity_delivered,
            "amountBilled": self.amount_billed,
            "deliveryDate": self.delivery_date,
            "customerTotalBilled": self.total_billed,
        }


def _day(value: Any, tz: str) -> date:
    try:
        return calendar_day(value, tz)
    except ValueError as exc:
        raise ValidationError("Delivery date must be a valid ISO date") from exc


async def _flush_unique(session: AsyncSession) -> None:
    """Flush pending rows, turning a duplicate day into :class:`ConflictError`."""

    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        if not any(marker in str(exc.orig) for marker in UNIQUE_MARKERS):
            raise
        delivery_conflicts_total.inc()
        raise ConflictError(DUPLICATE_DELIVERY) from exc


async def get_delivery(session: AsyncSession, business_id: str, delivery_id: int) -> DailyDelivery:
    delivery = (
        await session.execute(
            select(DailyDelivery).where(
                DailyDelivery.id == delivery_id, DailyDelivery.business_id == business_id
            )
        )
    ).scalar_one_or_none()
    if delivery is None:
        raise NotFoundError("Delivery not found")
    return delivery


async def _lock_for_update(
    session: AsyncSession, business_id: str, delivery_id: int
) -> tuple[DailyDelivery, DailyCustomer]:
    """Lock the owning customer, then reload the delivery under that lock.

    The first read only resolves the customer. Amounts used for deltas come
    from the second read, after any writer holding the customer lock has
    committed.
    """

    found = await get_delivery(session, business_id, delivery_id)
    customer = await customers_repo_sql.get(session, business_id, found.customer_id, lock=True)
    delivery = (
        await session.execute(
            select(DailyDelivery)
            .where(DailyDelivery.id == delivery_id, DailyDelivery.business_id == business_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if delivery is None:
        raise NotFoundError("Delivery not found")
    return delivery, customer


async def record_delivery(
    session: AsyncSession,
    caller: Caller,
    *,
    customer_id: int,
    quantity: int,
    tz: str,
    delivery_date: Any = None,
    notes: str | None = None,
    paid_amount: Any = None,
    is_paid: bool = False,
) -> tuple[DailyDelivery, DailyCustomer]:
    """Create a delivery row and bill it to the customer.

    ``amount_billed`` is the customer's current price times ``quantity``.
    Any ``paid_amount`` recorded with the delivery is added to the
    customer's ``total_paid`` so that later payment corrections, which work
    on deltas, stay consistent.
    """

    if quantity is None or quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    paid = to_money(paid_amount)
    if paid < ZERO:
        raise ValidationError("Paid amount must be a positive number")

    customer = await customers_repo_sql.get(session, caller.business_id, customer_id, lock=True)
    day = _day(delivery_date, tz)
    amount = delivery_amount(customer.price_per_bottle, quantity)

    delivery = DailyDelivery(
        customer_id=customer.id,
        delivery_date=day,
        delivered=True,
        quantity_delivered=quantity,
        amount_billed=amount,
        is_paid=bool(is_paid) or (paid > ZERO and paid >= amount),
        paid_amount=paid,
        delivered_by=caller.user_id,
        business_id=caller.business_id,
        notes=notes,
    )
    session.add(delivery)
    await _flush_unique(session)

    adjust_customer(customer, billed_delta=amount, paid_delta=paid)
    await session.commit()
    ledger_operations_total.labels(operation="record_delivery").inc()
    logger.info(
        "delivery %s recorded for customer %s on %s: qty=%s amount=%s",
        delivery.id,
        customer.id,
        day,
        quantity,
        amount,
    )
    return delivery, customer


async def update_delivery(
    session: AsyncSession,
    caller: Caller,
    delivery_id: int,
    *,
    tz: str,
    quantity: int | None = None,
    delivery_date: Any = None,
    notes: str | None = None,
) -> DailyDelivery:
    """Patch a delivery, re-billing it when the quantity changes.

    The new amount uses the customer's *current* price and only the
    difference to the previously billed amount is applied to
    ``total_billed``.
    """

    if quantity is not None and quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    delivery, customer = await _lock_for_update(session, caller.business_id, delivery_id)

    if quantity is not None:
        old_amount = to_money(delivery.amount_billed)
        new_amount = delivery_amount(customer.price_per_bottle, quantity)
        delivery.quantity_delivered = quantity
        delivery.amount_billed = new_amount
        delivery.delivered = True
        if to_money(delivery.paid_amount) > ZERO:
            delivery.is_paid = to_money(delivery.paid_amount) >= new_amount
        adjust_customer(customer, billed_delta=new_amount - old_amount)
        ledger_operations_total.labels(operation="update_delivery_quantity").inc()

    if delivery_date is not None:
        delivery.delivery_date = _day(delivery_date, tz)
    if notes is not None:
        delivery.notes = notes

    await _flush_unique(session)
    await session.commit()
    return delivery


async def record_payment(
    session: AsyncSession, caller: Caller, delivery_id: int, paid_amount: Any
) -> DailyDelivery:
    """Set the amount paid for a delivery and move the difference to the customer."""

    paid = to_money(paid_amount)
    if paid < ZERO:
        raise ValidationError("Paid amount must be a positive number")

    delivery, customer = await _lock_for_update(session, caller.business_id, delivery_id)
    previous = to_money(delivery.paid_amount)
    delivery.paid_amount = paid
    delivery.is_paid = paid >= to_money(delivery.amount_billed)
    adjust_customer(customer, paid_delta=paid - previous)
    await session.commit()
    ledger_operations_total.labels(operation="record_delivery_payment").inc()
    return delivery


async def find_for_day(
    session: AsyncSession, business_id: str, customer_id: int, day: date
) -> DailyDelivery | None:
    return (
        await session.execute(
            select(DailyDelivery).where(
                DailyDelivery.customer_id == customer_id,
                DailyDelivery.delivery_date == day,
                DailyDelivery.business_id == business_id,
            )
        )
    ).scalar_one_or_none()


async def mark_delivery(
    session: AsyncSession,
    caller: Caller,
    *,
    customer_id: int,
    delivered: bool,
    tz: str,
    quantity: int | None = None,
    delivery_date: Any = None,
) -> MarkResult:
    """Mark or unmark a customer's delivery for one calendar day.

    Calling it again with the same arguments leaves the same end state:
    the existing row is updated in place and only the difference between
    the new and the previously billed amount reaches ``total_billed``.
    ``delivered=False`` zeroes the day's quantity and amount.
    """

    if quantity is not None and quantity < 0:
        raise ValidationError("Quantity must be a positive number")

    customer = await customers_repo_sql.get(session, caller.business_id, customer_id, lock=True)
    day = _day(delivery_date, tz)

    quantity_delivered = (quantity or 1) if delivered else 0
    amount = delivery_amount(customer.price_per_bottle, quantity_delivered) if delivered else ZERO

    delivery = await find_for_day(session, caller.business_id, customer.id, day)
    old_amount = to_money(delivery.amount_billed) if delivery is not None else ZERO

    if delivery is None:
        delivery = DailyDelivery(
            customer_id=customer.id,
            delivery_date=day,
            business_id=caller.business_id,
        )
        session.add(delivery)
    delivery.delivered = delivered
    delivery.quantity_delivered = quantity_delivered
    delivery.amount_billed = amount
    delivery.delivered_by = caller.user_id
    paid = to_money(delivery.paid_amount)
    if paid > ZERO:
        delivery.is_paid = paid >= amount
    await _flush_unique(session)

    adjust_customer(customer, billed_delta=amount - old_amount)
    await session.commit()
    ledger_operations_total.labels(operation="mark_delivery").inc()
    return MarkResult(
        delivery_id=delivery.id,
        customer_id=customer.id,
        delivered=delivered,
        quantity_delivered=quantity_delivered,
        amount_billed=amount,
        delivery_date=day,
        total_billed=to_money(customer.total_billed),
    )


async def list_deliveries(
    session: AsyncSession,
    business_id: str,
    *,
    tz: str,
    start_date: Any = None,
    end_date: Any = None,
    customer_id: int | None = None,
) -> list[tuple[DailyDelivery, DailyCustomer, str | None]]:
    """Return ``(delivery, customer, deliverer_name)`` rows, newest day first.

    ``start_date`` and ``end_date`` are inclusive calendar days.
    """

    stmt = (
        select(DailyDelivery, DailyCustomer, User.name)
        .join(DailyCustomer, DailyCustomer.id == DailyDelivery.customer_id)
        .outerjoin(User, User.id == DailyDelivery.delivered_by)
        .where(DailyDelivery.business_id == business_id)
    )
    if customer_id is not None:
        stmt = stmt.where(DailyDelivery.customer_id == customer_id)
    if start_date:
        stmt = stmt.where(DailyDelivery.delivery_date >= _day(start_date, tz))
    if end_date:
        stmt = stmt.where(DailyDelivery.delivery_date <= _day(end_date, tz))
    stmt = stmt.order_by(DailyDelivery.delivery_date.desc(), DailyDelivery.id.desc())
    return [tuple(row) for row in (await session.execute(stmt)).all()]


async def list_today(session: AsyncSession, business_id: str, tz: str) -> dict[str, Any]:
    """Today's deliveries with their billed amount and quantity totals."""

    today = local_today(tz)
    rows = await list_deliveries(session, business_id, tz=tz, start_date=today, end_date=today)
    return {
        "rows": rows,
        "totalAmount": sum((to_money(d.amount_billed) for d, _, _ in rows), ZERO),
        "totalQuantity": sum(d.quantity_delivered for d, _, _ in rows),
    }


async def today_customers(session: AsyncSession, business_id: str, tz: str) -> list[dict[str, Any]]:
    """Every active customer with the status of today's delivery."""

    today = local_today(tz)
    customers = (
        await session.execute(
            select(DailyCustomer)
            .where(DailyCustomer.business_id == business_id, DailyCustomer.is_active.is_(True))
            .order_by(DailyCustomer.name)
        )
    ).scalars()
    deliveries = (
        await session.execute(
            select(DailyDelivery).where(
                DailyDelivery.business_id == business_id, DailyDelivery.delivery_date == today
            )
        )
    ).scalars()
    by_customer = {d.customer_id: d for d in deliveries}

    result = []
    for customer in customers:
        delivery = by_customer.get(customer.id)
        result.append(
            {
                "id": customer.id,
                "name": customer.name,
                "address": customer.address,
                "phone": customer.phone,
                "bottleType": customer.bottle_type,
                "pricePerBottle": to_money(customer.price_per_bottle),
                "deliveredToday": bool(delivery.delivered) if delivery else False,
                "deliveryId": delivery.id if delivery else None,
                "quantityDelivered": delivery.quantity_delivered if delivery else 0,
                "amountBilled": to_money(delivery.amount_billed) if delivery else ZERO,
            }
        )
    return result


async def monthly_matrix(
    session: AsyncSession,
    business_id: str,
    month: str | None,
    customer_id: int | None = None,
) -> list[dict[str, Any]]:
    """Per-customer, per-day delivery grid for ``month`` (``YYYY-MM``).

    Each active customer gets one entry per calendar day. ``delivered`` is
    ``None`` when no row exists for the day, otherwise the stored flag.
    """

    try:
        year, month_num = parse_month(month)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    days = month_days(year, month_num)

    customer_stmt = select(DailyCustomer).where(
        DailyCustomer.business_id == business_id, DailyCustomer.is_active.is_(True)
    )
    if customer_id is not None:
        customer_stmt = customer_stmt.where(DailyCustomer.id == customer_id)
    customers = list(
        (await session.execute(customer_stmt.order_by(DailyCustomer.name))).scalars()
    )

    deliveries = (
        await session.execute(
            select(DailyDelivery).where(
                DailyDelivery.business_id == business_id,
                DailyDelivery.delivery_date >= days[0],
                DailyDelivery.delivery_date <= days[-1],
            )
        )
    ).scalars()
    grid: dict[int, dict[date, DailyDelivery]] = {}
    for delivery in deliveries:
        grid.setdefault(delivery.customer_id, {})[delivery.delivery_date] = delivery

    rows = []
    for customer in customers:
        by_day = grid.get(customer.id, {})
        daily_status = []
        for day in days:
            delivery = by_day.get(day)
            daily_status.append(
                {
                    "day": day.day,
                    "date": day.isoformat(),
                    "delivered": bool(delivery.delivered) if delivery else None,
                    "quantity": delivery.quantity_delivered if delivery else 0,
                    "amount": to_money(delivery.amount_billed) if delivery else ZERO,
                    "isPaid": bool(delivery.is_paid) if delivery else False,
                }
            )
        rows.append(
            {
                "customerId": customer.id,
                "customerName": customer.name,
                "bottleType": customer.bottle_type,
                "pricePerBottle": to_money(customer.price_per_bottle),
                "dailyStatus": daily_status,
            }
        )
    return rows
