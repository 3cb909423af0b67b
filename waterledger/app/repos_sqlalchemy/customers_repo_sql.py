"""SQLAlchemy-backed repository helpers for daily customers.

All lookups are scoped by ``business_id``; a customer that exists under a
different business is reported exactly like a missing one.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.ledger import refresh_customer_balance, to_money
from ..errors import NotFoundError
from ..models import DailyCustomer, DailyDelivery

CUSTOMER_FIELDS = ("name", "address", "phone", "bottle_type", "price_per_bottle", "is_active")


async def get(
    session: AsyncSession, business_id: str, customer_id: int, *, lock: bool = False
) -> DailyCustomer:
    """Return the customer or raise :class:`NotFoundError`.

    With ``lock`` the row is selected ``FOR UPDATE`` (on databases that
    support it) and reloaded from the database so that ledger deltas are
    applied to the latest totals.
    """

    stmt = select(DailyCustomer).where(
        DailyCustomer.id == customer_id, DailyCustomer.business_id == business_id
    )
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    customer = (await session.execute(stmt)).scalar_one_or_none()
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


async def list_customers(
    session: AsyncSession,
    business_id: str,
    *,
    is_active: bool | None = None,
    search: str | None = None,
) -> list[DailyCustomer]:
    """Return customers newest first, optionally filtered."""

    stmt = select(DailyCustomer).where(DailyCustomer.business_id == business_id)
    if is_active is not None:
        stmt = stmt.where(DailyCustomer.is_active == is_active)
    if search:
        term = search.strip()
        stmt = stmt.where(
            or_(
                DailyCustomer.name.icontains(term, autoescape=True),
                DailyCustomer.phone.icontains(term, autoescape=True),
                DailyCustomer.address.icontains(term, autoescape=True),
            )
        )
    stmt = stmt.order_by(DailyCustomer.created_at.desc(), DailyCustomer.id.desc())
    return list((await session.execute(stmt)).scalars())


async def create(session: AsyncSession, business_id: str, data: dict[str, Any]) -> DailyCustomer:
    customer = DailyCustomer(
        business_id=business_id,
        total_billed=0,
        total_paid=0,
        **{k: v for k, v in data.items() if k in CUSTOMER_FIELDS},
    )
    customer.price_per_bottle = to_money(customer.price_per_bottle)
    refresh_customer_balance(customer)
    session.add(customer)
    await session.commit()
    return customer


async def update(
    session: AsyncSession, business_id: str, customer_id: int, changes: dict[str, Any]
) -> DailyCustomer:
    """Patch profile fields; ledger totals are left alone.

    A new ``price_per_bottle`` applies to deliveries recorded from now on;
    existing delivery amounts keep the price they were billed at.
    """

    customer = await get(session, business_id, customer_id, lock=True)
    for field in CUSTOMER_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(customer, field, changes[field])
    customer.price_per_bottle = to_money(customer.price_per_bottle)
    refresh_customer_balance(customer)
    await session.commit()
    return customer


async def remove(session: AsyncSession, business_id: str, customer_id: int) -> None:
    """Hard-delete a customer together with its delivery rows."""

    customer = await get(session, business_id, customer_id)
    await session.execute(delete(DailyDelivery).where(DailyDelivery.customer_id == customer.id))
    await session.delete(customer)
    await session.commit()


def balance(customer: DailyCustomer) -> dict[str, Any]:
    return {
        "customerId": customer.id,
        "customerName": customer.name,
        "totalBilled": to_money(customer.total_billed),
        "totalPaid": to_money(customer.total_paid),
        "pendingBalance": to_money(customer.pending_balance),
    }


async def resync(session: AsyncSession, business_id: str, customer_id: int) -> dict[str, Any]:
    """Recompute a customer's totals from its delivery rows.

    Returns the corrected balance together with the drift that was removed
    (``stored - recomputed`` for both totals).
    """

    customer = await get(session, business_id, customer_id, lock=True)
    billed, paid = (
        await session.execute(
            select(
                func.coalesce(func.sum(DailyDelivery.amount_billed), 0),
                func.coalesce(func.sum(DailyDelivery.paid_amount), 0),
            ).where(DailyDelivery.customer_id == customer.id)
        )
    ).one()
    billed, paid = to_money(billed), to_money(paid)
    drift = {
        "totalBilled": to_money(customer.total_billed) - billed,
        "totalPaid": to_money(customer.total_paid) - paid,
    }
    customer.total_billed = billed
    customer.total_paid = paid
    refresh_customer_balance(customer)
    await session.commit()
    return {**balance(customer), "drift": drift}
