"""Daily delivery routes: recording, marking, payments and monthly views."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .auth import Caller, get_current_user
from .db import get_session
from .repos_sqlalchemy import deliveries_repo_sql
from .schemas import (
    DeliveryIn,
    DeliveryOut,
    DeliveryPatch,
    MarkDeliveryIn,
    PaymentIn,
    delivery_row,
    dump,
)
from .utils.responses import ok

router = APIRouter(prefix="/api/deliveries")


@router.get("")
async def list_deliveries(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    customer_id: Optional[int] = Query(None, alias="customerId"),
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rows = await deliveries_repo_sql.list_deliveries(
        session,
        caller.business_id,
        tz=get_settings().default_tz,
        start_date=start_date,
        end_date=end_date,
        customer_id=customer_id,
    )
    return ok([delivery_row(*row) for row in rows])


@router.get("/today")
async def todays_deliveries(
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    today = await deliveries_repo_sql.list_today(
        session, caller.business_id, get_settings().default_tz
    )
    return ok(
        [delivery_row(*row) for row in today["rows"]],
        totalAmount=today["totalAmount"],
        totalQuantity=today["totalQuantity"],
    )


@router.get("/today/customers")
async def todays_customers(
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Active customers with whether they were served today."""

    customers = await deliveries_repo_sql.today_customers(
        session, caller.business_id, get_settings().default_tz
    )
    return ok(customers)


@router.post("", status_code=201)
async def record_delivery(
    payload: DeliveryIn,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    delivery, customer = await deliveries_repo_sql.record_delivery(
        session,
        caller,
        customer_id=payload.customer_id,
        quantity=payload.quantity_delivered,
        tz=get_settings().default_tz,
        delivery_date=payload.delivery_date,
        notes=payload.notes,
        paid_amount=payload.paid_amount,
        is_paid=payload.is_paid,
    )
    return ok(
        delivery_row(delivery, customer, caller.name),
        message="Delivery recorded successfully",
    )


@router.post("/mark")
async def mark_delivery(
    payload: MarkDeliveryIn,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Mark or unmark one customer's delivery for a calendar day."""

    result = await deliveries_repo_sql.mark_delivery(
        session,
        caller,
        customer_id=payload.customer_id,
        delivered=payload.delivered,
        tz=get_settings().default_tz,
        quantity=payload.quantity,
        delivery_date=payload.delivery_date,
    )
    if payload.delivered:
        return ok(result.as_dict(), message="Delivery marked successfully")
    return ok(result.as_dict(), message="Delivery unmarked successfully")


@router.get("/monthly")
async def monthly_deliveries(
    month: Optional[str] = None,
    customer_id: Optional[int] = Query(None, alias="customerId"),
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rows = await deliveries_repo_sql.monthly_matrix(
        session, caller.business_id, month, customer_id
    )
    return ok(rows, month=month)


@router.put("/{delivery_id}")
async def update_delivery(
    delivery_id: int,
    payload: DeliveryPatch,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    delivery = await deliveries_repo_sql.update_delivery(
        session,
        caller,
        delivery_id,
        tz=get_settings().default_tz,
        quantity=payload.quantity_delivered,
        delivery_date=payload.delivery_date,
        notes=payload.notes,
    )
    return ok(dump(DeliveryOut, delivery), message="Delivery updated successfully")


@router.post("/{delivery_id}/payment")
async def record_delivery_payment(
    delivery_id: int,
    payload: PaymentIn,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    delivery = await deliveries_repo_sql.record_payment(
        session, caller, delivery_id, payload.paid_amount
    )
    return ok(dump(DeliveryOut, delivery), message="Payment recorded successfully")


__all__ = ["router"]
