"""Bulk event order routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .auth import Caller, admin_only, get_current_user
from .db import get_session
from .repos_sqlalchemy import bulk_orders_repo_sql
from .schemas import BulkOrderIn, BulkOrderOut, BulkOrderPatch, PaymentIn, dump
from .utils.responses import ok

router = APIRouter(prefix="/api/bulk-orders")


@router.get("")
async def list_bulk_orders(
    payment_status: Optional[str] = Query(None, alias="paymentStatus"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    orders = await bulk_orders_repo_sql.list_orders(
        session,
        caller.business_id,
        tz=get_settings().default_tz,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
    )
    return ok([dump(BulkOrderOut, o) for o in orders])


@router.post("", status_code=201)
async def create_bulk_order(
    payload: BulkOrderIn,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    order = await bulk_orders_repo_sql.create(
        session, caller, payload.model_dump(mode="json"), tz=get_settings().default_tz
    )
    return ok(dump(BulkOrderOut, order), message="Bulk order created successfully")


@router.get("/{order_id}")
async def get_bulk_order(
    order_id: int,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    order = await bulk_orders_repo_sql.get(session, caller.business_id, order_id)
    return ok(dump(BulkOrderOut, order))


@router.put("/{order_id}")
async def update_bulk_order(
    order_id: int,
    payload: BulkOrderPatch,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    order = await bulk_orders_repo_sql.update(
        session,
        caller.business_id,
        order_id,
        payload.changes(),
        tz=get_settings().default_tz,
    )
    return ok(dump(BulkOrderOut, order), message="Order updated successfully")


@router.delete("/{order_id}")
async def delete_bulk_order(
    order_id: int,
    caller: Caller = Depends(admin_only),
    session: AsyncSession = Depends(get_session),
) -> dict:
    await bulk_orders_repo_sql.remove(session, caller.business_id, order_id)
    return ok(message="Order deleted successfully")


@router.post("/{order_id}/payment")
async def record_bulk_order_payment(
    order_id: int,
    payload: PaymentIn,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Set the total amount paid so far on an order."""

    order = await bulk_orders_repo_sql.record_payment(
        session, caller.business_id, order_id, payload.paid_amount
    )
    return ok(dump(BulkOrderOut, order), message="Payment recorded successfully")


__all__ = ["router"]
