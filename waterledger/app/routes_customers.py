"""Daily customer management routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import Caller, admin_only, get_current_user
from .db import get_session
from .repos_sqlalchemy import customers_repo_sql
from .schemas import CustomerIn, CustomerOut, CustomerPatch, dump
from .utils.responses import ok

router = APIRouter(prefix="/api/daily-customers")


@router.get("")
async def list_customers(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = None,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    customers = await customers_repo_sql.list_customers(
        session, caller.business_id, is_active=is_active, search=search
    )
    return ok([dump(CustomerOut, c) for c in customers])


@router.post("", status_code=201)
async def create_customer(
    payload: CustomerIn,
    caller: Caller = Depends(admin_only),
    session: AsyncSession = Depends(get_session),
) -> dict:
    customer = await customers_repo_sql.create(
        session, caller.business_id, payload.model_dump(mode="json")
    )
    return ok(dump(CustomerOut, customer), message="Customer created successfully")


@router.get("/{customer_id}")
async def get_customer(
    customer_id: int,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    customer = await customers_repo_sql.get(session, caller.business_id, customer_id)
    return ok(dump(CustomerOut, customer))


@router.put("/{customer_id}")
async def update_customer(
    customer_id: int,
    payload: CustomerPatch,
    caller: Caller = Depends(admin_only),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Patch profile fields. Ledger totals cannot be edited here."""

    customer = await customers_repo_sql.update(
        session, caller.business_id, customer_id, payload.changes()
    )
    return ok(dump(CustomerOut, customer), message="Customer updated successfully")


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: int,
    caller: Caller = Depends(admin_only),
    session: AsyncSession = Depends(get_session),
) -> dict:
    await customers_repo_sql.remove(session, caller.business_id, customer_id)
    return ok(message="Customer deleted successfully")


@router.get("/{customer_id}/balance")
async def customer_balance(
    customer_id: int,
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    customer = await customers_repo_sql.get(session, caller.business_id, customer_id)
    return ok(customers_repo_sql.balance(customer))


@router.post("/{customer_id}/resync")
async def resync_customer(
    customer_id: int,
    caller: Caller = Depends(admin_only),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Recompute the customer's totals from its deliveries and report drift."""

    result = await customers_repo_sql.resync(session, caller.business_id, customer_id)
    return ok(result, message="Customer ledger resynchronized")


__all__ = ["router"]
