from __future__ import annotations

"""Reporting routes and CSV exports."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .auth import Caller, get_current_user
from .db import get_session
from .repos_sqlalchemy import reports_repo_sql
from .utils.responses import ok

router = APIRouter(prefix="/api/reports")


@router.get("/customer-payments")
async def customer_payment_report(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rows, totals = await reports_repo_sql.customer_payments(
        session,
        caller.business_id,
        tz=get_settings().default_tz,
        start_date=start_date,
        end_date=end_date,
    )
    return ok(rows, totals=totals)


@router.get("/bulk-orders")
async def bulk_order_report(
    payment_status: Optional[str] = Query(None, alias="paymentStatus"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rows, totals = await reports_repo_sql.bulk_orders(
        session,
        caller.business_id,
        tz=get_settings().default_tz,
        payment_status=payment_status,
        start_date=start_date,
        end_date=end_date,
    )
    return ok(rows, totals=totals)


@router.get("/delivery-summary")
async def delivery_summary(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    rows, totals = await reports_repo_sql.delivery_summary(
        session,
        caller.business_id,
        tz=get_settings().default_tz,
        start_date=start_date,
        end_date=end_date,
    )
    return ok(rows, totals=totals)


@router.get("/export")
async def export_csv(
    type: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    """Download customers, bulk orders or deliveries as CSV."""

    filename, content = await reports_repo_sql.export_csv(
        session,
        caller.business_id,
        type,
        tz=get_settings().default_tz,
        start_date=start_date,
        end_date=end_date,
    )
    return Response(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


__all__ = ["router"]
