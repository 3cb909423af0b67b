from __future__ import annotations

"""Dashboard tiles and charts."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .auth import Caller, get_current_user
from .db import get_session
from .repos_sqlalchemy import dashboard_repo_sql
from .utils.responses import ok

router = APIRouter(prefix="/api/dashboard")


@router.get("/kpis")
async def kpis(
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Return today's, periodic and outstanding figures."""

    data = await dashboard_repo_sql.kpis(session, caller.business_id, get_settings().default_tz)
    return ok(data)


@router.get("/revenue-trend")
async def revenue_trend(
    days: int = Query(30, ge=1, le=366),
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    data = await dashboard_repo_sql.revenue_trend(
        session, caller.business_id, get_settings().default_tz, days
    )
    return ok(data)


@router.get("/monthly-comparison")
async def monthly_comparison(
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    data = await dashboard_repo_sql.monthly_comparison(
        session, caller.business_id, get_settings().default_tz
    )
    return ok(data)


__all__ = ["router"]
