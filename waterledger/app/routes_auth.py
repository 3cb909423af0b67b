"""Passwordless login with emailed one-time passwords."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config import Environment, get_settings

from .auth import Caller, Token, create_access_token, get_current_user
from .db import get_session
from .errors import AuthError
from .models import User
from .providers import email_stub
from .repos_sqlalchemy import otp_repo_sql, users_repo_sql
from .routes_metrics import otp_issued_total
from .schemas import SendOtpPayload, UserOut, VerifyOtpPayload, dump
from .security import ratelimit
from .utils.responses import ok, rate_limited

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth")


@router.post("/send-otp")
async def send_otp(
    payload: SendOtpPayload,
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Email a fresh six digit code to ``payload.email``."""

    redis = request.app.state.redis
    ip = request.client.host if request.client else "unknown"
    email = payload.email.lower()

    if not await ratelimit.allow(redis, ip, "otp-send", ratelimit.OTP_SEND_IP):
        return rate_limited(await ratelimit.retry_after(redis, ip, "otp-send"))
    if not await ratelimit.allow(redis, email, "otp-email", ratelimit.OTP_SEND_EMAIL):
        return rate_limited(await ratelimit.retry_after(redis, email, "otp-email"))

    settings = get_settings()
    code = await otp_repo_sql.issue(session, email, settings.otp_expire_minutes)
    otp_issued_total.inc()
    email_stub.send(
        "login_otp",
        {
            "subject": "Your login code",
            "otp": code,
            "expires_in_minutes": settings.otp_expire_minutes,
        },
        email,
    )

    data = {"email": email}
    if settings.environment == Environment.DEVELOPMENT:
        data["otp"] = code
    return ok(data, message="OTP sent to your email")


@router.post("/verify-otp")
async def verify_otp(
    payload: VerifyOtpPayload,
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Exchange a valid code for a session token, creating the user if new."""

    redis = request.app.state.redis
    email = payload.email.lower()
    if not await ratelimit.allow(redis, email, "otp-verify", ratelimit.OTP_VERIFY_EMAIL):
        return rate_limited(await ratelimit.retry_after(redis, email, "otp-verify"))

    await otp_repo_sql.verify(session, email, payload.otp)
    user, created = await users_repo_sql.find_or_create(
        session,
        email,
        get_settings().default_business_id,
        name=payload.name,
        phone=payload.phone,
    )
    if not user.is_active:
        await session.commit()
        raise AuthError("Account is deactivated")
    await session.commit()
    if created:
        logger.info("created %s account %s", user.role, user.id)

    token = create_access_token(
        {"sub": str(user.id), "role": user.role, "business": user.business_id}
    )
    return ok(
        {
            **Token(access_token=token, role=user.role).model_dump(),
            "user": dump(UserOut, user),
        },
        message="Login successful",
    )


@router.get("/me")
async def me(
    caller: Caller = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> dict:
    user = await session.get(User, caller.user_id)
    return ok(dump(UserOut, user))


__all__ = ["router"]
