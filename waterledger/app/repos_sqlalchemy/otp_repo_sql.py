"""One-time password storage.

Only argon2 hashes are stored. A new code replaces every earlier code for the
same email. Expiry is enforced when a code is verified and expired rows are
purged whenever a new code is issued.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import hash_secret, verify_secret
from ..errors import AuthError
from ..models import OTP

logger = logging.getLogger(__name__)

OTP_LENGTH = 6


def generate_otp() -> str:
    """Return a random six digit code."""

    return f"{secrets.randbelow(900000) + 100000}"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def purge_expired(session: AsyncSession, now: datetime | None = None) -> int:
    """Delete expired codes and return how many were removed."""

    now = now or datetime.now(timezone.utc)
    result = await session.execute(delete(OTP).where(OTP.expires_at < now))
    return result.rowcount or 0


async def issue(session: AsyncSession, email: str, ttl_minutes: int) -> str:
    """Store a fresh code for ``email`` and return it in clear text."""

    code = generate_otp()
    now = datetime.now(timezone.utc)
    purged = await purge_expired(session, now)
    if purged:
        logger.info("purged %d expired otp rows", purged)
    await session.execute(delete(OTP).where(OTP.email == email))
    session.add(
        OTP(
            email=email,
            otp_hash=hash_secret(code),
            expires_at=now + timedelta(minutes=ttl_minutes),
        )
    )
    await session.commit()
    return code


async def verify(session: AsyncSession, email: str, code: str) -> None:
    """Consume the latest code for ``email`` or raise :class:`AuthError`."""

    result = await session.execute(
        select(OTP).where(OTP.email == email).order_by(OTP.created_at.desc(), OTP.id.desc())
    )
    record = result.scalars().first()
    if record is None:
        raise AuthError("OTP not found or expired")

    if datetime.now(timezone.utc) > _as_utc(record.expires_at):
        await session.delete(record)
        await session.commit()
        raise AuthError("OTP has expired")

    if not verify_secret(code, record.otp_hash):
        raise AuthError("Invalid OTP")

    await session.delete(record)
    await session.flush()
