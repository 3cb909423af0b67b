"""User lookup and first-login provisioning."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.enums import Role
from ..models import User


async def get_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def find_or_create(
    session: AsyncSession,
    email: str,
    business_id: str,
    name: str | None = None,
    phone: str | None = None,
) -> tuple[User, bool]:
    """Return the user for ``email``, creating it on first login.

    The first user of a business becomes its admin; later sign-ups join as
    workers until an admin promotes them. Returns ``(user, created)``.
    """

    email = email.lower()
    user = await get_by_email(session, email)
    if user is not None:
        return user, False

    existing = await session.scalar(
        select(func.count()).select_from(User).where(User.business_id == business_id)
    )
    role = Role.WORKER if existing else Role.ADMIN
    user = User(
        email=email,
        name=(name or "").strip() or email.split("@")[0],
        phone=(phone or "").strip(),
        role=role.value,
        business_id=business_id,
        is_active=True,
    )
    session.add(user)
    await session.flush()
    return user, True
