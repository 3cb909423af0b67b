# auth.py

"""Session tokens and caller resolution for FastAPI routes."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, VerifyMismatchError
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings

from .db import get_session
from .domain.enums import Role
from .errors import AuthError, ForbiddenError
from .models import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

ph = PasswordHasher()

bearer_scheme = HTTPBearer(auto_error=False)


class Token(BaseModel):
    """JWT access token returned after authentication."""

    access_token: str
    token_type: str = "bearer"
    role: str | None = None


class Caller(BaseModel):
    """Authenticated identity handed to repositories.

    Repositories never look at tokens; they receive the user id, the
    business the user belongs to and the role.
    """

    user_id: int
    business_id: str
    role: Role
    email: str = ""
    name: str = ""


def hash_secret(secret: str) -> str:
    """Return an argon2 hash of ``secret``."""

    return ph.hash(secret)


def verify_secret(secret: str, hashed: str) -> bool:
    """Check a plaintext secret against a stored hash."""

    try:
        return ph.verify(hashed, secret)
    except VerifyMismatchError:
        return False
    except VerificationError as exc:  # pragma: no cover - unexpected
        logger.error("argon2 verification error: %s", exc)
        raise


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT containing the provided claims."""

    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.jwt_expire_days)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Return the claims of ``token`` or raise :class:`AuthError`."""

    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Session expired, please log in again") from exc
    except jwt.PyJWTError as exc:
        raise AuthError("Not authorized, token invalid") from exc


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> Caller:
    """Resolve the caller from a bearer token or raise :class:`AuthError`."""

    if credentials is None or not credentials.credentials:
        raise AuthError("Not authorized, no token")
    payload = decode_access_token(credentials.credentials)
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError) as exc:
        raise AuthError("Not authorized, token invalid") from exc
    user = await session.get(User, user_id)
    if user is None or not user.is_active:
        raise AuthError("Not authorized, user not found or inactive")
    return Caller(
        user_id=user.id,
        business_id=user.business_id,
        role=Role(user.role),
        email=user.email,
        name=user.name,
    )


def role_required(*roles: Role):
    """Dependency factory enforcing that the caller has one of ``roles``."""

    def dependency(caller: Caller = Depends(get_current_user)) -> Caller:
        if caller.role not in roles:
            raise ForbiddenError("Insufficient privileges")
        return caller

    return dependency


admin_only = role_required(Role.ADMIN)
