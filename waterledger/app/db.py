from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from config import get_settings

from .models import Base
from .obs import add_query_logger

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first use."""
    global _engine, _sessionmaker
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database_url, future=True)
        add_query_logger(_engine, settings.slow_query_ms)
        _sessionmaker = async_sessionmaker(
            _engine, expire_on_commit=False, class_=AsyncSession
        )
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    get_engine()
    assert _sessionmaker is not None  # for type checkers
    return _sessionmaker


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session that is closed afterwards."""
    async with get_sessionmaker()() as session:
        yield session


async def create_schema(engine: AsyncEngine | None = None) -> None:
    """Create all tables on ``engine`` (defaults to the app engine)."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def create_test_engine() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Return an in-memory SQLite engine and session factory for tests.

    The static pool makes every session share one connection so data written
    by one session is visible to the next.
    """

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    sessionmaker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    return engine, sessionmaker


__all__ = [
    "create_schema",
    "create_test_engine",
    "get_engine",
    "get_session",
    "get_sessionmaker",
]
