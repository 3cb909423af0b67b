"""Shared fixtures: an in-memory database, callers and an HTTP client."""

import fakeredis
import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

from waterledger.app.auth import Caller, create_access_token
from waterledger.app.db import create_schema, create_test_engine, get_session
from waterledger.app.domain.enums import Role
from waterledger.app.main import app
from waterledger.app.models import User
from waterledger.app.providers import email_stub

BUSINESS = "default-business"
TZ = "Asia/Kolkata"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def sessionmaker():
    engine, Session = create_test_engine()
    await create_schema(engine)
    yield Session
    await engine.dispose()


@pytest.fixture
async def session(sessionmaker):
    async with sessionmaker() as session:
        yield session


async def _add_user(Session, email: str, role: Role) -> User:
    async with Session() as session:
        user = User(
            email=email,
            name=email.split("@")[0].title(),
            role=role.value,
            business_id=BUSINESS,
        )
        session.add(user)
        await session.commit()
        return user


@pytest.fixture
async def admin(sessionmaker) -> Caller:
    user = await _add_user(sessionmaker, "admin@example.com", Role.ADMIN)
    return Caller(user_id=user.id, business_id=BUSINESS, role=Role.ADMIN, name=user.name)


@pytest.fixture
async def worker(sessionmaker) -> Caller:
    user = await _add_user(sessionmaker, "worker@example.com", Role.WORKER)
    return Caller(user_id=user.id, business_id=BUSINESS, role=Role.WORKER, name=user.name)


@pytest.fixture
def bearer():
    """Return a helper building an Authorization header for a caller."""

    def _headers(caller: Caller) -> dict[str, str]:
        token = create_access_token({"sub": str(caller.user_id), "role": caller.role.value})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def client(sessionmaker):
    async def _session():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.state.redis = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer())
    email_stub.outbox.clear()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
