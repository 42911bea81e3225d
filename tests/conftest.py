"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database with the full schema and
seeded catalog. Redis is left uninitialized, so rate limiting and pub/sub
broadcasts are skipped.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import AsyncGenerator, Callable, Awaitable
from datetime import datetime, timezone

os.environ["WB_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["WB_JWT_SECRET"] = "test-secret-not-for-production"
os.environ["WB_LOG_FORMAT"] = "console"

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from whiteboard.config import get_settings  # noqa: E402

get_settings.cache_clear()

from whiteboard.auth.jwt import create_access_token  # noqa: E402
from whiteboard.database import close_db, get_engine, get_session, init_db  # noqa: E402
from whiteboard.db import models  # noqa: E402, F401
from whiteboard.db.base import Base  # noqa: E402
from whiteboard.db.models import User  # noqa: E402
from whiteboard.engagement import ledger  # noqa: E402
from whiteboard.engagement.seed import seed_catalog  # noqa: E402
from whiteboard.main import create_app  # noqa: E402


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema and seeded catalog; the in-memory DB dies with the engine."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async for session in get_session():
        await seed_catalog(session)
        break
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service calls and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def second_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A separate session, standing in for a concurrent request."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory creating users, optionally with starting balances."""

    async def _make(ink: int = 0, prismatic: int = 0, username: str | None = None) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=f"{uuid.uuid4().hex[:8]}@example.com",
            username=username,
            created_at=datetime.now(timezone.utc),
        )
        db_session.add(user)
        await db_session.flush()
        if ink or prismatic:
            await ledger.credit(db_session, user.id, ink=ink, prismatic=prismatic, source="test")
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def user(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user(username="alice")


@pytest_asyncio.fixture
async def other_user(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user(username="bob")


def auth_headers(user_id: str, email: str | None = None) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, email)}"}


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the ASGI app (lifespan not run; the database fixture stands in)."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client authenticated as `user`."""
    client.headers.update(auth_headers(user.id, user.email))
    return client
