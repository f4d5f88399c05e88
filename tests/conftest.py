"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db import get_session
from app.main import app
from app.objectives.errors import NotificationError
from app.objectives.router import get_notifier
from app.objectives.store import init_schema


def ms(dt: datetime) -> int:
    """Epoch millis for an aware datetime."""
    return int(dt.timestamp() * 1000)


def utc(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> int:
    return ms(datetime(year, month, day, hour, minute, tzinfo=timezone.utc))


HOUR = 60 * 60 * 1000


# ---------------------------------------------------------------------------
# In-memory SQLite (one shared connection per test)
# ---------------------------------------------------------------------------


@pytest.fixture()
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def session(session_factory):
    async with session_factory() as s:
        yield s


# ---------------------------------------------------------------------------
# Fake notifier
# ---------------------------------------------------------------------------


class FakeNotifier:
    """Records DMs; user ids in `failing` raise NotificationError."""

    def __init__(self, failing: set[str] | None = None):
        self.failing = failing or set()
        self.sent: list[tuple[str, str]] = []
        self.attempts: list[str] = []

    async def send_direct_message(self, user_id: str, text: str) -> None:
        self.attempts.append(user_id)
        if user_id in self.failing:
            raise NotificationError(f"cannot DM {user_id}")
        self.sent.append((user_id, text))


@pytest.fixture()
def notifier():
    return FakeNotifier()


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture()
def override_session(session_factory, notifier):
    """Point the FastAPI dependencies at the in-memory DB and fake notifier."""
    async def _override():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _override
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
