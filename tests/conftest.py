"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from movibeers.config import Settings, get_settings
from movibeers.main import create_app
from movibeers.models import User
from movibeers.services import Services, build_services
from movibeers.store import MemoryRecordStore

# Wednesday; the surrounding week runs Sunday 2026-10-11 .. Saturday 2026-10-17.
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that ticks one second per reading.

    Ticking keeps creation timestamps distinct, so newest-first ordering is
    well defined in tests.
    """

    def __init__(self, start: datetime = NOW, tick: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.tick = tick

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.tick
        return current

    def set(self, value: datetime) -> None:
        self.now = value

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_token(user_id: str, **claims: Any) -> str:
    settings = get_settings()
    payload = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


async def create_user(services: Services, user_id: str, username: str | None = None) -> User:
    return await services.profiles.create_profile(user_id, username or f"user_{user_id}", f"{user_id}@example.com")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, store_backend="memory", redis_url="")


@pytest.fixture
def services(settings: Settings, store: MemoryRecordStore, clock: FakeClock) -> Services:
    return build_services(settings, store, clock=clock)


@pytest_asyncio.fixture
async def alice(services: Services) -> User:
    return await create_user(services, "alice", "alice")


@pytest_asyncio.fixture
async def bob(services: Services) -> User:
    return await create_user(services, "bob", "bob")


@pytest_asyncio.fixture
async def carol(services: Services) -> User:
    return await create_user(services, "carol", "carol")


@pytest_asyncio.fixture
async def client(services: Services) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over an app wired to the in-memory services."""
    app = create_app()
    app.state.services = services
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
