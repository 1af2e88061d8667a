"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tabanok.database import get_session
from tabanok.db import models  # noqa: F401
from tabanok.db.base import Base
from tabanok.db.models import RewardDefinition, User
from tabanok.gamification.catalog_service import create_reward_definition
from tabanok.gamification.enums import RewardTrigger, RewardType
from tabanok.gamification.schemas import RewardDefinitionCreate
from tabanok.main import create_app
from tabanok.redis_client import get_redis_or_none
from tabanok.users.service import create_user


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for calling services and asserting on state."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    u = await create_user(db_session, email="learner@example.com", display_name="Learner")
    await db_session.commit()
    return u


@pytest.fixture
def make_reward(db_session: AsyncSession) -> Callable[..., Awaitable[RewardDefinition]]:
    """Factory for catalog entries; defaults to a free 50-point lesson reward."""
    counter = {"n": 0}

    async def _make(**overrides) -> RewardDefinition:
        counter["n"] += 1
        data = {
            "name": f"Reward {counter['n']}",
            "type": RewardType.POINTS,
            "trigger": RewardTrigger.LESSON_COMPLETION,
            "reward_value": {"type": "points", "value": 50},
        }
        data.update(overrides)
        return await create_reward_definition(db_session, RewardDefinitionCreate(**data))

    return _make


@pytest.fixture
def mock_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest.fixture
def app(session_factory) -> Generator[FastAPI, None, None]:
    """The application with one session per request and Redis disabled."""
    application = create_app()

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_session] = override_get_session
    application.dependency_overrides[get_redis_or_none] = lambda: None
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
