"""Liveness and readiness endpoints."""

from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from tabanok.gamification.seed import seed_rewards
from tabanok.redis_client import get_redis_or_none


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": "0.1.0"}


@pytest.mark.asyncio
async def test_not_ready_with_empty_catalog(client: AsyncClient) -> None:
    """Without any active reward the service cannot grant anything yet."""
    response = await client.get("/ready")
    assert response.status_code == 503
    assert response.json() == {
        "status": "not_ready",
        "checks": {"catalog": "empty", "broadcasts": "disabled"},
    }


@pytest.mark.asyncio
async def test_ready_once_catalog_is_seeded(client: AsyncClient, session_factory) -> None:
    async with session_factory() as db:
        seeded = await seed_rewards(db)

    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["catalog"] == f"{seeded} active rewards"


@pytest.mark.asyncio
async def test_redis_failure_does_not_block_readiness(app: FastAPI, client: AsyncClient, session_factory) -> None:
    async with session_factory() as db:
        await seed_rewards(db)

    redis = AsyncMock()
    redis.ping.side_effect = RedisConnectionError("connection refused")
    app.dependency_overrides[get_redis_or_none] = lambda: redis

    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["broadcasts"] == "error: connection refused"
