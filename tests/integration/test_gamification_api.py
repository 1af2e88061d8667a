"""Gamification API: catalog, awards, consumption and ledger over HTTP."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import AsyncClient

from tabanok.users.service import create_user


@pytest_asyncio.fixture
async def user_id(session_factory) -> str:
    async with session_factory() as db:
        user = await create_user(db, email="api@example.com")
        await db.commit()
        return user.id


async def _create_reward(client: AsyncClient, **overrides) -> dict:
    body = {
        "name": "Puntos por Lección",
        "type": "points",
        "trigger": "lesson_completion",
        "reward_value": {"type": "points", "value": 50},
    }
    body.update(overrides)
    response = await client.post("/api/v1/rewards", json=body)
    assert response.status_code == 201, response.text
    return response.json()


class TestRewardCatalogAPI:
    @pytest.mark.asyncio
    async def test_create_and_get(self, client: AsyncClient):
        created = await _create_reward(client)
        assert created["type"] == "points"
        assert created["times_awarded"] == 0

        response = await client.get(f"/api/v1/rewards/{created['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Puntos por Lección"

    @pytest.mark.asyncio
    async def test_tag_mismatch_is_422(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/rewards",
            json={
                "name": "Broken",
                "type": "discount",
                "trigger": "lesson_completion",
                "reward_value": {"type": "points", "value": 10},
            },
        )
        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_list_with_filters(self, client: AsyncClient):
        await _create_reward(client)
        await _create_reward(
            client,
            name="Descuento 10%",
            type="discount",
            points_cost=500,
            reward_value={"type": "discount", "value": 10},
        )

        response = await client.get("/api/v1/rewards", params={"type": "discount"})
        assert response.status_code == 200
        names = [r["name"] for r in response.json()["rewards"]]
        assert names == ["Descuento 10%"]


class TestAwardLifecycleAPI:
    @pytest.mark.asyncio
    async def test_round_trip(self, client: AsyncClient, user_id: str):
        points_reward = await _create_reward(client)
        discount = await _create_reward(
            client,
            name="Descuento 10%",
            type="discount",
            points_cost=500,
            reward_value={"type": "discount", "value": 10},
        )

        response = await client.post(f"/api/v1/users/{user_id}/rewards/{points_reward['id']}")
        assert response.status_code == 201
        assert response.json()["status"] == "ACTIVE"

        level = (await client.get(f"/api/v1/users/{user_id}/level")).json()
        assert level["points"] == 50
        assert level["level"] == 1

        response = await client.post(f"/api/v1/users/{user_id}/rewards/{discount['id']}")
        assert response.status_code == 201
        assert (await client.get(f"/api/v1/users/{user_id}/level")).json()["points"] == 50

        response = await client.post(f"/api/v1/users/{user_id}/rewards/{discount['id']}/consume")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "CONSUMED"
        assert body["metadata"]["usage_count"] == 1

        response = await client.post(f"/api/v1/users/{user_id}/rewards/{discount['id']}/consume")
        assert response.status_code == 400
        assert response.json() == {"detail": "Reward already consumed", "code": "reward_already_consumed"}

        listing = (await client.get(f"/api/v1/users/{user_id}/rewards", params={"status": "CONSUMED"})).json()
        assert [r["reward_id"] for r in listing["rewards"]] == [discount["id"]]

    @pytest.mark.asyncio
    async def test_duplicate_award_is_400(self, client: AsyncClient, user_id: str):
        reward = await _create_reward(client)
        await client.post(f"/api/v1/users/{user_id}/rewards/{reward['id']}")
        response = await client.post(f"/api/v1/users/{user_id}/rewards/{reward['id']}")
        assert response.status_code == 400
        assert response.json()["code"] == "reward_already_awarded"

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, client: AsyncClient):
        reward = await _create_reward(client)
        response = await client.post(f"/api/v1/users/nobody/rewards/{reward['id']}")
        assert response.status_code == 404
        assert response.json()["code"] == "user_not_found"

    @pytest.mark.asyncio
    async def test_status_of_missing_award_is_404(self, client: AsyncClient, user_id: str):
        response = await client.post(f"/api/v1/users/{user_id}/rewards/nope/status")
        assert response.status_code == 404
        assert response.json()["code"] == "award_not_found"

    @pytest.mark.asyncio
    async def test_status_of_active_award(self, client: AsyncClient, user_id: str):
        reward = await _create_reward(
            client,
            name="Guía de Pronunciación",
            type="content",
            reward_value={"type": "content", "value": "guia"},
            expiration_days=7,
        )
        await client.post(f"/api/v1/users/{user_id}/rewards/{reward['id']}")
        response = await client.post(f"/api/v1/users/{user_id}/rewards/{reward['id']}/status")
        assert response.status_code == 200
        assert response.json()["status"] == "ACTIVE"
        assert response.json()["expires_at"] is not None


class TestLedgerAPI:
    @pytest.mark.asyncio
    async def test_credit_points(self, client: AsyncClient, user_id: str):
        response = await client.post(f"/api/v1/users/{user_id}/points", json={"amount": 260})
        assert response.status_code == 200
        data = response.json()
        assert data["points"] == 260
        assert data["level"] == 3
        assert data["level_title"] == "First Words"
        assert data["points_into_level"] == 10

    @pytest.mark.asyncio
    async def test_record_activity(self, client: AsyncClient, user_id: str):
        response = await client.post(
            f"/api/v1/users/{user_id}/activities",
            json={"activity_type": "lesson", "points_awarded": 50, "description": "Lesson 1"},
        )
        assert response.status_code == 200
        assert response.json()["lessons_completed"] == 1

    @pytest.mark.asyncio
    async def test_level_without_entry_is_404(self, client: AsyncClient, user_id: str):
        response = await client.get(f"/api/v1/users/{user_id}/level")
        assert response.status_code == 404
        assert response.json()["code"] == "level_not_found"

    @pytest.mark.asyncio
    async def test_levels_table(self, client: AsyncClient):
        response = await client.get("/api/v1/levels")
        assert response.status_code == 200
        levels = response.json()["levels"]
        assert levels[0] == {"level": 1, "title": "Newcomer", "points_required": 0, "cumulative": 0}
