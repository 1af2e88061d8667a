"""Trigger engine: learning events credit the ledger and grant free rewards."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from tabanok.config import Settings
from tabanok.db.models import RewardDefinition, UserLevel, UserReward
from tabanok.gamification.enums import RewardTrigger, RewardType
from tabanok.gamification.trigger_engine import TriggerEngine


@pytest.fixture
def settings() -> Settings:
    return Settings(lesson_points=50, exercise_points=20, perfect_score_bonus=10, reaward_policy="reject")


async def _ledger(db, user_id: str) -> UserLevel:
    return (await db.execute(select(UserLevel).where(UserLevel.user_id == user_id))).scalar_one()


class TestLessonCompleted:
    @pytest.mark.asyncio
    async def test_credits_points_and_grants_free_rewards(self, db_session, user, make_reward, settings):
        free = await make_reward(name="Puntos por Lección", reward_value={"type": "points", "value": 30})
        await make_reward(
            name="Descuento 10%",
            type=RewardType.DISCOUNT,
            points_cost=500,
            reward_value={"type": "discount", "value": 10},
        )
        await make_reward(name="Puntos por Ejercicio", trigger=RewardTrigger.EXERCISE_COMPLETION)

        engine = TriggerEngine(db_session, settings=settings)
        awarded = await engine.on_lesson_completed(user.id, "lesson-1")

        assert awarded == [free.id]
        ledger = await _ledger(db_session, user.id)
        assert ledger.points == 80  # 50 for the lesson + 30 from the reward
        assert ledger.lessons_completed == 1

    @pytest.mark.asyncio
    async def test_held_rewards_are_skipped(self, db_session, user, make_reward, settings):
        await make_reward()
        engine = TriggerEngine(db_session, settings=settings)

        first = await engine.on_lesson_completed(user.id, "lesson-1")
        second = await engine.on_lesson_completed(user.id, "lesson-2")

        assert len(first) == 1
        assert second == []
        ledger = await _ledger(db_session, user.id)
        assert ledger.lessons_completed == 2
        assert ledger.points == 150

    @pytest.mark.asyncio
    async def test_unavailable_rewards_are_skipped(self, db_session, user, make_reward, settings):
        await make_reward(
            is_limited=True,
            start_date=datetime(2025, 7, 1, tzinfo=timezone.utc),
            end_date=datetime(2025, 8, 31, tzinfo=timezone.utc),
        )
        engine = TriggerEngine(db_session, settings=settings)
        awarded = await engine.on_lesson_completed(user.id, "lesson-1", points=5)
        assert awarded == []

    @pytest.mark.asyncio
    async def test_level_up_grants_level_up_rewards(self, db_session, user, make_reward, settings):
        level_up = await make_reward(
            name="Logro: Nivel de Fluidez Avanzado",
            type=RewardType.ACHIEVEMENT,
            trigger=RewardTrigger.LEVEL_UP,
            reward_value={"type": "achievement", "value": "fluidez_avanzado"},
        )
        engine = TriggerEngine(db_session, settings=settings)

        assert await engine.on_lesson_completed(user.id, "lesson-1", points=40) == []
        awarded = await engine.on_lesson_completed(user.id, "lesson-2", points=60)

        assert awarded == [level_up.id]
        record = await db_session.get(UserReward, (user.id, level_up.id))
        assert record is not None


class TestExerciseCompleted:
    @pytest.mark.asyncio
    async def test_regular_exercise(self, db_session, user, make_reward, settings):
        reward = await make_reward(
            trigger=RewardTrigger.EXERCISE_COMPLETION,
            reward_value={"type": "points", "value": 20},
        )
        engine = TriggerEngine(db_session, settings=settings)
        awarded = await engine.on_exercise_completed(user.id, "ex-1")

        assert awarded == [reward.id]
        ledger = await _ledger(db_session, user.id)
        assert ledger.exercises_completed == 1
        assert ledger.points == 40

    @pytest.mark.asyncio
    async def test_perfect_score_earns_bonus(self, db_session, user, settings):
        engine = TriggerEngine(db_session, settings=settings)
        await engine.on_exercise_completed(user.id, "ex-1", perfect=True)

        ledger = await _ledger(db_session, user.id)
        assert ledger.perfect_scores == 1
        assert ledger.exercises_completed == 0
        assert ledger.points == 30


class TestEvaluate:
    @pytest.mark.asyncio
    async def test_inactive_rewards_ignored(self, db_session, user, make_reward, settings):
        await make_reward(is_active=False)
        engine = TriggerEngine(db_session, settings=settings)
        assert await engine.evaluate(RewardTrigger.LESSON_COMPLETION, user.id) == []

    @pytest.mark.asyncio
    async def test_sold_out_reward_skipped(self, db_session, user, make_reward, settings):
        sold_out = await make_reward(name="sold out", is_limited=True, limited_quantity=0)
        open_reward = await make_reward(name="open")
        sold_out_id, open_id, user_id = sold_out.id, open_reward.id, user.id

        engine = TriggerEngine(db_session, settings=settings)
        awarded = await engine.evaluate(RewardTrigger.LESSON_COMPLETION, user_id)

        assert sold_out_id not in awarded
        assert awarded == [open_id]

    @pytest.mark.asyncio
    async def test_broken_catalog_entry_does_not_stop_other_grants(self, db_session, user, make_reward, settings):
        broken = RewardDefinition(
            name="broken",
            type=RewardType.CONTENT,
            trigger=RewardTrigger.LESSON_COMPLETION,
            reward_value={"type": "points", "value": 5},
        )
        db_session.add(broken)
        await db_session.commit()
        open_reward = await make_reward(name="open")
        broken_id, open_id, user_id = broken.id, open_reward.id, user.id

        engine = TriggerEngine(db_session, settings=settings)
        awarded = await engine.evaluate(RewardTrigger.LESSON_COMPLETION, user_id)

        assert awarded == [open_id]
        assert await db_session.get(UserReward, (user_id, broken_id)) is None
