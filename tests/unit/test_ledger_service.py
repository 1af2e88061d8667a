"""Points & level ledger: atomic credits, counters, activity log and level-up broadcasts."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from tabanok.db.models import UserActivity, UserLevel
from tabanok.gamification.broadcast import LEVEL_UP_CHANNEL
from tabanok.gamification.exceptions import LevelEntryNotFoundError, UserNotFoundError
from tabanok.gamification.ledger_service import (
    credit_points,
    get_or_create_user_level,
    get_user_level,
    list_activities,
    record_activity,
)
from tabanok.gamification.level_thresholds import calculate_level


class _FirstLookupMisses:
    """Session wrapper whose first query reports no row, as if another writer raced it."""

    def __init__(self, session) -> None:
        self.session = session
        self.calls = 0

    async def execute(self, stmt, *args, **kwargs):
        self.calls += 1
        result = await self.session.execute(stmt, *args, **kwargs)
        if self.calls == 1:
            return MagicMock(scalar_one_or_none=MagicMock(return_value=None))
        return result

    def get_bind(self):
        return self.session.get_bind()


class TestGetOrCreateUserLevel:
    @pytest.mark.asyncio
    async def test_creates_zero_baseline(self, db_session, user):
        entry = await get_or_create_user_level(db_session, user.id)
        assert entry.points == 0
        assert entry.experience == 0
        assert entry.level == 1

    @pytest.mark.asyncio
    async def test_returns_existing(self, db_session, user):
        first = await get_or_create_user_level(db_session, user.id)
        second = await get_or_create_user_level(db_session, user.id)
        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_concurrent_insert_keeps_existing_row(self, session_factory, db_session, user):
        """A lookup that misses a row created meanwhile still lands on that row."""
        async with session_factory() as other:
            await credit_points(other, user.id, 30)

        session = _FirstLookupMisses(db_session)
        entry = await get_or_create_user_level(session, user.id)

        assert session.calls == 3
        assert entry.points == 30
        count = await db_session.scalar(select(func.count()).select_from(UserLevel))
        assert count == 1

    @pytest.mark.asyncio
    async def test_get_user_level_does_not_create(self, db_session, user):
        with pytest.raises(LevelEntryNotFoundError):
            await get_user_level(db_session, user.id)


class TestCreditPoints:
    @pytest.mark.asyncio
    async def test_credits_points_and_experience(self, db_session, user):
        entry = await credit_points(db_session, user.id, 50)
        assert entry.points == 50
        assert entry.experience == 50
        assert entry.level == 1

    @pytest.mark.asyncio
    async def test_points_accumulate(self, db_session, user):
        await credit_points(db_session, user.id, 60)
        entry = await credit_points(db_session, user.id, 60)
        assert entry.points == 120
        assert entry.level == 2

    @pytest.mark.asyncio
    async def test_level_always_matches_points(self, db_session, user):
        """After every credit the stored level equals calculate_level(points)."""
        previous_points = 0
        for amount in [0, 10, 90, 150, 250, 500, 1, 3000]:
            entry = await credit_points(db_session, user.id, amount)
            assert entry.points >= previous_points
            assert entry.level == calculate_level(entry.points)
            previous_points = entry.points

    @pytest.mark.asyncio
    async def test_unknown_user_writes_nothing(self, db_session):
        with pytest.raises(UserNotFoundError):
            await credit_points(db_session, "missing-user", 50)
        count = await db_session.scalar(select(func.count()).select_from(UserLevel))
        assert count == 0

    @pytest.mark.asyncio
    async def test_state_is_committed(self, session_factory, db_session, user):
        await credit_points(db_session, user.id, 75)
        async with session_factory() as other:
            stored = await other.scalar(select(UserLevel.points).where(UserLevel.user_id == user.id))
        assert stored == 75

    @pytest.mark.asyncio
    async def test_level_up_publishes(self, db_session, user, mock_redis):
        await credit_points(db_session, user.id, 100, redis=mock_redis)
        mock_redis.publish.assert_awaited_once()
        channel, payload = mock_redis.publish.await_args.args
        assert channel == LEVEL_UP_CHANNEL
        assert json.loads(payload) == {
            "user_id": user.id,
            "old_level": 1,
            "new_level": 2,
            "title": "Listener",
        }

    @pytest.mark.asyncio
    async def test_no_publish_without_level_change(self, db_session, user, mock_redis):
        await credit_points(db_session, user.id, 10, redis=mock_redis)
        mock_redis.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_fail_credit(self, db_session, user, mock_redis):
        mock_redis.publish.side_effect = ConnectionError("redis down")
        entry = await credit_points(db_session, user.id, 300, redis=mock_redis)
        assert entry.level == 3


class TestRecordActivity:
    @pytest.mark.asyncio
    async def test_lesson_increments_lesson_counter(self, db_session, user):
        entry = await record_activity(db_session, user.id, "lesson", 50, "Lesson 1")
        assert entry.points == 50
        assert entry.lessons_completed == 1
        assert entry.exercises_completed == 0
        assert entry.perfect_scores == 0

    @pytest.mark.asyncio
    async def test_exercise_and_perfect_score_counters(self, db_session, user):
        await record_activity(db_session, user.id, "exercise", 20)
        entry = await record_activity(db_session, user.id, "perfect-score", 30)
        assert entry.exercises_completed == 1
        assert entry.perfect_scores == 1
        assert entry.points == 50

    @pytest.mark.asyncio
    async def test_unknown_activity_only_credits_points(self, db_session, user):
        entry = await record_activity(db_session, user.id, "forum-post", 15)
        assert entry.points == 15
        assert (entry.lessons_completed, entry.exercises_completed, entry.perfect_scores) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_writes_activity_log(self, db_session, user):
        await record_activity(db_session, user.id, "lesson", 50, "Lesson 1")
        await record_activity(db_session, user.id, "exercise", 20, "Exercise 7")

        activities = await list_activities(db_session, user.id)
        assert {(a.activity_type, a.points_awarded) for a in activities} == {("lesson", 50), ("exercise", 20)}

    @pytest.mark.asyncio
    async def test_unknown_user_logs_nothing(self, db_session):
        with pytest.raises(UserNotFoundError):
            await record_activity(db_session, "missing-user", "lesson", 50)
        count = await db_session.scalar(select(func.count()).select_from(UserActivity))
        assert count == 0
