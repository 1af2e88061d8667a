"""Reward trigger engine: turns learning events into ledger credits and automatic grants."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tabanok.config import Settings, get_settings
from tabanok.db.models import RewardDefinition, UserLevel
from tabanok.gamification.award_service import award
from tabanok.gamification.enums import (
    ACTIVITY_EXERCISE,
    ACTIVITY_LESSON,
    ACTIVITY_PERFECT_SCORE,
    RewardTrigger,
)
from tabanok.gamification.exceptions import (
    GamificationError,
    RewardAlreadyAwardedError,
    RewardUnavailableError,
)
from tabanok.gamification.ledger_service import record_activity
from tabanok.gamification.level_thresholds import calculate_level

logger = logging.getLogger(__name__)


class TriggerEngine:
    """Evaluates reward triggers for learning events.

    Only free rewards (``points_cost == 0``) are granted automatically.
    Rewards with a cost are redeemed explicitly through the award endpoint.
    """

    def __init__(self, db: AsyncSession, redis: object | None = None, settings: Settings | None = None) -> None:
        self.db = db
        self.redis = redis
        self.settings = settings or get_settings()

    async def _current_level(self, user_id: str) -> int:
        result = await self.db.execute(select(UserLevel.level).where(UserLevel.user_id == user_id))
        level = result.scalar_one_or_none()
        return level if level is not None else calculate_level(0)

    async def on_lesson_completed(self, user_id: str, lesson_id: str, points: int | None = None) -> list[str]:
        """Credit a completed lesson and grant LESSON_COMPLETION rewards.

        Returns the IDs of rewards awarded (may be empty).
        """
        points = self.settings.lesson_points if points is None else points
        start_level = await self._current_level(user_id)

        await record_activity(
            self.db, user_id, ACTIVITY_LESSON, points, f"Lesson {lesson_id} completed", redis=self.redis
        )
        awarded = await self.evaluate(RewardTrigger.LESSON_COMPLETION, user_id)
        awarded += await self._check_level_up(user_id, start_level)
        return awarded

    async def on_exercise_completed(
        self,
        user_id: str,
        exercise_id: str,
        points: int | None = None,
        perfect: bool = False,
    ) -> list[str]:
        """Credit a completed exercise and grant EXERCISE_COMPLETION rewards.

        A perfect score is logged as a ``perfect-score`` activity and earns the
        configured bonus on top of the exercise points.
        """
        if points is None:
            points = self.settings.exercise_points
            if perfect:
                points += self.settings.perfect_score_bonus
        activity_type = ACTIVITY_PERFECT_SCORE if perfect else ACTIVITY_EXERCISE
        start_level = await self._current_level(user_id)

        await record_activity(
            self.db, user_id, activity_type, points, f"Exercise {exercise_id} completed", redis=self.redis
        )
        awarded = await self.evaluate(RewardTrigger.EXERCISE_COMPLETION, user_id)
        awarded += await self._check_level_up(user_id, start_level)
        return awarded

    async def _check_level_up(self, user_id: str, start_level: int) -> list[str]:
        if await self._current_level(user_id) > start_level:
            return await self.evaluate(RewardTrigger.LEVEL_UP, user_id)
        return []

    async def evaluate(self, trigger: RewardTrigger, user_id: str) -> list[str]:
        """Grant every active free reward for ``trigger`` the user does not hold yet.

        Returns the IDs of rewards awarded.
        """
        result = await self.db.execute(
            select(RewardDefinition.id, RewardDefinition.name)
            .where(
                RewardDefinition.trigger == trigger,
                RewardDefinition.is_active.is_(True),
                RewardDefinition.points_cost == 0,
            )
            .order_by(RewardDefinition.created_at, RewardDefinition.name)
        )
        candidates = result.all()

        awarded: list[str] = []
        for reward_id, name in candidates:
            try:
                await award(self.db, user_id, reward_id, redis=self.redis, policy=self.settings.reaward_policy)
            except RewardAlreadyAwardedError:
                continue
            except RewardUnavailableError:
                logger.debug("Skipping unavailable reward %r for user %s", name, user_id)
                continue
            except GamificationError:
                logger.error("Failed to grant reward %r to user %s", name, user_id, exc_info=True)
                continue
            awarded.append(reward_id)

        if awarded:
            logger.info("Trigger %s granted %d rewards to user %s", trigger.value, len(awarded), user_id)
        return awarded
