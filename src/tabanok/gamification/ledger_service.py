"""Points & level ledger: atomic point credits, activity counters, level recompute."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from tabanok.database import atomic
from tabanok.db.models import UserActivity, UserLevel
from tabanok.db.types import utcnow
from tabanok.gamification.broadcast import publish_level_up
from tabanok.gamification.enums import (
    ACTIVITY_EXERCISE,
    ACTIVITY_LESSON,
    ACTIVITY_PERFECT_SCORE,
)
from tabanok.gamification.exceptions import LevelEntryNotFoundError
from tabanok.gamification.level_thresholds import calculate_level
from tabanok.users.service import get_user

logger = logging.getLogger(__name__)

ACTIVITY_COUNTERS: dict[str, str] = {
    ACTIVITY_LESSON: "lessons_completed",
    ACTIVITY_EXERCISE: "exercises_completed",
    ACTIVITY_PERFECT_SCORE: "perfect_scores",
}


async def get_or_create_user_level(db: AsyncSession, user_id: str) -> UserLevel:
    """Get or create the ledger row for a user, starting from a zero baseline.

    The insert skips on a ``user_id`` conflict, so two first credits racing
    for the same user both end up on the single row.
    """
    query = select(UserLevel).where(UserLevel.user_id == user_id)
    entry = (await db.execute(query)).scalar_one_or_none()
    if entry is not None:
        return entry

    insert = pg_insert if db.get_bind().dialect.name == "postgresql" else sqlite_insert
    stmt = insert(UserLevel).values(
        user_id=user_id,
        points=0,
        experience=0,
        level=calculate_level(0),
        lessons_completed=0,
        exercises_completed=0,
        perfect_scores=0,
    )
    await db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))
    return (await db.execute(query)).scalar_one()


async def get_user_level(db: AsyncSession, user_id: str) -> UserLevel:
    """
    Fetch a user's ledger entry without creating it.

    Raises:
        LevelEntryNotFoundError: If the user has never earned points.
    """
    result = await db.execute(select(UserLevel).where(UserLevel.user_id == user_id))
    entry = result.scalar_one_or_none()
    if entry is None:
        raise LevelEntryNotFoundError(user_id)
    return entry


async def apply_points(
    db: AsyncSession,
    user_id: str,
    amount: int,
    counter: str | None = None,
) -> tuple[UserLevel, int]:
    """Credit points inside the caller's transaction. Flushes, never commits.

    The increment is a single ``points = points + :amount`` statement, so
    concurrent credits for the same user cannot lose updates. The level is
    recomputed from the total returned by that statement.

    Returns the refreshed entry and the level it had before the credit.

    Raises:
        UserNotFoundError: If the user does not exist (nothing is written).
    """
    await get_user(db, user_id)
    entry = await get_or_create_user_level(db, user_id)
    previous_level = entry.level

    values: dict[str, object] = {
        "points": UserLevel.points + amount,
        "experience": UserLevel.experience + amount,
        "updated_at": utcnow(),
    }
    if counter is not None:
        values[counter] = getattr(UserLevel, counter) + 1

    result = await db.execute(
        update(UserLevel)
        .where(UserLevel.user_id == user_id)
        .values(**values)
        .returning(UserLevel.points)
        .execution_options(synchronize_session=False)
    )
    points = result.scalar_one()

    await db.execute(
        update(UserLevel)
        .where(UserLevel.user_id == user_id)
        .values(level=calculate_level(points))
        .execution_options(synchronize_session=False)
    )
    await db.refresh(entry)
    return entry, previous_level


def log_activity(
    db: AsyncSession,
    user_id: str,
    activity_type: str,
    points_awarded: int,
    description: str | None,
) -> UserActivity:
    """Stage an immutable activity-log row in the current transaction."""
    activity = UserActivity(
        user_id=user_id,
        activity_type=activity_type,
        points_awarded=points_awarded,
        description=description,
        created_at=utcnow(),
    )
    db.add(activity)
    return activity


async def credit_points(
    db: AsyncSession,
    user_id: str,
    amount: int,
    redis: object | None = None,
) -> UserLevel:
    """Add ``amount`` to a user's points and experience and recompute the level.

    Negative amounts are not rejected here; callers only pass earned points.
    """
    async with atomic(db):
        entry, previous_level = await apply_points(db, user_id, amount)

    logger.info("Credited %d points to user %s (total=%d level=%d)", amount, user_id, entry.points, entry.level)
    if entry.level > previous_level:
        await publish_level_up(redis, user_id, previous_level, entry.level)
    return entry


async def record_activity(
    db: AsyncSession,
    user_id: str,
    activity_type: str,
    points_awarded: int,
    description: str | None = None,
    redis: object | None = None,
) -> UserLevel:
    """Credit points for a learning activity, bump its counter and log it.

    ``"lesson"``, ``"exercise"`` and ``"perfect-score"`` each increment their
    own counter; other activity types only credit points.
    """
    counter = ACTIVITY_COUNTERS.get(activity_type)
    async with atomic(db):
        entry, previous_level = await apply_points(db, user_id, points_awarded, counter=counter)
        log_activity(db, user_id, activity_type, points_awarded, description)
        await db.flush()

    if counter is None:
        logger.debug("Activity type %r has no counter", activity_type)
    if entry.level > previous_level:
        await publish_level_up(redis, user_id, previous_level, entry.level)
    return entry


async def list_activities(db: AsyncSession, user_id: str, limit: int = 50) -> list[UserActivity]:
    """Most recent activity-log rows for a user."""
    result = await db.execute(
        select(UserActivity)
        .where(UserActivity.user_id == user_id)
        .order_by(UserActivity.created_at.desc(), UserActivity.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
