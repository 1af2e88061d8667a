"""Consumption and expiry evaluation for award records.

Expiry is lazy: ``expires_at`` is the source of truth and is re-checked every
time a record is used. The stored status is corrected as a side effect.
``expire_due_awards`` can be run periodically to keep stored statuses current,
but nothing depends on it.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from tabanok.database import atomic
from tabanok.db.models import UserReward
from tabanok.db.types import utcnow
from tabanok.gamification.consumption_handlers import apply_handler
from tabanok.gamification.enums import RewardStatus
from tabanok.gamification.exceptions import (
    AwardNotFoundError,
    RewardAlreadyConsumedError,
    RewardExpiredError,
)

logger = logging.getLogger(__name__)


async def get_award(db: AsyncSession, user_id: str, reward_id: str) -> UserReward:
    """
    Fetch an award record.

    Raises:
        AwardNotFoundError: If the user holds no record for this reward.
    """
    record = await db.get(UserReward, (user_id, reward_id))
    if record is None:
        raise AwardNotFoundError(user_id, reward_id)
    return record


def _active_record(user_id: str, reward_id: str):
    return update(UserReward).where(
        UserReward.user_id == user_id,
        UserReward.reward_id == reward_id,
        UserReward.status == RewardStatus.ACTIVE,
    )


async def _mark_expired(db: AsyncSession, record: UserReward) -> None:
    async with atomic(db):
        await db.execute(
            _active_record(record.user_id, record.reward_id)
            .values({UserReward.status: RewardStatus.EXPIRED})
            .execution_options(synchronize_session=False)
        )
        await db.refresh(record)
    logger.info("Award %s/%s expired at %s", record.user_id, record.reward_id, record.expires_at)


async def check_and_update_status(
    db: AsyncSession,
    user_id: str,
    reward_id: str,
    now: datetime | None = None,
) -> UserReward:
    """Return the record, persisting ACTIVE -> EXPIRED first if it is due.

    Idempotent: CONSUMED and EXPIRED records are returned unchanged.
    """
    now = now or utcnow()
    record = await get_award(db, user_id, reward_id)
    if record.is_due(now):
        await _mark_expired(db, record)
    return record


async def consume(
    db: AsyncSession,
    user_id: str,
    reward_id: str,
    now: datetime | None = None,
) -> UserReward:
    """Use an awarded reward exactly once.

    Raises:
        AwardNotFoundError: The user holds no record for this reward.
        RewardExpiredError: The record is expired, or was due and has just
            been marked EXPIRED.
        RewardAlreadyConsumedError: The record was consumed already, including
            by a concurrent call that won the race.
        PersistenceError: The store rejected the write.
    """
    now = now or utcnow()
    record = await get_award(db, user_id, reward_id)

    if record.is_due(now):
        await _mark_expired(db, record)
        raise RewardExpiredError(user_id, reward_id)
    if record.status == RewardStatus.CONSUMED:
        raise RewardAlreadyConsumedError(user_id, reward_id)
    if record.status == RewardStatus.EXPIRED:
        raise RewardExpiredError(user_id, reward_id)

    reward_type = record.reward.type
    async with atomic(db):
        metadata = apply_handler(reward_type, record.award_metadata, now)
        result = await db.execute(
            _active_record(user_id, reward_id)
            .values(
                {
                    UserReward.status: RewardStatus.CONSUMED,
                    UserReward.consumed_at: now,
                    UserReward.award_metadata: metadata,
                }
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise RewardAlreadyConsumedError(user_id, reward_id)
        await db.refresh(record)

    logger.info("User %s consumed %s reward %s", user_id, reward_type.value, reward_id)
    return record


async def expire_due_awards(db: AsyncSession, now: datetime | None = None) -> int:
    """Bulk-mark every due ACTIVE record as EXPIRED. Returns the number updated."""
    now = now or utcnow()
    async with atomic(db):
        result = await db.execute(
            update(UserReward)
            .where(
                UserReward.status == RewardStatus.ACTIVE,
                UserReward.expires_at.is_not(None),
                UserReward.expires_at <= now,
            )
            .values({UserReward.status: RewardStatus.EXPIRED})
            .execution_options(synchronize_session=False)
        )
    expired = result.rowcount or 0
    if expired:
        logger.info("Expired %d due awards", expired)
    return expired
