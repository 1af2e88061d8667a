"""Award orchestrator: grant a catalog reward to a user as one unit of work.

A grant writes the award record, claims a unit of the reward's stock and, for
points rewards, credits the user's ledger. All three happen in one
transaction; if any step fails none of them persist.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tabanok.config import get_settings
from tabanok.database import atomic
from tabanok.db.models import RewardDefinition, UserLevel, UserReward
from tabanok.db.types import utcnow
from tabanok.gamification.broadcast import publish_level_up, publish_reward_awarded
from tabanok.gamification.catalog_service import get_reward_definition
from tabanok.gamification.enums import ACTIVITY_REWARD_AWARDED, RewardPolicy, RewardStatus
from tabanok.gamification.exceptions import (
    RewardAlreadyAwardedError,
    RewardNotFoundError,
    RewardUnavailableError,
)
from tabanok.gamification.ledger_service import apply_points, log_activity
from tabanok.gamification.reward_values import PointsValue, parse_reward_value
from tabanok.users.service import get_user

logger = logging.getLogger(__name__)


def check_window(reward: RewardDefinition, now: datetime) -> None:
    """Reject a limited offer outside its ``[start_date, end_date]`` window."""
    if not reward.is_limited:
        return
    if reward.start_date is not None and now < reward.start_date:
        msg = f"Reward {reward.id} is not available until {reward.start_date.isoformat()}"
        raise RewardUnavailableError(msg)
    if reward.end_date is not None and now > reward.end_date:
        msg = f"Reward {reward.id} was available until {reward.end_date.isoformat()}"
        raise RewardUnavailableError(msg)


async def _claim_stock(db: AsyncSession, reward: RewardDefinition) -> None:
    """Increment ``times_awarded``; for quantity-limited offers only while stock remains.

    The stock check and the increment are one conditional UPDATE, so two
    concurrent grants cannot both take the last unit.
    """
    stmt = update(RewardDefinition).where(RewardDefinition.id == reward.id)
    if reward.is_limited and reward.limited_quantity is not None:
        stmt = stmt.where(RewardDefinition.times_awarded < RewardDefinition.limited_quantity)

    result = await db.execute(
        stmt.values(times_awarded=RewardDefinition.times_awarded + 1).execution_options(
            synchronize_session=False
        )
    )
    if result.rowcount == 0:
        msg = f"Reward {reward.id} is out of stock ({reward.limited_quantity} awarded)"
        raise RewardUnavailableError(msg)
    await db.refresh(reward)


async def award(
    db: AsyncSession,
    user_id: str,
    reward_id: str,
    *,
    redis: object | None = None,
    now: datetime | None = None,
    policy: RewardPolicy | str | None = None,
) -> UserReward:
    """Grant a reward to a user.

    Args:
        db: Session; the grant commits on success.
        user_id: Recipient.
        reward_id: Catalog entry to grant.
        redis: Optional client for post-commit broadcasts.
        now: Award time (timezone-aware). Defaults to the current UTC time.
        policy: Re-award policy. Defaults to the configured one.

    Raises:
        UserNotFoundError: Unknown user.
        RewardNotFoundError: Unknown or inactive reward.
        RewardUnavailableError: Limited offer outside its window or out of stock.
        RewardAlreadyAwardedError: The user already holds a record the policy
            does not allow to be replaced.
        PersistenceError: The store rejected the write; nothing was persisted.
    """
    now = now or utcnow()
    policy = RewardPolicy(policy or get_settings().reaward_policy)

    await get_user(db, user_id)
    reward = await get_reward_definition(db, reward_id)
    if not reward.is_active:
        raise RewardNotFoundError(reward_id, inactive=True)
    check_window(reward, now)

    existing = await db.get(UserReward, (user_id, reward_id))
    if existing is not None:
        # A due ACTIVE record counts as EXPIRED.
        current = existing.status_at(now)
        if policy is RewardPolicy.REJECT or current == RewardStatus.ACTIVE:
            raise RewardAlreadyAwardedError(user_id, reward_id, current.value)

    payload = parse_reward_value(reward.type, reward.reward_value)
    expires_at = now + timedelta(days=reward.expiration_days) if reward.expiration_days is not None else None

    entry: UserLevel | None = None
    previous_level = 0
    async with atomic(db):
        await _claim_stock(db, reward)

        if existing is None:
            record = UserReward(user_id=user_id, reward_id=reward_id)
            db.add(record)
        else:
            record = existing
        record.reward = reward
        record.status = RewardStatus.ACTIVE
        record.date_awarded = now
        record.expires_at = expires_at
        record.consumed_at = None
        record.award_metadata = {}

        if isinstance(payload, PointsValue) and payload.value > 0:
            entry, previous_level = await apply_points(db, user_id, payload.value)
            log_activity(db, user_id, ACTIVITY_REWARD_AWARDED, payload.value, f"Reward: {reward.name}")

        await db.flush()

    logger.info(
        "Awarded %s reward %r to user %s%s",
        reward.type.value,
        reward.name,
        user_id,
        " (reissued)" if existing is not None else "",
    )

    await publish_reward_awarded(redis, user_id, reward.id, reward.name, reward.type.value)
    if entry is not None and entry.level > previous_level:
        await publish_level_up(redis, user_id, previous_level, entry.level)
    return record


def _logical_status_is(status: RewardStatus, now: datetime):
    overdue = and_(
        UserReward.status == RewardStatus.ACTIVE,
        UserReward.expires_at.is_not(None),
        UserReward.expires_at <= now,
    )
    if status == RewardStatus.ACTIVE:
        return and_(
            UserReward.status == RewardStatus.ACTIVE,
            or_(UserReward.expires_at.is_(None), UserReward.expires_at > now),
        )
    if status == RewardStatus.EXPIRED:
        return or_(UserReward.status == RewardStatus.EXPIRED, overdue)
    return UserReward.status == status


async def list_awards_for_user(
    db: AsyncSession,
    user_id: str,
    status: RewardStatus | None = None,
    now: datetime | None = None,
) -> list[UserReward]:
    """A user's award records, newest first.

    Nothing is written. The ``status`` filter matches the logical status at
    ``now``: an ACTIVE record past ``expires_at`` is listed under EXPIRED,
    not ACTIVE, while its stored status stays as it is.
    """
    stmt = select(UserReward).where(UserReward.user_id == user_id)
    if status is not None:
        stmt = stmt.where(_logical_status_is(status, now or utcnow()))

    result = await db.execute(stmt.order_by(UserReward.date_awarded.desc()))
    return list(result.scalars().unique().all())
