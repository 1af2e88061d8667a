"""Reward catalog: definition lookup, filtered listing and creation."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tabanok.database import atomic
from tabanok.db.models import RewardDefinition
from tabanok.gamification.enums import RewardTrigger, RewardType
from tabanok.gamification.exceptions import RewardNotFoundError, RewardValidationError
from tabanok.gamification.reward_values import dump_reward_value, parse_reward_value
from tabanok.gamification.schemas import RewardDefinitionCreate

logger = logging.getLogger(__name__)


async def get_reward_definition(db: AsyncSession, reward_id: str) -> RewardDefinition:
    """
    Fetch a catalog entry by ID.

    Raises:
        RewardNotFoundError: If no such definition exists.
    """
    reward = await db.get(RewardDefinition, reward_id)
    if reward is None:
        raise RewardNotFoundError(reward_id)
    return reward


async def get_reward_by_name(db: AsyncSession, name: str) -> RewardDefinition | None:
    """Fetch a catalog entry by its unique name."""
    result = await db.execute(select(RewardDefinition).where(RewardDefinition.name == name))
    return result.scalar_one_or_none()


async def list_reward_definitions(
    db: AsyncSession,
    type: RewardType | None = None,  # noqa: A002
    trigger: RewardTrigger | None = None,
    is_active: bool | None = None,
) -> list[RewardDefinition]:
    """List catalog entries matching every given filter."""
    stmt = select(RewardDefinition)
    if type is not None:
        stmt = stmt.where(RewardDefinition.type == type)
    if trigger is not None:
        stmt = stmt.where(RewardDefinition.trigger == trigger)
    if is_active is not None:
        stmt = stmt.where(RewardDefinition.is_active.is_(is_active))

    result = await db.execute(stmt.order_by(RewardDefinition.created_at, RewardDefinition.name))
    return list(result.scalars().all())


def validate_definition(data: RewardDefinitionCreate) -> dict:
    """Check catalog invariants and return the normalized reward value.

    Raises:
        RewardValidationError: payload tag disagrees with the type, or a
            limited offer has neither a quantity nor a window, or the window
            is inverted.
    """
    payload = parse_reward_value(data.type, data.reward_value)

    if data.is_limited and data.limited_quantity is None and data.start_date is None and data.end_date is None:
        msg = f"Limited reward '{data.name}' needs a limited_quantity, start_date or end_date"
        raise RewardValidationError(msg)
    if data.start_date is not None and data.end_date is not None and data.start_date > data.end_date:
        msg = f"Reward '{data.name}' has start_date after end_date"
        raise RewardValidationError(msg)

    return dump_reward_value(payload)


def build_definition(data: RewardDefinitionCreate) -> RewardDefinition:
    """Validate input and build an unsaved catalog entry."""
    reward_value = validate_definition(data)
    return RewardDefinition(
        name=data.name,
        title=data.title or data.name,
        description=data.description,
        type=data.type,
        trigger=data.trigger,
        points_cost=data.points_cost,
        reward_value=reward_value,
        is_limited=data.is_limited,
        limited_quantity=data.limited_quantity,
        start_date=data.start_date,
        end_date=data.end_date,
        is_secret=data.is_secret,
        is_active=data.is_active,
        expiration_days=data.expiration_days,
        times_awarded=0,
    )


async def create_reward_definition(db: AsyncSession, data: RewardDefinitionCreate) -> RewardDefinition:
    """Persist a new catalog entry in its own transaction."""
    reward = build_definition(data)
    async with atomic(db):
        db.add(reward)
        await db.flush()

    logger.info("Created %s reward %r (%s)", reward.type.value, reward.name, reward.id)
    return reward
