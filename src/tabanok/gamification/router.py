"""Gamification API endpoints: reward catalog, awards, consumption and the points ledger."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tabanok.database import get_session
from tabanok.gamification import award_service, catalog_service, consumption_service, ledger_service
from tabanok.gamification.enums import RewardStatus, RewardTrigger, RewardType
from tabanok.gamification.level_thresholds import LEVEL_THRESHOLDS, compute_level
from tabanok.gamification.schemas import (
    AllLevelsResponse,
    CreditPointsRequest,
    LevelEntry,
    RecordActivityRequest,
    RewardDefinitionCreate,
    RewardDefinitionResponse,
    RewardListResponse,
    UserLevelResponse,
    UserRewardListResponse,
    UserRewardResponse,
)
from tabanok.redis_client import get_redis_or_none

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


def _level_response(entry) -> UserLevelResponse:
    info = compute_level(entry.points)
    return UserLevelResponse(
        user_id=entry.user_id,
        points=entry.points,
        experience=entry.experience,
        level=entry.level,
        level_title=info["title"],
        points_into_level=info["points_into_level"],
        points_for_level=info["points_for_level"],
        next_level=info["next_level"],
        next_title=info["next_title"],
        lessons_completed=entry.lessons_completed,
        exercises_completed=entry.exercises_completed,
        perfect_scores=entry.perfect_scores,
    )


# ── Reward catalog ──


@router.post("/rewards", response_model=RewardDefinitionResponse, status_code=201)
async def create_reward(
    body: RewardDefinitionCreate,
    db: AsyncSession = Depends(get_session),
):
    """Create a catalog entry."""
    reward = await catalog_service.create_reward_definition(db, body)
    return RewardDefinitionResponse.model_validate(reward)


@router.get("/rewards", response_model=RewardListResponse)
async def list_rewards(
    type: RewardType | None = Query(None),  # noqa: A002
    trigger: RewardTrigger | None = Query(None),
    is_active: bool | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    """List catalog entries, optionally filtered by type, trigger and active flag."""
    rewards = await catalog_service.list_reward_definitions(db, type=type, trigger=trigger, is_active=is_active)
    return RewardListResponse(rewards=[RewardDefinitionResponse.model_validate(r) for r in rewards])


@router.get("/rewards/{reward_id}", response_model=RewardDefinitionResponse)
async def get_reward(reward_id: str, db: AsyncSession = Depends(get_session)):
    reward = await catalog_service.get_reward_definition(db, reward_id)
    return RewardDefinitionResponse.model_validate(reward)


# ── Awards ──


@router.post("/users/{user_id}/rewards/{reward_id}", response_model=UserRewardResponse, status_code=201)
async def award_reward(
    user_id: str,
    reward_id: str,
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_redis_or_none),
):
    """Grant a reward to a user."""
    record = await award_service.award(db, user_id, reward_id, redis=redis)
    return UserRewardResponse.model_validate(record)


@router.get("/users/{user_id}/rewards", response_model=UserRewardListResponse)
async def list_user_rewards(
    user_id: str,
    status: RewardStatus | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    """A user's award records, newest first."""
    records = await award_service.list_awards_for_user(db, user_id, status=status)
    return UserRewardListResponse(rewards=[UserRewardResponse.model_validate(r) for r in records])


@router.post("/users/{user_id}/rewards/{reward_id}/consume", response_model=UserRewardResponse)
async def consume_reward(user_id: str, reward_id: str, db: AsyncSession = Depends(get_session)):
    """Use an awarded reward. Fails if it was already used or has expired."""
    record = await consumption_service.consume(db, user_id, reward_id)
    return UserRewardResponse.model_validate(record)


@router.post("/users/{user_id}/rewards/{reward_id}/status", response_model=UserRewardResponse)
async def refresh_reward_status(user_id: str, reward_id: str, db: AsyncSession = Depends(get_session)):
    """Re-evaluate an award's expiry and return its current state."""
    record = await consumption_service.check_and_update_status(db, user_id, reward_id)
    return UserRewardResponse.model_validate(record)


# ── Points & level ledger ──


@router.post("/users/{user_id}/points", response_model=UserLevelResponse)
async def credit_points(
    user_id: str,
    body: CreditPointsRequest,
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_redis_or_none),
):
    entry = await ledger_service.credit_points(db, user_id, body.amount, redis=redis)
    return _level_response(entry)


@router.post("/users/{user_id}/activities", response_model=UserLevelResponse)
async def record_activity(
    user_id: str,
    body: RecordActivityRequest,
    db: AsyncSession = Depends(get_session),
    redis=Depends(get_redis_or_none),
):
    """Credit points for a learning activity and bump its counter."""
    entry = await ledger_service.record_activity(
        db,
        user_id,
        body.activity_type,
        body.points_awarded,
        description=body.description,
        redis=redis,
    )
    return _level_response(entry)


@router.get("/users/{user_id}/level", response_model=UserLevelResponse)
async def get_level(user_id: str, db: AsyncSession = Depends(get_session)):
    entry = await ledger_service.get_user_level(db, user_id)
    return _level_response(entry)


@router.get("/levels", response_model=AllLevelsResponse)
async def get_all_levels():
    """The level threshold table."""
    return AllLevelsResponse(levels=[LevelEntry(**t) for t in LEVEL_THRESHOLDS])
