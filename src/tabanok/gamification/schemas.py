"""Pydantic request/response models for the gamification core."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from tabanok.gamification.enums import RewardStatus, RewardTrigger, RewardType


# --- Reward catalog ---


class RewardDefinitionCreate(BaseModel):
    """Input for creating a catalog entry. Payload/limit invariants are checked by the catalog service."""

    name: str = Field(min_length=1, max_length=128)
    title: str = ""
    description: str = ""
    type: RewardType
    trigger: RewardTrigger
    points_cost: int = Field(default=0, ge=0)
    reward_value: dict[str, Any]
    is_limited: bool = False
    limited_quantity: int | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_secret: bool = False
    is_active: bool = True
    expiration_days: int | None = Field(default=None, ge=0)


class RewardDefinitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    title: str
    description: str
    type: RewardType
    trigger: RewardTrigger
    points_cost: int
    reward_value: dict[str, Any]
    is_limited: bool
    limited_quantity: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    times_awarded: int = 0
    is_secret: bool
    is_active: bool
    expiration_days: int | None = None
    created_at: datetime | None = None


class RewardListResponse(BaseModel):
    rewards: list[RewardDefinitionResponse]


# --- Award ledger ---


class UserRewardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    reward_id: str
    status: RewardStatus
    date_awarded: datetime
    expires_at: datetime | None = None
    consumed_at: datetime | None = None
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("award_metadata", "metadata"),
    )
    created_at: datetime | None = None


class UserRewardListResponse(BaseModel):
    rewards: list[UserRewardResponse]


# --- Points & level ledger ---


class CreditPointsRequest(BaseModel):
    amount: int = Field(ge=0)


class RecordActivityRequest(BaseModel):
    activity_type: str = Field(min_length=1, max_length=32)
    points_awarded: int = Field(ge=0)
    description: str | None = Field(default=None, max_length=256)


class UserLevelResponse(BaseModel):
    user_id: str
    points: int
    experience: int
    level: int
    level_title: str
    points_into_level: int
    points_for_level: int
    next_level: int
    next_title: str
    lessons_completed: int
    exercises_completed: int
    perfect_scores: int


class LevelEntry(BaseModel):
    level: int
    title: str
    points_required: int
    cumulative: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]
