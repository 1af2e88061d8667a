"""Typed reward payloads.

``RewardDefinition.reward_value`` is a tagged union keyed by ``type``. Each
reward type has exactly one payload shape; the tag must agree with the
definition's ``RewardType``. Payloads are validated when a definition is
created and parsed again when the orchestrator needs the value.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from tabanok.gamification.enums import RewardType
from tabanok.gamification.exceptions import RewardValidationError


class _Payload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    metadata: dict[str, Any] | None = None


class PointsValue(_Payload):
    type: Literal["points"] = "points"
    value: int = Field(ge=0)


class BadgeValue(_Payload):
    type: Literal["badge"] = "badge"
    value: str | None = None
    image_url: str | None = None


class AchievementValue(_Payload):
    type: Literal["achievement"] = "achievement"
    value: str | None = None


class CulturalEvent(BaseModel):
    event_name: str
    date: datetime | None = None
    platform: str | None = None


class CulturalValue(_Payload):
    type: Literal["cultural"] = "cultural"
    value: CulturalEvent


class ExperienceBoost(BaseModel):
    multiplier: float = Field(gt=0)
    duration_hours: int = Field(gt=0)


class ExperienceValue(_Payload):
    type: Literal["experience"] = "experience"
    value: ExperienceBoost


class ContentValue(_Payload):
    type: Literal["content"] = "content"
    value: str


class ExclusiveContentValue(_Payload):
    type: Literal["exclusive_content"] = "exclusive_content"
    value: str


class DiscountValue(_Payload):
    type: Literal["discount"] = "discount"
    value: float = Field(gt=0, le=100)  # percent


class Customization(BaseModel):
    customization_type: str
    customization_value: str


class CustomizationValue(_Payload):
    type: Literal["customization"] = "customization"
    value: Customization


RewardValue = Annotated[
    Union[
        PointsValue,
        BadgeValue,
        AchievementValue,
        CulturalValue,
        ExperienceValue,
        ContentValue,
        ExclusiveContentValue,
        DiscountValue,
        CustomizationValue,
    ],
    Field(discriminator="type"),
]

_adapter: TypeAdapter[RewardValue] = TypeAdapter(RewardValue)

PAYLOAD_TAGS: dict[RewardType, str] = {
    RewardType.POINTS: "points",
    RewardType.BADGE: "badge",
    RewardType.ACHIEVEMENT: "achievement",
    RewardType.CULTURAL: "cultural",
    RewardType.EXPERIENCE: "experience",
    RewardType.CONTENT: "content",
    RewardType.EXCLUSIVE_CONTENT: "exclusive_content",
    RewardType.DISCOUNT: "discount",
    RewardType.CUSTOMIZATION: "customization",
}


def parse_reward_value(reward_type: RewardType, raw: Any) -> RewardValue:
    """Validate a raw payload and check its tag against the reward type.

    Raises:
        RewardValidationError: malformed payload or tag mismatch.
    """
    try:
        payload = _adapter.validate_python(raw)
    except ValidationError as exc:
        msg = f"Invalid reward value for {reward_type.value} reward: {exc.errors(include_url=False)}"
        raise RewardValidationError(msg) from exc

    expected = PAYLOAD_TAGS[reward_type]
    if payload.type != expected:
        msg = f"Reward value tag '{payload.type}' does not match reward type '{reward_type.value}'"
        raise RewardValidationError(msg)
    return payload


def dump_reward_value(payload: RewardValue) -> dict[str, Any]:
    """Serialize a payload for the JSON column."""
    return payload.model_dump(mode="json", exclude_none=True)
