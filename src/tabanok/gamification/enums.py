"""Reward catalog and award lifecycle enumerations."""

from __future__ import annotations

import enum


class RewardType(str, enum.Enum):
    POINTS = "points"
    BADGE = "badge"
    ACHIEVEMENT = "achievement"
    CULTURAL = "cultural"
    EXPERIENCE = "experience"
    CONTENT = "content"
    DISCOUNT = "discount"
    EXCLUSIVE_CONTENT = "exclusive_content"
    CUSTOMIZATION = "customization"


class RewardTrigger(str, enum.Enum):
    LEVEL_UP = "level_up"
    LESSON_COMPLETION = "lesson_completion"
    EXERCISE_COMPLETION = "exercise_completion"


class RewardStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CONSUMED = "CONSUMED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        return self is not RewardStatus.ACTIVE


class RewardPolicy(str, enum.Enum):
    """What the orchestrator does when a user already holds a record for a reward."""

    REJECT = "reject"
    REISSUE = "reissue"


# Activity types understood by the ledger's counters.
ACTIVITY_LESSON = "lesson"
ACTIVITY_EXERCISE = "exercise"
ACTIVITY_PERFECT_SCORE = "perfect-score"
ACTIVITY_REWARD_AWARDED = "reward_awarded"
