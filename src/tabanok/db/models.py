"""ORM models for the gamification core.

Table layout matches alembic/versions/001_gamification_core.py.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tabanok.db.base import Base
from tabanok.db.types import JSONBCompatible, UTCDateTime, utcnow
from tabanok.gamification.enums import RewardStatus, RewardTrigger, RewardType


def _new_id() -> str:
    return str(uuid4())


def _enum_column(enum_cls: type) -> Enum:
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Identity owned by the auth service; the core only reads it."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Reward catalog
# ---------------------------------------------------------------------------


class RewardDefinition(Base):
    """Catalog entry describing a reward offer."""

    __tablename__ = "rewards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[RewardType] = mapped_column(_enum_column(RewardType), nullable=False)
    trigger: Mapped[RewardTrigger] = mapped_column(_enum_column(RewardTrigger), nullable=False)
    points_cost: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward_value: Mapped[dict[str, Any]] = mapped_column(JSONBCompatible, nullable=False)
    is_limited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    limited_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    end_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    times_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_secret: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expiration_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)


# ---------------------------------------------------------------------------
# Award ledger
# ---------------------------------------------------------------------------


class UserReward(Base):
    """One award record per (user, reward), enforced by the composite primary key."""

    __tablename__ = "user_rewards"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    reward_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("rewards.id", ondelete="RESTRICT"), primary_key=True
    )
    status: Mapped[RewardStatus] = mapped_column(
        _enum_column(RewardStatus), nullable=False, default=RewardStatus.ACTIVE
    )
    date_awarded: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    consumed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    award_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSONBCompatible, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    reward: Mapped[RewardDefinition] = relationship("RewardDefinition", lazy="joined")

    def is_due(self, now: datetime) -> bool:
        """True when the record is still ACTIVE but its expiry has passed."""
        return (
            self.status == RewardStatus.ACTIVE
            and self.expires_at is not None
            and self.expires_at <= now
        )

    def status_at(self, now: datetime) -> RewardStatus:
        """The logical status at ``now``: a due ACTIVE record reads as EXPIRED."""
        return RewardStatus.EXPIRED if self.is_due(now) else self.status


# ---------------------------------------------------------------------------
# Points & level ledger
# ---------------------------------------------------------------------------


class UserLevel(Base):
    """Running points/experience totals and derived level. One row per user."""

    __tablename__ = "user_levels"
    __table_args__ = (UniqueConstraint("user_id", name="user_levels_user_id_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    lessons_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exercises_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    perfect_scores: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)


class UserActivity(Base):
    """Immutable activity log written alongside points mutations."""

    __tablename__ = "user_activities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    activity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    points_awarded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
