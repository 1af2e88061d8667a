"""Per-type consumption handlers.

Each reward type registers one function that receives the current award
metadata and the consumption time and returns the metadata to store. A
handler must build a new mapping; the stored one is never changed in place.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from tabanok.gamification.enums import RewardType

logger = logging.getLogger(__name__)

Metadata = dict[str, Any]
ConsumptionHandler = Callable[[Metadata, datetime], Metadata]

_HANDLERS: dict[RewardType, ConsumptionHandler] = {}


def register(*reward_types: RewardType) -> Callable[[ConsumptionHandler], ConsumptionHandler]:
    """Register the decorated function as the handler for the given reward types."""

    def decorator(fn: ConsumptionHandler) -> ConsumptionHandler:
        for reward_type in reward_types:
            _HANDLERS[reward_type] = fn
        return fn

    return decorator


def get_handler(reward_type: RewardType) -> ConsumptionHandler | None:
    return _HANDLERS.get(reward_type)


def _with_additional(metadata: Metadata, key: str, when: datetime) -> Metadata:
    additional = dict(metadata.get("additional_data") or {})
    additional[key] = when.isoformat()
    return {**metadata, "additional_data": additional}


@register(RewardType.DISCOUNT)
def consume_discount(metadata: Metadata, when: datetime) -> Metadata:
    return {
        **metadata,
        "usage_count": int(metadata.get("usage_count", 0)) + 1,
        "last_used": when.isoformat(),
    }


@register(RewardType.CONTENT, RewardType.EXCLUSIVE_CONTENT)
def consume_content(metadata: Metadata, when: datetime) -> Metadata:
    return _with_additional(metadata, "unlocked_at", when)


@register(RewardType.CUSTOMIZATION)
def consume_customization(metadata: Metadata, when: datetime) -> Metadata:
    return _with_additional(metadata, "applied_at", when)


@register(RewardType.CULTURAL)
def consume_cultural(metadata: Metadata, when: datetime) -> Metadata:
    return _with_additional(metadata, "participation_date", when)


@register(RewardType.EXPERIENCE)
def consume_experience(metadata: Metadata, when: datetime) -> Metadata:
    return _with_additional(metadata, "activated_at", when)


@register(RewardType.POINTS, RewardType.BADGE, RewardType.ACHIEVEMENT)
def consume_granted_on_award(metadata: Metadata, when: datetime) -> Metadata:
    # Points, badges and achievements take effect when awarded.
    logger.warning("Consuming a reward that takes effect on award; metadata unchanged")
    return dict(metadata)


def apply_handler(reward_type: RewardType, metadata: Metadata | None, when: datetime) -> Metadata:
    """Run the handler for ``reward_type``; unknown types keep their metadata."""
    current = dict(metadata or {})
    handler = get_handler(reward_type)
    if handler is None:
        logger.warning("No consumption handler for reward type %s", reward_type.value)
        return current
    return handler(current, when)
