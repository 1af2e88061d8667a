"""Best-effort Redis pub/sub broadcasts for gamification events.

Broadcasts are published after the owning transaction commits. A missing or
failing Redis never fails the operation that triggered the broadcast.
"""

from __future__ import annotations

import json
import logging

from tabanok.gamification.level_thresholds import level_title

logger = logging.getLogger(__name__)

LEVEL_UP_CHANNEL = "pubsub:level_up"
REWARD_AWARDED_CHANNEL = "pubsub:reward_awarded"


async def _publish(redis: object | None, channel: str, payload: dict) -> None:
    if redis is None:
        return
    try:
        await redis.publish(channel, json.dumps(payload))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to publish %s broadcast", channel, exc_info=True)


async def publish_level_up(redis: object | None, user_id: str, old_level: int, new_level: int) -> None:
    await _publish(
        redis,
        LEVEL_UP_CHANNEL,
        {
            "user_id": user_id,
            "old_level": old_level,
            "new_level": new_level,
            "title": level_title(new_level),
        },
    )


async def publish_reward_awarded(
    redis: object | None,
    user_id: str,
    reward_id: str,
    reward_name: str,
    reward_type: str,
) -> None:
    await _publish(
        redis,
        REWARD_AWARDED_CHANNEL,
        {
            "user_id": user_id,
            "reward_id": reward_id,
            "reward_name": reward_name,
            "reward_type": reward_type,
        },
    )
