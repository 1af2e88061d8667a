"""Standalone runner for the learning-event consumer.

Reads lesson and exercise completions from Redis Streams, credits points,
grants triggered rewards and periodically sweeps expired awards.

Usage: python -m tabanok.workers.gamification_runner
"""

from __future__ import annotations

import asyncio
import json
import logging
import signal

import redis.asyncio as aioredis

from tabanok.config import get_settings
from tabanok.database import close_db, init_db, session_scope
from tabanok.gamification.consumption_service import expire_due_awards
from tabanok.gamification.exceptions import NotFoundError
from tabanok.gamification.trigger_engine import TriggerEngine
from tabanok.middleware.logging import setup_logging

logger = logging.getLogger(__name__)

CONSUMER_GROUP = "gamification-consumers"

LESSON_COMPLETED_STREAM = "learning:lesson_completed"
EXERCISE_COMPLETED_STREAM = "learning:exercise_completed"

STREAMS = [
    LESSON_COMPLETED_STREAM,
    EXERCISE_COMPLETED_STREAM,
]

_running = True


def decode_event(raw_data: dict) -> dict:
    """Stream entries carry a JSON ``data`` field; fall back to the flat fields."""
    data_str = raw_data.get("data")
    if isinstance(data_str, str):
        try:
            return json.loads(data_str)
        except json.JSONDecodeError:
            pass
    return dict(raw_data)


def _optional_int(value: object) -> int | None:
    return None if value in (None, "") else int(value)  # type: ignore[arg-type]


async def handle_event(engine: TriggerEngine, stream: str, data: dict) -> list[str]:
    """Dispatch one learning event. Returns the IDs of rewards awarded."""
    user_id = str(data.get("user_id", ""))
    if not user_id:
        logger.warning("Dropping %s event without user_id", stream)
        return []

    if stream == LESSON_COMPLETED_STREAM:
        return await engine.on_lesson_completed(
            user_id,
            str(data.get("lesson_id", "")),
            points=_optional_int(data.get("points")),
        )
    if stream == EXERCISE_COMPLETED_STREAM:
        perfect = str(data.get("perfect", "")).lower() in ("1", "true", "yes")
        return await engine.on_exercise_completed(
            user_id,
            str(data.get("exercise_id", "")),
            points=_optional_int(data.get("points")),
            perfect=perfect,
        )

    logger.warning("No handler for stream %s", stream)
    return []


async def consume(redis_client: aioredis.Redis, consumer_name: str) -> None:
    """Main consumer loop: reads learning events and evaluates reward triggers."""
    streams = {s: ">" for s in STREAMS}

    while _running:
        try:
            events = await redis_client.xreadgroup(
                groupname=CONSUMER_GROUP,
                consumername=consumer_name,
                streams=streams,
                count=100,
                block=5000,
            )
        except aioredis.ResponseError as e:
            logger.error("XREADGROUP error: %s", e)
            await asyncio.sleep(1)
            continue

        if not events:
            continue

        for stream_name, messages in events:
            stream_str = stream_name if isinstance(stream_name, str) else stream_name.decode()

            for msg_id, raw_data in messages:
                try:
                    async with session_scope() as db:
                        engine = TriggerEngine(db, redis_client)
                        awarded = await handle_event(engine, stream_str, decode_event(raw_data))
                        if awarded:
                            logger.info("Awarded rewards: %s (stream=%s, event=%s)", awarded, stream_str, msg_id)
                except NotFoundError as e:
                    logger.warning("Dropping %s from %s: %s", msg_id, stream_str, e.message)
                except Exception:
                    logger.exception("Failed to process %s from %s", msg_id, stream_str)
                    continue

                await redis_client.xack(stream_str, CONSUMER_GROUP, msg_id)


async def sweep_expired(interval_seconds: int) -> None:
    """Periodically mark due awards as EXPIRED. Consumption re-checks expiry regardless."""
    while _running:
        try:
            async with session_scope() as db:
                await expire_due_awards(db)
        except Exception:
            logger.exception("Expiry sweep failed")
        await asyncio.sleep(interval_seconds)


async def main() -> None:
    """Run the learning-event consumer and the expiry sweep."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings)

    redis_client = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )

    # Create consumer groups (idempotent)
    for stream in STREAMS:
        try:
            await redis_client.xgroup_create(stream, CONSUMER_GROUP, id="0", mkstream=True)
            logger.info("Created consumer group %s for %s", CONSUMER_GROUP, stream)
        except aioredis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

    loop = asyncio.get_running_loop()

    def _stop():
        global _running  # noqa: PLW0603
        _running = False

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _stop)

    logger.info("Starting gamification consumer (consumer=%s)", settings.worker_consumer_name)

    sweeper = asyncio.create_task(sweep_expired(settings.expiry_sweep_interval_seconds))
    try:
        await consume(redis_client, settings.worker_consumer_name)
    finally:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass
        await redis_client.aclose()
        await close_db()
        logger.info("Gamification consumer stopped")


if __name__ == "__main__":
    asyncio.run(main())
