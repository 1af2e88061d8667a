"""Liveness and readiness endpoints."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tabanok.config import get_settings
from tabanok.database import get_session
from tabanok.db.models import RewardDefinition
from tabanok.redis_client import get_redis_or_none

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "healthy", "version": get_settings().app_version}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
    redis=Depends(get_redis_or_none),  # noqa: B008
) -> JSONResponse:
    """Readiness check.

    Ready once the reward catalog can be queried and holds at least one active
    reward. Redis only carries broadcasts, so its state is reported but never
    makes the service unready.
    """
    checks: dict[str, str] = {}
    ready = False

    try:
        active = await db.scalar(
            select(func.count()).select_from(RewardDefinition).where(RewardDefinition.is_active.is_(True))
        )
    except SQLAlchemyError as exc:
        checks["catalog"] = f"error: {exc.__class__.__name__}"
    else:
        ready = bool(active)
        checks["catalog"] = f"{active} active rewards" if active else "empty"

    if redis is None:
        checks["broadcasts"] = "disabled"
    else:
        try:
            await redis.ping()
            checks["broadcasts"] = "ok"
        except (RedisError, OSError) as exc:
            checks["broadcasts"] = f"error: {exc}"

    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks},
    )
