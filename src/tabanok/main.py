"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from tabanok.config import get_settings
from tabanok.database import close_db, init_db, session_scope
from tabanok.gamification.router import router as gamification_router
from tabanok.gamification.seed import seed_rewards
from tabanok.health.router import router as health_router
from tabanok.middleware import setup_middleware
from tabanok.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings)
    await init_redis(settings.redis_url)

    if settings.seed_catalog_on_startup:
        try:
            async with session_scope() as db:
                await seed_rewards(db)
        except SQLAlchemyError:
            logger.warning("Reward seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Tabanok Gamification API",
        description="Rewards, points and levels for the Tabanok language-learning platform",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(gamification_router)

    return app


app = create_app()
