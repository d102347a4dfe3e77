"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from glit.config import get_settings
from glit.database import close_db, get_session, init_db
from glit.economy.router import router as economy_router
from glit.engine_config import get_engine_config
from glit.exercises.router import router as exercises_router
from glit.health.router import router as health_router
from glit.middleware import setup_middleware
from glit.missions.router import router as missions_router
from glit.powerups.router import router as powerups_router
from glit.progression.achievement_service import AchievementEvaluator
from glit.progression.router import router as progression_router
from glit.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings)

    # Seed achievement definitions (idempotent)
    try:
        async for db in get_session():
            await AchievementEvaluator(db, get_engine_config()).seed_catalog()
            break
    except Exception:
        logger.warning("Achievement seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="GLIT Rewards API",
        description="ML Coins, ranks, streaks, missions and achievements for reading exercises",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(exercises_router)
    app.include_router(economy_router)
    app.include_router(progression_router)
    app.include_router(missions_router)
    app.include_router(powerups_router)

    return app


app = create_app()
