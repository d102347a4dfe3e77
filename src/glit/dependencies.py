"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from glit.config import Settings, get_settings
from glit.database import get_session as _get_session
from glit.engine_config import EngineConfig, get_engine_config
from glit.exercises.catalog import ExerciseCatalog
from glit.notifications import Notifier
from glit.redis_client import optional_redis

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[object | None, None]:
    """Yield the Redis client, or None when Redis was never initialised."""
    yield optional_redis()


def get_settings_dep() -> Settings:
    return get_settings()


def get_config_dep() -> EngineConfig:
    return get_engine_config()


def get_notifier(redis: object | None = Depends(get_redis_dep)) -> Notifier:
    return Notifier(redis)


def get_exercise_catalog(
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> ExerciseCatalog:
    return ExerciseCatalog(db, config)
