"""Scheduled progression jobs (arq cron).

Every job body is idempotent, so a double trigger is harmless:

- daily mission generation     00:00 UTC
- weekly mission generation    Monday 00:00 UTC
- mission expiry sweep         hourly at :05
- expired mission cleanup      03:00 UTC
- inactive streak sweep        00:15 UTC

Jobs have no ordering dependency on each other beyond expiry running
before cleanup, which the schedule guarantees.
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings
from sqlalchemy.ext.asyncio import AsyncSession

from glit.config import get_settings
from glit.database import close_db, get_session, init_db
from glit.engine_config import get_engine_config
from glit.missions.quest_engine import QuestEngine
from glit.missions.templates import MissionType
from glit.progression.streak_service import StreakTracker

logger = logging.getLogger(__name__)


async def _get_db_session() -> AsyncSession:
    """Get a database session for the worker."""
    async for session in get_session():
        return session
    raise RuntimeError("Failed to get database session")


async def scheduler_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize the database on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)
    logger.info("Progression scheduler started")


async def scheduler_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    await close_db()
    logger.info("Progression scheduler shut down")


async def _generate(mission_type: MissionType) -> int:
    settings = get_settings()
    db = await _get_db_session()
    try:
        return await QuestEngine(db, get_engine_config()).generate_for_active_users(
            mission_type, settings.active_user_window_days
        )
    except Exception:
        logger.exception("Failed to generate %s missions", mission_type.value)
        return 0
    finally:
        await db.close()


async def generate_daily_missions(ctx: dict) -> int:  # type: ignore[type-arg]
    """00:00 UTC: daily missions for every recently active user without any."""
    return await _generate(MissionType.DAILY)


async def generate_weekly_missions(ctx: dict) -> int:  # type: ignore[type-arg]
    """Monday 00:00 UTC: weekly missions for every recently active user without any."""
    return await _generate(MissionType.WEEKLY)


async def expire_missions(ctx: dict) -> int:  # type: ignore[type-arg]
    db = await _get_db_session()
    try:
        return await QuestEngine(db, get_engine_config()).expire_missions()
    except Exception:
        logger.exception("Mission expiry sweep failed")
        return 0
    finally:
        await db.close()


async def cleanup_expired_missions(ctx: dict) -> int:  # type: ignore[type-arg]
    settings = get_settings()
    db = await _get_db_session()
    try:
        return await QuestEngine(db, get_engine_config()).cleanup_expired(settings.mission_retention_days)
    except Exception:
        logger.exception("Mission cleanup failed")
        return 0
    finally:
        await db.close()


async def reset_inactive_streaks(ctx: dict) -> int:  # type: ignore[type-arg]
    db = await _get_db_session()
    try:
        return await StreakTracker(db, get_settings().streak_expiry_hours).reset_expired_streaks()
    except Exception:
        logger.exception("Streak sweep failed")
        return 0
    finally:
        await db.close()


class WorkerSettings:
    """arq worker settings for the progression scheduler."""

    functions = [
        generate_daily_missions,
        generate_weekly_missions,
        expire_missions,
        cleanup_expired_missions,
        reset_inactive_streaks,
    ]
    cron_jobs = [
        cron(generate_daily_missions, hour=0, minute=0),
        cron(generate_weekly_missions, weekday=0, hour=0, minute=0),
        cron(expire_missions, minute=5),
        cron(cleanup_expired_missions, hour=3, minute=0),
        cron(reset_inactive_streaks, hour=0, minute=15),
    ]
    on_startup = scheduler_startup
    on_shutdown = scheduler_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 4
    job_timeout = 600
