"""Daily activity streaks.

Writes compare calendar days (UTC): same day refreshes the timestamp, the
next day extends the streak, anything later restarts it at 1. Reads report a
streak as expired (0) once more than ``streak_expiry_hours`` have passed
since the last activity; the nightly sweep zeroes stored streaks with the
same threshold so the displayed and stored values converge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from glit.db.base import utcnow
from glit.db.models import UserEconomyState
from glit.economy.ledger import Ledger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakInfo:
    current_streak: int
    best_streak: int
    last_activity_at: datetime | None
    is_active: bool


@dataclass(frozen=True)
class ActivityResult:
    current_streak: int
    best_streak: int
    is_new_day: bool
    streak_extended: bool


def is_streak_expired(last_activity_at: datetime | None, now: datetime, expiry_hours: int) -> bool:
    if last_activity_at is None:
        return True
    return now - last_activity_at > timedelta(hours=expiry_hours)


def advance_streak(
    current: int,
    best: int,
    last_activity_at: datetime | None,
    now: datetime,
) -> ActivityResult:
    """Pure calendar-day streak transition."""
    if last_activity_at is None:
        return ActivityResult(1, max(best, 1), is_new_day=True, streak_extended=False)

    days = (now.date() - last_activity_at.date()).days
    if days <= 0:
        return ActivityResult(current, best, is_new_day=False, streak_extended=False)
    if days == 1:
        new_current = current + 1
        return ActivityResult(new_current, max(best, new_current), is_new_day=True, streak_extended=True)
    return ActivityResult(1, max(best, 1), is_new_day=True, streak_extended=False)


class StreakTracker:
    """Per-user consecutive-activity-day counters."""

    def __init__(self, db: AsyncSession, expiry_hours: int = 24) -> None:
        self.db = db
        self.expiry_hours = expiry_hours

    async def log_activity(self, user_id: str, now: datetime | None = None) -> ActivityResult:
        """Record activity for today and return the updated streak."""
        if now is None:
            now = utcnow()

        state = await Ledger(self.db).lock_state(user_id)
        result = advance_streak(state.current_streak, state.best_streak, state.last_activity_at, now)
        state.current_streak = result.current_streak
        state.best_streak = result.best_streak
        state.last_activity_at = now
        state.updated_at = now
        await self.db.flush()

        if result.streak_extended:
            logger.info("Streak extended for %s: %d days", user_id, result.current_streak)
        return result

    async def get_streak_info(self, user_id: str, now: datetime | None = None) -> StreakInfo:
        """Streak as displayed: expired streaks read as 0 without being written."""
        if now is None:
            now = utcnow()

        state = await self.db.get(UserEconomyState, user_id, populate_existing=True)
        if state is None:
            return StreakInfo(0, 0, None, is_active=False)

        if is_streak_expired(state.last_activity_at, now, self.expiry_hours):
            return StreakInfo(0, state.best_streak, state.last_activity_at, is_active=False)
        return StreakInfo(state.current_streak, state.best_streak, state.last_activity_at, is_active=True)

    async def reset_expired_streaks(self, now: datetime | None = None) -> int:
        """Zero every stored streak whose last activity is past the expiry threshold.

        Idempotent: a second run finds nothing left to reset. Returns the
        number of users reset.
        """
        if now is None:
            now = utcnow()

        cutoff = now - timedelta(hours=self.expiry_hours)
        result = await self.db.execute(
            update(UserEconomyState)
            .where(
                UserEconomyState.current_streak > 0,
                UserEconomyState.last_activity_at < cutoff,
            )
            .values(current_streak=0, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info("Streak sweep reset %d inactive streaks", result.rowcount)
        return result.rowcount
