"""Tests for the scheduled progression jobs."""

from __future__ import annotations

import pytest

from glit.db.base import utcnow
from glit.progression.streak_service import StreakTracker
from glit.workers import scheduler


class TestScheduledJobs:
    @pytest.mark.asyncio
    async def test_daily_generation_runs_once_per_period(self, db_session):
        await StreakTracker(db_session).log_activity("u1", utcnow())
        await db_session.commit()

        assert await scheduler.generate_daily_missions({}) == 3
        assert await scheduler.generate_daily_missions({}) == 0

    @pytest.mark.asyncio
    async def test_inactive_users_get_nothing(self, db_session):
        assert await scheduler.generate_weekly_missions({}) == 0

    @pytest.mark.asyncio
    async def test_sweeps_are_idempotent(self, db_session):
        await StreakTracker(db_session).log_activity("u1", utcnow())
        await db_session.commit()

        assert await scheduler.reset_inactive_streaks({}) == 0
        assert await scheduler.expire_missions({}) == 0
        assert await scheduler.cleanup_expired_missions({}) == 0
