"""Integration tests for persisted streaks and the nightly sweep."""

from __future__ import annotations

from datetime import timedelta

import pytest

from glit.db.models import UserEconomyState
from glit.progression.streak_service import StreakTracker
from tests.conftest import NOW


class TestLogActivity:
    @pytest.mark.asyncio
    async def test_consecutive_days(self, db_session):
        tracker = StreakTracker(db_session)
        for day in range(3):
            result = await tracker.log_activity("u1", NOW + timedelta(days=day))
            await db_session.commit()
        assert result.current_streak == 3
        assert result.best_streak == 3
        assert result.streak_extended

    @pytest.mark.asyncio
    async def test_same_day_twice_counts_once(self, db_session):
        tracker = StreakTracker(db_session)
        await tracker.log_activity("u1", NOW)
        result = await tracker.log_activity("u1", NOW + timedelta(hours=2))
        await db_session.commit()
        assert result.current_streak == 1
        assert not result.is_new_day

    @pytest.mark.asyncio
    async def test_gap_resets_but_keeps_best(self, db_session):
        tracker = StreakTracker(db_session)
        for day in range(4):
            await tracker.log_activity("u1", NOW + timedelta(days=day))
        result = await tracker.log_activity("u1", NOW + timedelta(days=6))
        await db_session.commit()
        assert (result.current_streak, result.best_streak) == (1, 4)


class TestStreakInfo:
    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        info = await StreakTracker(db_session).get_streak_info("ghost", NOW)
        assert (info.current_streak, info.best_streak, info.is_active) == (0, 0, False)

    @pytest.mark.asyncio
    async def test_expired_streak_reads_zero_without_writing(self, db_session):
        tracker = StreakTracker(db_session)
        await tracker.log_activity("u1", NOW)
        await tracker.log_activity("u1", NOW + timedelta(days=1))
        await db_session.commit()

        info = await tracker.get_streak_info("u1", NOW + timedelta(days=3))
        assert info.current_streak == 0
        assert info.best_streak == 2
        assert not info.is_active

        state = await db_session.get(UserEconomyState, "u1")
        assert state.current_streak == 2

    @pytest.mark.asyncio
    async def test_active_within_window(self, db_session):
        tracker = StreakTracker(db_session)
        await tracker.log_activity("u1", NOW)
        await db_session.commit()
        info = await tracker.get_streak_info("u1", NOW + timedelta(hours=23))
        assert (info.current_streak, info.is_active) == (1, True)


class TestResetSweep:
    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self, db_session):
        tracker = StreakTracker(db_session)
        await tracker.log_activity("stale", NOW - timedelta(days=3))
        await tracker.log_activity("fresh", NOW - timedelta(hours=2))
        await db_session.commit()

        assert await tracker.reset_expired_streaks(NOW) == 1
        assert await tracker.reset_expired_streaks(NOW) == 0

        stale = await db_session.get(UserEconomyState, "stale", populate_existing=True)
        fresh = await db_session.get(UserEconomyState, "fresh", populate_existing=True)
        assert stale.current_streak == 0
        assert stale.best_streak == 1
        assert fresh.current_streak == 1
