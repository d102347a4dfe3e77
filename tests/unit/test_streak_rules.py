"""Unit tests for streak day arithmetic and expiry."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from glit.progression.streak_service import advance_streak, is_streak_expired

MON_NOON = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class TestAdvanceStreak:
    def test_first_activity_starts_at_one(self):
        result = advance_streak(0, 0, None, MON_NOON)
        assert (result.current_streak, result.best_streak) == (1, 1)
        assert result.is_new_day
        assert not result.streak_extended

    def test_same_day_is_noop(self):
        result = advance_streak(3, 5, MON_NOON, MON_NOON + timedelta(hours=11))
        assert (result.current_streak, result.best_streak) == (3, 5)
        assert not result.is_new_day

    def test_next_calendar_day_extends(self):
        """23:59 then 00:01 the next day still counts as consecutive."""
        late = datetime(2026, 3, 2, 23, 59, tzinfo=timezone.utc)
        result = advance_streak(3, 3, late, late + timedelta(minutes=2))
        assert result.current_streak == 4
        assert result.best_streak == 4
        assert result.streak_extended

    def test_extension_keeps_higher_best(self):
        result = advance_streak(2, 10, MON_NOON, MON_NOON + timedelta(days=1))
        assert (result.current_streak, result.best_streak) == (3, 10)

    def test_gap_restarts_at_one(self):
        result = advance_streak(6, 6, MON_NOON, MON_NOON + timedelta(days=2))
        assert (result.current_streak, result.best_streak) == (1, 6)
        assert result.is_new_day
        assert not result.streak_extended


class TestExpiry:
    def test_never_active_is_expired(self):
        assert is_streak_expired(None, MON_NOON, 24)

    def test_exactly_24_hours_is_not_expired(self):
        assert not is_streak_expired(MON_NOON, MON_NOON + timedelta(hours=24), 24)

    def test_past_24_hours_is_expired(self):
        assert is_streak_expired(MON_NOON, MON_NOON + timedelta(hours=24, seconds=1), 24)
