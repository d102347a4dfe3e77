"""Unit tests for final score and payout computation."""

from __future__ import annotations

import random

import pytest

from glit.engine_config import BonusRules, EngineConfig
from glit.exercises.types import Difficulty
from glit.submissions.reward_calculator import SubmissionMetadata, compute_reward, streak_multiplier

CONFIG = EngineConfig()


def _meta(**kwargs) -> SubmissionMetadata:
    defaults = {"time_spent_seconds": 600, "powerups_used": 0, "attempt_number": 1, "estimated_time_minutes": None}
    defaults.update(kwargs)
    return SubmissionMetadata(**defaults)


class TestComputeReward:
    def test_hard_perfect_fast_first_attempt_clamps_to_100(self):
        meta = _meta(time_spent_seconds=300, estimated_time_minutes=10)
        result = compute_reward(100.0, Difficulty.HARD, 1.5, 10, meta, 40, 80, CONFIG)

        assert result.final_score == 100
        assert result.bonuses == {"perfect": 10, "noHints": 5, "speed": 5, "firstAttempt": 10}
        assert result.multipliers == {"difficulty": 1.5, "rank": 1.5, "streak": 1.5}
        assert result.coins == 40
        assert result.xp == 80
        assert result.is_perfect

    def test_two_powerups_penalised(self):
        result = compute_reward(60.0, Difficulty.EASY, 1.0, 0, _meta(powerups_used=2), 5, 20, CONFIG)

        assert result.final_score == 50
        assert result.bonuses == {}
        assert result.penalties == {"powerups": 10}
        assert result.coins == 2
        assert result.xp == 10

    def test_clamped_at_zero(self):
        result = compute_reward(0.0, Difficulty.EASY, 1.0, 0, _meta(powerups_used=3), 10, 10, CONFIG)
        assert result.final_score == 0
        assert result.coins == 0
        assert result.xp == 0

    def test_rounds_half_up(self):
        """45.5 + 5 = 50.5 rounds to 51, not to the even 50."""
        result = compute_reward(45.5, Difficulty.EASY, 1.0, 0, _meta(attempt_number=2), 100, 100, CONFIG)
        assert result.final_score == 51

    def test_first_attempt_bonus_needs_high_raw_score(self):
        low = compute_reward(79.0, Difficulty.EASY, 1.0, 0, _meta(), 10, 10, CONFIG)
        high = compute_reward(80.0, Difficulty.EASY, 1.0, 0, _meta(), 10, 10, CONFIG)
        assert "firstAttempt" not in low.bonuses
        assert high.bonuses["firstAttempt"] == 10

    def test_no_first_attempt_bonus_on_retry(self):
        result = compute_reward(90.0, Difficulty.EASY, 1.0, 0, _meta(attempt_number=3), 10, 10, CONFIG)
        assert "firstAttempt" not in result.bonuses

    def test_speed_bonus_requires_estimate(self):
        without = compute_reward(50.0, Difficulty.EASY, 1.0, 0, _meta(time_spent_seconds=1), 10, 10, CONFIG)
        slow = compute_reward(
            50.0, Difficulty.EASY, 1.0, 0, _meta(time_spent_seconds=450, estimated_time_minutes=10), 10, 10, CONFIG
        )
        fast = compute_reward(
            50.0, Difficulty.EASY, 1.0, 0, _meta(time_spent_seconds=449, estimated_time_minutes=10), 10, 10, CONFIG
        )
        assert "speed" not in without.bonuses
        assert "speed" not in slow.bonuses
        assert fast.bonuses["speed"] == 5

    def test_streak_does_not_scale_score(self):
        no_streak = compute_reward(50.0, Difficulty.EASY, 1.0, 0, _meta(), 10, 10, CONFIG)
        long_streak = compute_reward(50.0, Difficulty.EASY, 1.0, 30, _meta(), 10, 10, CONFIG)
        assert no_streak.final_score == long_streak.final_score
        assert long_streak.multipliers["streak"] == 1.5

    def test_medium_difficulty_multiplier(self):
        result = compute_reward(40.0, Difficulty.MEDIUM, 1.0, 0, _meta(powerups_used=1), 10, 10, CONFIG)
        # 40 * 1.25 - 5
        assert result.final_score == 45

    def test_final_score_always_integer_in_range(self):
        rng = random.Random(7)
        for _ in range(300):
            result = compute_reward(
                rng.uniform(0, 100),
                rng.choice(list(Difficulty)),
                rng.choice([1.0, 1.1, 1.25, 1.5, 2.0]),
                rng.randint(0, 40),
                _meta(
                    time_spent_seconds=rng.randint(1, 3600),
                    powerups_used=rng.randint(0, 5),
                    attempt_number=rng.randint(1, 4),
                    estimated_time_minutes=rng.choice([None, 5, 15]),
                ),
                rng.randint(0, 200),
                rng.randint(0, 200),
                CONFIG,
            )
            assert isinstance(result.final_score, int)
            assert 0 <= result.final_score <= 100
            assert result.coins >= 0
            assert result.xp >= 0

    def test_deterministic(self):
        meta = _meta(time_spent_seconds=120, powerups_used=1, estimated_time_minutes=5)
        first = compute_reward(73.3, Difficulty.HARD, 1.25, 4, meta, 30, 60, CONFIG)
        second = compute_reward(73.3, Difficulty.HARD, 1.25, 4, meta, 30, 60, CONFIG)
        assert first == second


class TestStreakMultiplier:
    @pytest.mark.parametrize(("days", "expected"), [(0, 1.0), (1, 1.05), (4, 1.2), (10, 1.5), (25, 1.5), (-3, 1.0)])
    def test_values(self, days, expected):
        assert streak_multiplier(days, BonusRules()) == pytest.approx(expected)
