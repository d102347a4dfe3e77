"""Unit tests for rank catalog navigation and promotion requirements."""

from __future__ import annotations

import dataclasses

import pytest

from glit.progression.rank_catalog import RANK_CATALOG, Rank, find_rank, next_rank, rank_index
from glit.progression.rank_engine import progress_percentage, unmet_requirements
from glit.progression.stats import UserStats


class TestCatalog:
    def test_order(self):
        assert [r.rank for r in RANK_CATALOG] == [
            Rank.NACOM, Rank.BATAB, Rank.HOLCATTE, Rank.GUERRERO, Rank.MERCENARIO,
        ]

    def test_multipliers_increase(self):
        multipliers = [r.multiplier for r in RANK_CATALOG]
        assert multipliers == sorted(multipliers)
        assert multipliers[0] == 1.0

    def test_next_rank_steps_one_at_a_time(self):
        assert next_rank(RANK_CATALOG, "nacom").rank == Rank.BATAB
        assert next_rank(RANK_CATALOG, "guerrero").rank == Rank.MERCENARIO
        assert next_rank(RANK_CATALOG, "mercenario") is None

    def test_unknown_rank(self):
        with pytest.raises(ValueError, match="Unknown rank"):
            find_rank(RANK_CATALOG, "emperor")
        with pytest.raises(ValueError, match="Unknown rank"):
            rank_index(RANK_CATALOG, "emperor")


class TestUnmetRequirements:
    def test_only_achievements_missing(self):
        """XP 600 and one module meet every threshold except achievements."""
        holcatte = dataclasses.replace(
            find_rank(RANK_CATALOG, "holcatte"),
            xp_required=500,
            modules_required=1,
            coins_earned_required=100,
            achievements_required=3,
            min_average_score=80.0,
        )
        stats = UserStats(total_xp=600, modules_completed=1, coins_earned=250, achievements_unlocked=1, average_score=86.0)
        assert unmet_requirements(stats, holcatte) == ["Achievements: 1/3 (need 2 more)"]

    def test_all_met(self):
        batab = find_rank(RANK_CATALOG, "batab")
        stats = UserStats(total_xp=500, modules_completed=1, coins_earned=200, average_score=75.0)
        assert unmet_requirements(stats, batab) == []
        assert progress_percentage(stats, batab) == 100.0

    def test_average_score_shortfall(self):
        batab = find_rank(RANK_CATALOG, "batab")
        stats = UserStats(total_xp=500, modules_completed=1, coins_earned=200, average_score=72.5)
        assert unmet_requirements(stats, batab) == ["Average score: 72.5/75 (need 2.5 more)"]

    def test_progress_is_mean_of_capped_ratios(self):
        batab = find_rank(RANK_CATALOG, "batab")
        # xp 0.5, modules 0, coins 1.0 (capped), achievements 1.0 (none required), score 0.8
        stats = UserStats(total_xp=250, modules_completed=0, coins_earned=900, average_score=60.0)
        assert progress_percentage(stats, batab) == 66.0
