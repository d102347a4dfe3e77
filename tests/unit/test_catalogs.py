"""Unit tests for the mission template, achievement catalogs and mission periods."""

from __future__ import annotations

from datetime import date, datetime, timezone

from glit.engine_config import EngineConfig
from glit.missions.periods import get_day_boundaries, get_monday, get_period_boundaries, get_week_boundaries
from glit.missions.templates import MISSION_TEMPLATES, MissionType
from glit.progression.achievement_catalog import ACHIEVEMENT_CATALOG, RARITY_COIN_REWARDS, Rarity


class TestMissionTemplates:
    def test_pool_sizes(self):
        config = EngineConfig()
        assert len(config.templates_for(MissionType.DAILY)) == 10
        assert len(config.templates_for(MissionType.WEEKLY)) == 10
        assert len(config.templates_for(MissionType.SPECIAL)) == 5

    def test_ids_unique(self):
        ids = [t.id for t in MISSION_TEMPLATES]
        assert len(ids) == len(set(ids))

    def test_every_template_has_positive_targets(self):
        for template in MISSION_TEMPLATES:
            assert template.objectives, template.id
            assert all(o.target > 0 for o in template.objectives), template.id

    def test_pool_covers_requested_counts(self):
        config = EngineConfig()
        assert len(config.templates_for(MissionType.DAILY)) >= config.daily_mission_count
        assert len(config.templates_for(MissionType.WEEKLY)) >= config.weekly_mission_count

    def test_template_lookup(self):
        config = EngineConfig()
        assert config.template("special_science_day").mission_type == MissionType.SPECIAL
        assert config.template("nope") is None


class TestAchievementCatalog:
    def test_slugs_unique(self):
        slugs = [a.slug for a in ACHIEVEMENT_CATALOG]
        assert len(slugs) == len(set(slugs))

    def test_coin_reward_follows_rarity(self):
        assert RARITY_COIN_REWARDS == {Rarity.COMMON: 25, Rarity.RARE: 50, Rarity.EPIC: 100, Rarity.LEGENDARY: 200}
        for a in ACHIEVEMENT_CATALOG:
            assert a.coin_reward == RARITY_COIN_REWARDS[a.rarity]

    def test_first_steps(self):
        first = EngineConfig().achievement("first_steps")
        assert first.threshold == 1
        assert first.coin_reward == 25
        assert first.xp_reward == 10


class TestPeriods:
    def test_monday(self):
        assert get_monday(date(2026, 3, 8)) == date(2026, 3, 2)  # Sunday
        assert get_monday(date(2026, 3, 2)) == date(2026, 3, 2)

    def test_day_boundaries(self):
        start, end = get_day_boundaries(datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc))
        assert start == datetime(2026, 3, 4, 0, 0, tzinfo=timezone.utc)
        assert end.date() == date(2026, 3, 4)
        assert (end.hour, end.minute, end.second) == (23, 59, 59)

    def test_week_boundaries(self):
        start, end = get_week_boundaries(datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc))
        assert start == datetime(2026, 3, 2, 0, 0, tzinfo=timezone.utc)
        assert end.date() == date(2026, 3, 8)

    def test_special_period_length(self):
        now = datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc)
        start, end = get_period_boundaries(MissionType.SPECIAL, now, 7)
        assert start == now
        assert (end - start).days == 7
