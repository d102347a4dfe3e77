"""Immutable engine configuration.

Catalogs and tuning constants are bundled into one frozen ``EngineConfig``
handed to every engine component at construction time. Tests build
alternate configs with ``dataclasses.replace``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType

from glit.config import Settings, get_settings
from glit.exercises.types import Difficulty
from glit.missions.templates import MISSION_TEMPLATES, MissionTemplate, MissionType
from glit.powerups.catalog import POWERUP_CATALOG, PowerUpDefinition
from glit.progression.achievement_catalog import ACHIEVEMENT_CATALOG, AchievementDefinition
from glit.progression.rank_catalog import RANK_CATALOG, RankDefinition

DIFFICULTY_MULTIPLIERS: Mapping[Difficulty, float] = MappingProxyType({
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 1.25,
    Difficulty.HARD: 1.5,
})


@dataclass(frozen=True)
class BonusRules:
    """Additive bonuses and penalties applied after multipliers."""

    perfect: int = 10
    no_powerups: int = 5
    speed: int = 5
    speed_ratio: float = 0.75
    first_attempt: int = 10
    first_attempt_min_raw: float = 80.0
    per_powerup_penalty: int = 5
    streak_step: float = 0.05
    streak_cap: float = 0.5


@dataclass(frozen=True)
class EngineConfig:
    ranks: tuple[RankDefinition, ...] = RANK_CATALOG
    mission_templates: tuple[MissionTemplate, ...] = MISSION_TEMPLATES
    achievements: tuple[AchievementDefinition, ...] = ACHIEVEMENT_CATALOG
    powerups: tuple[PowerUpDefinition, ...] = POWERUP_CATALOG
    difficulty_multipliers: Mapping[Difficulty, float] = field(default_factory=lambda: DIFFICULTY_MULTIPLIERS)
    bonuses: BonusRules = field(default_factory=BonusRules)
    default_coin_reward: int = 5
    default_xp_reward: int = 20
    default_passing_score: int = 70
    daily_mission_count: int = 3
    weekly_mission_count: int = 5
    special_mission_days: int = 7
    streak_expiry_hours: int = 24

    def templates_for(self, mission_type: MissionType) -> tuple[MissionTemplate, ...]:
        return tuple(t for t in self.mission_templates if t.mission_type == mission_type)

    def template(self, template_id: str) -> MissionTemplate | None:
        for t in self.mission_templates:
            if t.id == template_id:
                return t
        return None

    def achievement(self, slug: str) -> AchievementDefinition | None:
        for a in self.achievements:
            if a.slug == slug:
                return a
        return None

    def powerup(self, powerup_type: str) -> PowerUpDefinition | None:
        for p in self.powerups:
            if p.type.value == powerup_type:
                return p
        return None


def build_engine_config(settings: Settings) -> EngineConfig:
    """Build the engine config from application settings and the built-in catalogs."""
    return EngineConfig(
        default_coin_reward=settings.default_coin_reward,
        default_xp_reward=settings.default_xp_reward,
        default_passing_score=settings.default_passing_score,
        daily_mission_count=settings.daily_mission_count,
        weekly_mission_count=settings.weekly_mission_count,
        special_mission_days=settings.special_mission_days,
        streak_expiry_hours=settings.streak_expiry_hours,
    )


@lru_cache
def get_engine_config() -> EngineConfig:
    """Get the cached engine config (FastAPI dependency)."""
    return build_engine_config(get_settings())
