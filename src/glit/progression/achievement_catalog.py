"""Achievement definitions.

Each achievement unlocks once a named statistic reaches a threshold.
Coin rewards follow rarity; XP rewards are set per achievement.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StatCounter(str, Enum):
    """Statistics an achievement condition can be evaluated against."""

    EXERCISES_COMPLETED = "exercises_completed"
    PERFECT_SCORES = "perfect_scores"
    MODULES_COMPLETED = "modules_completed"
    TOTAL_XP = "total_xp"
    COINS_EARNED = "coins_earned"
    CURRENT_STREAK = "current_streak"
    ACHIEVEMENTS_UNLOCKED = "achievements_unlocked"
    NO_POWERUP_EXERCISES = "no_powerup_exercises"
    UNIQUE_EXERCISE_TYPES = "unique_exercise_types"
    RANK_LEVEL = "rank_level"


class Rarity(str, Enum):
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


RARITY_COIN_REWARDS: dict[Rarity, int] = {
    Rarity.COMMON: 25,
    Rarity.RARE: 50,
    Rarity.EPIC: 100,
    Rarity.LEGENDARY: 200,
}


@dataclass(frozen=True)
class AchievementDefinition:
    slug: str
    name: str
    description: str
    category: str
    rarity: Rarity
    counter: StatCounter
    threshold: int
    xp_reward: int

    @property
    def coin_reward(self) -> int:
        return RARITY_COIN_REWARDS[self.rarity]


ACHIEVEMENT_CATALOG: tuple[AchievementDefinition, ...] = (
    # --- Progress ---
    AchievementDefinition(
        "first_steps", "First Steps", "Complete your first exercise",
        "progress", Rarity.COMMON, StatCounter.EXERCISES_COMPLETED, 1, 10,
    ),
    AchievementDefinition(
        "dedicated_reader", "Dedicated Reader", "Complete 10 exercises",
        "progress", Rarity.COMMON, StatCounter.EXERCISES_COMPLETED, 10, 50,
    ),
    AchievementDefinition(
        "tireless_reader", "Tireless Reader", "Complete 50 exercises",
        "progress", Rarity.RARE, StatCounter.EXERCISES_COMPLETED, 50, 150,
    ),
    AchievementDefinition(
        "first_module", "Module Conqueror", "Complete your first module",
        "progress", Rarity.COMMON, StatCounter.MODULES_COMPLETED, 1, 50,
    ),
    AchievementDefinition(
        "all_modules", "Master Reader", "Complete all five modules",
        "progress", Rarity.LEGENDARY, StatCounter.MODULES_COMPLETED, 5, 500,
    ),
    AchievementDefinition(
        "xp_500", "Rising Scholar", "Earn 500 XP",
        "progress", Rarity.COMMON, StatCounter.TOTAL_XP, 500, 50,
    ),
    # --- Mastery ---
    AchievementDefinition(
        "perfectionist", "Perfectionist", "Score 100 on 5 exercises",
        "mastery", Rarity.RARE, StatCounter.PERFECT_SCORES, 5, 100,
    ),
    AchievementDefinition(
        "precision_master", "Precision Master", "Score 100 on 25 exercises",
        "mastery", Rarity.EPIC, StatCounter.PERFECT_SCORES, 25, 300,
    ),
    AchievementDefinition(
        "independent_thinker", "Independent Thinker", "Complete 20 exercises without power-ups",
        "mastery", Rarity.RARE, StatCounter.NO_POWERUP_EXERCISES, 20, 100,
    ),
    AchievementDefinition(
        "explorer", "Explorer", "Complete 10 different exercise types",
        "mastery", Rarity.RARE, StatCounter.UNIQUE_EXERCISE_TYPES, 10, 100,
    ),
    # --- Streaks ---
    AchievementDefinition(
        "streak_7", "Weekly Habit", "Keep a 7-day streak",
        "streak", Rarity.RARE, StatCounter.CURRENT_STREAK, 7, 100,
    ),
    AchievementDefinition(
        "streak_30", "Unbreakable", "Keep a 30-day streak",
        "streak", Rarity.EPIC, StatCounter.CURRENT_STREAK, 30, 300,
    ),
    # --- Ranks ---
    AchievementDefinition(
        "rank_batab", "Batab", "Reach the Batab rank",
        "rank", Rarity.COMMON, StatCounter.RANK_LEVEL, 1, 50,
    ),
    AchievementDefinition(
        "rank_holcatte", "Holcatte", "Reach the Holcatte rank",
        "rank", Rarity.RARE, StatCounter.RANK_LEVEL, 2, 100,
    ),
    AchievementDefinition(
        "rank_guerrero", "Guerrero", "Reach the Guerrero rank",
        "rank", Rarity.EPIC, StatCounter.RANK_LEVEL, 3, 200,
    ),
    AchievementDefinition(
        "rank_mercenario", "Mercenario", "Reach the Mercenario rank",
        "rank", Rarity.LEGENDARY, StatCounter.RANK_LEVEL, 4, 400,
    ),
    # --- Collection ---
    AchievementDefinition(
        "collector", "Collector", "Unlock 10 achievements",
        "collection", Rarity.EPIC, StatCounter.ACHIEVEMENTS_UNLOCKED, 10, 200,
    ),
    AchievementDefinition(
        "millionaire", "Millionaire", "Earn 10,000 ML Coins in total",
        "collection", Rarity.LEGENDARY, StatCounter.COINS_EARNED, 10_000, 500,
    ),
)
