"""Mission template catalog.

Three fixed pools (daily, weekly, special). Templates are immutable; the
engine receives them through ``EngineConfig`` so tests can swap catalogs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class MissionType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    SPECIAL = "special"


class MissionStatus(str, Enum):
    ACTIVE = "active"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLAIMED = "claimed"
    EXPIRED = "expired"


class ObjectiveType(str, Enum):
    """Trackable actions that advance mission objectives."""

    EXERCISES_COMPLETED = "exercises_completed"
    ML_COINS_EARNED = "ml_coins_earned"
    MODULES_COMPLETED = "modules_completed"
    POWERUPS_USED = "powerups_used"
    ACHIEVEMENTS_UNLOCKED = "achievements_unlocked"
    PERFECT_SCORES = "perfect_scores"
    STREAK_MAINTAINED = "streak_maintained"
    FRIENDS_HELPED = "friends_helped"
    LOGIN_DAYS = "login_days"
    RANK_UP = "rank_up"
    GUILD_JOINED = "guild_joined"
    EXERCISES_NO_HINTS = "exercises_no_hints"
    WEEKLY_EXERCISES = "weekly_exercises"
    TOTAL_XP_EARNED = "total_xp_earned"


@dataclass(frozen=True)
class ObjectiveTemplate:
    type: ObjectiveType
    target: int


@dataclass(frozen=True)
class MissionTemplate:
    id: str
    mission_type: MissionType
    title: str
    description: str
    objectives: tuple[ObjectiveTemplate, ...]
    coins: int
    xp: int
    difficulty: str = "easy"
    items: tuple[str, ...] = field(default_factory=tuple)


def _obj(objective_type: ObjectiveType, target: int) -> ObjectiveTemplate:
    return ObjectiveTemplate(objective_type, target)


_D = MissionType.DAILY
_W = MissionType.WEEKLY
_S = MissionType.SPECIAL
_O = ObjectiveType

DAILY_TEMPLATES: tuple[MissionTemplate, ...] = (
    MissionTemplate(
        "daily_exercises_5", _D, "Complete 5 exercises", "Complete 5 exercises from any module today",
        (_obj(_O.EXERCISES_COMPLETED, 5),), 50, 100, "easy",
    ),
    MissionTemplate(
        "daily_coins_100", _D, "Earn 100 ML Coins", "Earn 100 ML Coins from any activity",
        (_obj(_O.ML_COINS_EARNED, 100),), 75, 150, "easy",
    ),
    MissionTemplate(
        "daily_module_complete", _D, "Complete a module", "Finish every exercise of one module",
        (_obj(_O.MODULES_COMPLETED, 1),), 150, 300, "medium",
    ),
    MissionTemplate(
        "daily_powerups_3", _D, "Use 3 power-ups", "Use 3 power-ups in exercises today",
        (_obj(_O.POWERUPS_USED, 3),), 60, 120, "easy", ("power_up_hint",),
    ),
    MissionTemplate(
        "daily_perfect_score", _D, "Score a perfect 100", "Get 100% on any exercise",
        (_obj(_O.PERFECT_SCORES, 1),), 100, 200, "medium",
    ),
    MissionTemplate(
        "daily_no_hints", _D, "No hints", "Complete 3 exercises without using hints",
        (_obj(_O.EXERCISES_NO_HINTS, 3),), 80, 160, "medium",
    ),
    MissionTemplate(
        "daily_streak", _D, "Keep your streak", "Complete at least one exercise to keep your streak",
        (_obj(_O.EXERCISES_COMPLETED, 1),), 30, 50, "easy",
    ),
    MissionTemplate(
        "daily_xp_200", _D, "Earn 200 XP", "Collect 200 experience points today",
        (_obj(_O.TOTAL_XP_EARNED, 200),), 70, 140, "easy",
    ),
    MissionTemplate(
        "daily_exercises_10", _D, "Exercise marathon", "Complete 10 exercises in a single day",
        (_obj(_O.EXERCISES_COMPLETED, 10),), 120, 250, "hard",
    ),
    MissionTemplate(
        "daily_friends_help", _D, "Help 2 classmates", "Collaborate with 2 classmates on exercises",
        (_obj(_O.FRIENDS_HELPED, 2),), 90, 180, "medium",
    ),
)

WEEKLY_TEMPLATES: tuple[MissionTemplate, ...] = (
    MissionTemplate(
        "weekly_exercises_20", _W, "Complete 20 exercises", "Complete 20 exercises this week",
        (_obj(_O.WEEKLY_EXERCISES, 20),), 300, 600, "easy",
    ),
    MissionTemplate(
        "weekly_coins_500", _W, "Earn 500 ML Coins", "Collect 500 ML Coins this week",
        (_obj(_O.ML_COINS_EARNED, 500),), 400, 800, "medium",
    ),
    MissionTemplate(
        "weekly_rank_up", _W, "Rank up", "Reach the next Maya rank this week",
        (_obj(_O.RANK_UP, 1),), 500, 1000, "epic",
    ),
    MissionTemplate(
        "weekly_achievements_3", _W, "Unlock 3 achievements", "Unlock 3 achievements this week",
        (_obj(_O.ACHIEVEMENTS_UNLOCKED, 3),), 350, 700, "hard",
    ),
    MissionTemplate(
        "weekly_modules_3", _W, "Complete 3 modules", "Finish 3 whole modules this week",
        (_obj(_O.MODULES_COMPLETED, 3),), 450, 900, "hard",
    ),
    MissionTemplate(
        "weekly_streak_7", _W, "7-day streak", "Stay active 7 days in a row",
        (_obj(_O.STREAK_MAINTAINED, 7),), 600, 1200, "epic",
    ),
    MissionTemplate(
        "weekly_perfect_5", _W, "5 perfect scores", "Get 5 perfect scores this week",
        (_obj(_O.PERFECT_SCORES, 5),), 400, 800, "hard",
    ),
    MissionTemplate(
        "weekly_exercises_50", _W, "Weekly marathon", "Complete 50 exercises this week",
        (_obj(_O.WEEKLY_EXERCISES, 50),), 700, 1400, "epic",
    ),
    MissionTemplate(
        "weekly_xp_1000", _W, "Earn 1000 XP", "Collect 1000 experience points this week",
        (_obj(_O.TOTAL_XP_EARNED, 1000),), 500, 1000, "hard",
    ),
    MissionTemplate(
        "weekly_login_5", _W, "Active 5 days", "Be active on at least 5 different days this week",
        (_obj(_O.LOGIN_DAYS, 5),), 250, 500, "medium",
    ),
)

SPECIAL_TEMPLATES: tuple[MissionTemplate, ...] = (
    MissionTemplate(
        "special_weekend_challenge", _S, "Weekend challenge", "Complete 15 exercises over the weekend",
        (_obj(_O.EXERCISES_COMPLETED, 15),), 500, 1000, "hard",
        ("power_up_vision_lectora", "power_up_hint"),
    ),
    MissionTemplate(
        "special_science_day", _S, "Science Day", "Special event: complete 10 exercises",
        (_obj(_O.EXERCISES_COMPLETED, 10),), 400, 800, "medium",
    ),
    MissionTemplate(
        "special_guild_competition", _S, "Guild competition", "Join a guild and complete 25 exercises",
        (_obj(_O.GUILD_JOINED, 1), _obj(_O.EXERCISES_COMPLETED, 25)), 800, 1600, "epic",
    ),
    MissionTemplate(
        "special_new_year", _S, "New Year mission", "Start the year strong: complete 30 exercises",
        (_obj(_O.EXERCISES_COMPLETED, 30),), 1000, 2000, "epic",
        ("power_up_hint", "power_up_segunda_oportunidad"),
    ),
    MissionTemplate(
        "special_maya_festival", _S, "Maya Festival", "Celebrate Maya culture: 20 exercises and 300 ML Coins",
        (_obj(_O.EXERCISES_COMPLETED, 20), _obj(_O.ML_COINS_EARNED, 300)), 700, 1400, "hard",
    ),
)

MISSION_TEMPLATES: tuple[MissionTemplate, ...] = DAILY_TEMPLATES + WEEKLY_TEMPLATES + SPECIAL_TEMPLATES
