"""Response models for ranks, achievements and streaks."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from glit.schemas import CamelModel

# --- Ranks ---


class RankDefinitionOut(CamelModel):
    rank: str
    title: str
    multiplier: float
    xp_required: int
    modules_required: int
    coins_earned_required: int
    achievements_required: int
    min_average_score: float
    signing_bonus: int


class RankCatalogResponse(CamelModel):
    ranks: list[RankDefinitionOut]


class UserRankResponse(CamelModel):
    user_id: str
    rank: str
    title: str
    multiplier: float
    achieved_at: datetime
    next_rank: str | None = None


class RankHistoryEntry(CamelModel):
    rank: str
    previous_rank: str | None = None
    achieved_at: datetime
    ml_coins_bonus: int
    multiplier: float
    is_current: bool


class RankHistoryResponse(CamelModel):
    user_id: str
    history: list[RankHistoryEntry]


class PromotionCheckResponse(CamelModel):
    can_promote: bool
    current_rank: str
    next_rank: str | None = None
    missing_requirements: list[str] = []
    progress_percentage: float


class PromotionResponse(CamelModel):
    new_rank: str
    previous_rank: str
    coins_bonus: int
    multiplier: float


# --- Achievements ---


class AchievementOut(CamelModel):
    id: str
    name: str
    description: str
    category: str
    rarity: str
    condition: str
    threshold: int
    ml_coins_reward: int
    xp_reward: int


class AchievementCatalogResponse(CamelModel):
    achievements: list[AchievementOut]


class UserAchievementOut(CamelModel):
    achievement_id: str
    unlocked_at: datetime
    progress: float
    metadata: dict[str, Any] = {}


class UserAchievementsResponse(CamelModel):
    user_id: str
    unlocked: list[UserAchievementOut]
    total_unlocked: int
    total_available: int


class UnlockRequest(CamelModel):
    user_id: str = Field(min_length=1, max_length=64)
    achievement_id: str = Field(min_length=1, max_length=64)


class UnlockResponse(CamelModel):
    id: str
    name: str
    rarity: str
    ml_coins: int
    xp: int


# --- Streaks ---


class StreakResponse(CamelModel):
    user_id: str
    current_streak: int
    best_streak: int
    last_activity_at: datetime | None = None
    is_active: bool
