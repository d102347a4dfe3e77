"""Request/response models for exercise submission."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import Field, field_validator

from glit.exercises.types import PowerUp
from glit.schemas import CamelModel


class SubmitRequest(CamelModel):
    session_id: str = Field(min_length=1, max_length=64)
    answers: dict[str, Any]
    started_at: datetime
    time_spent_seconds: int | None = Field(default=None, ge=0)
    hints_used: int = Field(default=0, ge=0)
    powerups_used: list[PowerUp] = []

    @field_validator("started_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class RewardsOut(CamelModel):
    coins: int
    xp: int
    bonuses: dict[str, int] = {}
    penalties: dict[str, int] = {}
    multipliers: dict[str, float] = {}


class UnlockedAchievementOut(CamelModel):
    id: str
    name: str
    description: str
    rarity: str
    ml_coins: int
    xp: int


class RankUpOut(CamelModel):
    new_rank: str
    previous_rank: str
    bonus: int
    multiplier: float


class CompletedMissionOut(CamelModel):
    id: str
    title: str
    type: str


class SubmitResponse(CamelModel):
    attempt_id: int
    score: int
    raw_score: float
    is_perfect: bool
    is_passing: bool
    pending_review: bool
    attempt_number: int
    rewards: RewardsOut
    feedback: str
    achievements: list[UnlockedAchievementOut] = []
    rank_up: RankUpOut | None = None
    completed_missions: list[CompletedMissionOut] = []
    streak: int | None = None
