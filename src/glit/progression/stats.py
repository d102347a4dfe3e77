"""Aggregate per-user statistics used by rank promotion and achievements."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from glit.db.base import utcnow
from glit.db.models import (
    ExerciseAttempt,
    ModuleCompletion,
    UserAchievement,
    UserEconomyState,
    UserRank,
)
from glit.progression.achievement_catalog import StatCounter
from glit.progression.rank_catalog import RankDefinition, rank_index
from glit.progression.streak_service import is_streak_expired


@dataclass(frozen=True)
class UserStats:
    exercises_completed: int = 0
    perfect_scores: int = 0
    modules_completed: int = 0
    total_xp: int = 0
    coins_earned: int = 0
    current_streak: int = 0
    achievements_unlocked: int = 0
    no_powerup_exercises: int = 0
    unique_exercise_types: int = 0
    rank_level: int = 0
    average_score: float = 0.0

    def counter(self, counter: StatCounter) -> int:
        return int(getattr(self, counter.value))


async def load_user_stats(
    db: AsyncSession,
    user_id: str,
    ranks: tuple[RankDefinition, ...],
    streak_expiry_hours: int = 24,
    now: datetime | None = None,
) -> UserStats:
    """Aggregate the user's progress snapshot from the engine's tables."""
    if now is None:
        now = utcnow()

    passing = (ExerciseAttempt.user_id == user_id, ExerciseAttempt.is_passing.is_(True))
    row = (
        await db.execute(
            select(
                func.count(ExerciseAttempt.id),
                func.count(func.distinct(ExerciseAttempt.exercise_type)),
            ).where(*passing)
        )
    ).one()
    exercises_completed, unique_types = int(row[0] or 0), int(row[1] or 0)

    perfect_scores = await db.scalar(
        select(func.count(ExerciseAttempt.id)).where(
            ExerciseAttempt.user_id == user_id, ExerciseAttempt.is_perfect.is_(True)
        )
    )
    no_powerups = await db.scalar(
        select(func.count(ExerciseAttempt.id)).where(*passing, ExerciseAttempt.powerups_count == 0)
    )
    average_score = await db.scalar(
        select(func.avg(ExerciseAttempt.score)).where(
            ExerciseAttempt.user_id == user_id, ExerciseAttempt.pending_review.is_(False)
        )
    )
    modules_completed = await db.scalar(
        select(func.count(ModuleCompletion.id)).where(ModuleCompletion.user_id == user_id)
    )
    achievements = await db.scalar(
        select(func.count(UserAchievement.id)).where(UserAchievement.user_id == user_id)
    )
    current_rank = await db.scalar(
        select(UserRank.rank).where(UserRank.user_id == user_id, UserRank.is_current.is_(True))
    )
    state = await db.get(UserEconomyState, user_id, populate_existing=True)

    streak = 0
    if state is not None and not is_streak_expired(state.last_activity_at, now, streak_expiry_hours):
        streak = state.current_streak

    return UserStats(
        exercises_completed=exercises_completed,
        perfect_scores=int(perfect_scores or 0),
        modules_completed=int(modules_completed or 0),
        total_xp=state.total_xp if state else 0,
        coins_earned=state.earned_total if state else 0,
        current_streak=streak,
        achievements_unlocked=int(achievements or 0),
        no_powerup_exercises=int(no_powerups or 0),
        unique_exercise_types=unique_types,
        rank_level=rank_index(ranks, current_rank) if current_rank else 0,
        average_score=round(float(average_score or 0.0), 2),
    )
