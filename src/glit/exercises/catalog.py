"""Read-only view of the content service's exercises.

The engine only needs the fields that drive scoring and payouts. Missing
reward values fall back to the configured defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from glit.db.models import Exercise
from glit.engine_config import EngineConfig
from glit.errors import ExerciseNotFoundError
from glit.exercises.types import Difficulty, ExerciseType


@dataclass(frozen=True)
class ExerciseInfo:
    id: str
    module_id: str | None
    exercise_type: ExerciseType
    difficulty: Difficulty
    coin_reward: int
    xp_reward: int
    passing_score: int
    estimated_time_minutes: int | None
    content: dict[str, Any]


class ExerciseCatalog:
    """Exercise lookups backed by the shared ``exercises`` table."""

    def __init__(self, db: AsyncSession, config: EngineConfig) -> None:
        self.db = db
        self.config = config

    async def get_exercise(self, exercise_id: str, user_id: str | None = None) -> ExerciseInfo:  # noqa: ARG002
        """Fetch an active exercise. Raises ExerciseNotFoundError if missing or inactive."""
        exercise = await self.db.get(Exercise, exercise_id)
        if exercise is None or not exercise.is_active:
            raise ExerciseNotFoundError(f"Exercise {exercise_id} not found")

        try:
            exercise_type = ExerciseType(exercise.exercise_type)
        except ValueError:
            raise ExerciseNotFoundError(
                f"Exercise {exercise_id} has unsupported type {exercise.exercise_type}"
            ) from None

        return ExerciseInfo(
            id=exercise.id,
            module_id=exercise.module_id,
            exercise_type=exercise_type,
            difficulty=Difficulty.parse(exercise.difficulty),
            coin_reward=exercise.ml_coins_reward if exercise.ml_coins_reward is not None else self.config.default_coin_reward,
            xp_reward=exercise.xp_reward if exercise.xp_reward is not None else self.config.default_xp_reward,
            passing_score=(
                exercise.passing_score if exercise.passing_score is not None else self.config.default_passing_score
            ),
            estimated_time_minutes=exercise.estimated_time_minutes,
            content=dict(exercise.content or {}),
        )

    async def count_module_exercises(self, module_id: str) -> int:
        return int(
            await self.db.scalar(
                select(func.count(Exercise.id)).where(Exercise.module_id == module_id, Exercise.is_active.is_(True))
            )
            or 0
        )
