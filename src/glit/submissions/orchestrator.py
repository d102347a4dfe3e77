"""Submission orchestrator: the single entry point per exercise submission.

    guard -> exercise lookup -> score -> reward
          -> [power-up use + attempt row + coin credit + XP] (one transaction)
          -> SubmissionScored event (streak, module, achievements, rank,
             quests, notifications; each isolated)

Only the bracketed step may fail the request. Everything after the commit is
best effort and never rolls back the credit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from glit.config import Settings
from glit.db.base import utcnow
from glit.db.models import ExerciseAttempt
from glit.economy.ledger import Ledger, TransactionType
from glit.engine_config import EngineConfig
from glit.errors import RewardEngineError, SubmissionValidationError
from glit.exercises import scoring
from glit.exercises.answers import validate_answers
from glit.exercises.catalog import ExerciseCatalog, ExerciseInfo
from glit.missions.quest_engine import QuestEngine
from glit.notifications import Notifier
from glit.powerups.service import PowerUpService
from glit.progression.rank_engine import RankEngine
from glit.progression.streak_service import StreakTracker
from glit.submissions.events import EventBus, SideEffects, SubmissionScored
from glit.submissions.guard import SubmissionGuard
from glit.submissions.handlers import SubmissionHandlers
from glit.submissions.reward_calculator import RewardResult, SubmissionMetadata, compute_reward

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Submission:
    user_id: str
    exercise_id: str
    session_id: str
    answers: dict[str, Any]
    started_at: datetime
    time_spent_seconds: int | None = None
    hints_used: int = 0
    powerups_used: list[str] = field(default_factory=list)
    tenant_id: str | None = None


@dataclass(frozen=True)
class SubmissionOutcome:
    attempt_id: int
    exercise_id: str
    raw_score: float
    reward: RewardResult
    is_passing: bool
    pending_review: bool
    feedback: str
    attempt_number: int
    effects: SideEffects

    @property
    def score(self) -> int:
        return self.reward.final_score

    @property
    def is_perfect(self) -> bool:
        return not self.pending_review and self.reward.is_perfect

    def to_response(self) -> dict[str, Any]:
        rank_up = self.effects.rank_up
        return {
            "attemptId": self.attempt_id,
            "score": self.score,
            "rawScore": self.raw_score,
            "isPerfect": self.is_perfect,
            "isPassing": self.is_passing,
            "pendingReview": self.pending_review,
            "attemptNumber": self.attempt_number,
            "rewards": {
                "coins": self.reward.coins,
                "xp": self.reward.xp,
                "bonuses": self.reward.bonuses,
                "penalties": self.reward.penalties,
                "multipliers": self.reward.multipliers,
            },
            "feedback": self.feedback,
            "achievements": [
                {
                    "id": a.slug,
                    "name": a.name,
                    "description": a.description,
                    "rarity": a.rarity,
                    "mlCoins": a.coins,
                    "xp": a.xp,
                }
                for a in self.effects.achievements
            ],
            "rankUp": (
                {
                    "newRank": rank_up.new_rank,
                    "previousRank": rank_up.previous_rank,
                    "bonus": rank_up.coins_bonus,
                    "multiplier": rank_up.multiplier,
                }
                if rank_up is not None
                else None
            ),
            "completedMissions": [
                {"id": m.id, "title": m.title, "type": m.mission_type} for m in self.effects.completed_missions
            ],
            "streak": self.effects.streak.current_streak if self.effects.streak else None,
        }


class SubmissionOrchestrator:
    """Sequences validation, scoring, the atomic credit and the side-effect event."""

    def __init__(
        self,
        db: AsyncSession,
        redis: object | None,
        settings: Settings,
        config: EngineConfig,
        catalog: ExerciseCatalog | None = None,
        notifier: Notifier | None = None,
        quests: QuestEngine | None = None,
    ) -> None:
        self.db = db
        self.settings = settings
        self.config = config
        self.catalog = catalog or ExerciseCatalog(db, config)
        self.guard = SubmissionGuard(db, redis, settings)
        self.ledger = Ledger(db)
        self.powerups = PowerUpService(db, config)
        self.ranks = RankEngine(db, config)
        self.streaks = StreakTracker(db, config.streak_expiry_hours)
        handlers = SubmissionHandlers(db, config, self.catalog, notifier or Notifier(redis), quests)
        self.bus = handlers.register(EventBus(db))

    async def handle(self, submission: Submission, now: datetime | None = None) -> SubmissionOutcome:
        if now is None:
            now = utcnow()

        elapsed = await self.guard.check(
            submission.user_id, submission.exercise_id, submission.session_id, submission.started_at, now
        )
        exercise = await self.catalog.get_exercise(submission.exercise_id, submission.user_id)
        validate_answers(exercise.exercise_type, submission.answers)

        outcome = scoring.score(exercise.exercise_type, exercise.content, submission.answers)
        attempt_number = await self._attempt_number(submission.user_id, exercise.id)
        time_spent = submission.time_spent_seconds if submission.time_spent_seconds is not None else int(elapsed)
        reward = await self._compute_reward(submission, exercise, outcome, attempt_number, time_spent, now)

        pending = outcome.requires_manual_review
        is_passing = not pending and reward.final_score >= exercise.passing_score
        attempt_id = await self._commit_credit(
            submission, exercise, outcome.raw_score, reward, pending, is_passing, attempt_number, time_spent, now
        )

        event = SubmissionScored(
            user_id=submission.user_id,
            exercise_id=exercise.id,
            module_id=exercise.module_id,
            exercise_type=exercise.exercise_type.value,
            attempt_id=attempt_id,
            score=reward.final_score,
            is_passing=is_passing,
            is_perfect=not pending and reward.is_perfect,
            pending_review=pending,
            powerups_used=len(submission.powerups_used),
            coins=reward.coins,
            xp=reward.xp,
            occurred_at=now,
        )
        effects = await self.bus.publish(event)

        return SubmissionOutcome(
            attempt_id=attempt_id,
            exercise_id=exercise.id,
            raw_score=outcome.raw_score,
            reward=reward,
            is_passing=is_passing,
            pending_review=pending,
            feedback=(
                "Submitted for teacher review." if pending else scoring.feedback_for(reward.final_score)
            ),
            attempt_number=attempt_number,
            effects=effects,
        )

    async def _attempt_number(self, user_id: str, exercise_id: str) -> int:
        previous = await self.db.scalar(
            select(func.count(ExerciseAttempt.id)).where(
                ExerciseAttempt.user_id == user_id, ExerciseAttempt.exercise_id == exercise_id
            )
        )
        return int(previous or 0) + 1

    async def _compute_reward(
        self,
        submission: Submission,
        exercise: ExerciseInfo,
        outcome: scoring.ScoreOutcome,
        attempt_number: int,
        time_spent: int,
        now: datetime,
    ) -> RewardResult:
        rank_multiplier = await self.ranks.get_multiplier(submission.user_id)
        streak = await self.streaks.get_streak_info(submission.user_id, now)
        meta = SubmissionMetadata(
            time_spent_seconds=time_spent,
            powerups_used=len(submission.powerups_used),
            hints_used=submission.hints_used,
            attempt_number=attempt_number,
            estimated_time_minutes=exercise.estimated_time_minutes,
        )
        reward = compute_reward(
            outcome.raw_score,
            exercise.difficulty,
            rank_multiplier,
            streak.current_streak,
            meta,
            exercise.coin_reward,
            exercise.xp_reward,
            self.config,
        )
        if outcome.requires_manual_review:
            # Manual grading decides the score later; nothing is auto-credited
            return RewardResult(
                raw_score=0.0,
                final_score=0,
                multipliers=reward.multipliers,
                bonuses={},
                penalties={},
                coins=0,
                xp=0,
            )
        return reward

    async def _commit_credit(
        self,
        submission: Submission,
        exercise: ExerciseInfo,
        raw_score: float,
        reward: RewardResult,
        pending: bool,
        is_passing: bool,
        attempt_number: int,
        time_spent: int,
        now: datetime,
    ) -> int:
        """Consume power-ups, write the attempt, credit coins and award XP in one transaction."""
        try:
            await self.ledger.ensure_state(submission.user_id, submission.tenant_id)
            if submission.powerups_used:
                await self.powerups.consume_for_submission(
                    submission.user_id, submission.powerups_used, exercise.id
                )
            attempt = ExerciseAttempt(
                user_id=submission.user_id,
                exercise_id=exercise.id,
                module_id=exercise.module_id,
                exercise_type=exercise.exercise_type.value,
                session_id=submission.session_id,
                submitted_answers=submission.answers,
                raw_score=raw_score,
                score=reward.final_score,
                is_passing=is_passing,
                is_perfect=not pending and reward.is_perfect,
                pending_review=pending,
                time_spent_seconds=time_spent,
                hints_used=submission.hints_used,
                powerups_used=list(submission.powerups_used),
                powerups_count=len(submission.powerups_used),
                attempt_number=attempt_number,
                ml_coins_earned=reward.coins,
                xp_earned=reward.xp,
                started_at=submission.started_at,
                submitted_at=now,
            )
            self.db.add(attempt)
            await self.db.flush()

            if reward.coins > 0:
                await self.ledger.credit(
                    submission.user_id,
                    reward.coins,
                    f"Exercise completed: {exercise.id} ({reward.final_score}%)",
                    TransactionType.EARNED_EXERCISE,
                    multiplier=reward.multipliers["difficulty"] * reward.multipliers["rank"],
                    reference_id=str(attempt.id),
                )
            if reward.xp > 0:
                await self.ledger.award_xp(submission.user_id, reward.xp)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            # Concurrent replay of the same session lost the unique-index race
            raise SubmissionValidationError("Submission already processed", field="sessionId") from None
        except RewardEngineError:
            await self.db.rollback()
            raise
        except Exception:
            await self.db.rollback()
            logger.exception("Core credit failed for %s on %s", submission.user_id, exercise.id)
            raise

        logger.info(
            "Submission %s by %s scored %d (+%d coins, +%d xp)",
            attempt.id, submission.user_id, reward.final_score, reward.coins, reward.xp,
        )
        return attempt.id
