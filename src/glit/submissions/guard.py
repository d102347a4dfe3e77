"""Pre-scoring submission checks: rate limit, replay and elapsed-time window.

All checks run before any scoring work. The per-exercise rate limit uses a
Redis ``SET NX EX`` key. When Redis cannot be reached the limit is skipped
with a warning; the database-level replay check still applies.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from glit.config import Settings
from glit.db.models import ExerciseAttempt
from glit.errors import (
    RateLimitedError,
    RewardEngineError,
    SessionExpiredError,
    SubmissionTooFastError,
    SubmissionValidationError,
)
from glit.redis_client import UNAVAILABLE_ERRORS, submission_window_key

log = structlog.get_logger()


def check_elapsed(started_at: datetime, now: datetime, min_seconds: int, max_hours: int) -> float:
    """Return elapsed seconds or raise if outside the accepted window."""
    elapsed = (now - started_at).total_seconds()
    if elapsed < 0:
        raise SubmissionValidationError("startedAt is in the future", field="startedAt")
    if elapsed < min_seconds:
        raise SubmissionTooFastError(f"Submission took {elapsed:.2f}s, minimum is {min_seconds}s")
    if elapsed > timedelta(hours=max_hours).total_seconds():
        raise SessionExpiredError(f"Exercise session older than {max_hours} hours")
    return elapsed


class SubmissionGuard:
    """Rejects replays, bursts and implausible timings before scoring."""

    def __init__(self, db: AsyncSession, redis: object | None, settings: Settings) -> None:
        self.db = db
        self.redis = redis
        self.settings = settings

    async def check(
        self,
        user_id: str,
        exercise_id: str,
        session_id: str,
        started_at: datetime,
        now: datetime,
    ) -> float:
        """Run every check in order. Returns the elapsed seconds."""
        try:
            await self.enforce_rate_limit(user_id, exercise_id)
            await self.reject_replay(user_id, session_id)
            return check_elapsed(
                started_at, now, self.settings.min_submission_seconds, self.settings.max_submission_hours
            )
        except RewardEngineError as e:
            log.warning(
                "submission_rejected",
                user_id=user_id,
                exercise_id=exercise_id,
                session_id=session_id,
                code=e.code,
                reason=e.message,
            )
            raise

    async def enforce_rate_limit(self, user_id: str, exercise_id: str) -> None:
        """One submission per user per exercise per window."""
        if self.redis is None:
            return
        window = self.settings.submission_rate_limit_seconds
        key = submission_window_key(user_id, exercise_id)
        try:
            acquired = await self.redis.set(key, "1", nx=True, ex=window)  # type: ignore[attr-defined]
            if acquired:
                return
            ttl = await self.redis.ttl(key)  # type: ignore[attr-defined]
        except UNAVAILABLE_ERRORS as exc:
            log.warning("rate_limit_skipped", user_id=user_id, exercise_id=exercise_id, error=str(exc))
            return
        raise RateLimitedError(retry_after=ttl if ttl and ttl > 0 else window)

    async def reject_replay(self, user_id: str, session_id: str) -> None:
        """A session id may be submitted once; the unique index backs this up."""
        existing = await self.db.scalar(
            select(ExerciseAttempt.id).where(
                ExerciseAttempt.user_id == user_id,
                ExerciseAttempt.session_id == session_id,
            )
        )
        if existing is not None:
            raise SubmissionValidationError("Submission already processed", field="sessionId")
