"""In-process event bus for post-credit side effects.

The orchestrator publishes a ``SubmissionScored`` event only after the core
credit transaction has committed. Handlers run sequentially in registration
order; each one commits its own work on success. A failing handler is rolled
back and logged, and the next handler still runs, so a side-effect failure
can never undo or fail the credit that triggered it.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

if TYPE_CHECKING:
    from glit.progression.achievement_service import UnlockedAchievement
    from glit.progression.rank_engine import PromotionResult
    from glit.progression.streak_service import ActivityResult

log = structlog.get_logger()


@dataclass(frozen=True)
class SubmissionScored:
    user_id: str
    exercise_id: str
    module_id: str | None
    exercise_type: str
    attempt_id: int
    score: int
    is_passing: bool
    is_perfect: bool
    pending_review: bool
    powerups_used: int
    coins: int
    xp: int
    occurred_at: datetime


@dataclass(frozen=True)
class CompletedMission:
    id: str
    template_id: str
    title: str
    mission_type: str
    coins: int
    xp: int


@dataclass
class SideEffects:
    """Results collected from handlers, surfaced in the submission response."""

    streak: ActivityResult | None = None
    module_completed: str | None = None
    achievements: list[UnlockedAchievement] = field(default_factory=list)
    rank_up: PromotionResult | None = None
    completed_missions: list[CompletedMission] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


Handler = Callable[[SubmissionScored, SideEffects], Awaitable[None]]


class EventBus:
    """Sequential, failure-isolated dispatch of submission events."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._handlers: list[tuple[str, Handler]] = []

    def subscribe(self, name: str, handler: Handler) -> None:
        self._handlers.append((name, handler))

    @property
    def handler_names(self) -> list[str]:
        return [name for name, _ in self._handlers]

    async def publish(self, event: SubmissionScored) -> SideEffects:
        effects = SideEffects()
        for name, handler in self._handlers:
            try:
                await handler(event, effects)
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                effects.failed.append(name)
                log.error(
                    "event_handler_failed",
                    handler=name,
                    user_id=event.user_id,
                    exercise_id=event.exercise_id,
                    attempt_id=event.attempt_id,
                    error=str(e),
                    exc_info=e,
                )
        return effects
