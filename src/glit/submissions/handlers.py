"""Side-effect handlers subscribed to ``SubmissionScored``.

Registered in order: streak, module completion, achievements, rank, quests,
notifications. Later handlers read what earlier ones put on ``SideEffects``;
each handler writes its results there only once its own work succeeded.

Submissions waiting for teacher review count as activity only: the streak
and activity-based mission objectives move, achievements and rank are left
for the graded submission.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from glit.db.base import insert_ignore
from glit.db.models import Exercise, ExerciseAttempt, ModuleCompletion
from glit.engine_config import EngineConfig
from glit.exercises.catalog import ExerciseCatalog
from glit.missions.quest_engine import QuestEngine
from glit.missions.templates import MissionType, ObjectiveType
from glit.notifications import NotificationEvent, Notifier
from glit.progression.achievement_service import AchievementEvaluator
from glit.progression.rank_engine import RankEngine
from glit.progression.streak_service import StreakTracker
from glit.submissions.events import CompletedMission, EventBus, SideEffects, SubmissionScored

logger = logging.getLogger(__name__)


def quest_actions(event: SubmissionScored, effects: SideEffects) -> list[tuple[ObjectiveType, int]]:
    """Objective increments implied by one scored submission and its side effects."""
    actions: list[tuple[ObjectiveType, int]] = []
    completed = event.is_passing and not event.pending_review
    if completed:
        actions.append((ObjectiveType.EXERCISES_COMPLETED, 1))
        actions.append((ObjectiveType.WEEKLY_EXERCISES, 1))
        if event.powerups_used == 0:
            actions.append((ObjectiveType.EXERCISES_NO_HINTS, 1))
    if event.is_perfect:
        actions.append((ObjectiveType.PERFECT_SCORES, 1))
    if event.powerups_used > 0:
        actions.append((ObjectiveType.POWERUPS_USED, event.powerups_used))

    coins = event.coins + sum(a.coins for a in effects.achievements)
    xp = event.xp + sum(a.xp for a in effects.achievements)
    if effects.rank_up is not None:
        coins += effects.rank_up.coins_bonus
        actions.append((ObjectiveType.RANK_UP, 1))
    if coins > 0:
        actions.append((ObjectiveType.ML_COINS_EARNED, coins))
    if xp > 0:
        actions.append((ObjectiveType.TOTAL_XP_EARNED, xp))

    if effects.streak is not None and effects.streak.is_new_day:
        actions.append((ObjectiveType.LOGIN_DAYS, 1))
        if effects.streak.streak_extended:
            actions.append((ObjectiveType.STREAK_MAINTAINED, 1))
    if effects.achievements:
        actions.append((ObjectiveType.ACHIEVEMENTS_UNLOCKED, len(effects.achievements)))
    if effects.module_completed is not None:
        actions.append((ObjectiveType.MODULES_COMPLETED, 1))
    return actions


class SubmissionHandlers:
    """Wires the progression services to the submission event bus."""

    def __init__(
        self,
        db: AsyncSession,
        config: EngineConfig,
        catalog: ExerciseCatalog,
        notifier: Notifier,
        quests: QuestEngine | None = None,
    ) -> None:
        self.db = db
        self.config = config
        self.catalog = catalog
        self.notifier = notifier
        self.streaks = StreakTracker(db, config.streak_expiry_hours)
        self.achievements = AchievementEvaluator(db, config)
        self.ranks = RankEngine(db, config)
        self.quests = quests or QuestEngine(db, config)

    def register(self, bus: EventBus) -> EventBus:
        bus.subscribe("streak", self.on_streak)
        bus.subscribe("module_completion", self.on_module_completion)
        bus.subscribe("achievements", self.on_achievements)
        bus.subscribe("rank", self.on_rank)
        bus.subscribe("quests", self.on_quests)
        bus.subscribe("notify", self.on_notify)
        return bus

    async def on_streak(self, event: SubmissionScored, effects: SideEffects) -> None:
        effects.streak = await self.streaks.log_activity(event.user_id, event.occurred_at)

    async def on_module_completion(self, event: SubmissionScored, effects: SideEffects) -> None:
        """Record the module complete once every active exercise in it has a passing attempt."""
        if not event.is_passing or event.pending_review or not event.module_id:
            return
        required = await self.catalog.count_module_exercises(event.module_id)
        if required == 0:
            return

        passed = await self.db.scalar(
            select(func.count(func.distinct(ExerciseAttempt.exercise_id)))
            .join(Exercise, Exercise.id == ExerciseAttempt.exercise_id)
            .where(
                ExerciseAttempt.user_id == event.user_id,
                ExerciseAttempt.module_id == event.module_id,
                ExerciseAttempt.is_passing.is_(True),
                Exercise.is_active.is_(True),
            )
        )
        if (passed or 0) < required:
            return

        created = await insert_ignore(
            self.db,
            ModuleCompletion,
            {"user_id": event.user_id, "module_id": event.module_id, "completed_at": event.occurred_at},
            index_elements=["user_id", "module_id"],
        )
        if created:
            logger.info("Module %s completed by %s", event.module_id, event.user_id)
            effects.module_completed = event.module_id

    async def on_achievements(self, event: SubmissionScored, effects: SideEffects) -> None:
        if event.pending_review:
            return
        context = {"current_streak": effects.streak.current_streak} if effects.streak else None
        unlocked = await self.achievements.check_and_unlock(event.user_id, context, event.occurred_at)
        effects.achievements.extend(unlocked)

    async def on_rank(self, event: SubmissionScored, effects: SideEffects) -> None:
        if event.pending_review:
            return
        promotion = await self.ranks.auto_check_promotion(event.user_id)
        if promotion is None:
            return
        # Rank achievements depend on the promotion that just happened
        unlocked = await self.achievements.check_and_unlock(event.user_id, now=event.occurred_at)
        effects.rank_up = promotion
        effects.achievements.extend(unlocked)

    async def on_quests(self, event: SubmissionScored, effects: SideEffects) -> None:
        for mission_type in (MissionType.DAILY, MissionType.WEEKLY):
            await self.quests.generate_for_user(event.user_id, mission_type, event.occurred_at)

        completed: list[CompletedMission] = []
        for action, amount in quest_actions(event, effects):
            for mission in await self.quests.update_progress(event.user_id, action, amount, event.occurred_at):
                completed.append(
                    CompletedMission(
                        id=mission.id,
                        template_id=mission.template_id,
                        title=mission.title,
                        mission_type=mission.mission_type,
                        coins=mission.reward_coins,
                        xp=mission.reward_xp,
                    )
                )
        effects.completed_missions.extend(completed)

    async def on_notify(self, event: SubmissionScored, effects: SideEffects) -> None:
        user_id = event.user_id
        if event.coins > 0:
            await self.notifier.notify(
                user_id, NotificationEvent.COINS_EARNED,
                {"amount": event.coins, "exerciseId": event.exercise_id},
            )
        if event.xp > 0:
            await self.notifier.notify(
                user_id, NotificationEvent.XP_EARNED,
                {"amount": event.xp, "exerciseId": event.exercise_id},
            )
        for achievement in effects.achievements:
            await self.notifier.notify(
                user_id, NotificationEvent.ACHIEVEMENT_UNLOCKED,
                {
                    "id": achievement.slug,
                    "name": achievement.name,
                    "rarity": achievement.rarity,
                    "mlCoins": achievement.coins,
                    "xp": achievement.xp,
                },
            )
        if effects.rank_up is not None:
            await self.notifier.notify(
                user_id, NotificationEvent.RANK_UP,
                {
                    "newRank": effects.rank_up.new_rank,
                    "previousRank": effects.rank_up.previous_rank,
                    "bonus": effects.rank_up.coins_bonus,
                    "multiplier": effects.rank_up.multiplier,
                },
            )
        for mission in effects.completed_missions:
            await self.notifier.notify(
                user_id, NotificationEvent.MISSION_COMPLETED,
                {"id": mission.id, "title": mission.title, "type": mission.mission_type},
            )
