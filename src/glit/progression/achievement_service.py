"""Achievement evaluation and idempotent unlocks."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from glit.db.base import insert_ignore, utcnow
from glit.db.models import Achievement, UserAchievement
from glit.economy.ledger import Ledger, TransactionType
from glit.engine_config import EngineConfig
from glit.errors import AchievementAlreadyUnlockedError, AchievementNotFoundError
from glit.progression.achievement_catalog import AchievementDefinition, StatCounter
from glit.progression.stats import UserStats, load_user_stats

logger = logging.getLogger(__name__)

_COUNTER_NAMES = frozenset(c.value for c in StatCounter)


@dataclass(frozen=True)
class UnlockedAchievement:
    slug: str
    name: str
    description: str
    category: str
    rarity: str
    coins: int
    xp: int

    @classmethod
    def from_definition(cls, definition: AchievementDefinition) -> UnlockedAchievement:
        return cls(
            slug=definition.slug,
            name=definition.name,
            description=definition.description,
            category=definition.category,
            rarity=definition.rarity.value,
            coins=definition.coin_reward,
            xp=definition.xp_reward,
        )


def apply_context(stats: UserStats, context: Mapping[str, Any] | None) -> UserStats:
    """Overlay counters supplied by the caller (e.g. a freshly computed streak)."""
    if not context:
        return stats
    overrides = {k: v for k, v in context.items() if k in _COUNTER_NAMES}
    return dataclasses.replace(stats, **overrides) if overrides else stats


class AchievementEvaluator:
    """Checks achievement conditions and unlocks newly satisfied ones."""

    def __init__(self, db: AsyncSession, config: EngineConfig) -> None:
        self.db = db
        self.config = config
        self.ledger = Ledger(db)

    async def seed_catalog(self) -> int:
        """Insert missing catalog rows. Idempotent; returns the number inserted."""
        inserted = 0
        for order, a in enumerate(self.config.achievements):
            created = await insert_ignore(
                self.db,
                Achievement,
                {
                    "slug": a.slug,
                    "name": a.name,
                    "description": a.description,
                    "category": a.category,
                    "rarity": a.rarity.value,
                    "condition_counter": a.counter.value,
                    "condition_threshold": a.threshold,
                    "ml_coins_reward": a.coin_reward,
                    "xp_reward": a.xp_reward,
                    "sort_order": order,
                    "is_active": True,
                },
                index_elements=["slug"],
            )
            inserted += int(created)
        await self.db.commit()
        if inserted:
            logger.info("Seeded %d achievement definitions", inserted)
        return inserted

    async def unlocked_ids(self, user_id: str) -> set[str]:
        result = await self.db.execute(
            select(UserAchievement.achievement_id).where(UserAchievement.user_id == user_id)
        )
        return set(result.scalars().all())

    async def list_user_achievements(self, user_id: str) -> list[UserAchievement]:
        result = await self.db.execute(
            select(UserAchievement)
            .where(UserAchievement.user_id == user_id)
            .order_by(UserAchievement.unlocked_at, UserAchievement.id)
        )
        return list(result.scalars().all())

    async def check_and_unlock(
        self,
        user_id: str,
        context: Mapping[str, Any] | None = None,
        now: datetime | None = None,
    ) -> list[UnlockedAchievement]:
        """Unlock every newly satisfied achievement; return only those unlocked by this call.

        Evaluation repeats until nothing new unlocks, so achievements counting
        other achievements are picked up in the same call.
        """
        unlocked = await self.unlocked_ids(user_id)
        newly: list[UnlockedAchievement] = []

        for _ in range(len(self.config.achievements)):
            stats = apply_context(
                await load_user_stats(self.db, user_id, self.config.ranks, self.config.streak_expiry_hours, now),
                context,
            )
            due = [
                a for a in self.config.achievements
                if a.slug not in unlocked and stats.counter(a.counter) >= a.threshold
            ]
            if not due:
                break
            for definition in due:
                unlocked.add(definition.slug)
                if await self._unlock(user_id, definition, {"trigger": definition.counter.value}):
                    newly.append(UnlockedAchievement.from_definition(definition))

        return newly

    async def unlock(self, user_id: str, slug: str) -> UnlockedAchievement:
        """Manually unlock one achievement (teacher/admin action)."""
        definition = self.config.achievement(slug)
        if definition is None:
            raise AchievementNotFoundError(f"Achievement {slug} not found")
        if not await self._unlock(user_id, definition, {"trigger": "manual"}):
            raise AchievementAlreadyUnlockedError(f"Achievement {slug} already unlocked")
        return UnlockedAchievement.from_definition(definition)

    async def _unlock(self, user_id: str, definition: AchievementDefinition, metadata: dict[str, Any]) -> bool:
        """ON CONFLICT DO NOTHING insert, then reward. False if already unlocked."""
        inserted = await insert_ignore(
            self.db,
            UserAchievement,
            {
                "user_id": user_id,
                "achievement_id": definition.slug,
                "unlocked_at": utcnow(),
                "progress": 100.0,
                "unlock_metadata": metadata,
            },
            index_elements=["user_id", "achievement_id"],
        )
        if not inserted:
            return False

        if definition.coin_reward > 0:
            await self.ledger.credit(
                user_id,
                definition.coin_reward,
                f"Achievement unlocked: {definition.name}",
                TransactionType.EARNED_ACHIEVEMENT,
                reference_id=definition.slug,
            )
        if definition.xp_reward > 0:
            await self.ledger.award_xp(user_id, definition.xp_reward)

        logger.info("Achievement %s unlocked for %s", definition.slug, user_id)
        return True
