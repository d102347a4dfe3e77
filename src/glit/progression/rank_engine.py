"""Rank state machine: nacom -> batab -> holcatte -> guerrero -> mercenario.

Ranks only move forward, one step at a time. Promotion requires all five
thresholds of the next rank (XP, modules, lifetime coins earned,
achievements, average score). ``promote_user`` serialises on the user's
economy row, re-validates eligibility, flips the previous current row and
inserts the new one, then credits the signing bonus through the ledger, all
in the caller's transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from glit.db.base import insert_ignore, utcnow
from glit.db.models import UserRank
from glit.economy.ledger import Ledger, TransactionType
from glit.engine_config import EngineConfig
from glit.errors import MaxRankReachedError, PromotionRequirementsNotMetError
from glit.progression.rank_catalog import RankDefinition, find_rank, next_rank
from glit.progression.stats import UserStats, load_user_stats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromotionCheck:
    can_promote: bool
    current_rank: str
    next_rank: str | None
    missing_requirements: list[str]
    progress_percentage: float


@dataclass(frozen=True)
class PromotionResult:
    new_rank: str
    previous_rank: str
    coins_bonus: int
    multiplier: float


def _shortfall(label: str, actual: float, required: float) -> str | None:
    if actual >= required:
        return None
    need = required - actual
    if isinstance(required, float) or isinstance(actual, float):
        return f"{label}: {actual:g}/{required:g} (need {round(need, 2):g} more)"
    return f"{label}: {actual}/{required} (need {need} more)"


def unmet_requirements(stats: UserStats, target: RankDefinition) -> list[str]:
    """Human-readable list of thresholds the user does not meet for ``target``."""
    checks = [
        _shortfall("XP", stats.total_xp, target.xp_required),
        _shortfall("Modules", stats.modules_completed, target.modules_required),
        _shortfall("ML Coins earned", stats.coins_earned, target.coins_earned_required),
        _shortfall("Achievements", stats.achievements_unlocked, target.achievements_required),
        _shortfall("Average score", stats.average_score, target.min_average_score),
    ]
    return [c for c in checks if c is not None]


def progress_percentage(stats: UserStats, target: RankDefinition) -> float:
    """Mean of the five requirement ratios, each capped at 100%."""
    pairs = [
        (stats.total_xp, target.xp_required),
        (stats.modules_completed, target.modules_required),
        (stats.coins_earned, target.coins_earned_required),
        (stats.achievements_unlocked, target.achievements_required),
        (stats.average_score, target.min_average_score),
    ]
    ratios = [1.0 if required <= 0 else min(actual / required, 1.0) for actual, required in pairs]
    return round(sum(ratios) / len(ratios) * 100, 2)


class RankEngine:
    """Rank lookup, eligibility checks and promotion."""

    def __init__(self, db: AsyncSession, config: EngineConfig) -> None:
        self.db = db
        self.config = config
        self.ledger = Ledger(db)

    async def get_current_rank(self, user_id: str) -> UserRank:
        """Current rank row, creating the initial rank on first access."""
        first = self.config.ranks[0]
        await insert_ignore(
            self.db,
            UserRank,
            {
                "user_id": user_id,
                "rank": first.rank.value,
                "achieved_at": utcnow(),
                "multiplier": first.multiplier,
                "is_current": True,
            },
            index_elements=["user_id"],
            index_where=text("is_current"),
        )
        result = await self.db.execute(
            select(UserRank)
            .where(UserRank.user_id == user_id, UserRank.is_current.is_(True))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get_multiplier(self, user_id: str) -> float:
        current = await self.get_current_rank(user_id)
        return find_rank(self.config.ranks, current.rank).multiplier

    async def get_rank_history(self, user_id: str) -> list[UserRank]:
        result = await self.db.execute(
            select(UserRank).where(UserRank.user_id == user_id).order_by(UserRank.achieved_at, UserRank.id)
        )
        return list(result.scalars().all())

    async def check_promotion(self, user_id: str, now: datetime | None = None) -> PromotionCheck:
        """Eligibility for the next rank plus the unmet conditions."""
        current = await self.get_current_rank(user_id)
        target = next_rank(self.config.ranks, current.rank)
        if target is None:
            return PromotionCheck(False, current.rank, None, [], 100.0)

        stats = await load_user_stats(self.db, user_id, self.config.ranks, self.config.streak_expiry_hours, now)
        missing = unmet_requirements(stats, target)
        return PromotionCheck(
            can_promote=not missing,
            current_rank=current.rank,
            next_rank=target.rank.value,
            missing_requirements=missing,
            progress_percentage=progress_percentage(stats, target),
        )

    async def promote_user(self, user_id: str) -> PromotionResult:
        """Promote one step. Raises MaxRankReachedError or PromotionRequirementsNotMetError."""
        # Per-user lock so concurrent triggers cannot promote twice
        await self.ledger.lock_state(user_id)

        current = await self.get_current_rank(user_id)
        target = next_rank(self.config.ranks, current.rank)
        if target is None:
            raise MaxRankReachedError(f"{current.rank} is the highest rank")

        stats = await load_user_stats(self.db, user_id, self.config.ranks, self.config.streak_expiry_hours)
        missing = unmet_requirements(stats, target)
        if missing:
            raise PromotionRequirementsNotMetError(missing)

        now = utcnow()
        current.is_current = False
        await self.db.flush()

        new_row = UserRank(
            user_id=user_id,
            rank=target.rank.value,
            previous_rank=current.rank,
            achieved_at=now,
            ml_coins_bonus=target.signing_bonus,
            multiplier=target.multiplier,
            is_current=True,
        )
        self.db.add(new_row)
        await self.db.flush()

        if target.signing_bonus > 0:
            await self.ledger.credit(
                user_id,
                target.signing_bonus,
                f"Promoted to {target.title}",
                TransactionType.EARNED_RANK,
                reference_id=str(new_row.id),
            )

        logger.info("User %s promoted %s -> %s", user_id, current.rank, target.rank.value)
        return PromotionResult(
            new_rank=target.rank.value,
            previous_rank=current.rank,
            coins_bonus=target.signing_bonus,
            multiplier=target.multiplier,
        )

    async def auto_check_promotion(self, user_id: str) -> PromotionResult | None:
        """Promote if eligible. Unmet requirements and the top rank return None."""
        try:
            return await self.promote_user(user_id)
        except (PromotionRequirementsNotMetError, MaxRankReachedError):
            return None
