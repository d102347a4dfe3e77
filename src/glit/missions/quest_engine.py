"""Quest engine: mission generation, objective tracking, claims and sweeps.

Objectives live in their own table and are advanced with a single relational
``UPDATE ... SET current = LEAST(current + n, target)`` while the user's
affected mission rows are locked, so two concurrent actions cannot lose an
increment. Mission ``progress`` is always recomputed from the objectives.

Generation and claims first take the user's economy row lock, so two
requests for the same user run one after the other: the "already has
missions" check and the "already claimed" check both see the other
request's committed rows.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from glit.db.base import utcnow
from glit.db.models import Mission, MissionObjective, UserEconomyState
from glit.economy.ledger import Ledger, TransactionType
from glit.engine_config import EngineConfig
from glit.errors import AlreadyClaimedError, MissionNotCompletedError, MissionNotFoundError
from glit.missions.periods import get_period_boundaries
from glit.missions.templates import MissionStatus, MissionTemplate, MissionType, ObjectiveType
from glit.powerups.catalog import MISSION_ITEM_POWERUPS
from glit.powerups.service import PowerUpService

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[str, list[str]] = {
    "active": ["in_progress", "completed", "expired"],
    "in_progress": ["completed", "expired"],
    "completed": ["claimed"],
    "claimed": [],
    "expired": [],
}

OPEN_STATUSES = (MissionStatus.ACTIVE.value, MissionStatus.IN_PROGRESS.value)


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a mission status transition. Raises ValueError if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise ValueError(
            f"Invalid transition: {current_status} -> {target_status}. "
            f"Valid transitions: {valid}"
        )


def compute_progress(objectives: Iterable[tuple[int, int]]) -> float:
    """Mean completion percentage over (current, target) pairs, clamped to [0, 100]."""
    ratios = [1.0 if target <= 0 else min(max(current, 0) / target, 1.0) for current, target in objectives]
    if not ratios:
        return 0.0
    return round(min(100.0, max(0.0, sum(ratios) / len(ratios) * 100)), 2)


def mission_progress(mission: Mission) -> float:
    return compute_progress((o.current, o.target) for o in mission.objectives)


@dataclass(frozen=True)
class MissionClaim:
    mission_id: str
    coins: int
    xp: int
    items: list[str]


@dataclass(frozen=True)
class MissionStats:
    total: int
    active: int
    completed: int
    claimed: int
    expired: int
    coins_earned: int
    xp_earned: int
    completion_rate: float


class QuestEngine:
    """Generates, tracks and settles daily, weekly and special missions."""

    def __init__(
        self,
        db: AsyncSession,
        config: EngineConfig,
        rng: random.Random | None = None,
    ) -> None:
        self.db = db
        self.config = config
        self.rng = rng or random.Random()
        self.ledger = Ledger(db)
        self.powerups = PowerUpService(db, config)

    # --- Reads ---

    async def get_mission(self, mission_id: str) -> Mission | None:
        return await self.db.get(Mission, mission_id)

    async def list_missions(self, user_id: str, mission_type: MissionType, now: datetime | None = None) -> list[Mission]:
        """Missions of this type for the current period (any status but expired)."""
        if now is None:
            now = utcnow()
        result = await self.db.execute(
            select(Mission)
            .where(
                Mission.user_id == user_id,
                Mission.mission_type == mission_type.value,
                Mission.status != MissionStatus.EXPIRED.value,
                Mission.end_date >= now,
            )
            .order_by(Mission.created_at, Mission.template_id)
        )
        return list(result.scalars().all())

    async def get_missions(self, user_id: str, mission_type: MissionType, now: datetime | None = None) -> list[Mission]:
        """Current missions, lazily generating daily/weekly ones when none exist."""
        if now is None:
            now = utcnow()
        if mission_type != MissionType.SPECIAL:
            await self.generate_for_user(user_id, mission_type, now)
            await self.db.commit()
        return await self.list_missions(user_id, mission_type, now)

    async def get_stats(self, user_id: str) -> MissionStats:
        result = await self.db.execute(
            select(Mission.status, func.count(Mission.id), func.sum(Mission.reward_coins), func.sum(Mission.reward_xp))
            .where(Mission.user_id == user_id)
            .group_by(Mission.status)
        )
        counts: dict[str, int] = {}
        coins = xp = 0
        for status, count, status_coins, status_xp in result.all():
            counts[status] = int(count)
            if status == MissionStatus.CLAIMED.value:
                coins, xp = int(status_coins or 0), int(status_xp or 0)

        total = sum(counts.values())
        completed = counts.get(MissionStatus.COMPLETED.value, 0)
        claimed = counts.get(MissionStatus.CLAIMED.value, 0)
        return MissionStats(
            total=total,
            active=counts.get(MissionStatus.ACTIVE.value, 0) + counts.get(MissionStatus.IN_PROGRESS.value, 0),
            completed=completed,
            claimed=claimed,
            expired=counts.get(MissionStatus.EXPIRED.value, 0),
            coins_earned=coins,
            xp_earned=xp,
            completion_rate=round((completed + claimed) / total * 100, 2) if total else 0.0,
        )

    # --- Generation ---

    async def has_current_missions(self, user_id: str, mission_type: MissionType, now: datetime) -> bool:
        """Idempotency guard: does the user already hold a live mission of this type for the period?"""
        existing = await self.db.scalar(
            select(func.count(Mission.id)).where(
                Mission.user_id == user_id,
                Mission.mission_type == mission_type.value,
                Mission.status != MissionStatus.EXPIRED.value,
                Mission.end_date >= now,
            )
        )
        return bool(existing)

    async def generate_for_user(
        self,
        user_id: str,
        mission_type: MissionType,
        now: datetime | None = None,
    ) -> list[Mission]:
        """Pick N random templates without replacement if the user has none for this period."""
        if now is None:
            now = utcnow()
        await self.ledger.lock_state(user_id)
        if await self.has_current_missions(user_id, mission_type, now):
            return []

        pool = list(self.config.templates_for(mission_type))
        count = {
            MissionType.DAILY: self.config.daily_mission_count,
            MissionType.WEEKLY: self.config.weekly_mission_count,
        }.get(mission_type, 1)
        chosen = self.rng.sample(pool, min(count, len(pool)))

        missions = [await self.create_from_template(user_id, template, now) for template in chosen]
        logger.info("Generated %d %s missions for %s", len(missions), mission_type.value, user_id)
        return missions

    async def create_from_template(self, user_id: str, template: MissionTemplate, now: datetime | None = None) -> Mission:
        if now is None:
            now = utcnow()
        start, end = get_period_boundaries(template.mission_type, now, self.config.special_mission_days)
        mission = Mission(
            user_id=user_id,
            template_id=template.id,
            mission_type=template.mission_type.value,
            title=template.title,
            description=template.description,
            difficulty=template.difficulty,
            status=MissionStatus.ACTIVE.value,
            progress=0.0,
            reward_coins=template.coins,
            reward_xp=template.xp,
            reward_items=list(template.items),
            start_date=start,
            end_date=end,
            created_at=now,
            objectives=[
                MissionObjective(position=i, objective_type=o.type.value, target=o.target, current=0)
                for i, o in enumerate(template.objectives)
            ],
        )
        self.db.add(mission)
        await self.db.flush()
        return mission

    async def assign_special(self, user_id: str, template_id: str, now: datetime | None = None) -> Mission:
        """Create a special mission from its template unless the user already holds a live one."""
        if now is None:
            now = utcnow()
        template = self.config.template(template_id)
        if template is None or template.mission_type != MissionType.SPECIAL:
            raise MissionNotFoundError(f"Special mission template {template_id} not found")

        await self.ledger.lock_state(user_id)
        existing = await self.db.scalar(
            select(Mission).where(
                Mission.user_id == user_id,
                Mission.template_id == template_id,
                Mission.status != MissionStatus.EXPIRED.value,
                Mission.end_date >= now,
            )
        )
        if existing is not None:
            return existing
        return await self.create_from_template(user_id, template, now)

    async def active_user_ids(self, window_days: int, now: datetime | None = None) -> list[str]:
        """Users with activity inside the trailing window."""
        if now is None:
            now = utcnow()
        result = await self.db.execute(
            select(UserEconomyState.user_id).where(
                UserEconomyState.last_activity_at >= now - timedelta(days=window_days)
            )
        )
        return list(result.scalars().all())

    async def generate_for_active_users(
        self,
        mission_type: MissionType,
        window_days: int,
        now: datetime | None = None,
    ) -> int:
        """Scheduled generation. Safe to re-run: users who already have missions are skipped."""
        if now is None:
            now = utcnow()
        await self.expire_missions(now)

        generated = 0
        for user_id in await self.active_user_ids(window_days, now):
            try:
                created = await self.generate_for_user(user_id, mission_type, now)
                await self.db.commit()
                generated += len(created)
            except Exception:
                await self.db.rollback()
                logger.exception("Mission generation failed for %s", user_id)
        logger.info("Generated %d %s missions", generated, mission_type.value)
        return generated

    # --- Progress ---

    async def update_progress(
        self,
        user_id: str,
        action_type: ObjectiveType,
        amount: int = 1,
        now: datetime | None = None,
    ) -> list[Mission]:
        """Advance matching objectives; return missions completed by this call."""
        if amount <= 0:
            return []
        if now is None:
            now = utcnow()

        locked = await self.db.execute(
            select(Mission.id)
            .where(
                Mission.user_id == user_id,
                Mission.status.in_(OPEN_STATUSES),
                Mission.end_date >= now,
                Mission.id.in_(
                    select(MissionObjective.mission_id).where(MissionObjective.objective_type == action_type.value)
                ),
            )
            .with_for_update()
        )
        mission_ids = list(locked.scalars().all())
        if not mission_ids:
            return []

        incremented = MissionObjective.current + amount
        await self.db.execute(
            update(MissionObjective)
            .where(
                MissionObjective.mission_id.in_(mission_ids),
                MissionObjective.objective_type == action_type.value,
            )
            .values(current=case((incremented > MissionObjective.target, MissionObjective.target), else_=incremented))
            .execution_options(synchronize_session=False)
        )

        await self.db.execute(
            select(MissionObjective)
            .where(MissionObjective.mission_id.in_(mission_ids))
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(
            select(Mission).where(Mission.id.in_(mission_ids)).execution_options(populate_existing=True)
        )

        completed: list[Mission] = []
        for mission in result.scalars().all():
            mission.progress = mission_progress(mission)
            if all(o.current >= o.target for o in mission.objectives):
                validate_transition(mission.status, MissionStatus.COMPLETED.value)
                mission.status = MissionStatus.COMPLETED.value
                mission.completed_at = now
                completed.append(mission)
            elif mission.status == MissionStatus.ACTIVE.value and mission.progress > 0:
                mission.status = MissionStatus.IN_PROGRESS.value

        await self.db.flush()
        for mission in completed:
            logger.info("Mission %s (%s) completed by %s", mission.id, mission.template_id, user_id)
        return completed

    # --- Claims ---

    async def claim_rewards(self, user_id: str, mission_id: str, now: datetime | None = None) -> MissionClaim:
        """Credit a completed mission's rewards exactly once."""
        if now is None:
            now = utcnow()
        await self.ledger.lock_state(user_id)

        result = await self.db.execute(
            select(Mission)
            .where(Mission.id == mission_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        mission = result.scalar_one_or_none()
        if mission is None or mission.user_id != user_id:
            raise MissionNotFoundError(f"Mission {mission_id} not found")
        if mission.status == MissionStatus.CLAIMED.value:
            raise AlreadyClaimedError(f"Mission {mission_id} rewards already claimed")
        if mission.status != MissionStatus.COMPLETED.value:
            raise MissionNotCompletedError(f"Mission {mission_id} is {mission.status}, not completed")

        validate_transition(mission.status, MissionStatus.CLAIMED.value)
        if mission.reward_coins > 0:
            await self.ledger.credit(
                user_id,
                mission.reward_coins,
                f"Mission reward: {mission.title}",
                TransactionType.EARNED_MISSION,
                reference_id=mission.id,
            )
        if mission.reward_xp > 0:
            await self.ledger.award_xp(user_id, mission.reward_xp)
        await self._grant_items(user_id, mission.reward_items or [])

        mission.status = MissionStatus.CLAIMED.value
        mission.claimed_at = now
        await self.db.flush()
        logger.info("Mission %s claimed by %s", mission_id, user_id)
        return MissionClaim(mission.id, mission.reward_coins, mission.reward_xp, list(mission.reward_items or []))

    async def _grant_items(self, user_id: str, items: Iterable[str]) -> None:
        for item in items:
            powerup = MISSION_ITEM_POWERUPS.get(item)
            if powerup is None:
                logger.warning("Mission item %s has no inventory counterpart, skipping", item)
                continue
            await self.powerups.grant(user_id, powerup.value)

    # --- Sweeps ---

    async def expire_missions(self, now: datetime | None = None) -> int:
        """Flip open missions past their end date to expired. Idempotent."""
        if now is None:
            now = utcnow()
        result = await self.db.execute(
            update(Mission)
            .where(Mission.status.in_(OPEN_STATUSES), Mission.end_date < now)
            .values(status=MissionStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount:
            logger.info("Expired %d missions", result.rowcount)
        return result.rowcount

    async def cleanup_expired(self, retention_days: int, now: datetime | None = None) -> int:
        """Hard-delete expired missions whose end date is older than the retention horizon."""
        if now is None:
            now = utcnow()
        horizon = now - timedelta(days=retention_days)
        stale = select(Mission.id).where(
            Mission.status == MissionStatus.EXPIRED.value,
            Mission.end_date < horizon,
        )
        await self.db.execute(
            delete(MissionObjective)
            .where(MissionObjective.mission_id.in_(stale))
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            delete(Mission)
            .where(Mission.status == MissionStatus.EXPIRED.value, Mission.end_date < horizon)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        logger.info("Deleted %d expired missions older than %d days", result.rowcount, retention_days)
        return result.rowcount
