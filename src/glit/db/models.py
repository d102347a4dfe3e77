"""ORM models for the reward and progression engine.

Tables owned by the engine: economy state, coin transactions, power-up
inventory, rank history, missions and their objectives, achievements and
unlocks, exercise attempts and module completions. ``exercises`` belongs to
the content service and is mapped read-only.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from glit.db.base import Base, BigIntPK, JSONType, UTCDateTime, utcnow


# ---------------------------------------------------------------------------
# Economy
# ---------------------------------------------------------------------------


class UserEconomyState(Base):
    """One row per user: coin balance, XP and streak counters."""

    __tablename__ = "user_economy_state"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_user_economy_state_balance_non_negative"),
        CheckConstraint("total_xp >= 0", name="ck_user_economy_state_xp_non_negative"),
        Index("idx_user_economy_state_activity", "last_activity_at"),
        {"extend_existing": True},
    )

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    earned_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    spent_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    earned_today: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    earned_today_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_activity_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class LedgerTransaction(Base):
    """Immutable coin transaction log. Rows are never updated or deleted."""

    __tablename__ = "ml_coins_transactions"
    __table_args__ = (
        Index("idx_ml_coins_tx_user_created", "user_id", "created_at"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reference_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class PowerUpInventory(Base):
    """Owned power-ups, one row per user and type. Decremented only while available > 0."""

    __tablename__ = "powerup_inventory"
    __table_args__ = (
        UniqueConstraint("user_id", "powerup_type", name="powerup_inventory_user_id_powerup_type_key"),
        CheckConstraint("available >= 0", name="ck_powerup_inventory_available_non_negative"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    powerup_type: Mapped[str] = mapped_column(String(32), nullable=False)
    available: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    purchased_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    earned_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    used_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Ranks
# ---------------------------------------------------------------------------


class UserRank(Base):
    """Rank history. Exactly one row per user has is_current = true."""

    __tablename__ = "user_ranks"
    __table_args__ = (
        Index(
            "uq_user_ranks_current",
            "user_id",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current"),
        ),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    rank: Mapped[str] = mapped_column(String(16), nullable=False)
    previous_rank: Mapped[str | None] = mapped_column(String(16), nullable=True)
    achieved_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    ml_coins_bonus: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


# ---------------------------------------------------------------------------
# Missions
# ---------------------------------------------------------------------------


class Mission(Base):
    """A time-boxed objective set instantiated from a template."""

    __tablename__ = "missions"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    template_id: Mapped[str] = mapped_column(String(64), nullable=False)
    mission_type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="easy")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", index=True)
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    reward_coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reward_items: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    objectives: Mapped[list[MissionObjective]] = relationship(
        "MissionObjective",
        order_by="MissionObjective.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class MissionObjective(Base):
    """One trackable objective of a mission. Incremented relationally, never patched as JSON."""

    __tablename__ = "mission_objectives"
    __table_args__ = (
        UniqueConstraint("mission_id", "position", name="mission_objectives_mission_id_position_key"),
        Index("idx_mission_objectives_type", "mission_id", "objective_type"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    mission_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False), ForeignKey("missions.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    objective_type: Mapped[str] = mapped_column(String(32), nullable=False)
    target: Mapped[int] = mapped_column(Integer, nullable=False)
    current: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ---------------------------------------------------------------------------
# Achievements
# ---------------------------------------------------------------------------


class Achievement(Base):
    """Achievement catalog entry (seeded from the configured catalog)."""

    __tablename__ = "achievements"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    slug: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False)
    condition_counter: Mapped[str] = mapped_column(String(32), nullable=False)
    condition_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    ml_coins_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserAchievement(Base):
    """Per-user unlock record. UNIQUE(user_id, achievement_id) makes unlocks idempotent."""

    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="user_achievements_user_id_achievement_id_key"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    achievement_id: Mapped[str] = mapped_column(String(64), ForeignKey("achievements.slug"), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=100.0)
    unlock_metadata: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)


# ---------------------------------------------------------------------------
# Exercises and attempts
# ---------------------------------------------------------------------------


class Exercise(Base):
    """Exercise content owned by the content service (read-only here)."""

    __tablename__ = "exercises"
    __table_args__ = {"extend_existing": True}  # noqa: RUF012

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    module_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    exercise_type: Mapped[str] = mapped_column(String(32), nullable=False)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False, default="easy")
    ml_coins_reward: Mapped[int | None] = mapped_column(Integer, nullable=True)
    xp_reward: Mapped[int | None] = mapped_column(Integer, nullable=True)
    passing_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    estimated_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ExerciseAttempt(Base):
    """One scored submission. Written in the same transaction as its coin credit."""

    __tablename__ = "exercise_attempts"
    __table_args__ = (
        UniqueConstraint("user_id", "session_id", name="exercise_attempts_user_id_session_id_key"),
        Index("idx_exercise_attempts_user_exercise", "user_id", "exercise_id"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    exercise_id: Mapped[str] = mapped_column(String(64), nullable=False)
    module_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    exercise_type: Mapped[str] = mapped_column(String(32), nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    submitted_answers: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    raw_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_passing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_perfect: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pending_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hints_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    powerups_used: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    powerups_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attempt_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    ml_coins_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


class ModuleCompletion(Base):
    """Module marked complete once every exercise in it has a passing attempt."""

    __tablename__ = "module_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "module_id", name="module_completions_user_id_module_id_key"),
        {"extend_existing": True},
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    module_id: Mapped[str] = mapped_column(String(64), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
