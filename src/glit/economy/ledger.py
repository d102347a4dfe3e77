"""ML Coins ledger: balances plus the append-only transaction log.

The ledger is the only writer of ``UserEconomyState`` balance and XP columns.
Every mutation locks the user's state row (``SELECT ... FOR UPDATE``), reads
the balance, writes the new balance and appends the transaction row in the
caller's transaction. Callers own the commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from glit.db.base import insert_ignore, utcnow
from glit.db.models import LedgerTransaction, UserEconomyState
from glit.errors import InsufficientBalanceError

logger = logging.getLogger(__name__)


class TransactionType(str, Enum):
    EARNED_EXERCISE = "earned_exercise"
    EARNED_STREAK = "earned_streak"
    EARNED_ACHIEVEMENT = "earned_achievement"
    EARNED_RANK = "earned_rank"
    EARNED_MISSION = "earned_mission"
    EARNED_BONUS = "earned_bonus"
    SPENT_POWERUP = "spent_powerup"
    SPENT_ITEM = "spent_item"
    ADMIN_ADJUSTMENT = "admin_adjustment"


@dataclass(frozen=True)
class Balance:
    user_id: str
    balance: int
    earned_total: int
    spent_total: int
    earned_today: int
    total_xp: int


class Ledger:
    """Atomic coin and XP mutations for one database session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def ensure_state(self, user_id: str, tenant_id: str | None = None) -> None:
        """Create the user's economy row if missing (lazy, race-safe)."""
        now = utcnow()
        await insert_ignore(
            self.db,
            UserEconomyState,
            {"user_id": user_id, "tenant_id": tenant_id, "created_at": now, "updated_at": now},
            index_elements=["user_id"],
        )

    async def lock_state(self, user_id: str) -> UserEconomyState:
        """Load the user's economy row under a row lock, creating it if needed."""
        await self.ensure_state(user_id)
        result = await self.db.execute(
            select(UserEconomyState)
            .where(UserEconomyState.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def credit(
        self,
        user_id: str,
        amount: int,
        reason: str,
        transaction_type: TransactionType = TransactionType.EARNED_EXERCISE,
        multiplier: float = 1.0,
        reference_id: str | None = None,
    ) -> LedgerTransaction:
        """Add coins to a user's balance and append the transaction row."""
        if amount <= 0:
            raise ValueError(f"Credit amount must be positive, got {amount}")

        state = await self.lock_state(user_id)
        now = utcnow()
        if state.earned_today_date != now.date():
            state.earned_today = 0
            state.earned_today_date = now.date()

        before = state.balance
        state.balance = before + amount
        state.earned_total += amount
        state.earned_today += amount
        state.updated_at = now

        tx = self._append(
            user_id, amount, before, state.balance, transaction_type, reason, reference_id, multiplier, now
        )
        await self.db.flush()
        logger.info("Credited %d ML Coins to %s (%s)", amount, user_id, transaction_type.value)
        return tx

    async def debit(
        self,
        user_id: str,
        amount: int,
        item: str,
        transaction_type: TransactionType = TransactionType.SPENT_POWERUP,
        reference_id: str | None = None,
    ) -> LedgerTransaction:
        """Spend coins. Sufficiency is checked under the row lock, before any write."""
        if amount <= 0:
            raise ValueError(f"Debit amount must be positive, got {amount}")

        state = await self.lock_state(user_id)
        if amount > state.balance:
            raise InsufficientBalanceError(balance=state.balance, requested=amount)

        now = utcnow()
        before = state.balance
        state.balance = before - amount
        state.spent_total += amount
        state.updated_at = now

        tx = self._append(
            user_id, -amount, before, state.balance, transaction_type, f"Purchased {item}", reference_id, 1.0, now
        )
        await self.db.flush()
        logger.info("Debited %d ML Coins from %s for %s", amount, user_id, item)
        return tx

    async def award_xp(self, user_id: str, amount: int) -> int:
        """Add XP and return the new total."""
        if amount < 0:
            raise ValueError(f"XP amount must be non-negative, got {amount}")
        state = await self.lock_state(user_id)
        state.total_xp += amount
        state.updated_at = utcnow()
        await self.db.flush()
        return state.total_xp

    def _append(
        self,
        user_id: str,
        amount: int,
        before: int,
        after: int,
        transaction_type: TransactionType,
        reason: str,
        reference_id: str | None,
        multiplier: float,
        now: datetime,
    ) -> LedgerTransaction:
        tx = LedgerTransaction(
            user_id=user_id,
            amount=amount,
            balance_before=before,
            balance_after=after,
            transaction_type=transaction_type.value,
            reason=reason,
            reference_id=reference_id,
            multiplier=multiplier,
            created_at=now,
        )
        self.db.add(tx)
        return tx

    # --- Reads ---

    async def get_balance(self, user_id: str) -> Balance:
        """Current balance. Users without an economy row read as zero."""
        state = await self.db.get(UserEconomyState, user_id, populate_existing=True)
        if state is None:
            return Balance(user_id, 0, 0, 0, 0, 0)
        earned_today = state.earned_today if state.earned_today_date == utcnow().date() else 0
        return Balance(
            user_id=user_id,
            balance=state.balance,
            earned_total=state.earned_total,
            spent_total=state.spent_total,
            earned_today=earned_today,
            total_xp=state.total_xp,
        )

    async def list_transactions(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> tuple[list[LedgerTransaction], int]:
        """Newest-first page of transactions plus the total count."""
        total = await self.db.scalar(
            select(func.count()).select_from(LedgerTransaction).where(LedgerTransaction.user_id == user_id)
        )
        result = await self.db.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.user_id == user_id)
            .order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def get_earning_stats(self, user_id: str) -> dict[str, int]:
        """Lifetime earnings grouped by transaction type."""
        result = await self.db.execute(
            select(LedgerTransaction.transaction_type, func.sum(LedgerTransaction.amount))
            .where(LedgerTransaction.user_id == user_id, LedgerTransaction.amount > 0)
            .group_by(LedgerTransaction.transaction_type)
        )
        return {tx_type: int(total or 0) for tx_type, total in result.all()}
