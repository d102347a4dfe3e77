"""Power-up inventory: purchase with ML Coins, grant from missions, use on exercises.

Counts move with relational updates. A use only succeeds while
``available >= 1``, so concurrent uses can never drive the count negative.
Callers own the commit.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from glit.db.base import insert_ignore, utcnow
from glit.db.models import PowerUpInventory
from glit.economy.ledger import Ledger, TransactionType
from glit.engine_config import EngineConfig
from glit.errors import InvalidPowerUpError, PowerUpNotAvailableError, SubmissionValidationError
from glit.powerups.catalog import PowerUpDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryEntry:
    powerup_type: str
    available: int
    purchased: int
    earned: int
    used: int
    cost: int


@dataclass(frozen=True)
class Purchase:
    powerup_type: str
    quantity: int
    total_cost: int
    balance_after: int


class PowerUpService:
    def __init__(self, db: AsyncSession, config: EngineConfig) -> None:
        self.db = db
        self.config = config
        self.ledger = Ledger(db)

    def definition(self, powerup_type: str) -> PowerUpDefinition:
        definition = self.config.powerup(powerup_type)
        if definition is None:
            raise InvalidPowerUpError(f"Unknown power-up type {powerup_type}")
        return definition

    async def get_inventory(self, user_id: str) -> list[InventoryEntry]:
        """Every catalog power-up with the user's counts; unowned types read as zero."""
        result = await self.db.execute(
            select(PowerUpInventory)
            .where(PowerUpInventory.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        rows = {row.powerup_type: row for row in result.scalars().all()}
        entries = []
        for definition in self.config.powerups:
            row = rows.get(definition.type.value)
            entries.append(
                InventoryEntry(
                    powerup_type=definition.type.value,
                    available=row.available if row else 0,
                    purchased=row.purchased_total if row else 0,
                    earned=row.earned_total if row else 0,
                    used=row.used_total if row else 0,
                    cost=definition.cost,
                )
            )
        return entries

    async def purchase(self, user_id: str, powerup_type: str, quantity: int = 1) -> Purchase:
        """Spend coins and add the power-ups to the inventory in the caller's transaction."""
        definition = self.definition(powerup_type)
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive, got {quantity}")

        total_cost = definition.cost * quantity
        tx = await self.ledger.debit(
            user_id, total_cost, f"{definition.type.value} x{quantity}", TransactionType.SPENT_POWERUP
        )
        await self._add(user_id, definition.type.value, quantity, PowerUpInventory.purchased_total)
        logger.info("User %s purchased %d %s for %d ML Coins", user_id, quantity, definition.type.value, total_cost)
        return Purchase(definition.type.value, quantity, total_cost, tx.balance_after)

    async def grant(self, user_id: str, powerup_type: str, quantity: int = 1) -> None:
        """Add power-ups without charging (mission rewards)."""
        definition = self.definition(powerup_type)
        await self._add(user_id, definition.type.value, quantity, PowerUpInventory.earned_total)
        logger.info("Granted %d %s to %s", quantity, definition.type.value, user_id)

    async def use(self, user_id: str, powerup_type: str, exercise_id: str | None = None) -> None:
        """Consume one power-up. Raises PowerUpNotAvailableError when none is left."""
        definition = self.definition(powerup_type)
        result = await self.db.execute(
            update(PowerUpInventory)
            .where(
                PowerUpInventory.user_id == user_id,
                PowerUpInventory.powerup_type == definition.type.value,
                PowerUpInventory.available >= 1,
            )
            .values(
                available=PowerUpInventory.available - 1,
                used_total=PowerUpInventory.used_total + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if not result.rowcount:
            raise PowerUpNotAvailableError(definition.type.value)
        logger.info("User %s used %s on %s", user_id, definition.type.value, exercise_id or "-")

    async def consume_for_submission(self, user_id: str, powerups: Sequence[str], exercise_id: str) -> None:
        """Check per-exercise limits, then use every reported power-up."""
        counts = Counter(powerups)
        for powerup_type, count in counts.items():
            definition = self.definition(powerup_type)
            if count > definition.per_exercise_limit:
                raise SubmissionValidationError(
                    f"At most {definition.per_exercise_limit} {powerup_type} per exercise",
                    field="powerupsUsed",
                )
        for powerup_type in powerups:
            await self.use(user_id, powerup_type, exercise_id)

    async def _add(
        self, user_id: str, powerup_type: str, quantity: int, total_column: InstrumentedAttribute[int]
    ) -> None:
        now = utcnow()
        await insert_ignore(
            self.db,
            PowerUpInventory,
            {"user_id": user_id, "powerup_type": powerup_type, "updated_at": now},
            index_elements=["user_id", "powerup_type"],
        )
        await self.db.execute(
            update(PowerUpInventory)
            .where(PowerUpInventory.user_id == user_id, PowerUpInventory.powerup_type == powerup_type)
            .values({
                PowerUpInventory.available: PowerUpInventory.available + quantity,
                total_column: total_column + quantity,
                PowerUpInventory.updated_at: now,
            })
            .execution_options(synchronize_session=False)
        )
