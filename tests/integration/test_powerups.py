"""Integration tests for the power-up inventory."""

from __future__ import annotations

import random

import pytest
from sqlalchemy import select

from glit.db.models import LedgerTransaction
from glit.economy.ledger import Ledger, TransactionType
from glit.errors import (
    InsufficientBalanceError,
    InvalidPowerUpError,
    PowerUpNotAvailableError,
    SubmissionValidationError,
)
from glit.missions.quest_engine import QuestEngine
from glit.missions.templates import ObjectiveType
from glit.powerups.service import PowerUpService
from tests.conftest import NOW


async def _owned(db, config, user_id: str = "u1") -> dict:
    return {e.powerup_type: e for e in await PowerUpService(db, config).get_inventory(user_id)}


class TestPurchase:
    @pytest.mark.asyncio
    async def test_purchase_debits_and_stocks(self, db_session, config):
        await Ledger(db_session).credit("u1", 100, "seed", TransactionType.ADMIN_ADJUSTMENT)
        purchase = await PowerUpService(db_session, config).purchase("u1", "vision_lectora", 2)
        await db_session.commit()

        assert (purchase.total_cost, purchase.balance_after) == (50, 50)
        owned = await _owned(db_session, config)
        assert (owned["vision_lectora"].available, owned["vision_lectora"].purchased) == (2, 2)

        tx = await db_session.scalar(
            select(LedgerTransaction).where(LedgerTransaction.transaction_type == "spent_powerup")
        )
        assert tx.amount == -50
        assert tx.reason == "Purchased vision_lectora x2"

    @pytest.mark.asyncio
    async def test_insufficient_funds_stocks_nothing(self, db_session, config):
        await Ledger(db_session).credit("u1", 30, "seed", TransactionType.ADMIN_ADJUSTMENT)
        await db_session.commit()

        with pytest.raises(InsufficientBalanceError):
            await PowerUpService(db_session, config).purchase("u1", "segunda_oportunidad")
        await db_session.rollback()

        assert (await _owned(db_session, config))["segunda_oportunidad"].available == 0
        assert (await Ledger(db_session).get_balance("u1")).balance == 30

    @pytest.mark.asyncio
    async def test_unknown_type(self, db_session, config):
        with pytest.raises(InvalidPowerUpError):
            await PowerUpService(db_session, config).purchase("u1", "teleport")

    @pytest.mark.asyncio
    async def test_quantity_must_be_positive(self, db_session, config):
        with pytest.raises(ValueError):
            await PowerUpService(db_session, config).purchase("u1", "pistas", 0)


class TestUse:
    @pytest.mark.asyncio
    async def test_use_until_empty(self, db_session, config):
        service = PowerUpService(db_session, config)
        await service.grant("u1", "pistas", 2)
        await service.use("u1", "pistas", "ex-1")
        await service.use("u1", "pistas", "ex-2")
        with pytest.raises(PowerUpNotAvailableError) as exc:
            await service.use("u1", "pistas", "ex-3")
        await db_session.commit()

        assert exc.value.powerup_type == "pistas"
        hints = (await _owned(db_session, config))["pistas"]
        assert (hints.available, hints.earned, hints.used) == (0, 2, 2)

    @pytest.mark.asyncio
    async def test_inventory_is_per_user(self, db_session, config):
        await PowerUpService(db_session, config).grant("u2", "pistas")
        with pytest.raises(PowerUpNotAvailableError):
            await PowerUpService(db_session, config).use("u1", "pistas")

    @pytest.mark.asyncio
    async def test_unowned_user_reads_zeros(self, db_session, config):
        inventory = await PowerUpService(db_session, config).get_inventory("nobody")
        assert [e.powerup_type for e in inventory] == ["pistas", "vision_lectora", "segunda_oportunidad"]
        assert all(e.available == 0 for e in inventory)

    @pytest.mark.asyncio
    async def test_submission_limit_checked_before_use(self, db_session, config):
        service = PowerUpService(db_session, config)
        await service.grant("u1", "pistas", 5)
        with pytest.raises(SubmissionValidationError):
            await service.consume_for_submission("u1", ["pistas"] * 4, "ex-1")
        assert (await _owned(db_session, config))["pistas"].available == 5

        await service.consume_for_submission("u1", ["pistas"] * 3, "ex-1")
        assert (await _owned(db_session, config))["pistas"].available == 2


class TestMissionGrants:
    @pytest.mark.asyncio
    async def test_claim_grants_reward_items(self, db_session, config):
        engine = QuestEngine(db_session, config, random.Random(0))
        mission = await engine.assign_special("u1", "special_new_year", NOW)
        await engine.update_progress("u1", ObjectiveType.EXERCISES_COMPLETED, 30, NOW)
        claim = await engine.claim_rewards("u1", mission.id, NOW)
        await db_session.commit()

        assert claim.items == ["power_up_hint", "power_up_segunda_oportunidad"]
        owned = await _owned(db_session, config)
        assert (owned["pistas"].available, owned["pistas"].earned) == (1, 1)
        assert owned["segunda_oportunidad"].available == 1
        assert owned["vision_lectora"].available == 0
