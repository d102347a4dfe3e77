"""Request/response models for the ML Coins endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from glit.schemas import CamelModel


class BalanceResponse(CamelModel):
    user_id: str
    balance: int
    earned_total: int
    spent_total: int
    earned_today: int
    total_xp: int


class EarnRequest(CamelModel):
    user_id: str = Field(min_length=1, max_length=64)
    amount: int = Field(gt=0)
    reason: str = Field(min_length=1, max_length=500)
    transaction_type: Literal[
        "earned_exercise",
        "earned_streak",
        "earned_achievement",
        "earned_rank",
        "earned_mission",
        "earned_bonus",
        "admin_adjustment",
    ] = "earned_bonus"
    reference_id: str | None = Field(default=None, max_length=64)


class SpendRequest(CamelModel):
    amount: int = Field(gt=0)
    item: str = Field(min_length=1, max_length=200)
    transaction_type: Literal["spent_powerup", "spent_item"] = "spent_powerup"
    user_id: str | None = Field(default=None, max_length=64)


class TransactionOut(CamelModel):
    id: int
    user_id: str
    amount: int
    balance_before: int
    balance_after: int
    transaction_type: str
    reason: str
    reference_id: str | None = None
    multiplier: float
    created_at: datetime


class TransactionPage(CamelModel):
    transactions: list[TransactionOut]
    total: int
    limit: int
    offset: int


class EarningStatsResponse(CamelModel):
    user_id: str
    earned_total: int
    spent_total: int
    balance: int
    by_type: dict[str, int]
