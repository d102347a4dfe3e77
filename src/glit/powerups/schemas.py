"""Request/response models for power-up endpoints."""

from __future__ import annotations

from pydantic import Field

from glit.exercises.types import PowerUp
from glit.schemas import CamelModel


class PowerUpOut(CamelModel):
    type: str
    name: str
    description: str
    cost: int
    per_exercise_limit: int


class PowerUpCatalogResponse(CamelModel):
    powerups: list[PowerUpOut]


class InventoryEntryOut(CamelModel):
    powerup_type: str
    available: int
    purchased: int
    earned: int
    used: int
    cost: int


class InventoryResponse(CamelModel):
    user_id: str
    inventory: list[InventoryEntryOut]


class PurchaseRequest(CamelModel):
    powerup_type: PowerUp
    quantity: int = Field(default=1, ge=1, le=20)
    user_id: str | None = Field(default=None, max_length=64)


class PurchaseResponse(CamelModel):
    powerup_type: str
    quantity: int
    total_cost: int
    balance: int
    inventory: list[InventoryEntryOut]


class UseRequest(CamelModel):
    powerup_type: PowerUp
    exercise_id: str | None = Field(default=None, max_length=64)


class UseResponse(CamelModel):
    powerup_type: str
    inventory: list[InventoryEntryOut]
