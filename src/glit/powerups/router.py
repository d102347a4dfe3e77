"""Power-up API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from glit.auth.dependencies import CurrentUser, ensure_can_view, ensure_staff, get_current_user
from glit.dependencies import get_config_dep, get_db
from glit.engine_config import EngineConfig
from glit.powerups.schemas import (
    InventoryEntryOut,
    InventoryResponse,
    PowerUpCatalogResponse,
    PowerUpOut,
    PurchaseRequest,
    PurchaseResponse,
    UseRequest,
    UseResponse,
)
from glit.powerups.service import PowerUpService

router = APIRouter(prefix="/api/v1/powerups", tags=["Power-ups"])


async def _inventory(service: PowerUpService, user_id: str) -> list[InventoryEntryOut]:
    return [InventoryEntryOut.model_validate(e) for e in await service.get_inventory(user_id)]


@router.get("", response_model=PowerUpCatalogResponse)
async def list_powerups(config: EngineConfig = Depends(get_config_dep)) -> PowerUpCatalogResponse:
    return PowerUpCatalogResponse(
        powerups=[
            PowerUpOut(
                type=p.type.value,
                name=p.name,
                description=p.description,
                cost=p.cost,
                per_exercise_limit=p.per_exercise_limit,
            )
            for p in config.powerups
        ]
    )


@router.get("/{user_id}/inventory", response_model=InventoryResponse)
async def get_inventory(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> InventoryResponse:
    ensure_can_view(user, user_id)
    return InventoryResponse(user_id=user_id, inventory=await _inventory(PowerUpService(db, config), user_id))


@router.post("/purchase", response_model=PurchaseResponse, status_code=201)
async def purchase_powerup(
    body: PurchaseRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> PurchaseResponse:
    """Buy power-ups with ML Coins. 400 INSUFFICIENT_FUNDS writes nothing."""
    target = body.user_id or user.user_id
    if target != user.user_id:
        ensure_staff(user)
    service = PowerUpService(db, config)
    try:
        purchase = await service.purchase(target, body.powerup_type.value, body.quantity)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return PurchaseResponse(
        powerup_type=purchase.powerup_type,
        quantity=purchase.quantity,
        total_cost=purchase.total_cost,
        balance=purchase.balance_after,
        inventory=await _inventory(service, target),
    )


@router.post("/use", response_model=UseResponse)
async def use_powerup(
    body: UseRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> UseResponse:
    """Consume one owned power-up. 400 POWERUP_NOT_AVAILABLE when none is left."""
    service = PowerUpService(db, config)
    try:
        await service.use(user.user_id, body.powerup_type.value, body.exercise_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return UseResponse(powerup_type=body.powerup_type.value, inventory=await _inventory(service, user.user_id))
