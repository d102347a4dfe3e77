"""ML Coins API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from glit.auth.dependencies import CurrentUser, ensure_can_view, ensure_staff, get_current_user
from glit.dependencies import get_db
from glit.economy.ledger import Ledger, TransactionType
from glit.economy.schemas import (
    BalanceResponse,
    EarningStatsResponse,
    EarnRequest,
    SpendRequest,
    TransactionOut,
    TransactionPage,
)

router = APIRouter(prefix="/api/v1/coins", tags=["ML Coins"])


@router.get("/{user_id}", response_model=BalanceResponse)
async def get_balance(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> BalanceResponse:
    ensure_can_view(user, user_id)
    balance = await Ledger(db).get_balance(user_id)
    return BalanceResponse.model_validate(balance)


@router.post("/earn", response_model=TransactionOut, status_code=201)
async def earn_coins(
    body: EarnRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TransactionOut:
    """Manual credit (teacher/admin only)."""
    ensure_staff(user)
    tx = await Ledger(db).credit(
        body.user_id,
        body.amount,
        body.reason,
        TransactionType(body.transaction_type),
        reference_id=body.reference_id,
    )
    await db.commit()
    return TransactionOut.model_validate(tx)


@router.post("/spend", response_model=TransactionOut, status_code=201)
async def spend_coins(
    body: SpendRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TransactionOut:
    """Spend coins. Overdraft attempts fail with 400 INSUFFICIENT_FUNDS and write nothing."""
    target = body.user_id or user.user_id
    if target != user.user_id:
        ensure_staff(user)
    try:
        tx = await Ledger(db).debit(target, body.amount, body.item, TransactionType(body.transaction_type))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return TransactionOut.model_validate(tx)


@router.get("/{user_id}/transactions", response_model=TransactionPage)
async def list_transactions(
    user_id: str,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TransactionPage:
    ensure_can_view(user, user_id)
    rows, total = await Ledger(db).list_transactions(user_id, limit, offset)
    return TransactionPage(
        transactions=[TransactionOut.model_validate(r) for r in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{user_id}/stats", response_model=EarningStatsResponse)
async def earning_stats(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> EarningStatsResponse:
    ensure_can_view(user, user_id)
    ledger = Ledger(db)
    balance = await ledger.get_balance(user_id)
    return EarningStatsResponse(
        user_id=user_id,
        earned_total=balance.earned_total,
        spent_total=balance.spent_total,
        balance=balance.balance,
        by_type=await ledger.get_earning_stats(user_id),
    )
