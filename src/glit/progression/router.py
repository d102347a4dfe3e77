"""Rank, achievement and streak API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from glit.auth.dependencies import CurrentUser, ensure_can_view, ensure_staff, get_current_user
from glit.dependencies import get_config_dep, get_db
from glit.engine_config import EngineConfig
from glit.progression.achievement_service import AchievementEvaluator
from glit.progression.rank_catalog import find_rank, next_rank
from glit.progression.rank_engine import RankEngine
from glit.progression.schemas import (
    AchievementCatalogResponse,
    AchievementOut,
    PromotionCheckResponse,
    PromotionResponse,
    RankCatalogResponse,
    RankDefinitionOut,
    RankHistoryEntry,
    RankHistoryResponse,
    StreakResponse,
    UnlockRequest,
    UnlockResponse,
    UserAchievementOut,
    UserAchievementsResponse,
    UserRankResponse,
)
from glit.progression.streak_service import StreakTracker

router = APIRouter(prefix="/api/v1", tags=["Progression"])


# ── Ranks ──


@router.get("/ranks", response_model=RankCatalogResponse)
async def list_ranks(config: EngineConfig = Depends(get_config_dep)) -> RankCatalogResponse:
    return RankCatalogResponse(
        ranks=[
            RankDefinitionOut(
                rank=r.rank.value,
                title=r.title,
                multiplier=r.multiplier,
                xp_required=r.xp_required,
                modules_required=r.modules_required,
                coins_earned_required=r.coins_earned_required,
                achievements_required=r.achievements_required,
                min_average_score=r.min_average_score,
                signing_bonus=r.signing_bonus,
            )
            for r in config.ranks
        ]
    )


@router.get("/ranks/user/{user_id}", response_model=UserRankResponse)
async def get_user_rank(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> UserRankResponse:
    ensure_can_view(user, user_id)
    current = await RankEngine(db, config).get_current_rank(user_id)
    await db.commit()
    definition = find_rank(config.ranks, current.rank)
    upcoming = next_rank(config.ranks, current.rank)
    return UserRankResponse(
        user_id=user_id,
        rank=current.rank,
        title=definition.title,
        multiplier=definition.multiplier,
        achieved_at=current.achieved_at,
        next_rank=upcoming.rank.value if upcoming else None,
    )


@router.get("/ranks/user/{user_id}/history", response_model=RankHistoryResponse)
async def get_rank_history(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> RankHistoryResponse:
    ensure_can_view(user, user_id)
    rows = await RankEngine(db, config).get_rank_history(user_id)
    return RankHistoryResponse(user_id=user_id, history=[RankHistoryEntry.model_validate(r) for r in rows])


@router.get("/ranks/user/{user_id}/check", response_model=PromotionCheckResponse)
async def check_promotion(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> PromotionCheckResponse:
    ensure_can_view(user, user_id)
    check = await RankEngine(db, config).check_promotion(user_id)
    await db.commit()
    return PromotionCheckResponse.model_validate(check)


@router.post("/ranks/promote/{user_id}", response_model=PromotionResponse)
async def promote_user(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> PromotionResponse:
    """Promote one rank. 400 PROMOTION_REQUIREMENTS_NOT_MET or MAX_RANK_REACHED otherwise."""
    ensure_can_view(user, user_id)
    try:
        result = await RankEngine(db, config).promote_user(user_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return PromotionResponse.model_validate(result)


# ── Achievements ──


@router.get("/achievements", response_model=AchievementCatalogResponse)
async def list_achievements(config: EngineConfig = Depends(get_config_dep)) -> AchievementCatalogResponse:
    return AchievementCatalogResponse(
        achievements=[
            AchievementOut(
                id=a.slug,
                name=a.name,
                description=a.description,
                category=a.category,
                rarity=a.rarity.value,
                condition=a.counter.value,
                threshold=a.threshold,
                ml_coins_reward=a.coin_reward,
                xp_reward=a.xp_reward,
            )
            for a in config.achievements
        ]
    )


@router.get("/achievements/{user_id}", response_model=UserAchievementsResponse)
async def get_user_achievements(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> UserAchievementsResponse:
    ensure_can_view(user, user_id)
    rows = await AchievementEvaluator(db, config).list_user_achievements(user_id)
    return UserAchievementsResponse(
        user_id=user_id,
        unlocked=[
            UserAchievementOut(
                achievement_id=r.achievement_id,
                unlocked_at=r.unlocked_at,
                progress=r.progress,
                metadata=r.unlock_metadata or {},
            )
            for r in rows
        ],
        total_unlocked=len(rows),
        total_available=len(config.achievements),
    )


@router.post("/achievements/unlock", response_model=UnlockResponse, status_code=201)
async def unlock_achievement(
    body: UnlockRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> UnlockResponse:
    """Manual unlock (teacher/admin). 409 ACHIEVEMENT_ALREADY_UNLOCKED on repeat."""
    ensure_staff(user)
    try:
        unlocked = await AchievementEvaluator(db, config).unlock(body.user_id, body.achievement_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return UnlockResponse(
        id=unlocked.slug,
        name=unlocked.name,
        rarity=unlocked.rarity,
        ml_coins=unlocked.coins,
        xp=unlocked.xp,
    )


# ── Streaks ──


@router.get("/streaks/{user_id}", response_model=StreakResponse)
async def get_streak(
    user_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> StreakResponse:
    ensure_can_view(user, user_id)
    info = await StreakTracker(db, config.streak_expiry_hours).get_streak_info(user_id)
    return StreakResponse(
        user_id=user_id,
        current_streak=info.current_streak,
        best_streak=info.best_streak,
        last_activity_at=info.last_activity_at,
        is_active=info.is_active,
    )
