"""Mission API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from glit.auth.dependencies import CurrentUser, ensure_can_view, get_current_user
from glit.db.models import Mission
from glit.dependencies import get_config_dep, get_db
from glit.engine_config import EngineConfig
from glit.missions.quest_engine import QuestEngine
from glit.missions.schemas import (
    ClaimResponse,
    MissionListResponse,
    MissionOut,
    MissionRewardsOut,
    MissionStatsResponse,
    ObjectiveOut,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
)
from glit.missions.templates import MissionType

router = APIRouter(prefix="/api/v1/missions", tags=["Missions"])


def _mission_out(m: Mission) -> MissionOut:
    return MissionOut(
        id=m.id,
        template_id=m.template_id,
        mission_type=m.mission_type,
        title=m.title,
        description=m.description,
        difficulty=m.difficulty,
        status=m.status,
        progress=m.progress,
        objectives=[ObjectiveOut(type=o.objective_type, target=o.target, current=o.current) for o in m.objectives],
        rewards=MissionRewardsOut(coins=m.reward_coins, xp=m.reward_xp, items=list(m.reward_items or [])),
        start_date=m.start_date,
        end_date=m.end_date,
        completed_at=m.completed_at,
        claimed_at=m.claimed_at,
    )


async def _list(user: CurrentUser, db: AsyncSession, config: EngineConfig, mission_type: MissionType) -> MissionListResponse:
    missions = await QuestEngine(db, config).get_missions(user.user_id, mission_type)
    items = [_mission_out(m) for m in missions]
    return MissionListResponse(missions=items, total=len(items))


@router.get("/stats", response_model=MissionStatsResponse)
async def mission_stats(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> MissionStatsResponse:
    stats = await QuestEngine(db, config).get_stats(user.user_id)
    return MissionStatsResponse.model_validate(stats)


@router.get("/daily", response_model=MissionListResponse)
async def daily_missions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> MissionListResponse:
    """Today's missions, generated on first access."""
    return await _list(user, db, config, MissionType.DAILY)


@router.get("/weekly", response_model=MissionListResponse)
async def weekly_missions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> MissionListResponse:
    """This ISO week's missions, generated on first access."""
    return await _list(user, db, config, MissionType.WEEKLY)


@router.get("/special", response_model=MissionListResponse)
async def special_missions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> MissionListResponse:
    return await _list(user, db, config, MissionType.SPECIAL)


@router.post("/special/{template_id}", response_model=MissionOut, status_code=201)
async def start_special_mission(
    template_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> MissionOut:
    """Start a special mission; returns the live one if the user already has it."""
    mission = await QuestEngine(db, config).assign_special(user.user_id, template_id)
    await db.commit()
    return _mission_out(mission)


@router.post("/{mission_id}/claim", response_model=ClaimResponse)
async def claim_mission(
    mission_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> ClaimResponse:
    """Claim a completed mission's rewards. 409 MISSION_ALREADY_CLAIMED on repeat."""
    try:
        claim = await QuestEngine(db, config).claim_rewards(user.user_id, mission_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return ClaimResponse.model_validate(claim)


@router.post("/check/{user_id}", response_model=ProgressUpdateResponse)
async def check_progress(
    user_id: str,
    body: ProgressUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    config: EngineConfig = Depends(get_config_dep),
) -> ProgressUpdateResponse:
    """Advance objectives matching ``actionType`` by ``amount``."""
    ensure_can_view(user, user_id)
    completed = await QuestEngine(db, config).update_progress(user_id, body.action_type, body.amount)
    await db.commit()
    return ProgressUpdateResponse(completed_missions=[_mission_out(m) for m in completed])
