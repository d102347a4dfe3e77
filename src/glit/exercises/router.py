"""Exercise submission endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from glit.auth.dependencies import CurrentUser, get_current_user
from glit.config import Settings
from glit.dependencies import (
    get_config_dep,
    get_db,
    get_exercise_catalog,
    get_notifier,
    get_redis_dep,
    get_settings_dep,
)
from glit.engine_config import EngineConfig
from glit.exercises.catalog import ExerciseCatalog
from glit.exercises.schemas import SubmitRequest, SubmitResponse
from glit.notifications import Notifier
from glit.submissions.orchestrator import Submission, SubmissionOrchestrator

router = APIRouter(prefix="/api/v1/exercises", tags=["Exercises"])


@router.post("/{exercise_id}/submit", response_model=SubmitResponse)
async def submit_exercise(
    exercise_id: str,
    body: SubmitRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
    settings: Settings = Depends(get_settings_dep),
    config: EngineConfig = Depends(get_config_dep),
    catalog: ExerciseCatalog = Depends(get_exercise_catalog),
    notifier: Notifier = Depends(get_notifier),
) -> SubmitResponse:
    """Score a submission, credit its rewards and run progression side effects."""
    orchestrator = SubmissionOrchestrator(db, redis, settings, config, catalog, notifier)
    outcome = await orchestrator.handle(
        Submission(
            user_id=user.user_id,
            exercise_id=exercise_id,
            session_id=body.session_id,
            answers=body.answers,
            started_at=body.started_at,
            time_spent_seconds=body.time_spent_seconds,
            hints_used=body.hints_used,
            powerups_used=[p.value for p in body.powerups_used],
            tenant_id=user.tenant_id,
        )
    )
    return SubmitResponse.model_validate(outcome.to_response())
