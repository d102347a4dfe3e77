"""Request/response models for mission endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from glit.missions.templates import ObjectiveType
from glit.schemas import CamelModel


class ObjectiveOut(CamelModel):
    type: str
    target: int
    current: int


class MissionRewardsOut(CamelModel):
    coins: int
    xp: int
    items: list[str] = []


class MissionOut(CamelModel):
    id: str
    template_id: str
    mission_type: str
    title: str
    description: str
    difficulty: str
    status: str
    progress: float
    objectives: list[ObjectiveOut]
    rewards: MissionRewardsOut
    start_date: datetime
    end_date: datetime
    completed_at: datetime | None = None
    claimed_at: datetime | None = None


class MissionListResponse(CamelModel):
    missions: list[MissionOut]
    total: int


class ProgressUpdateRequest(CamelModel):
    action_type: ObjectiveType
    amount: int = Field(default=1, ge=1, le=100_000)


class ProgressUpdateResponse(CamelModel):
    completed_missions: list[MissionOut]


class ClaimResponse(CamelModel):
    mission_id: str
    coins: int
    xp: int
    items: list[str] = []


class MissionStatsResponse(CamelModel):
    total: int
    active: int
    completed: int
    claimed: int
    expired: int
    coins_earned: int
    xp_earned: int
    completion_rate: float
