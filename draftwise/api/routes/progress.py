"""Progress endpoints: dashboard summary, weekly goal, streak, and quality trend."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from draftwise.api.dependencies import get_progress_service
from draftwise.api.middleware.user_auth import AuthenticatedUser, get_current_user
from draftwise.progress.models import ProgressData, ProgressSettings, QualityTrend
from draftwise.progress.service import ProgressService

router = APIRouter(prefix="/api/progress", tags=["progress"])


class WeeklyGoalRequest(BaseModel):
    weekly_goal: int


class StreakResponse(BaseModel):
    current_streak: int


@router.get("", response_model=ProgressData)
def get_progress(
    user: AuthenticatedUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
) -> ProgressData:
    return service.get_progress(user.id)


@router.put("/goal", response_model=ProgressSettings)
def set_weekly_goal(
    body: WeeklyGoalRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
) -> ProgressSettings:
    return service.set_weekly_goal(user.id, body.weekly_goal)


@router.get("/streak", response_model=StreakResponse)
def get_streak(
    user: AuthenticatedUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
) -> StreakResponse:
    return StreakResponse(current_streak=service.get_current_streak(user.id))


@router.get("/trend", response_model=QualityTrend)
def get_trend(
    user: AuthenticatedUser = Depends(get_current_user),
    service: ProgressService = Depends(get_progress_service),
) -> QualityTrend:
    return service.get_quality_trend(user.id)
