"""Progress records."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from draftwise.config import DEFAULT_WEEKLY_GOAL


class Trend(str, Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STEADY = "steady"


class ProgressSettings(BaseModel):
    user_id: str
    weekly_goal: int = Field(default=DEFAULT_WEEKLY_GOAL, ge=1)
    last_login_date: str | None = None  # ISO date, UTC
    current_streak: int = 0
    created_at: str | None = None
    updated_at: str | None = None


class QualityMetrics(BaseModel):
    """Per-document rates, both per 100 words."""

    user_id: str
    document_id: str
    error_rate: float
    suggestion_density: float
    word_count: int
    created_at: str | None = None


class QualityTrend(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    recent_error_rate: float = 0.0
    previous_error_rate: float = 0.0
    trend: Trend = Trend.STEADY
    personal_best: float = 0.0


class ProgressData(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    weekly_goal: int
    documents_this_week: int
    current_streak: int
    recent_error_rate: float
    previous_error_rate: float
    trend: Trend
    personal_best: float
