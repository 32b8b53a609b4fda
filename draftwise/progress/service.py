"""
Writing progress.

Two kinds of progress are tracked per user:
- consistency: a weekly document goal and a streak of consecutive login days
- quality: error rate (spelling and grammar suggestions per 100 words) stored
  per document after each full analysis, compared across the last two windows
  of TREND_WINDOW documents

All dates are UTC calendar days. Weeks start on Sunday.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date, datetime, time, timedelta, timezone

from draftwise.config import TREND_THRESHOLD, TREND_WINDOW
from draftwise.errors import InvalidRequest
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter
from draftwise.progress.models import (
    ProgressData,
    ProgressSettings,
    QualityMetrics,
    QualityTrend,
    Trend,
)
from draftwise.progress.repository import ProgressRepository
from draftwise.suggestions.models import CORRECTNESS_TYPES, Suggestion, enum_value

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_week(day: date) -> date:
    """The Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def calculate_quality_metrics(
    user_id: str, document_id: str, content: str, suggestions: Sequence[Suggestion]
) -> QualityMetrics:
    word_count = len(content.split())
    if word_count == 0:
        return QualityMetrics(
            user_id=user_id,
            document_id=document_id,
            error_rate=0.0,
            suggestion_density=0.0,
            word_count=0,
        )

    errors = sum(1 for s in suggestions if enum_value(s.type) in CORRECTNESS_TYPES)
    return QualityMetrics(
        user_id=user_id,
        document_id=document_id,
        error_rate=errors / word_count * 100,
        suggestion_density=len(suggestions) / word_count * 100,
        word_count=word_count,
    )


def quality_trend(metrics: Sequence[QualityMetrics]) -> QualityTrend:
    """``metrics`` must be newest first."""
    if not metrics:
        return QualityTrend()

    recent = [m.error_rate for m in metrics[:TREND_WINDOW]]
    previous = [m.error_rate for m in metrics[TREND_WINDOW : TREND_WINDOW * 2]]
    recent_rate = sum(recent) / len(recent)
    previous_rate = sum(previous) / len(previous) if previous else recent_rate

    trend = Trend.STEADY
    if abs(recent_rate - previous_rate) > TREND_THRESHOLD:
        trend = Trend.IMPROVING if recent_rate < previous_rate else Trend.DECLINING

    return QualityTrend(
        recent_error_rate=round(recent_rate, 2),
        previous_error_rate=round(previous_rate, 2),
        trend=trend,
        personal_best=round(min(m.error_rate for m in metrics), 2),
    )


class ProgressService:
    def __init__(
        self,
        repository: type[ProgressRepository] = ProgressRepository,
        now_fn: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self._now = now_fn

    def _settings(self, user_id: str) -> ProgressSettings:
        settings = self.repository.get_settings(user_id)
        if settings is None:
            now = self._now().isoformat()
            settings = ProgressSettings(user_id=user_id, created_at=now, updated_at=now)
        return settings

    def get_settings(self, user_id: str) -> ProgressSettings:
        return self._settings(user_id)

    def set_weekly_goal(self, user_id: str, weekly_goal: int) -> ProgressSettings:
        if weekly_goal < 1:
            raise InvalidRequest("Weekly goal must be at least 1")
        settings = self._settings(user_id).model_copy(
            update={"weekly_goal": weekly_goal, "updated_at": self._now().isoformat()}
        )
        return self.repository.save_settings(settings)

    def track_daily_login(self, user_id: str) -> int:
        """
        Record today's login and return the streak.

        Same day: unchanged. Day after the last login: +1. Any gap: back to 1.
        """
        today = self._now().date()
        settings = self._settings(user_id)
        last = date.fromisoformat(settings.last_login_date) if settings.last_login_date else None

        if last == today:
            return settings.current_streak
        if last is not None and last == today - timedelta(days=1):
            streak = settings.current_streak + 1
        else:
            streak = 1

        self.repository.save_settings(
            settings.model_copy(
                update={
                    "last_login_date": today.isoformat(),
                    "current_streak": streak,
                    "updated_at": self._now().isoformat(),
                }
            )
        )
        return streak

    def get_current_streak(self, user_id: str) -> int:
        """Streak without recording a login; a broken streak is reset to 0."""
        settings = self.repository.get_settings(user_id)
        if settings is None or settings.last_login_date is None:
            return 0

        today = self._now().date()
        last = date.fromisoformat(settings.last_login_date)
        if today - last <= timedelta(days=1):
            return settings.current_streak

        if settings.current_streak:
            self.repository.save_settings(
                settings.model_copy(
                    update={"current_streak": 0, "updated_at": self._now().isoformat()}
                )
            )
        return 0

    def documents_this_week(self, user_id: str) -> int:
        week_start = datetime.combine(
            start_of_week(self._now().date()), time.min, tzinfo=timezone.utc
        )
        return self.repository.count_documents_since(user_id, week_start.isoformat())

    def record_analysis(
        self, user_id: str, document_id: str, content: str, suggestions: Sequence[Suggestion]
    ) -> QualityMetrics | None:
        """Store quality metrics for a document. Best-effort; failures are logged."""
        metrics = calculate_quality_metrics(user_id, document_id, content, suggestions)
        metrics = metrics.model_copy(update={"created_at": self._now().isoformat()})
        try:
            saved = self.repository.save_metrics(metrics)
        except Exception as e:
            logger.warning("Could not store quality metrics for %s: %s", document_id, e)
            return None
        counter("progress.metrics_recorded")
        return saved

    def get_quality_trend(self, user_id: str) -> QualityTrend:
        return quality_trend(self.repository.list_metrics(user_id))

    def get_progress(self, user_id: str) -> ProgressData:
        """Dashboard summary. Counts as today's login."""
        streak = self.track_daily_login(user_id)
        trend = self.get_quality_trend(user_id)
        return ProgressData(
            weekly_goal=self._settings(user_id).weekly_goal,
            documents_this_week=self.documents_this_week(user_id),
            current_streak=streak,
            recent_error_rate=trend.recent_error_rate,
            previous_error_rate=trend.previous_error_rate,
            trend=trend.trend,
            personal_best=trend.personal_best,
        )
