"""Progress settings and per-document quality metrics."""

from __future__ import annotations

from draftwise.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from draftwise.progress.models import ProgressSettings, QualityMetrics


class ProgressRepository:
    @staticmethod
    def get_settings(user_id: str) -> ProgressSettings | None:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT * FROM progress_settings WHERE user_id = ?", (user_id,)
            ).fetchone()
        return ProgressSettings(**dict(row)) if row is not None else None

    @staticmethod
    @retry_on_db_lock()
    def save_settings(settings: ProgressSettings) -> ProgressSettings:
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO progress_settings
                    (user_id, weekly_goal, last_login_date, current_streak, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    weekly_goal = excluded.weekly_goal,
                    last_login_date = excluded.last_login_date,
                    current_streak = excluded.current_streak,
                    updated_at = excluded.updated_at
                """,
                (
                    settings.user_id,
                    settings.weekly_goal,
                    settings.last_login_date,
                    settings.current_streak,
                    settings.created_at,
                    settings.updated_at,
                ),
            )
        return settings

    @staticmethod
    @retry_on_db_lock()
    def save_metrics(metrics: QualityMetrics) -> QualityMetrics:
        """One row per document; re-analysis replaces it."""
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO quality_metrics
                    (user_id, document_id, error_rate, suggestion_density, word_count, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    metrics.user_id,
                    metrics.document_id,
                    metrics.error_rate,
                    metrics.suggestion_density,
                    metrics.word_count,
                    metrics.created_at,
                ),
            )
        return metrics

    @staticmethod
    def list_metrics(user_id: str) -> list[QualityMetrics]:
        """Newest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM quality_metrics WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [QualityMetrics(**dict(row)) for row in rows]

    @staticmethod
    def count_documents_since(user_id: str, since_iso: str) -> int:
        with get_db_connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM quality_metrics WHERE user_id = ? AND created_at >= ?",
                (user_id, since_iso),
            ).fetchone()[0]
