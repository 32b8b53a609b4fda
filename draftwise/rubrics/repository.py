"""Rubric and rubric-feedback persistence."""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone

from draftwise.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from draftwise.rubrics.models import Rubric, RubricFeedback

# Columns stored outside the JSON payload
_RUBRIC_ROW_FIELDS = {"id", "document_id", "user_id", "title", "raw_text", "created_at"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RubricRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(rubric: Rubric) -> Rubric:
        saved = rubric.model_copy(update={"id": str(uuid.uuid4()), "created_at": _now_iso()})
        parsed = saved.model_dump(exclude=_RUBRIC_ROW_FIELDS)

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO rubrics (id, document_id, user_id, title, raw_text, parsed, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    saved.id,
                    saved.document_id,
                    saved.user_id,
                    saved.title,
                    saved.raw_text,
                    json.dumps(parsed),
                    saved.created_at,
                ),
            )
        return saved

    @staticmethod
    def get(rubric_id: str) -> Rubric | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM rubrics WHERE id = ?", (rubric_id,)).fetchone()
        if row is None:
            return None
        return Rubric(
            **{field: row[field] for field in _RUBRIC_ROW_FIELDS},
            **json.loads(row["parsed"]),
        )

    @staticmethod
    def list_for_document(user_id: str, document_id: str) -> list[Rubric]:
        with get_db_connection() as conn:
            ids = conn.execute(
                """
                SELECT id FROM rubrics WHERE user_id = ? AND document_id = ?
                ORDER BY created_at DESC
                """,
                (user_id, document_id),
            ).fetchall()
        return [r for row in ids if (r := RubricRepository.get(row["id"])) is not None]

    @staticmethod
    @retry_on_db_lock()
    def save_feedback(feedback: RubricFeedback) -> RubricFeedback:
        saved = feedback.model_copy(update={"id": str(uuid.uuid4()), "created_at": _now_iso()})
        body = saved.model_dump(include={"rubric_id", "overall_feedback", "criteria_results"})

        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO rubric_feedback (id, document_id, user_id, overall_score, feedback, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    saved.id,
                    saved.document_id,
                    saved.user_id,
                    saved.overall_score,
                    json.dumps(body),
                    saved.created_at,
                ),
            )
        return saved

    @staticmethod
    def latest_feedback(user_id: str, document_id: str) -> RubricFeedback | None:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM rubric_feedback WHERE user_id = ? AND document_id = ?
                ORDER BY created_at DESC LIMIT 1
                """,
                (user_id, document_id),
            ).fetchone()
        if row is None:
            return None
        return RubricFeedback(
            id=row["id"],
            document_id=row["document_id"],
            user_id=row["user_id"],
            overall_score=row["overall_score"],
            created_at=row["created_at"],
            **json.loads(row["feedback"]),
        )
