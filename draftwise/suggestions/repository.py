"""
Suggestion repository - CRUD for the suggestions table.

All methods go through the shared connection pool; writes retry on lock.
"""

from __future__ import annotations

import sqlite3
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from draftwise.config import MAX_ACCEPTED_IN_PROMPT
from draftwise.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter
from draftwise.suggestions.models import AcceptedSuggestion, Suggestion, SuggestionStatus, enum_value

logger = get_logger(__name__)

_COLUMNS = (
    "id",
    "document_id",
    "user_id",
    "type",
    "category",
    "severity",
    "original_text",
    "suggested_text",
    "explanation",
    "confidence",
    "start_index",
    "end_index",
    "status",
    "grammar_rule",
    "analysis_id",
    "created_at",
    "updated_at",
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def from_db_row(row: sqlite3.Row) -> Suggestion:
    return Suggestion(**{column: row[column] for column in _COLUMNS})


class SuggestionRepository:
    """Repository for Suggestion records."""

    @staticmethod
    @retry_on_db_lock()
    def create(suggestion: Suggestion) -> Suggestion:
        """
        Insert a suggestion with a fresh id and server timestamps.

        Side Effects:
            - Inserts row into suggestions table
        """
        now = _now_iso()
        saved = suggestion.model_copy(
            update={"id": str(uuid.uuid4()), "created_at": now, "updated_at": now}
        )
        row: dict[str, Any] = saved.model_dump(include=set(_COLUMNS))

        with db_transaction() as conn:
            conn.execute(
                f"INSERT INTO suggestions ({', '.join(_COLUMNS)}) "
                f"VALUES ({', '.join(':' + c for c in _COLUMNS)})",
                row,
            )
        return saved

    @staticmethod
    def create_many(suggestions: Sequence[Suggestion]) -> list[Suggestion]:
        """
        Best-effort batch insert: a failing item is logged and skipped, the
        rest are still written. Returns the records that were saved.
        """
        saved = []
        for suggestion in suggestions:
            try:
                saved.append(SuggestionRepository.create(suggestion))
            except Exception as e:
                counter("suggestions.persist_failed")
                logger.error(
                    "Failed to persist suggestion (%s at %d-%d): %s",
                    suggestion.type,
                    suggestion.start_index,
                    suggestion.end_index,
                    e,
                )
        if len(saved) != len(suggestions):
            logger.warning("Persisted %d of %d suggestions", len(saved), len(suggestions))
        return saved

    @staticmethod
    def get(suggestion_id: str) -> Suggestion | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM suggestions WHERE id = ?", (suggestion_id,)).fetchone()
        return from_db_row(row) if row else None

    @staticmethod
    def list_for_document(
        user_id: str,
        document_id: str,
        status: str | None = None,
    ) -> list[Suggestion]:
        query = "SELECT * FROM suggestions WHERE user_id = ? AND document_id = ?"
        params: list[Any] = [user_id, document_id]
        if status is not None:
            query += " AND status = ?"
            params.append(enum_value(status))
        query += " ORDER BY start_index ASC, created_at ASC"

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [from_db_row(row) for row in rows]

    @staticmethod
    def list_for_user(user_id: str, document_id: str | None = None) -> list[Suggestion]:
        query = "SELECT * FROM suggestions WHERE user_id = ?"
        params: list[Any] = [user_id]
        if document_id is not None:
            query += " AND document_id = ?"
            params.append(document_id)

        with get_db_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [from_db_row(row) for row in rows]

    @staticmethod
    def pending_original_texts(user_id: str, document_id: str) -> set[str]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT DISTINCT original_text FROM suggestions
                WHERE user_id = ? AND document_id = ? AND status = ?
                """,
                (user_id, document_id, SuggestionStatus.PENDING.value),
            ).fetchall()
        return {row["original_text"] for row in rows}

    @staticmethod
    def recent_accepted(
        user_id: str,
        document_id: str,
        limit: int = MAX_ACCEPTED_IN_PROMPT,
    ) -> list[AcceptedSuggestion]:
        """Most recently accepted suggestions, oldest first."""
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT original_text, suggested_text, type FROM suggestions
                WHERE user_id = ? AND document_id = ? AND status = ?
                ORDER BY updated_at DESC LIMIT ?
                """,
                (user_id, document_id, SuggestionStatus.ACCEPTED.value, limit),
            ).fetchall()
        return [
            AcceptedSuggestion(
                original_text=row["original_text"],
                suggested_text=row["suggested_text"],
                type=row["type"],
            )
            for row in reversed(rows)
        ]

    @staticmethod
    @retry_on_db_lock()
    def update_status(suggestion_id: str, status: str) -> Suggestion | None:
        with db_transaction() as conn:
            conn.execute(
                "UPDATE suggestions SET status = ?, updated_at = ? WHERE id = ?",
                (enum_value(status), _now_iso(), suggestion_id),
            )
        return SuggestionRepository.get(suggestion_id)

    @staticmethod
    @retry_on_db_lock()
    def update_indices(suggestion_id: str, start_index: int, end_index: int) -> None:
        with db_transaction() as conn:
            conn.execute(
                "UPDATE suggestions SET start_index = ?, end_index = ?, updated_at = ? WHERE id = ?",
                (start_index, end_index, _now_iso(), suggestion_id),
            )

    @staticmethod
    def delete_older_than(cutoff_iso: str, statuses: Sequence[str] = ("accepted", "rejected")) -> int:
        """Delete resolved suggestions last updated before ``cutoff_iso``."""
        placeholders = ", ".join("?" for _ in statuses)
        with db_transaction() as conn:
            cursor = conn.execute(
                f"DELETE FROM suggestions WHERE updated_at < ? AND status IN ({placeholders})",
                (cutoff_iso, *(enum_value(s) for s in statuses)),
            )
            return cursor.rowcount
