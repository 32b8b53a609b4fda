"""
Paragraph tag repository - CRUD for the paragraph_tags table.
"""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any

from draftwise.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from draftwise.observability.logging import get_logger
from draftwise.suggestions.models import ParagraphTag

logger = get_logger(__name__)

_UPDATABLE = frozenset({"paragraph_index", "start_index", "end_index", "text", "tag_type", "note"})


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def from_db_row(row: sqlite3.Row) -> ParagraphTag:
    return ParagraphTag(**dict(row))


class TagRepository:
    @staticmethod
    @retry_on_db_lock()
    def create(tag: ParagraphTag) -> ParagraphTag:
        now = _now_iso()
        saved = tag.model_copy(update={"id": str(uuid.uuid4()), "created_at": now, "updated_at": now})
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO paragraph_tags (
                    id, document_id, user_id, paragraph_index, start_index, end_index,
                    text, tag_type, note, created_at, updated_at
                ) VALUES (
                    :id, :document_id, :user_id, :paragraph_index, :start_index, :end_index,
                    :text, :tag_type, :note, :created_at, :updated_at
                )
                """,
                saved.model_dump(),
            )
        logger.info("Created %s tag on paragraph %d of %s", saved.tag_type, saved.paragraph_index, saved.document_id)
        return saved

    @staticmethod
    def get(tag_id: str) -> ParagraphTag | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM paragraph_tags WHERE id = ?", (tag_id,)).fetchone()
        return from_db_row(row) if row else None

    @staticmethod
    def list_for_document(user_id: str, document_id: str) -> list[ParagraphTag]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM paragraph_tags
                WHERE user_id = ? AND document_id = ?
                ORDER BY paragraph_index ASC
                """,
                (user_id, document_id),
            ).fetchall()
        return [from_db_row(row) for row in rows]

    @staticmethod
    @retry_on_db_lock()
    def update(tag_id: str, **fields: Any) -> ParagraphTag | None:
        """Update the given columns. Unknown field names raise ValueError."""
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update tag fields: {', '.join(sorted(unknown))}")
        if not fields:
            return TagRepository.get(tag_id)

        fields["updated_at"] = _now_iso()
        assignments = ", ".join(f"{name} = :{name}" for name in fields)
        with db_transaction() as conn:
            conn.execute(f"UPDATE paragraph_tags SET {assignments} WHERE id = :id", {**fields, "id": tag_id})
        return TagRepository.get(tag_id)

    @staticmethod
    @retry_on_db_lock()
    def delete(tag_id: str) -> bool:
        with db_transaction() as conn:
            cursor = conn.execute("DELETE FROM paragraph_tags WHERE id = ?", (tag_id,))
            return cursor.rowcount > 0
