"""
Modification tracking: which paragraphs changed between snapshots, and which
spans have been rewritten through clarity/engagement suggestions.

Rewritten spans ("modified areas") suppress repeated stylistic suggestions on
the same text. Correctness suggestions (spelling, grammar) are never
suppressed.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone

from draftwise.analysis.paragraphs import ParagraphChange, detect_changes
from draftwise.config import CHANGE_RETENTION_DAYS, EXCLUSION_THRESHOLDS
from draftwise.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter
from draftwise.suggestions.models import TRACKED_AREA_TYPES, ModifiedArea, enum_value

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def spans_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open overlap: [a, b) and [b, c) do not overlap."""
    return not (end_a <= start_b or end_b <= start_a)


def should_exclude_area(
    start_index: int,
    end_index: int,
    suggestion_type: str,
    areas: Sequence[ModifiedArea],
    max_iterations: int | None = None,
) -> bool:
    """
    True when a same-type modified area overlapping [start, end) has been
    rewritten at least ``max_iterations`` times (default 1 for engagement,
    2 for clarity). Other suggestion types are never excluded.
    """
    suggestion_type = enum_value(suggestion_type)
    if suggestion_type not in TRACKED_AREA_TYPES:
        return False

    threshold = max_iterations if max_iterations is not None else EXCLUSION_THRESHOLDS[suggestion_type]

    return any(
        area.type == suggestion_type
        and spans_overlap(start_index, end_index, area.start_index, area.end_index)
        and area.modification_count >= threshold
        for area in areas
    )


class ModificationTracker:
    """Persists change records and modified areas per (document, user)."""

    def __init__(self, now_fn: Callable[[], datetime] = _utcnow):
        self._now = now_fn

    def track_changes(
        self,
        document_id: str,
        user_id: str,
        old_content: str,
        new_content: str,
    ) -> list[ParagraphChange]:
        """
        Diff two snapshots and record one change row per changed paragraph.

        The diff is returned even if recording fails; history is advisory.
        """
        changes = detect_changes(old_content, new_content)
        if not changes:
            return changes

        try:
            self._record_changes(document_id, user_id, changes)
        except Exception as e:
            logger.warning("Failed to record %d paragraph changes: %s", len(changes), e)
            counter("tracker.record_failed")

        return changes

    @retry_on_db_lock()
    def _record_changes(
        self, document_id: str, user_id: str, changes: Sequence[ParagraphChange]
    ) -> None:
        now = self._now().isoformat()
        with db_transaction() as conn:
            conn.executemany(
                """
                INSERT INTO change_records
                    (id, document_id, user_id, paragraph_index, change_type, old_text, new_text, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        str(uuid.uuid4()),
                        document_id,
                        user_id,
                        change.index,
                        change.change_type.value,
                        change.old_text,
                        change.new_text,
                        now,
                    )
                    for change in changes
                ],
            )

    def get_modified_areas(self, document_id: str, user_id: str) -> list[ModifiedArea]:
        """Modified areas, most recent first. Returns [] if the store is unavailable."""
        try:
            with get_db_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM modified_areas
                    WHERE document_id = ? AND user_id = ?
                    ORDER BY last_modified DESC
                    """,
                    (document_id, user_id),
                ).fetchall()
        except Exception as e:
            logger.warning("Could not load modified areas for %s: %s", document_id, e)
            return []

        return [
            ModifiedArea(
                id=row["id"],
                start_index=row["start_index"],
                end_index=row["end_index"],
                type=row["type"],
                modification_count=row["modification_count"],
                last_modified=row["last_modified"],
            )
            for row in rows
        ]

    @retry_on_db_lock()
    def track_modification(
        self,
        document_id: str,
        user_id: str,
        start_index: int,
        end_index: int,
        suggestion_type: str,
        new_text: str | None = None,
    ) -> ModifiedArea | None:
        """
        Record that [start, end) was rewritten by an accepted suggestion.

        Bumps modification_count on an overlapping same-type area, or creates
        a new area with count 1. When ``new_text`` is given the area's end is
        moved to cover the replacement, and never shrinks below one character.
        No-op for untracked types.
        """
        suggestion_type = enum_value(suggestion_type)
        if suggestion_type not in TRACKED_AREA_TYPES:
            return None

        new_end = start_index + len(new_text) if new_text is not None else end_index
        # A deletion still leaves a one-character area at the cut point
        new_end = max(new_end, start_index + 1)
        now = self._now().isoformat()

        with db_transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM modified_areas WHERE document_id = ? AND user_id = ? AND type = ?",
                (document_id, user_id, suggestion_type),
            ).fetchall()

            existing = next(
                (
                    row
                    for row in rows
                    if spans_overlap(start_index, end_index, row["start_index"], row["end_index"])
                ),
                None,
            )

            if existing is not None:
                area = ModifiedArea(
                    id=existing["id"],
                    start_index=existing["start_index"],
                    end_index=max(existing["end_index"], new_end),
                    type=suggestion_type,
                    modification_count=existing["modification_count"] + 1,
                    last_modified=now,
                )
                conn.execute(
                    """
                    UPDATE modified_areas
                    SET end_index = ?, modification_count = ?, last_modified = ?
                    WHERE id = ?
                    """,
                    (area.end_index, area.modification_count, now, area.id),
                )
            else:
                area = ModifiedArea(
                    id=str(uuid.uuid4()),
                    start_index=start_index,
                    end_index=new_end,
                    type=suggestion_type,
                    modification_count=1,
                    last_modified=now,
                )
                conn.execute(
                    """
                    INSERT INTO modified_areas
                        (id, document_id, user_id, start_index, end_index, type, modification_count, last_modified)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (area.id, document_id, user_id, area.start_index, area.end_index, area.type, 1, now),
                )

        counter("tracker.modification")
        return area

    def cleanup_old_changes(self, days: int = CHANGE_RETENTION_DAYS, dry_run: bool = False) -> int:
        """Delete change records older than ``days``. Returns the number removed (or eligible)."""
        cutoff = (self._now() - timedelta(days=days)).isoformat()

        with db_transaction() as conn:
            if dry_run:
                (count,) = conn.execute(
                    "SELECT COUNT(*) FROM change_records WHERE created_at < ?", (cutoff,)
                ).fetchone()
                return count
            cursor = conn.execute("DELETE FROM change_records WHERE created_at < ?", (cutoff,))
            return cursor.rowcount
