"""
Analysis cache backed by the analysis_cache table.

One row per (user, content fingerprint). Entries expire CACHE_TTL_HOURS after
they are written; expiry is lazy (checked and deleted on lookup) with
clear_expired() available for the retention job. Writes are best-effort:
suggestions are already generated by the time we cache them, so a failed
write only costs a future miss.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from draftwise.analysis.hashing import cache_key
from draftwise.config import CACHE_CLEANUP_BATCH, CACHE_MAX_ENTRIES_PER_USER, CACHE_TTL_HOURS
from draftwise.errors import CacheWriteFailed
from draftwise.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter, log_event

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CachedAnalysis:
    analysis: list[dict[str, Any]]
    metadata: dict[str, Any]


class AnalysisCache:
    """SQLite-backed suggestion cache keyed by ``userId_contentHash``."""

    def __init__(
        self,
        ttl_hours: int = CACHE_TTL_HOURS,
        max_entries_per_user: int = CACHE_MAX_ENTRIES_PER_USER,
        now_fn: Callable[[], datetime] = _utcnow,
    ):
        self.ttl = timedelta(hours=ttl_hours)
        self.max_entries_per_user = max_entries_per_user
        self._now = now_fn

    def get(self, content_hash: str, user_id: str) -> CachedAnalysis | None:
        """
        Look up a cached analysis.

        Returns None on a miss or an expired entry (which is deleted). A hit
        bumps access_count and last_accessed_at and returns metadata enriched
        with cache_hit, cache_age (seconds) and access_count.
        """
        key = cache_key(user_id, content_hash)
        now = self._now()

        try:
            with db_transaction() as conn:
                row = conn.execute("SELECT * FROM analysis_cache WHERE id = ?", (key,)).fetchone()

                if row is None:
                    counter("cache.miss")
                    return None

                if datetime.fromisoformat(row["expires_at"]) < now:
                    conn.execute("DELETE FROM analysis_cache WHERE id = ?", (key,))
                    counter("cache.expired")
                    logger.debug("Cache entry expired, removed: %s", key)
                    return None

                access_count = row["access_count"] + 1
                conn.execute(
                    "UPDATE analysis_cache SET access_count = ?, last_accessed_at = ? WHERE id = ?",
                    (access_count, now.isoformat(), key),
                )
        except Exception as e:
            # A broken cache read degrades to a miss; the caller recomputes.
            logger.warning("Cache read failed for %s: %s", key, e)
            counter("cache.read_error")
            return None

        created_at = datetime.fromisoformat(row["created_at"])
        metadata = json.loads(row["metadata"])
        metadata.update(
            {
                "cache_hit": True,
                "cache_age": (now - created_at).total_seconds(),
                "access_count": access_count,
            }
        )
        counter("cache.hit")
        return CachedAnalysis(analysis=json.loads(row["analysis"]), metadata=metadata)

    def set(
        self,
        content_hash: str,
        user_id: str,
        analysis: list[dict[str, Any]],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Store an analysis for 24h. Never raises."""
        key = cache_key(user_id, content_hash)
        try:
            self._write(key, content_hash, user_id, analysis, metadata or {})
        except Exception as e:
            failure = CacheWriteFailed(str(e), cache_key=key)
            logger.warning("Cache write failed (non-fatal): %s", failure)
            counter("cache.write_failed")
            log_event("cache.write_failed", user_id=user_id, error=type(e).__name__)
            return

        counter("cache.write")
        self.cleanup_user(user_id)

    @retry_on_db_lock()
    def _write(
        self,
        key: str,
        content_hash: str,
        user_id: str,
        analysis: list[dict[str, Any]],
        metadata: dict[str, Any],
    ) -> None:
        now = self._now()
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO analysis_cache
                    (id, user_id, content_hash, analysis, metadata,
                     created_at, last_accessed_at, access_count, expires_at)
                VALUES (:id, :user_id, :content_hash, :analysis, :metadata,
                        :now, :now, 0, :expires_at)
                """,
                {
                    "id": key,
                    "user_id": user_id,
                    "content_hash": content_hash,
                    "analysis": json.dumps(analysis),
                    "metadata": json.dumps(metadata),
                    "now": now.isoformat(),
                    "expires_at": (now + self.ttl).isoformat(),
                },
            )

    def cleanup_user(self, user_id: str) -> int:
        """
        Enforce the per-user entry cap by evicting least recently accessed rows.

        Evicts down to the cap plus CACHE_CLEANUP_BATCH more so the next few
        writes don't each trigger an eviction. Best-effort; returns rows removed.
        """
        try:
            with db_transaction() as conn:
                (total,) = conn.execute(
                    "SELECT COUNT(*) FROM analysis_cache WHERE user_id = ?", (user_id,)
                ).fetchone()
                excess = total - self.max_entries_per_user
                if excess <= 0:
                    return 0

                # Always keep the most recently used entry
                to_remove = min(total - 1, excess + CACHE_CLEANUP_BATCH)
                cursor = conn.execute(
                    """
                    DELETE FROM analysis_cache WHERE id IN (
                        SELECT id FROM analysis_cache WHERE user_id = ?
                        ORDER BY last_accessed_at ASC LIMIT ?
                    )
                    """,
                    (user_id, to_remove),
                )
                removed = cursor.rowcount
        except Exception as e:
            logger.warning("Cache size cleanup failed for user %s: %s", user_id, e)
            return 0

        logger.info("Evicted %d cache entries for user %s", removed, user_id)
        counter("cache.evicted", removed)
        return removed

    def clear_expired(self) -> int:
        with db_transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM analysis_cache WHERE expires_at < ?", (self._now().isoformat(),)
            )
            return cursor.rowcount

    def clear_user(self, user_id: str) -> int:
        with db_transaction() as conn:
            cursor = conn.execute("DELETE FROM analysis_cache WHERE user_id = ?", (user_id,))
            removed = cursor.rowcount
        log_event("cache.cleared", user_id=user_id, removed=removed)
        return removed

    def stats(self, user_id: str) -> dict[str, Any]:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT COUNT(*) AS total_entries,
                       COALESCE(SUM(access_count), 0) AS total_access_count,
                       MIN(created_at) AS oldest_entry,
                       MAX(created_at) AS newest_entry
                FROM analysis_cache WHERE user_id = ?
                """,
                (user_id,),
            ).fetchone()

        total = row["total_entries"]
        return {
            "total_entries": total,
            "total_access_count": row["total_access_count"],
            "average_access_count": row["total_access_count"] / total if total else 0.0,
            "oldest_entry": row["oldest_entry"],
            "newest_entry": row["newest_entry"],
        }
