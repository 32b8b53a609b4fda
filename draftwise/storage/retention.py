"""
Data retention.

Change records are kept for CHANGE_RETENTION_DAYS, expired cache entries are
dropped, and resolved (accepted/rejected) suggestions older than the same
window are removed. Intended to run daily:

    draftwise-cleanup --days 7 --dry-run
"""

from __future__ import annotations

import argparse
from datetime import datetime, timedelta, timezone

from draftwise.analysis.cache import AnalysisCache
from draftwise.analysis.modification_tracker import ModificationTracker
from draftwise.config import CHANGE_RETENTION_DAYS
from draftwise.infrastructure.database import get_db_connection
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import log_event
from draftwise.suggestions.models import SuggestionStatus
from draftwise.suggestions.repository import SuggestionRepository

logger = get_logger(__name__)

_RESOLVED = (SuggestionStatus.ACCEPTED.value, SuggestionStatus.REJECTED.value)


def cleanup_old_records(
    change_days: int = CHANGE_RETENTION_DAYS, dry_run: bool = False
) -> dict[str, int]:
    """
    Delete data past its retention window.

    Side Effects:
    - Deletes from change_records, analysis_cache and suggestions
    - Logs cleanup statistics

    Returns:
        {"change_records_deleted", "cache_entries_deleted", "suggestions_deleted"};
        with dry_run the counts are what would be deleted.
    """
    now = datetime.now(timezone.utc)
    cutoff = (now - timedelta(days=change_days)).isoformat()
    prefix = "[DRY RUN] " if dry_run else ""
    logger.info("%sCleaning up records older than %s (%d days)", prefix, cutoff, change_days)

    stats = {
        "change_records_deleted": ModificationTracker().cleanup_old_changes(
            days=change_days, dry_run=dry_run
        ),
        "cache_entries_deleted": 0,
        "suggestions_deleted": 0,
    }

    if dry_run:
        with get_db_connection() as conn:
            stats["cache_entries_deleted"] = conn.execute(
                "SELECT COUNT(*) FROM analysis_cache WHERE expires_at < ?", (now.isoformat(),)
            ).fetchone()[0]
            stats["suggestions_deleted"] = conn.execute(
                "SELECT COUNT(*) FROM suggestions WHERE updated_at < ? AND status IN (?, ?)",
                (cutoff, *_RESOLVED),
            ).fetchone()[0]
    else:
        stats["cache_entries_deleted"] = AnalysisCache().clear_expired()
        stats["suggestions_deleted"] = SuggestionRepository.delete_older_than(cutoff, _RESOLVED)

    logger.info("%sRetention cleanup complete: %s", prefix, stats)
    log_event("retention.cleanup", dry_run=dry_run, **stats)
    return stats


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete Draftwise data past retention")
    parser.add_argument("--days", type=int, default=CHANGE_RETENTION_DAYS)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()
    cleanup_old_records(change_days=args.days, dry_run=args.dry_run)


if __name__ == "__main__":
    main()
