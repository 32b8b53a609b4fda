"""Unit tests for modification tracking

Tests cover:
- Exclusion thresholds (engagement after 1 rewrite, clarity after 2)
- Spelling and grammar are never excluded
- Overlap is half-open
- track_modification merges overlapping same-type areas
- Change records and their retention cleanup
"""

from __future__ import annotations

from draftwise.analysis.modification_tracker import (
    ModificationTracker,
    should_exclude_area,
    spans_overlap,
)
from draftwise.infrastructure.database import get_db_connection
from draftwise.suggestions.models import ModifiedArea


def area(start: int, end: int, type_: str, count: int) -> ModifiedArea:
    return ModifiedArea(start_index=start, end_index=end, type=type_, modification_count=count)


def test_spans_overlap_is_half_open():
    assert spans_overlap(0, 5, 4, 8)
    assert not spans_overlap(0, 5, 5, 8)
    assert not spans_overlap(5, 8, 0, 5)


def test_clarity_excluded_after_two_rewrites():
    assert should_exclude_area(10, 20, "clarity", [area(10, 20, "clarity", 2)])
    assert not should_exclude_area(10, 20, "clarity", [area(10, 20, "clarity", 1)])


def test_engagement_excluded_after_one_rewrite():
    assert should_exclude_area(12, 18, "engagement", [area(10, 20, "engagement", 1)])


def test_correctness_suggestions_never_excluded():
    areas = [area(10, 20, "clarity", 5), area(10, 20, "engagement", 5)]
    assert not should_exclude_area(10, 20, "grammar", areas)
    assert not should_exclude_area(10, 20, "spelling", areas)


def test_exclusion_requires_same_type_and_overlap():
    assert not should_exclude_area(10, 20, "clarity", [area(10, 20, "engagement", 3)])
    assert not should_exclude_area(20, 30, "clarity", [area(10, 20, "clarity", 3)])


def test_explicit_max_iterations_overrides_default():
    assert should_exclude_area(0, 5, "clarity", [area(0, 5, "clarity", 1)], max_iterations=1)


def test_track_modification_creates_then_increments(clock):
    tracker = ModificationTracker(now_fn=clock)

    first = tracker.track_modification("doc-1", "user-1", 10, 20, "clarity", new_text="rewritten")
    second = tracker.track_modification("doc-1", "user-1", 12, 15, "clarity")

    assert first.modification_count == 1
    assert first.end_index == 19  # 10 + len("rewritten")
    assert second.id == first.id
    assert second.modification_count == 2

    areas = tracker.get_modified_areas("doc-1", "user-1")
    assert len(areas) == 1
    assert should_exclude_area(10, 20, "clarity", areas)


def test_deleting_rewrite_still_leaves_an_area(clock):
    tracker = ModificationTracker(now_fn=clock)

    tracked = tracker.track_modification("doc-1", "user-1", 10, 20, "engagement", new_text="")

    assert (tracked.start_index, tracked.end_index) == (10, 11)
    areas = tracker.get_modified_areas("doc-1", "user-1")
    assert should_exclude_area(8, 14, "engagement", areas)


def test_track_modification_ignores_untracked_types(clock):
    tracker = ModificationTracker(now_fn=clock)

    assert tracker.track_modification("doc-1", "user-1", 0, 5, "spelling") is None
    assert tracker.get_modified_areas("doc-1", "user-1") == []


def test_track_changes_records_and_cleans_up(clock):
    tracker = ModificationTracker(now_fn=clock)

    changes = tracker.track_changes("doc-1", "user-1", "A.\n\nB.", "A.\n\nB2.\n\nC.")
    assert len(changes) == 2

    with get_db_connection() as conn:
        (count,) = conn.execute("SELECT COUNT(*) FROM change_records").fetchone()
    assert count == 2

    clock.advance(days=8)
    assert tracker.cleanup_old_changes(days=7, dry_run=True) == 2
    assert tracker.cleanup_old_changes(days=7) == 2
    assert tracker.cleanup_old_changes(days=7) == 0
