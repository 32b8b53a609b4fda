"""Unit tests for the accept/reject workflow

Tests cover:
- Accepting at the recorded offset and after re-location
- Stale suggestions are rejected and raise StaleSuggestionIndex
- Ownership checks
- Clearing stale suggestions and stats
- Accepted clarity rewrites become modified areas
"""

from __future__ import annotations

import pytest

from draftwise.analysis.modification_tracker import ModificationTracker
from draftwise.errors import NotFound, PermissionDenied, StaleSuggestionIndex
from draftwise.suggestions.models import Suggestion
from draftwise.suggestions.repository import SuggestionRepository
from draftwise.suggestions.service import (
    SuggestionService,
    find_nearest_occurrence,
    relocate,
)


def store(original="cat", suggested="dog", start=4, type_="spelling", confidence=0.9, **kwargs):
    return SuggestionRepository.create(
        Suggestion(
            document_id=kwargs.pop("document_id", "doc-1"),
            user_id=kwargs.pop("user_id", "user-1"),
            type=type_,
            category="error" if type_ in ("spelling", "grammar") else "improvement",
            severity="medium",
            original_text=original,
            suggested_text=suggested,
            confidence=confidence,
            start_index=start,
            end_index=start + len(original),
            **kwargs,
        )
    )


@pytest.fixture
def service(clock):
    return SuggestionService(tracker=ModificationTracker(now_fn=clock))


def test_find_nearest_occurrence():
    assert find_nearest_occurrence("a cat, a cat, a cat", "cat", 9) == 9
    assert find_nearest_occurrence("a cat, a cat, a cat", "cat", 100) == 16
    assert find_nearest_occurrence("a dog", "cat", 0) == -1


def test_relocate_keeps_matching_span():
    s = store()
    assert relocate(s, "The cat sat.") is s


def test_accept_at_recorded_offset(service):
    s = store()

    applied = service.accept("user-1", s.id, "The cat sat.")

    assert applied.new_content == "The dog sat."
    assert applied.suggestion.status == "accepted"


def test_accept_relocates_shifted_text(service):
    s = store()

    applied = service.accept("user-1", s.id, "Well, the cat sat.")

    assert applied.new_content == "Well, the dog sat."
    stored = SuggestionRepository.get(s.id)
    assert (stored.start_index, stored.end_index) == (10, 13)
    assert stored.status == "accepted"


def test_accept_stale_text_rejects(service):
    s = store()

    with pytest.raises(StaleSuggestionIndex):
        service.accept("user-1", s.id, "The bird flew.")

    assert SuggestionRepository.get(s.id).status == "rejected"


def test_ownership_checks(service):
    s = store()

    with pytest.raises(PermissionDenied):
        service.accept("user-2", s.id, "The cat sat.")
    with pytest.raises(NotFound):
        service.reject("user-1", "missing-id")


def test_reject(service):
    s = store()
    assert service.reject("user-1", s.id).status == "rejected"
    assert service.list_pending("user-1", "doc-1") == []


def test_accepting_clarity_rewrite_records_modified_area(service, clock):
    s = store(original="very very long", suggested="long", start=0, type_="clarity")

    service.accept("user-1", s.id, "very very long sentence")

    areas = ModificationTracker(now_fn=clock).get_modified_areas("doc-1", "user-1")
    assert len(areas) == 1
    assert (areas[0].start_index, areas[0].end_index, areas[0].type) == (0, 4, "clarity")


def test_clear_stale(service):
    kept = store(original="cat")
    gone = store(original="hat", suggested="cap", start=9)

    cleared = service.clear_stale("user-1", "doc-1", "The cat sat.")

    assert cleared == 1
    assert SuggestionRepository.get(gone.id).status == "rejected"
    assert [s.id for s in service.list_pending("user-1", "doc-1")] == [kept.id]


def test_stats(service):
    a = store(confidence=0.9)
    store(original="teh", suggested="the", start=0, confidence=0.8)
    store(original="x", type_="clarity", start=0, confidence=0.7)
    service.reject("user-1", a.id)

    stats = service.stats("user-1", "doc-1")

    assert stats["total"] == 3
    assert stats["pending"] == 2
    assert stats["rejected"] == 1
    assert stats["accepted"] == 0
    assert stats["by_type"] == {"spelling": 2, "clarity": 1}
    assert stats["average_confidence"] == 0.8
