"""Unit tests for paragraph tags

Tests cover:
- Creating tags anchored to paragraph offsets
- Out-of-range paragraphs and unknown tag types
- Ownership and document scoping
- Re-validation after edits (similar text kept, rewritten text dropped)
- Done paragraphs suppress suggestions
"""

from __future__ import annotations

import pytest

from draftwise.errors import InvalidRequest, NotFound, PermissionDenied
from draftwise.observability.telemetry import get_counter
from draftwise.suggestions.models import Suggestion
from draftwise.tags.service import TagService, filter_done_paragraphs, text_similarity

CONTENT = "First paragraph here.\n\nSecond paragraph text."


@pytest.fixture
def service():
    return TagService()


def test_create_tag_records_paragraph_span(service):
    tag = service.create_tag("user-1", "doc-1", 1, "needs-review", CONTENT, note="check source")

    assert tag.id
    assert tag.text == "Second paragraph text."
    assert CONTENT[tag.start_index : tag.end_index] == tag.text
    assert tag.note == "check source"
    assert [t.id for t in service.list_tags("user-1", "doc-1")] == [tag.id]


def test_create_tag_out_of_range(service):
    with pytest.raises(InvalidRequest):
        service.create_tag("user-1", "doc-1", 2, "done", CONTENT)


def test_update_tag(service):
    tag = service.create_tag("user-1", "doc-1", 0, "needs-review", CONTENT)

    updated = service.update_tag("user-1", tag.id, tag_type="done", note="finished")

    assert updated.tag_type == "done"
    assert updated.note == "finished"


def test_update_tag_rejects_unknown_type(service):
    tag = service.create_tag("user-1", "doc-1", 0, "done", CONTENT)

    with pytest.raises(InvalidRequest):
        service.update_tag("user-1", tag.id, tag_type="archived")


def test_permission_and_document_scoping(service):
    tag = service.create_tag("user-1", "doc-1", 0, "done", CONTENT)

    with pytest.raises(PermissionDenied):
        service.delete_tag("user-2", tag.id)
    with pytest.raises(NotFound):
        service.delete_tag("user-1", tag.id, document_id="doc-2")

    service.delete_tag("user-1", tag.id, document_id="doc-1")
    assert service.list_tags("user-1", "doc-1") == []


def test_validate_tags_follows_similar_text_and_drops_rewritten(service):
    kept = service.create_tag("user-1", "doc-1", 0, "done", CONTENT)
    dropped = service.create_tag("user-1", "doc-1", 1, "needs-review", CONTENT)

    new_content = "\n\nFirst paragraph here!\n\nTotally unrelated content now."
    result = service.validate_tags("user-1", "doc-1", new_content)

    assert [t.id for t in result.valid_tags] == [kept.id]
    assert result.removed_tag_ids == [dropped.id]
    assert result.valid_tags[0].start_index == 2
    assert result.valid_tags[0].text == "First paragraph here!"
    assert get_counter("tags.invalidated") == 1


def test_validate_tags_drops_tags_past_the_end(service):
    tag = service.create_tag("user-1", "doc-1", 1, "done", CONTENT)

    result = service.validate_tags("user-1", "doc-1", "First paragraph here.")

    assert result.removed_tag_ids == [tag.id]


def test_text_similarity():
    assert text_similarity("abc", "abc") == 1.0
    assert text_similarity("abcdefghij", "abcdefghiX") == pytest.approx(0.9)


def test_done_paragraphs_filter_suggestions(service):
    service.create_tag("user-1", "doc-1", 0, "done", CONTENT)
    tags = service.list_tags("user-1", "doc-1")

    def at(text: str) -> Suggestion:
        start = CONTENT.index(text)
        return Suggestion(
            type="clarity",
            category="improvement",
            severity="low",
            original_text=text,
            suggested_text=text.upper(),
            start_index=start,
            end_index=start + len(text),
        )

    kept = filter_done_paragraphs([at("First"), at("Second")], CONTENT, tags)

    assert [s.original_text for s in kept] == ["Second"]
    assert TagService.is_in_done_paragraph(0, 5, tags)
    assert not TagService.is_in_done_paragraph(23, 29, tags)
