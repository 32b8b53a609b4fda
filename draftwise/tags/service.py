"""
Paragraph tag service.

Tags are anchored to a paragraph index. When the document changes, each tag is
re-checked against the paragraph now at its index: similar enough (normalized
Levenshtein similarity above TAG_SIMILARITY_THRESHOLD) and the tag follows the
paragraph's new offsets; otherwise the tag is dropped.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from rapidfuzz.distance import Levenshtein

from draftwise.analysis.paragraphs import extract_paragraphs
from draftwise.config import TAG_SIMILARITY_THRESHOLD
from draftwise.errors import InvalidRequest, NotFound, PermissionDenied
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter
from draftwise.suggestions.models import ParagraphTag, Suggestion, TagType
from draftwise.tags.repository import TagRepository

logger = get_logger(__name__)


@dataclass
class TagValidationResult:
    valid_tags: list[ParagraphTag] = field(default_factory=list)
    removed_tag_ids: list[str] = field(default_factory=list)


def text_similarity(a: str, b: str) -> float:
    return Levenshtein.normalized_similarity(a, b)


def filter_done_paragraphs(
    suggestions: Sequence[Suggestion],
    content: str | None,
    tags: Sequence[ParagraphTag],
) -> list[Suggestion]:
    """Drop suggestions lying entirely inside a paragraph tagged ``done``."""
    done_indices = {tag.paragraph_index for tag in tags if tag.tag_type == TagType.DONE.value}
    if not content or not done_indices:
        return list(suggestions)

    done_spans = [
        (p.start_index, p.end_index) for p in extract_paragraphs(content) if p.index in done_indices
    ]
    return [
        s
        for s in suggestions
        if not any(start <= s.start_index and s.end_index <= end for start, end in done_spans)
    ]


class TagService:
    def __init__(self, repository: type[TagRepository] = TagRepository):
        self.repository = repository

    def _owned(self, user_id: str, tag_id: str, document_id: str | None = None) -> ParagraphTag:
        tag = self.repository.get(tag_id)
        if tag is None or (document_id is not None and tag.document_id != document_id):
            raise NotFound(f"Tag {tag_id} not found")
        if tag.user_id != user_id:
            raise PermissionDenied("Tag belongs to another user")
        return tag

    def create_tag(
        self,
        user_id: str,
        document_id: str,
        paragraph_index: int,
        tag_type: str,
        content: str,
        note: str | None = None,
    ) -> ParagraphTag:
        paragraphs = extract_paragraphs(content)
        if not 0 <= paragraph_index < len(paragraphs):
            raise InvalidRequest(
                f"Paragraph {paragraph_index} does not exist (document has {len(paragraphs)})"
            )

        paragraph = paragraphs[paragraph_index]
        return self.repository.create(
            ParagraphTag(
                document_id=document_id,
                user_id=user_id,
                paragraph_index=paragraph_index,
                start_index=paragraph.start_index,
                end_index=paragraph.end_index,
                text=paragraph.text,
                tag_type=tag_type,
                note=note,
            )
        )

    def update_tag(
        self,
        user_id: str,
        tag_id: str,
        tag_type: str | None = None,
        note: str | None = None,
        document_id: str | None = None,
    ) -> ParagraphTag:
        self._owned(user_id, tag_id, document_id)
        updates: dict[str, str] = {}
        if tag_type is not None:
            try:
                updates["tag_type"] = TagType(tag_type).value
            except ValueError:
                raise InvalidRequest(f"Unknown tag type: {tag_type}") from None
        if note is not None:
            updates["note"] = note
        updated = self.repository.update(tag_id, **updates)
        if updated is None:
            raise NotFound(f"Tag {tag_id} not found")
        return updated

    def delete_tag(self, user_id: str, tag_id: str, document_id: str | None = None) -> None:
        self._owned(user_id, tag_id, document_id)
        self.repository.delete(tag_id)

    def list_tags(self, user_id: str, document_id: str) -> list[ParagraphTag]:
        return self.repository.list_for_document(user_id, document_id)

    @staticmethod
    def is_in_done_paragraph(start_index: int, end_index: int, tags: Sequence[ParagraphTag]) -> bool:
        return any(
            tag.tag_type == TagType.DONE.value
            and tag.start_index <= start_index
            and end_index <= tag.end_index
            for tag in tags
        )

    def validate_tags(self, user_id: str, document_id: str, content: str) -> TagValidationResult:
        """Re-anchor tags to the current content, deleting those whose paragraph is gone."""
        paragraphs = extract_paragraphs(content)
        result = TagValidationResult()

        for tag in self.repository.list_for_document(user_id, document_id):
            current = paragraphs[tag.paragraph_index] if tag.paragraph_index < len(paragraphs) else None

            if current is not None and text_similarity(tag.text, current.text) > TAG_SIMILARITY_THRESHOLD:
                if (tag.start_index, tag.end_index, tag.text) != (
                    current.start_index,
                    current.end_index,
                    current.text,
                ):
                    tag = self.repository.update(
                        tag.id,
                        start_index=current.start_index,
                        end_index=current.end_index,
                        text=current.text,
                    ) or tag
                result.valid_tags.append(tag)
            else:
                self.repository.delete(tag.id)
                result.removed_tag_ids.append(tag.id)

        if result.removed_tag_ids:
            counter("tags.invalidated", len(result.removed_tag_ids))
            logger.info(
                "Removed %d stale tags from document %s", len(result.removed_tag_ids), document_id
            )
        return result
