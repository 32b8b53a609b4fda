"""
Accept/reject workflow for stored suggestions.

Suggestions are anchored by character offsets that go stale as the user
types. Accepting one first re-locates its originalText in the current
content; if the text is gone the suggestion is auto-rejected.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any

from draftwise.analysis.modification_tracker import ModificationTracker
from draftwise.errors import NotFound, PermissionDenied, StaleSuggestionIndex
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter, log_event
from draftwise.suggestions.models import Suggestion, SuggestionStatus
from draftwise.suggestions.repository import SuggestionRepository
from draftwise.tags.repository import TagRepository
from draftwise.tags.service import filter_done_paragraphs

logger = get_logger(__name__)


@dataclass
class AppliedSuggestion:
    new_content: str
    suggestion: Suggestion


def find_nearest_occurrence(content: str, text: str, near: int) -> int:
    """Offset of the occurrence of ``text`` closest to ``near``, or -1."""
    if not text:
        return -1

    best = -1
    start = content.find(text)
    while start != -1:
        if best == -1 or abs(start - near) < abs(best - near):
            best = start
        start = content.find(text, start + 1)
    return best


def relocate(suggestion: Suggestion, content: str) -> Suggestion | None:
    """
    Return the suggestion anchored against ``content``.

    Unchanged if its recorded span still holds originalText, shifted to the
    nearest occurrence otherwise, None if the text no longer exists.
    """
    start, end = suggestion.start_index, suggestion.end_index
    if content[start:end] == suggestion.original_text:
        return suggestion

    found = find_nearest_occurrence(content, suggestion.original_text, start)
    if found == -1:
        return None
    return suggestion.model_copy(
        update={"start_index": found, "end_index": found + len(suggestion.original_text)}
    )


class SuggestionService:
    def __init__(
        self,
        repository: type[SuggestionRepository] = SuggestionRepository,
        tracker: ModificationTracker | None = None,
        tag_repository: type[TagRepository] = TagRepository,
    ):
        self.repository = repository
        self.tracker = tracker or ModificationTracker()
        self.tag_repository = tag_repository

    def _owned(self, user_id: str, suggestion_id: str) -> Suggestion:
        suggestion = self.repository.get(suggestion_id)
        if suggestion is None:
            raise NotFound(f"Suggestion {suggestion_id} not found")
        if suggestion.user_id != user_id:
            raise PermissionDenied("Suggestion belongs to another user")
        return suggestion

    def accept(self, user_id: str, suggestion_id: str, current_content: str) -> AppliedSuggestion:
        """
        Apply a suggestion to ``current_content``.

        Raises:
            NotFound / PermissionDenied: unknown or foreign suggestion
            StaleSuggestionIndex: originalText is gone; the suggestion is rejected
        """
        suggestion = self._owned(user_id, suggestion_id)

        located = relocate(suggestion, current_content)
        if located is None:
            self.repository.update_status(suggestion_id, SuggestionStatus.REJECTED.value)
            counter("suggestions.stale_rejected")
            log_event("suggestion.stale", user_id=user_id, suggestion_id=suggestion_id)
            raise StaleSuggestionIndex(
                "Suggestion text no longer exists in the document", suggestion_id=suggestion_id
            )

        if (located.start_index, located.end_index) != (suggestion.start_index, suggestion.end_index):
            logger.info(
                "Relocated suggestion %s: %d -> %d",
                suggestion_id,
                suggestion.start_index,
                located.start_index,
            )
            counter("suggestions.relocated")
            self.repository.update_indices(suggestion_id, located.start_index, located.end_index)

        new_content = (
            current_content[: located.start_index]
            + located.suggested_text
            + current_content[located.end_index :]
        )
        accepted = self.repository.update_status(suggestion_id, SuggestionStatus.ACCEPTED.value)

        self.tracker.track_modification(
            located.document_id,
            user_id,
            located.start_index,
            located.end_index,
            located.type,
            new_text=located.suggested_text,
        )

        counter("suggestions.accepted")
        return AppliedSuggestion(new_content=new_content, suggestion=accepted or located)

    def reject(self, user_id: str, suggestion_id: str) -> Suggestion:
        self._owned(user_id, suggestion_id)
        rejected = self.repository.update_status(suggestion_id, SuggestionStatus.REJECTED.value)
        counter("suggestions.rejected")
        if rejected is None:
            raise NotFound(f"Suggestion {suggestion_id} not found")
        return rejected

    def list_pending(
        self, user_id: str, document_id: str, content: str | None = None
    ) -> list[Suggestion]:
        pending = self.repository.list_for_document(
            user_id, document_id, SuggestionStatus.PENDING.value
        )
        if content is None:
            return pending
        tags = self.tag_repository.list_for_document(user_id, document_id)
        return filter_done_paragraphs(pending, content, tags)

    def clear_stale(self, user_id: str, document_id: str, content: str) -> int:
        """Reject pending suggestions whose originalText is no longer in ``content``."""
        stale = [
            s
            for s in self.repository.list_for_document(
                user_id, document_id, SuggestionStatus.PENDING.value
            )
            if s.original_text not in content
        ]
        for s in stale:
            self.repository.update_status(s.id, SuggestionStatus.REJECTED.value)

        if stale:
            logger.info("Cleared %d stale suggestions from %s", len(stale), document_id)
            counter("suggestions.stale_cleared", len(stale))
        return len(stale)

    def stats(self, user_id: str, document_id: str | None = None) -> dict[str, Any]:
        suggestions = self.repository.list_for_user(user_id, document_id)
        by_status = Counter(s.status for s in suggestions)
        by_type = Counter(s.type for s in suggestions)
        total = len(suggestions)

        return {
            "total": total,
            "pending": by_status.get(SuggestionStatus.PENDING.value, 0),
            "accepted": by_status.get(SuggestionStatus.ACCEPTED.value, 0),
            "rejected": by_status.get(SuggestionStatus.REJECTED.value, 0),
            "by_type": dict(by_type),
            "average_confidence": (
                round(sum(s.confidence for s in suggestions) / total, 3) if total else 0.0
            ),
        }
