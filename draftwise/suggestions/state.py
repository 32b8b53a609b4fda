"""
Client-side suggestion state.

A plain container plus pure reducers: every function returns a new
SuggestionState and never mutates its input. The web client mirrors these
transitions one to one.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from draftwise.suggestions.models import ParagraphTag, Suggestion, TagType


@dataclass(frozen=True)
class SuggestionState:
    content: str = ""
    suggestions: tuple[Suggestion, ...] = ()
    dismissed_ids: frozenset[str] = frozenset()
    tags: tuple[ParagraphTag, ...] = ()
    last_applied_id: str | None = field(default=None)


def set_suggestions(state: SuggestionState, suggestions: Sequence[Suggestion]) -> SuggestionState:
    ordered = sorted(suggestions, key=lambda s: (s.start_index, s.end_index))
    return replace(state, suggestions=tuple(ordered))


def apply_suggestion_locally(state: SuggestionState, suggestion_id: str) -> SuggestionState:
    """
    Splice a suggestion into the content.

    Later suggestions shift by the length delta; suggestions overlapping the
    replaced span are dropped. Unknown ids leave the state untouched.
    """
    target = next((s for s in state.suggestions if s.id == suggestion_id), None)
    if target is None:
        return state

    start, end = target.start_index, target.end_index
    delta = len(target.suggested_text) - (end - start)
    content = state.content[:start] + target.suggested_text + state.content[end:]

    remaining = []
    for s in state.suggestions:
        if s.id == suggestion_id:
            continue
        if s.end_index <= start:
            remaining.append(s)
        elif s.start_index >= end:
            remaining.append(
                s.model_copy(
                    update={"start_index": s.start_index + delta, "end_index": s.end_index + delta}
                )
            )

    return replace(
        state, content=content, suggestions=tuple(remaining), last_applied_id=suggestion_id
    )


def dismiss(state: SuggestionState, suggestion_id: str) -> SuggestionState:
    return replace(state, dismissed_ids=state.dismissed_ids | {suggestion_id})


def set_tags(state: SuggestionState, tags: Sequence[ParagraphTag]) -> SuggestionState:
    return replace(state, tags=tuple(tags))


def visible_suggestions(state: SuggestionState) -> list[Suggestion]:
    """Suggestions that are neither dismissed nor inside a ``done`` paragraph."""
    done = [
        (tag.start_index, tag.end_index) for tag in state.tags if tag.tag_type == TagType.DONE.value
    ]
    return [
        s
        for s in state.suggestions
        if s.id not in state.dismissed_ids
        and not any(a <= s.start_index and s.end_index <= b for a, b in done)
    ]
