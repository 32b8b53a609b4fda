"""Paragraph splitting and index-aligned change detection.

Paragraphs are separated by blank lines (a newline, optional whitespace, a
newline). This is a heuristic: poetry or dialogue with single-line breaks is
treated as one paragraph.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from draftwise.suggestions.models import ChangeType

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


@dataclass(frozen=True)
class Paragraph:
    index: int
    text: str
    start_index: int
    end_index: int


@dataclass(frozen=True)
class ParagraphChange:
    index: int
    change_type: ChangeType
    old_text: str | None
    new_text: str | None


def split_paragraphs(content: str) -> list[str]:
    """Split on blank lines, strip each paragraph and drop empty ones."""
    if not content:
        return []
    return [p.strip() for p in _PARAGRAPH_BREAK.split(content) if p.strip()]


def extract_paragraphs(content: str) -> list[Paragraph]:
    """
    Same split as split_paragraphs, but keeps character offsets of the
    stripped text within ``content``.
    """
    if not content:
        return []

    spans = []
    cursor = 0
    for match in _PARAGRAPH_BREAK.finditer(content):
        spans.append((cursor, match.start()))
        cursor = match.end()
    spans.append((cursor, len(content)))

    paragraphs: list[Paragraph] = []
    for seg_start, seg_end in spans:
        raw = content[seg_start:seg_end]
        text = raw.strip()
        if not text:
            continue
        start = seg_start + (len(raw) - len(raw.lstrip()))
        paragraphs.append(Paragraph(len(paragraphs), text, start, start + len(text)))
    return paragraphs


def detect_changes(old_content: str, new_content: str) -> list[ParagraphChange]:
    """
    Compare paragraphs position by position.

    An inserted paragraph therefore shows up as a modification of every
    paragraph after it plus one trailing addition.
    """
    old = split_paragraphs(old_content)
    new = split_paragraphs(new_content)
    changes: list[ParagraphChange] = []

    for i in range(max(len(old), len(new))):
        before = old[i] if i < len(old) else None
        after = new[i] if i < len(new) else None
        if before is None:
            changes.append(ParagraphChange(i, ChangeType.ADDED, None, after))
        elif after is None:
            changes.append(ParagraphChange(i, ChangeType.DELETED, before, None))
        elif before != after:
            changes.append(ParagraphChange(i, ChangeType.MODIFIED, before, after))

    return changes
