"""Context window selection for differential analysis.

Only changed paragraphs plus a small neighbourhood are sent to the model.
When most of the document changed the savings disappear, so callers fall back
to a full analysis above FALLBACK_THRESHOLD.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from draftwise.config import CHARS_PER_TOKEN, DEFAULT_CONTEXT_RADIUS, FALLBACK_THRESHOLD


@dataclass(frozen=True)
class Window:
    index: int
    text: str
    is_changed: bool


def build_context_window(
    paragraphs: Sequence[str],
    changed_indices: Iterable[int],
    radius: int = DEFAULT_CONTEXT_RADIUS,
) -> list[Window]:
    """Changed paragraphs plus ``radius`` neighbours each side, deduplicated and in order."""
    total = len(paragraphs)
    radius = max(0, radius)
    changed = {i for i in changed_indices if 0 <= i < total}

    selected: set[int] = set()
    for index in changed:
        selected.update(range(max(0, index - radius), min(total - 1, index + radius) + 1))

    return [Window(i, paragraphs[i], i in changed) for i in sorted(selected)]


def contiguous_runs(windows: Sequence[Window]) -> list[list[Window]]:
    """Group windows into runs of consecutive paragraph indices."""
    runs: list[list[Window]] = []
    for window in windows:
        if runs and runs[-1][-1].index == window.index - 1:
            runs[-1].append(window)
        else:
            runs.append([window])
    return runs


def should_use_full_analysis(
    changed_count: int,
    total_paragraphs: int,
    threshold: float = FALLBACK_THRESHOLD,
) -> bool:
    if total_paragraphs <= 0:
        return True
    return changed_count / total_paragraphs > threshold


def render_windows(windows: Sequence[Window]) -> str:
    """Prompt text for a context window; runs are separated by an ellipsis marker."""
    blocks = []
    for run in contiguous_runs(windows):
        lines = []
        for window in run:
            marker = "CHANGED" if window.is_changed else "CONTEXT"
            lines.append(f"[Paragraph {window.index + 1} - {marker}]\n{window.text}")
        blocks.append("\n\n".join(lines))
    return "\n\n[...]\n\n".join(blocks)


def estimate_tokens(text: str) -> int:
    """Rough token estimate (4 characters per token) for cost reporting."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)
