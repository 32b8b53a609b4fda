"""Unit tests for paragraph handling and context windows

Tests cover:
- Paragraph splitting and character offsets
- Index-aligned change detection
- Window selection with radius and run rendering
- Full-analysis fallback above 60% changed
"""

from __future__ import annotations

from draftwise.analysis.context_window import (
    build_context_window,
    estimate_tokens,
    render_windows,
    should_use_full_analysis,
)
from draftwise.analysis.paragraphs import detect_changes, extract_paragraphs, split_paragraphs
from draftwise.suggestions.models import ChangeType


def test_split_paragraphs_drops_blank_segments():
    content = "First.\n\n  Second.  \n \n\n\nThird."
    assert split_paragraphs(content) == ["First.", "Second.", "Third."]
    assert split_paragraphs("") == []


def test_extract_paragraphs_offsets_point_at_stripped_text():
    content = "Intro here.\n\n   Body text.\n\nEnd."
    paragraphs = extract_paragraphs(content)

    assert [p.text for p in paragraphs] == ["Intro here.", "Body text.", "End."]
    for p in paragraphs:
        assert content[p.start_index : p.end_index] == p.text


def test_detect_changes_is_index_aligned():
    old = "A.\n\nB.\n\nC."
    new = "A.\n\nB changed.\n\nC.\n\nD."
    changes = detect_changes(old, new)

    assert [(c.index, c.change_type) for c in changes] == [
        (1, ChangeType.MODIFIED),
        (3, ChangeType.ADDED),
    ]
    assert changes[0].old_text == "B." and changes[0].new_text == "B changed."


def test_detect_changes_reports_deleted_trailing_paragraph():
    changes = detect_changes("A.\n\nB.", "A.")
    assert [(c.index, c.change_type) for c in changes] == [(1, ChangeType.DELETED)]


def test_build_context_window_includes_neighbours_once():
    paragraphs = [f"P{i}" for i in range(6)]
    windows = build_context_window(paragraphs, [1, 2], radius=1)

    assert [w.index for w in windows] == [0, 1, 2, 3]
    assert [w.is_changed for w in windows] == [False, True, True, False]


def test_build_context_window_clamps_at_document_edges():
    windows = build_context_window(["A", "B", "C"], [0], radius=2)
    assert [w.index for w in windows] == [0, 1, 2]


def test_render_windows_separates_runs():
    paragraphs = [f"P{i}" for i in range(8)]
    rendered = render_windows(build_context_window(paragraphs, [1, 6], radius=0))

    assert rendered == "[Paragraph 2 - CHANGED]\nP1\n\n[...]\n\n[Paragraph 7 - CHANGED]\nP6"


def test_full_analysis_fallback_threshold():
    assert should_use_full_analysis(1, 5) is False  # 20%
    assert should_use_full_analysis(3, 5) is False  # exactly 60%
    assert should_use_full_analysis(4, 5) is True  # 80%
    assert should_use_full_analysis(0, 0) is True


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcde") == 2
