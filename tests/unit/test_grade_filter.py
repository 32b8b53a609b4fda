"""Unit tests for grade-level filtering

Tests cover:
- Severity remapping and emphasis ordering per level
- High severity (before or after remapping) is never dropped
- Level-specific inclusion predicates
- Explanation adaptation
- Unknown levels pass through
"""

from __future__ import annotations

from draftwise.analysis.grade_filter import (
    adapt_explanation,
    filter_suggestions,
    is_simple_clarity_issue,
)
from draftwise.suggestions.models import Suggestion


def make(type_: str, severity: str = "medium", explanation: str = "", confidence: float = 0.9) -> Suggestion:
    category = "error" if type_ in ("grammar", "spelling") else "improvement"
    return Suggestion(
        type=type_,
        category=category,
        severity=severity,
        original_text="x",
        suggested_text="y",
        explanation=explanation,
        confidence=confidence,
        start_index=0,
        end_index=1,
    )


def test_middle_school_orders_grammar_spelling_clarity_first():
    suggestions = [
        make("tone", severity="high"),
        make("clarity", explanation="This is a run-on sentence"),
        make("spelling"),
        make("grammar"),
    ]

    result = filter_suggestions(suggestions, "middle-school")

    assert [s.type for s in result] == ["grammar", "spelling", "clarity", "tone"]
    assert result[0].severity == "high"  # grammar remapped to high


def test_high_severity_never_dropped():
    depth = make("depth", severity="high", explanation="Needs analysis")
    result = filter_suggestions([depth], "middle-school")

    assert len(result) == 1
    assert result[0].severity == "low"  # remapped, but kept because it was high


def test_middle_school_drops_low_priority_stylistic_items():
    tone = make("tone", severity="medium", explanation="Be more formal")
    result = filter_suggestions([tone], "middle-school")

    assert result == []


def test_undergrad_keeps_depth_and_drops_low_spelling():
    depth = make("depth", severity="low", explanation="Expand")
    spelling = make("spelling", severity="low")

    result = filter_suggestions([spelling, depth], "undergrad")

    # spelling remaps to medium, which passes the not-low rule
    assert [s.type for s in result] == ["depth", "spelling"]


def test_graduate_drops_engagement_without_evidence_focus():
    vague = make("engagement", severity="medium", explanation="This claim is vague")
    flashy = make("engagement", severity="medium", explanation="Add a hook")

    result = filter_suggestions([vague, flashy], "graduate")

    assert len(result) == 1
    assert "vague" in result[0].explanation


def test_ties_break_on_confidence():
    low = make("grammar", confidence=0.7)
    high = make("grammar", confidence=0.95)

    result = filter_suggestions([low, high], "high-school")

    assert [s.confidence for s in result] == [0.95, 0.7]


def test_unknown_level_passes_through():
    suggestions = [make("tone"), make("grammar")]
    assert filter_suggestions(suggestions, "kindergarten") == suggestions
    assert filter_suggestions(suggestions, None) == suggestions


def test_inputs_are_not_mutated():
    original = make("grammar", severity="low")
    filter_suggestions([original], "middle-school")
    assert original.severity == "low"


def test_simple_clarity_predicate():
    assert is_simple_clarity_issue("Comma splice here")
    assert not is_simple_clarity_issue("Consider parallel structure")


def test_adapt_explanation_by_level():
    assert "subject and verb match" in adapt_explanation(
        "Fix subject-verb agreement", "grammar", "middle-school"
    )
    assert adapt_explanation("Too casual.", "tone", "undergrad").endswith(
        "conventions of your field."
    )
    assert adapt_explanation("Too casual.", "tone", "high-school") == "Too casual."
