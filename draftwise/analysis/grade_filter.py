"""
Grade-level filtering and prioritisation of suggestions.

Each academic level has a priority table: the types to emphasise (in order),
the types to play down, and a severity remap. Inclusion rules are plain regex
predicates over the explanation text; they live at module level so they can
be tested on their own.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from draftwise.suggestions.models import AcademicLevel, Severity, Suggestion, SuggestionType, enum_value


@dataclass(frozen=True)
class LevelPriorities:
    emphasize: tuple[str, ...]
    deemphasize: tuple[str, ...]
    severity_adjustment: dict[str, str] = field(default_factory=dict)


_T = SuggestionType

GRADE_LEVEL_PRIORITIES: dict[str, LevelPriorities] = {
    AcademicLevel.MIDDLE_SCHOOL.value: LevelPriorities(
        emphasize=(_T.GRAMMAR.value, _T.SPELLING.value, _T.CLARITY.value, _T.STRUCTURE.value),
        deemphasize=(_T.TONE.value, _T.DEPTH.value, _T.VOCABULARY.value),
        severity_adjustment={
            "grammar": "high",
            "spelling": "high",
            "clarity": "high",
            "structure": "medium",
            "tone": "low",
            "depth": "low",
            "vocabulary": "medium",
            "engagement": "medium",
        },
    ),
    AcademicLevel.HIGH_SCHOOL.value: LevelPriorities(
        emphasize=(
            _T.GRAMMAR.value,
            _T.CLARITY.value,
            _T.STRUCTURE.value,
            _T.TONE.value,
            _T.ENGAGEMENT.value,
        ),
        deemphasize=(_T.DEPTH.value,),
        severity_adjustment={
            "grammar": "high",
            "spelling": "high",
            "clarity": "high",
            "structure": "high",
            "tone": "high",
            "engagement": "high",
            "depth": "medium",
            "vocabulary": "medium",
        },
    ),
    AcademicLevel.UNDERGRAD.value: LevelPriorities(
        emphasize=(
            _T.DEPTH.value,
            _T.TONE.value,
            _T.VOCABULARY.value,
            _T.STRUCTURE.value,
            _T.CLARITY.value,
        ),
        deemphasize=(_T.SPELLING.value,),
        severity_adjustment={
            "depth": "high",
            "tone": "high",
            "vocabulary": "high",
            "structure": "high",
            "clarity": "high",
            "grammar": "medium",
            "spelling": "medium",
            "engagement": "medium",
        },
    ),
    AcademicLevel.GRADUATE.value: LevelPriorities(
        emphasize=(
            _T.DEPTH.value,
            _T.STRUCTURE.value,
            _T.VOCABULARY.value,
            _T.TONE.value,
            _T.CLARITY.value,
        ),
        deemphasize=(_T.SPELLING.value, _T.ENGAGEMENT.value),
        severity_adjustment={
            "depth": "high",
            "structure": "high",
            "vocabulary": "high",
            "tone": "high",
            "clarity": "medium",
            "grammar": "medium",
            "spelling": "low",
            "engagement": "low",
        },
    ),
}

_SEVERITY_RANK = {Severity.HIGH.value: 0, Severity.MEDIUM.value: 1, Severity.LOW.value: 2}


# ============================================================================
# Explanation predicates
# ============================================================================


def _matcher(*patterns: str) -> Callable[[str], bool]:
    compiled = [re.compile(p, re.IGNORECASE) for p in patterns]

    def matches(explanation: str) -> bool:
        return any(p.search(explanation or "") for p in compiled)

    return matches


is_simple_clarity_issue = _matcher(r"sentence structure", r"run-on", r"fragment", r"comma", r"period")
is_basic_structure_issue = _matcher(
    r"paragraph", r"topic sentence", r"organization", r"beginning", r"middle", r"\bend\b"
)
is_simple_vocabulary_improvement = _matcher(
    r"more specific", r"clearer word", r"better choice", r"replace.*with"
)
is_argument_structure_issue = _matcher(r"thesis", r"argument", r"evidence", r"support", r"reasoning")
is_transition_or_variety_issue = _matcher(
    r"transition", r"sentence variety", r"flow", r"connection", r"smooth"
)
is_academic_tone_issue = _matcher(r"formal", r"academic", r"professional", r"tone", r"appropriate")
is_evidence_or_vagueness_issue = _matcher(
    r"evidence", r"vague", r"specific", r"support", r"example", r"unclear"
)
is_complex_clarity_issue = _matcher(
    r"complex sentence", r"subordination", r"coordination", r"parallel structure", r"syntax"
)
is_academic_vocabulary_issue = _matcher(
    r"academic", r"discipline", r"terminology", r"precise", r"technical"
)
is_discipline_tone_issue = _matcher(
    r"discipline", r"field", r"scholarly", r"research", r"academic discourse"
)
is_global_coherence_issue = _matcher(r"coherence", r"global", r"overall", r"unity", r"organization")


# ============================================================================
# Per-level inclusion rules (only consulted for non-high severity)
# ============================================================================


def _include_middle_school(s: Suggestion) -> bool:
    if s.type in ("grammar", "spelling"):
        return True
    if s.type == "clarity":
        return is_simple_clarity_issue(s.explanation)
    if s.type == "structure":
        return is_basic_structure_issue(s.explanation)
    if s.type == "vocabulary":
        return is_simple_vocabulary_improvement(s.explanation)
    if s.type in ("tone", "depth"):
        return s.severity == "high"
    return s.severity != "low"


def _include_high_school(s: Suggestion) -> bool:
    not_low = s.severity != "low"
    if s.type == "structure":
        return is_argument_structure_issue(s.explanation) or not_low
    if s.type == "clarity":
        return is_transition_or_variety_issue(s.explanation) or not_low
    if s.type == "tone":
        return is_academic_tone_issue(s.explanation) or not_low
    if s.type == "engagement":
        return is_evidence_or_vagueness_issue(s.explanation) or not_low
    if s.type in ("grammar", "spelling"):
        return True
    if s.type == "depth":
        return s.severity == "high"
    return not_low


def _include_undergrad(s: Suggestion) -> bool:
    not_low = s.severity != "low"
    if s.type == "depth":
        return True
    if s.type == "clarity":
        return is_complex_clarity_issue(s.explanation) or not_low
    if s.type == "vocabulary":
        return is_academic_vocabulary_issue(s.explanation) or not_low
    if s.type == "tone":
        return is_discipline_tone_issue(s.explanation) or not_low
    if s.type == "structure":
        return is_global_coherence_issue(s.explanation) or not_low
    if s.type in ("grammar", "spelling"):
        return not_low
    return s.severity == "high"


def _include_graduate(s: Suggestion) -> bool:
    # Graduate writers get the undergrad rules, but engagement only when it
    # speaks to evidence or vagueness.
    if s.type == "engagement":
        return is_evidence_or_vagueness_issue(s.explanation)
    return _include_undergrad(s)


_INCLUSION_RULES: dict[str, Callable[[Suggestion], bool]] = {
    AcademicLevel.MIDDLE_SCHOOL.value: _include_middle_school,
    AcademicLevel.HIGH_SCHOOL.value: _include_high_school,
    AcademicLevel.UNDERGRAD.value: _include_undergrad,
    AcademicLevel.GRADUATE.value: _include_graduate,
}


# ============================================================================
# Explanation adaptation
# ============================================================================

_SIMPLIFICATIONS = {
    "subject-verb agreement": "making sure the subject and verb match",
    "possessive apostrophe": "apostrophe to show ownership",
    "comma splice": "connecting two sentences with just a comma",
    "passive voice": "when the subject receives the action",
    "subordinate clause": "a group of words that depends on the main sentence",
}

_ENHANCEMENTS = {
    "tone": " Consider the academic discourse conventions of your field.",
    "depth": " Develop this argument with more nuanced analysis and evidence.",
    "vocabulary": " Use more precise disciplinary terminology where appropriate.",
}


def simplify_explanation(explanation: str) -> str:
    for term, plain in _SIMPLIFICATIONS.items():
        explanation = re.sub(re.escape(term), plain, explanation, flags=re.IGNORECASE)
    return explanation


def enhance_explanation(explanation: str, suggestion_type: str) -> str:
    return explanation + _ENHANCEMENTS.get(suggestion_type, "")


def adapt_explanation(explanation: str, suggestion_type: str, academic_level: str) -> str:
    if academic_level == AcademicLevel.MIDDLE_SCHOOL.value:
        return simplify_explanation(explanation)
    if academic_level in (AcademicLevel.UNDERGRAD.value, AcademicLevel.GRADUATE.value):
        return enhance_explanation(explanation, suggestion_type)
    return explanation


# ============================================================================
# Public API
# ============================================================================


def _sort_key(s: Suggestion, priorities: LevelPriorities) -> tuple[int, int, float]:
    emphasis = (
        priorities.emphasize.index(s.type) if s.type in priorities.emphasize else len(priorities.emphasize)
    )
    return (emphasis, _SEVERITY_RANK.get(s.severity, len(_SEVERITY_RANK)), -s.confidence)


def filter_suggestions(suggestions: Sequence[Suggestion], academic_level: str | None) -> list[Suggestion]:
    """
    Remap severity, drop level-inappropriate suggestions, and order the rest.

    A suggestion that was high severity before or after remapping is always
    kept. Unknown levels pass through unchanged. Inputs are not mutated.
    """
    level = enum_value(academic_level)
    priorities = GRADE_LEVEL_PRIORITIES.get(level)
    if priorities is None:
        return list(suggestions)

    include = _INCLUSION_RULES[level]
    kept: list[Suggestion] = []

    for original in suggestions:
        adjusted = original.model_copy(
            update={
                "severity": priorities.severity_adjustment.get(original.type, original.severity),
                "explanation": adapt_explanation(original.explanation, original.type, level),
            }
        )
        if original.severity == "high" or adjusted.severity == "high" or include(adjusted):
            kept.append(adjusted)

    kept.sort(key=lambda s: _sort_key(s, priorities))
    return kept
