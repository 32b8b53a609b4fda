"""Unit tests for model-output normalization

Tests cover:
- Code-fence stripping and JSON object validation
- camelCase and snake_case keys
- Defaults for missing or unknown fields
- Confidence clamping and index repair
"""

from __future__ import annotations

import json

import pytest

from draftwise.analysis.normalization import (
    extract_json_object,
    normalize_suggestion,
    normalize_suggestions,
)
from draftwise.errors import ResponseParseFailed
from draftwise.observability.telemetry import get_counter


def test_strips_json_code_fence():
    payload = '```json\n{"suggestions": [{"originalText": "teh"}]}\n```'
    assert extract_json_object(payload)["suggestions"] == [{"originalText": "teh"}]


def test_strips_bare_code_fence():
    assert extract_json_object('```\n{"suggestions": []}\n```') == {"suggestions": []}


@pytest.mark.parametrize(
    "payload",
    ["", "   ", "not json", "[1, 2]", '{"items": []}', '{"suggestions": "none"}'],
)
def test_rejects_unusable_responses(payload):
    with pytest.raises(ResponseParseFailed):
        extract_json_object(payload)


def test_camel_case_keys():
    s = normalize_suggestion(
        {
            "type": "spelling",
            "category": "error",
            "severity": "high",
            "originalText": "teh",
            "suggestedText": "the",
            "explanation": "Typo",
            "confidence": 0.95,
            "startIndex": 4,
            "endIndex": 7,
            "grammarRule": "spelling",
        },
        document_id="doc-1",
        user_id="user-1",
    )

    assert (s.original_text, s.suggested_text) == ("teh", "the")
    assert (s.start_index, s.end_index) == (4, 7)
    assert s.grammar_rule == "spelling"
    assert s.document_id == "doc-1"
    assert s.user_id == "user-1"


def test_snake_case_keys():
    s = normalize_suggestion(
        {"original_text": "alot", "suggested_text": "a lot", "start_index": 2, "end_index": 6}
    )
    assert s.original_text == "alot"
    assert (s.start_index, s.end_index) == (2, 6)


def test_defaults_for_missing_fields():
    s = normalize_suggestion({"originalText": "abc"})

    assert s.type == "clarity"
    assert s.category == "improvement"
    assert s.severity == "medium"
    assert s.confidence == 0.85
    assert (s.start_index, s.end_index) == (0, 3)
    assert s.explanation == ""


def test_unknown_type_falls_back_and_error_category_for_correctness():
    assert normalize_suggestion({"type": "poetry"}).type == "clarity"
    assert normalize_suggestion({"type": "grammar"}).category == "error"


@pytest.mark.parametrize("raw, expected", [(1.7, 1.0), (-0.2, 0.0), ("high", 0.85), (True, 0.85)])
def test_confidence_is_clamped(raw, expected):
    assert normalize_suggestion({"confidence": raw}).confidence == expected


def test_swapped_indices_are_reordered():
    s = normalize_suggestion({"originalText": "abc", "startIndex": 9, "endIndex": 6})
    assert (s.start_index, s.end_index) == (6, 9)


def test_negative_index_is_repaired():
    s = normalize_suggestion({"originalText": "abcd", "startIndex": -3})
    assert (s.start_index, s.end_index) == (0, 4)


def test_non_dict_items_are_skipped():
    items = json.loads('[{"originalText": "a"}, "junk", 3, null]')

    suggestions = normalize_suggestions(items)

    assert len(suggestions) == 1
    assert get_counter("analysis.normalize.skipped") == 3


@pytest.mark.parametrize(
    "field, value",
    [
        ("type", ["grammar"]),
        ("category", {"kind": "error"}),
        ("severity", {"x": 1}),
        ("type", 4),
    ],
)
def test_non_string_enum_fields_get_defaults(field, value):
    s = normalize_suggestion({"originalText": "teh", field: value})

    assert s.type == "clarity"
    assert s.category == "improvement"
    assert s.severity == "medium"


def test_confidence_too_large_for_float_uses_default():
    s = normalize_suggestion(json.loads('{"originalText": "a", "confidence": 1' + "0" * 400 + "}"))

    assert s.confidence == 0.85
