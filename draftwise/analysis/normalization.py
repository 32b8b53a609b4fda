"""
Tolerant decoding of model output into fully populated Suggestion records.

Model output varies run to run, so missing or malformed fields are filled
with safe defaults instead of rejecting the whole batch. Everything past this
module sees complete, validated records.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

from draftwise.config import DEFAULT_CONFIDENCE
from draftwise.errors import ResponseParseFailed
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter
from draftwise.suggestions.models import (
    CORRECTNESS_TYPES,
    Severity,
    Suggestion,
    SuggestionCategory,
    SuggestionType,
)

logger = get_logger(__name__)

_TYPES = {t.value for t in SuggestionType}
_CATEGORIES = {c.value for c in SuggestionCategory}
_SEVERITIES = {s.value for s in Severity}

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def parse_json_object(response_text: str) -> dict[str, Any]:
    """Strip markdown code fences and decode a JSON object, or raise ResponseParseFailed."""
    if not response_text or not response_text.strip():
        raise ResponseParseFailed("Empty model response")

    json_text = response_text.strip()
    if json_text.startswith("```"):
        json_text = _FENCE_OPEN.sub("", json_text)
        json_text = _FENCE_CLOSE.sub("", json_text)

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ResponseParseFailed(f"Model response is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise ResponseParseFailed("Model response is not a JSON object")
    return data


def extract_json_object(response_text: str) -> dict[str, Any]:
    """
    Parse a model response into a dict with a ``suggestions`` list.

    Raises ResponseParseFailed for anything that is not a JSON object
    carrying a suggestions array.
    """
    data = parse_json_object(response_text)
    if not isinstance(data.get("suggestions"), list):
        raise ResponseParseFailed("Model response has no suggestions array")

    return data


def _text(raw: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = raw.get(key)
        if isinstance(value, str):
            return value
    return ""


def _choice(value: Any, allowed: set[str]) -> str | None:
    return value if isinstance(value, str) and value in allowed else None


def _confidence(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(number):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, number))


def _index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value.is_integer() and value >= 0:
        return int(value)
    return None


def normalize_suggestion(
    raw: dict[str, Any],
    document_id: str = "",
    user_id: str = "",
) -> Suggestion:
    """Decode one raw item. Never raises for a dict input."""
    original_text = _text(raw, "originalText", "original_text")
    suggested_text = _text(raw, "suggestedText", "suggested_text")

    suggestion_type = _choice(raw.get("type"), _TYPES) or SuggestionType.CLARITY.value

    category = _choice(raw.get("category"), _CATEGORIES)
    if category is None:
        category = (
            SuggestionCategory.ERROR.value
            if suggestion_type in CORRECTNESS_TYPES
            else SuggestionCategory.IMPROVEMENT.value
        )

    severity = _choice(raw.get("severity"), _SEVERITIES) or Severity.MEDIUM.value

    start = _index(raw.get("startIndex", raw.get("start_index")))
    end = _index(raw.get("endIndex", raw.get("end_index")))
    if start is None:
        start = 0
    if end is None:
        end = start + len(original_text)
    if start > end:
        start, end = end, start

    grammar_rule = raw.get("grammarRule", raw.get("grammar_rule"))

    return Suggestion(
        document_id=document_id,
        user_id=user_id,
        type=suggestion_type,
        category=category,
        severity=severity,
        original_text=original_text,
        suggested_text=suggested_text,
        explanation=_text(raw, "explanation"),
        confidence=_confidence(raw.get("confidence")),
        start_index=start,
        end_index=end,
        grammar_rule=grammar_rule if isinstance(grammar_rule, str) else None,
    )


def normalize_suggestions(
    items: list[Any],
    document_id: str = "",
    user_id: str = "",
) -> list[Suggestion]:
    """Decode every dict item; non-dict items are skipped and counted."""
    suggestions = []
    for item in items:
        if not isinstance(item, dict):
            counter("analysis.normalize.skipped")
            logger.debug("Skipping non-object suggestion item: %r", type(item).__name__)
            continue
        suggestions.append(normalize_suggestion(item, document_id, user_id))
    return suggestions
