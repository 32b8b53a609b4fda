"""Content fingerprints used as analysis cache keys.

The hash is a 32-bit rolling hash (h * 31 + unit, wrapped to a signed 32-bit
integer) over UTF-16 code units, rendered as the hex of its absolute value.
It is deliberately cheap and non-cryptographic: keys are also scoped by user id
and a collision only costs a wrong cache reuse, never data loss.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Sequence
from typing import Any

from draftwise.config import CACHE_KEY_VERSION, MAX_ACCEPTED_IN_PROMPT
from draftwise.suggestions.models import AcceptedSuggestion, WritingGoals

_MASK_32 = 0xFFFFFFFF
_SIGN_32 = 0x80000000

NO_HISTORY_DIGEST = "none"


def _utf16_units(text: str) -> Iterator[int]:
    for ch in text:
        point = ord(ch)
        if point > 0xFFFF:
            point -= 0x10000
            yield 0xD800 + (point >> 10)
            yield 0xDC00 + (point & 0x3FF)
        else:
            yield point


def rolling_hash(text: str) -> str:
    """Return the hex rolling hash of ``text``; the empty string hashes to "0"."""
    h = 0
    for unit in _utf16_units(text):
        h = ((h << 5) - h + unit) & _MASK_32
    if h & _SIGN_32:
        h -= 1 << 32
    return format(abs(h), "x")


def _canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def accepted_suggestions_digest(
    accepted: Sequence[AcceptedSuggestion] | None,
    limit: int = MAX_ACCEPTED_IN_PROMPT,
) -> str:
    """Digest of the most recent accepted suggestions (at most ``limit``)."""
    if not accepted:
        return NO_HISTORY_DIGEST
    recent = list(accepted)[-limit:]
    projected = [
        {"originalText": s.original_text, "suggestedText": s.suggested_text, "type": s.type}
        for s in recent
    ]
    return rolling_hash(_canonical_json(projected))


def _goals_payload(goals: WritingGoals | None) -> dict[str, Any] | None:
    if goals is None:
        return None
    return goals.model_dump(mode="json")


def content_hash(
    content: str,
    writing_goals: WritingGoals | None = None,
    accepted_suggestions: Iterable[AcceptedSuggestion] | None = None,
    context_type: str = "full",
) -> str:
    """
    Fingerprint (content, goals, accepted history, context type).

    Accepting a suggestion changes the digest and therefore the key, so an
    answer computed before the edit is never served after it.
    """
    accepted = list(accepted_suggestions) if accepted_suggestions is not None else []
    payload = {
        "content": content,
        "writingGoals": _goals_payload(writing_goals),
        "contextType": context_type,
        "acceptedSuggestionsDigest": accepted_suggestions_digest(accepted),
        "version": CACHE_KEY_VERSION,
    }
    return rolling_hash(_canonical_json(payload))


def cache_key(user_id: str, hash_value: str) -> str:
    return f"{user_id}_{hash_value}"
