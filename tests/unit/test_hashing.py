"""Unit tests for content fingerprints

Tests cover:
- Rolling hash values (empty string, known inputs, astral characters)
- Determinism of content_hash
- Sensitivity to goals, context type and accepted suggestions
- Accepted-suggestion digest only considers the last five
"""

from __future__ import annotations

from draftwise.analysis.hashing import (
    accepted_suggestions_digest,
    cache_key,
    content_hash,
    rolling_hash,
)
from draftwise.suggestions.models import AcceptedSuggestion, WritingGoals


def accepted(original: str, suggested: str, type_: str = "spelling") -> AcceptedSuggestion:
    return AcceptedSuggestion(original_text=original, suggested_text=suggested, type=type_)


def test_rolling_hash_empty_string_is_zero():
    assert rolling_hash("") == "0"


def test_rolling_hash_known_values():
    assert rolling_hash("a") == "61"
    assert rolling_hash("ab") == "c21"  # 97 * 31 + 98 = 3105
    assert rolling_hash("hello") == "5e918d2"  # 99162322


def test_rolling_hash_uses_absolute_value_of_signed_overflow():
    # 31-bit overflow makes the signed value negative; output is never prefixed with "-"
    value = rolling_hash("polygenelubricants")
    assert not value.startswith("-")
    assert value == format(abs(-(2**31)), "x")


def test_rolling_hash_encodes_astral_characters_as_surrogate_pairs():
    # U+1F600 -> D83D DE00
    expected = (0xD83D * 31 + 0xDE00) & 0xFFFFFFFF
    assert rolling_hash("\U0001F600") == format(expected, "x")


def test_content_hash_is_deterministic():
    goals = WritingGoals(academic_level="high-school")
    first = content_hash("Hello wrold.", goals, [], "full")
    second = content_hash("Hello wrold.", WritingGoals(academic_level="high-school"), [], "full")
    assert first == second


def test_content_hash_changes_with_inputs():
    base = content_hash("Hello wrold.", WritingGoals(), [], "full")

    assert content_hash("Hello world.", WritingGoals(), [], "full") != base
    assert content_hash("Hello wrold.", WritingGoals(academic_level="undergrad"), [], "full") != base
    assert content_hash("Hello wrold.", WritingGoals(), [], "differential") != base


def test_accepting_a_suggestion_changes_the_hash():
    before = content_hash("Hello wrold.", WritingGoals(), [])
    after = content_hash("Hello wrold.", WritingGoals(), [accepted("wrold", "world")])
    assert before != after


def test_accepted_digest_ignores_history_beyond_last_five():
    recent = [accepted(f"word{i}", f"fix{i}") for i in range(5)]
    older = [accepted("ancient", "old")]

    assert accepted_suggestions_digest(older + recent) == accepted_suggestions_digest(recent)
    assert accepted_suggestions_digest([]) == "none"


def test_cache_key_is_scoped_by_user():
    assert cache_key("user-1", "abc") == "user-1_abc"
    assert cache_key("user-1", "abc") != cache_key("user-2", "abc")
