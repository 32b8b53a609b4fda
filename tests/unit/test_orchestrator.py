"""Unit tests for the suggestion orchestrator

Tests cover:
- Full analysis happy path, persistence and cache write
- Cache hits skip the model; accepted history changes the key
- Constrained retry on unparseable output, AnalysisFailed after the second
- Differential planning and fallback to full analysis
- Rate limiting and request validation
- Post-filters (anchoring, dedup, caps, confidence floors)
"""

from __future__ import annotations

import json

import pytest

from draftwise.analysis.cache import AnalysisCache
from draftwise.analysis.modification_tracker import ModificationTracker
from draftwise.analysis.orchestrator import (
    SuggestionOrchestrator,
    apply_post_filters,
    is_trivial_rewrite,
    locate_text,
)
from draftwise.analysis.prompts import RETRY_CONSTRAINT
from draftwise.analysis.rate_limiter import RateLimiter
from draftwise.errors import AnalysisFailed, InvalidRequest, ModelCallFailed, RateLimited
from draftwise.observability.telemetry import get_counter
from draftwise.suggestions.models import (
    AcceptedSuggestion,
    ModifiedArea,
    Suggestion,
    SuggestionRequest,
)
from draftwise.suggestions.repository import SuggestionRepository

TYPO = {
    "type": "spelling",
    "category": "error",
    "severity": "high",
    "originalText": "wrold",
    "suggestedText": "world",
    "explanation": "Misspelled word",
    "confidence": 0.95,
    "startIndex": 6,
    "endIndex": 11,
}

PARAGRAPHS = [f"Paragraph number {n} is here." for n in range(1, 6)]


def response(*items) -> str:
    return json.dumps({"suggestions": list(items)})


@pytest.fixture
def build(clock):
    def _build(provider, rate_limiter=None):
        return SuggestionOrchestrator(
            provider,
            cache=AnalysisCache(now_fn=clock),
            rate_limiter=rate_limiter or RateLimiter(),
            tracker=ModificationTracker(now_fn=clock),
        )

    return _build


def request(content="Hello wrold.", **kwargs) -> SuggestionRequest:
    return SuggestionRequest(content=content, document_id="doc-1", **kwargs)


# ============================================================================
# Full analysis and caching
# ============================================================================


def test_full_analysis_persists_and_returns_anchored_suggestion(build, make_provider):
    provider = make_provider([response(TYPO)])
    orchestrator = build(provider)

    result = orchestrator.analyze("user-1", request())

    assert result.metadata.cached is False
    assert result.metadata.analysis_type == "full"
    assert result.metadata.token_count > 0
    assert result.message == "Generated 1 suggestions (full analysis)"

    (s,) = result.suggestions
    assert (s.start_index, s.end_index) == (6, 11)
    assert s.status == "pending"
    assert s.id
    assert s.analysis_id.startswith("analysis_")

    stored = SuggestionRepository.list_for_document("user-1", "doc-1")
    assert [x.id for x in stored] == [s.id]


def test_second_identical_request_is_served_from_cache(build, make_provider):
    provider = make_provider([response(TYPO)])
    orchestrator = build(provider)

    first = orchestrator.analyze("user-1", request())
    second = orchestrator.analyze("user-1", request())

    assert len(provider.calls) == 1
    assert second.metadata.cached is True
    assert second.metadata.cache_key == first.metadata.cache_key
    assert second.metadata.access_count == 1
    assert [s.id for s in second.suggestions] == [s.id for s in first.suggestions]


def test_bypass_cache_calls_model_again(build, make_provider):
    provider = make_provider([response(TYPO)])
    orchestrator = build(provider)

    orchestrator.analyze("user-1", request())
    orchestrator.analyze("user-1", request(bypass_cache=True))

    assert len(provider.calls) == 2


def test_cache_hit_drops_suggestions_resolved_since(build, make_provider):
    provider = make_provider([response(TYPO)])
    orchestrator = build(provider)

    first = orchestrator.analyze("user-1", request())
    SuggestionRepository.update_status(first.suggestions[0].id, "rejected")

    second = orchestrator.analyze("user-1", request())

    assert second.metadata.cached is True
    assert second.suggestions == []


def test_accepted_history_changes_cache_key(build, make_provider):
    provider = make_provider([response(TYPO)])
    orchestrator = build(provider)

    first = orchestrator.analyze("user-1", request())
    accepted = [AcceptedSuggestion(original_text="Helo", suggested_text="Hello", type="spelling")]
    second = orchestrator.analyze("user-1", request(accepted_suggestions=accepted))

    assert second.metadata.cache_key != first.metadata.cache_key
    assert second.metadata.cached is False
    assert len(provider.calls) == 2
    assert '"Helo" -> "Hello"' in provider.calls[1][1]


def test_empty_result_is_not_cached(build, make_provider, clock):
    provider = make_provider([response()])
    orchestrator = build(provider)

    orchestrator.analyze("user-1", request())

    assert AnalysisCache(now_fn=clock).stats("user-1")["total_entries"] == 0


# ============================================================================
# Model failures
# ============================================================================


def test_unparseable_response_is_retried_with_constraint(build, make_provider):
    provider = make_provider(["Sure! Here are some ideas.", response(TYPO)])
    orchestrator = build(provider)

    result = orchestrator.analyze("user-1", request())

    assert len(result.suggestions) == 1
    assert len(provider.calls) == 2
    assert provider.calls[1][1].endswith(RETRY_CONSTRAINT)
    assert get_counter("analysis.parse_retry") == 1


def test_second_unparseable_response_fails_without_cache_write(build, make_provider, clock):
    provider = make_provider(["nope", "still nope"])
    orchestrator = build(provider)

    with pytest.raises(AnalysisFailed):
        orchestrator.analyze("user-1", request())

    assert len(provider.calls) == 2
    assert AnalysisCache(now_fn=clock).stats("user-1")["total_entries"] == 0
    assert SuggestionRepository.list_for_document("user-1", "doc-1") == []


def test_malformed_item_does_not_sink_the_batch(build, make_provider):
    broken = {"type": ["grammar"], "severity": {"x": 1}, "originalText": "nowhere"}
    provider = make_provider([response(broken, TYPO)])
    orchestrator = build(provider)

    result = orchestrator.analyze("user-1", request())

    assert [s.original_text for s in result.suggestions] == ["wrold"]


def test_provider_failure_propagates(build, make_provider):
    provider = make_provider([ModelCallFailed("upstream down")])
    orchestrator = build(provider)

    with pytest.raises(ModelCallFailed):
        orchestrator.analyze("user-1", request())

    assert len(provider.calls) == 1


# ============================================================================
# Differential analysis
# ============================================================================


def test_small_edit_uses_differential_prompt(build, make_provider):
    provider = make_provider([response()])
    orchestrator = build(provider)

    previous = "\n\n".join(PARAGRAPHS)
    edited = list(PARAGRAPHS)
    edited[1] = "Paragraph number 2 is hear."
    result = orchestrator.analyze(
        "user-1", request("\n\n".join(edited), previous_content=previous, context_window=0)
    )

    assert result.metadata.analysis_type == "differential"
    user_prompt = provider.calls[0][1]
    assert "[Paragraph 2 - CHANGED]" in user_prompt
    assert "Paragraph number 4" not in user_prompt


def test_large_edit_falls_back_to_full(build, make_provider):
    provider = make_provider([response()])
    orchestrator = build(provider)

    previous = "\n\n".join(PARAGRAPHS)
    edited = [p.replace("here", "there") for p in PARAGRAPHS[:4]] + PARAGRAPHS[4:]
    result = orchestrator.analyze(
        "user-1", request("\n\n".join(edited), previous_content=previous)
    )

    assert result.metadata.analysis_type == "full"
    assert get_counter("analysis.differential_fallback") == 1


def test_forced_full_analysis_ignores_diff(build, make_provider):
    provider = make_provider([response()])
    orchestrator = build(provider)

    previous = "\n\n".join(PARAGRAPHS)
    edited = [*PARAGRAPHS[:4], "Paragraph number 5 changed."]
    result = orchestrator.analyze(
        "user-1",
        request("\n\n".join(edited), previous_content=previous, analysis_type="full"),
    )

    assert result.metadata.analysis_type == "full"


def test_differential_drops_suggestions_outside_changed_paragraphs(build, make_provider):
    outside = {**TYPO, "type": "spelling", "originalText": "number 1", "suggestedText": "no. 1"}
    inside = {**TYPO, "originalText": "hear", "suggestedText": "here"}
    provider = make_provider([response(outside, inside)])
    orchestrator = build(provider)

    edited = list(PARAGRAPHS)
    edited[1] = "Paragraph number 2 is hear."
    result = orchestrator.analyze(
        "user-1",
        request("\n\n".join(edited), previous_content="\n\n".join(PARAGRAPHS)),
    )

    assert [s.original_text for s in result.suggestions] == ["hear"]


# ============================================================================
# Validation and rate limiting
# ============================================================================


def test_blank_content_is_rejected(build, make_provider):
    provider = make_provider([response()])

    with pytest.raises(InvalidRequest, match="content"):
        build(provider).analyze("user-1", request("   "))

    assert provider.calls == []


def test_rate_limit_applies_before_cache(build, make_provider):
    provider = make_provider([response(TYPO)])
    orchestrator = build(provider, rate_limiter=RateLimiter(limit=1))

    orchestrator.analyze("user-1", request())
    with pytest.raises(RateLimited):
        orchestrator.analyze("user-1", request())


# ============================================================================
# Post-filters
# ============================================================================


def make(original: str, type_: str = "spelling", confidence: float = 0.95, **kwargs) -> Suggestion:
    return Suggestion(
        type=type_,
        category="error" if type_ in ("spelling", "grammar") else "improvement",
        severity="medium",
        original_text=original,
        suggested_text=kwargs.pop("suggested", original.upper()),
        confidence=confidence,
        **kwargs,
    )


def test_locate_text_prefers_occurrence_after_hint():
    content = "the cat and the dog"
    assert locate_text(content, "the", 4) == 12
    assert locate_text(content, "the", 15) == 0
    assert locate_text(content, "bird", 0) == -1


def test_locate_text_respects_allowed_spans():
    content = "the cat and the dog"
    assert locate_text(content, "the", 0, allowed_spans=[(10, 19)]) == 12


def test_post_filters_reanchor_and_dedupe():
    content = "Teh cat saw teh dog."
    kept = apply_post_filters(
        [make("Teh", start_index=40, end_index=43), make("Teh"), make("missing")],
        content,
    )

    assert [(s.original_text, s.start_index, s.end_index) for s in kept] == [("Teh", 0, 3)]
    assert get_counter("analysis.filter.duplicate") == 1
    assert get_counter("analysis.filter.unanchored") == 1


def test_post_filters_skip_pending_duplicates():
    kept = apply_post_filters([make("cat")], "The cat.", existing_texts={"cat"})
    assert kept == []


def test_post_filters_confidence_floor_and_caps():
    content = "one two three four five six"
    candidates = [
        make("one", "clarity", confidence=0.79),
        make("two", "clarity"),
        make("three", "clarity"),
        make("four", "clarity"),
        make("five", "clarity"),
        make("six", "engagement", confidence=0.9, suggested="6 vivid"),
    ]

    kept = apply_post_filters(candidates, content)

    assert [s.original_text for s in kept] == ["two", "three", "four", "six"]
    assert get_counter("analysis.filter.low_confidence") == 1
    assert get_counter("analysis.filter.type_cap") == 1


def test_post_filters_drop_redundant_punctuation():
    s = make(
        "ends here.",
        "grammar",
        suggested="ends here.",
        explanation="Missing punctuation",
    )
    assert apply_post_filters([s], "It ends here.") == []


def test_post_filters_respect_modified_areas():
    area = ModifiedArea(start_index=0, end_index=20, type="engagement", modification_count=1)
    s = make("boring", "engagement", suggested="gripping")

    assert apply_post_filters([s], "A boring story.", modified_areas=[area]) == []


def test_trivial_engagement_rewrite():
    assert is_trivial_rewrite(make("good idea", "engagement", suggested="Good idea!"))
    assert is_trivial_rewrite(make("good idea", "engagement", suggested="a good idea indeed"))
    assert not is_trivial_rewrite(make("good idea", "engagement", suggested="brilliant plan"))
