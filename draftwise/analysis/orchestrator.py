"""
Suggestion request orchestration.

One request runs strictly in sequence:

    validate -> rate limit -> diff/plan -> cache lookup
      -> [hit]  respond from cache
      -> [miss] model call (one constrained retry on unparseable output)
                -> normalize -> post-filters -> grade-level filter
                -> persist -> cache write -> respond

There is no cross-request locking: two identical concurrent requests may both
call the model, and the later cache write wins.
"""

from __future__ import annotations

import re
import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from draftwise.analysis.cache import AnalysisCache, CachedAnalysis
from draftwise.analysis.context_window import (
    Window,
    build_context_window,
    estimate_tokens,
    render_windows,
    should_use_full_analysis,
)
from draftwise.analysis.grade_filter import filter_suggestions
from draftwise.analysis.hashing import cache_key, content_hash
from draftwise.analysis.modification_tracker import ModificationTracker, should_exclude_area
from draftwise.analysis.normalization import extract_json_object, normalize_suggestions
from draftwise.analysis.paragraphs import extract_paragraphs, split_paragraphs
from draftwise.analysis.prompts import RETRY_CONSTRAINT, build_system_prompt, build_user_prompt
from draftwise.analysis.rate_limiter import RateLimiter
from draftwise.config import (
    ANALYSIS_TEMPERATURE,
    DEFAULT_CONTEXT_RADIUS,
    MAX_PER_ANALYSIS,
    MIN_CONFIDENCE,
    RETRY_SUGGESTION_CAP,
)
from draftwise.errors import AnalysisFailed, InvalidRequest, ResponseParseFailed
from draftwise.llm.client import LLMProvider
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter, log_event, time_block
from draftwise.suggestions.models import (
    AcceptedSuggestion,
    AnalysisType,
    ChangeType,
    ModifiedArea,
    Suggestion,
    SuggestionMetadata,
    SuggestionRequest,
    SuggestionResponse,
    SuggestionStatus,
    WritingGoals,
)
from draftwise.suggestions.repository import SuggestionRepository
from draftwise.tags.repository import TagRepository
from draftwise.tags.service import filter_done_paragraphs

logger = get_logger(__name__)

_NON_WORD = re.compile(r"[^\w\s]")


@dataclass
class AnalysisPlan:
    analysis_type: str  # "full" or "differential"
    text: str
    total_paragraphs: int
    changed_indices: list[int] = field(default_factory=list)
    windows: list[Window] = field(default_factory=list)
    # Character spans of changed paragraphs; suggestions must land inside one
    allowed_spans: list[tuple[int, int]] = field(default_factory=list)

    @property
    def is_differential(self) -> bool:
        return self.analysis_type == AnalysisType.DIFFERENTIAL.value


# ============================================================================
# Post-filters (pure)
# ============================================================================


def locate_text(
    content: str,
    text: str,
    hint: int,
    allowed_spans: Sequence[tuple[int, int]] = (),
) -> int:
    """
    Offset of ``text`` in ``content``, or -1.

    Prefers the first occurrence at or after the model's offset, then the
    first occurrence anywhere. With ``allowed_spans`` only occurrences fully
    inside one of the spans count.
    """
    if not text:
        return -1

    def first_from(position: int) -> int:
        start = content.find(text, position)
        while start != -1:
            end = start + len(text)
            if not allowed_spans or any(a <= start and end <= b for a, b in allowed_spans):
                return start
            start = content.find(text, start + 1)
        return -1

    found = first_from(max(0, hint))
    return found if found != -1 else first_from(0)


def is_redundant_punctuation(s: Suggestion, content: str, start: int, end: int) -> bool:
    """Grammar fixes that would add a period where one already exists."""
    if s.type != "grammar" or "punctuation" not in s.explanation.lower():
        return False

    original = s.original_text.strip()
    suggested = s.suggested_text.strip()
    if original.endswith(".") and suggested.endswith("."):
        return True

    context = content[max(0, start - 2) : min(len(content), end + 2)]
    return "." in s.suggested_text and ".." in context


def _clean(text: str) -> str:
    return _NON_WORD.sub("", text.lower()).strip()


def is_trivial_rewrite(s: Suggestion) -> bool:
    """Engagement rewrites that barely differ from the original."""
    original, suggested = _clean(s.original_text), _clean(s.suggested_text)
    if not original or not suggested:
        return False
    return original == suggested or original in suggested or suggested in original


def apply_post_filters(
    candidates: Sequence[Suggestion],
    content: str,
    modified_areas: Sequence[ModifiedArea] = (),
    existing_texts: set[str] | None = None,
    allowed_spans: Sequence[tuple[int, int]] = (),
) -> list[Suggestion]:
    """
    Anchor and prune freshly generated suggestions.

    Drops: duplicates of pending (or earlier in-batch) originalText, text not
    found in the document, redundant punctuation fixes, spans excluded by
    modification history, low-confidence clarity/engagement, and anything
    beyond the per-analysis clarity/engagement caps.
    """
    seen = set(existing_texts or ())
    per_type: dict[str, int] = {}
    kept: list[Suggestion] = []

    for s in candidates:
        if s.original_text in seen:
            counter("analysis.filter.duplicate")
            continue

        start = locate_text(content, s.original_text, s.start_index, allowed_spans)
        if start == -1:
            counter("analysis.filter.unanchored")
            logger.debug("Could not anchor suggestion text (%d chars), skipping", len(s.original_text))
            continue
        end = start + len(s.original_text)

        if is_redundant_punctuation(s, content, start, end):
            counter("analysis.filter.punctuation")
            continue

        if should_exclude_area(start, end, s.type, modified_areas):
            counter("analysis.filter.modified_area")
            continue

        if s.type in MIN_CONFIDENCE and s.confidence < MIN_CONFIDENCE[s.type]:
            counter("analysis.filter.low_confidence")
            continue

        if s.type in MAX_PER_ANALYSIS:
            if per_type.get(s.type, 0) >= MAX_PER_ANALYSIS[s.type]:
                counter("analysis.filter.type_cap")
                continue
            if s.type == "engagement" and is_trivial_rewrite(s):
                counter("analysis.filter.trivial")
                continue
            per_type[s.type] = per_type.get(s.type, 0) + 1

        kept.append(s.model_copy(update={"start_index": start, "end_index": end}))
        seen.add(s.original_text)

    return kept


# ============================================================================
# Orchestrator
# ============================================================================


class SuggestionOrchestrator:
    """Runs one suggestion request end to end. Collaborators are injected."""

    def __init__(
        self,
        provider: LLMProvider,
        cache: AnalysisCache | None = None,
        rate_limiter: RateLimiter | None = None,
        tracker: ModificationTracker | None = None,
        repository: type[SuggestionRepository] = SuggestionRepository,
        tag_repository: type[TagRepository] | None = TagRepository,
    ):
        self.provider = provider
        self.cache = cache or AnalysisCache()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.tracker = tracker or ModificationTracker()
        self.repository = repository
        self.tag_repository = tag_repository

    def analyze(self, user_id: str, request: SuggestionRequest) -> SuggestionResponse:
        started = time.perf_counter()
        self._validate(user_id, request)
        self.rate_limiter.check(user_id)

        goals = request.writing_goals or WritingGoals()
        plan = self.plan(user_id, request)
        accepted = self._accepted_history(user_id, request)

        hash_value = content_hash(request.content, goals, accepted, plan.analysis_type)
        key = cache_key(user_id, hash_value)

        if not request.bypass_cache:
            cached = self.cache.get(hash_value, user_id)
            if cached is not None:
                return self._from_cache(user_id, request, cached, key, plan, started)

        with time_block("analysis.model.latency"):
            suggestions, token_count = self._generate(user_id, request, goals, plan, accepted)

        if suggestions:
            self.cache.set(
                hash_value,
                user_id,
                [s.model_dump() for s in suggestions],
                {
                    "token_count": token_count,
                    "context_type": plan.analysis_type,
                    "paragraph_count": plan.total_paragraphs,
                    "document_id": request.document_id,
                },
            )

        elapsed_ms = (time.perf_counter() - started) * 1000
        log_event(
            "analysis.completed",
            user_id=user_id,
            document_id=request.document_id,
            analysis_type=plan.analysis_type,
            suggestion_count=len(suggestions),
            token_count=token_count,
        )
        return SuggestionResponse(
            suggestions=suggestions,
            metadata=SuggestionMetadata(
                cached=False,
                token_count=token_count,
                processing_time=elapsed_ms,
                cache_key=key,
                analysis_type=plan.analysis_type,
            ),
            message=f"Generated {len(suggestions)} suggestions ({plan.analysis_type} analysis)",
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(user_id: str, request: SuggestionRequest) -> None:
        missing = [
            name
            for name, value in (
                ("user_id", user_id),
                ("document_id", request.document_id),
                ("content", request.content),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise InvalidRequest(f"Missing required fields: {', '.join(missing)}")

    def plan(self, user_id: str, request: SuggestionRequest) -> AnalysisPlan:
        """
        Decide between full and differential analysis.

        Changes against previous_content are always recorded. Differential is
        chosen only when changes exist and cover at most FALLBACK_THRESHOLD of
        the paragraphs, unless the caller forced a full analysis.
        """
        paragraphs = split_paragraphs(request.content)
        full = AnalysisPlan(AnalysisType.FULL.value, request.content, len(paragraphs))

        if request.previous_content is None:
            return full

        changes = self.tracker.track_changes(
            request.document_id, user_id, request.previous_content, request.content
        )
        if request.analysis_type == AnalysisType.FULL.value:
            return full

        changed = sorted(c.index for c in changes if c.change_type != ChangeType.DELETED)
        if not changed:
            return full

        if should_use_full_analysis(len(changed), len(paragraphs)):
            counter("analysis.differential_fallback")
            logger.info(
                "Differential fallback: %d/%d paragraphs changed", len(changed), len(paragraphs)
            )
            return full

        radius = request.context_window if request.context_window is not None else DEFAULT_CONTEXT_RADIUS
        windows = build_context_window(paragraphs, changed, radius)
        offsets = extract_paragraphs(request.content)
        allowed = [(offsets[i].start_index, offsets[i].end_index) for i in changed]

        return AnalysisPlan(
            AnalysisType.DIFFERENTIAL.value,
            render_windows(windows),
            len(paragraphs),
            changed_indices=changed,
            windows=windows,
            allowed_spans=allowed,
        )

    def _accepted_history(self, user_id: str, request: SuggestionRequest) -> list[AcceptedSuggestion]:
        if request.accepted_suggestions:
            return list(request.accepted_suggestions)
        try:
            return self.repository.recent_accepted(user_id, request.document_id)
        except Exception as e:
            logger.warning("Could not load accepted suggestions: %s", e)
            return []

    def _from_cache(
        self,
        user_id: str,
        request: SuggestionRequest,
        cached: CachedAnalysis,
        key: str,
        plan: AnalysisPlan,
        started: float,
    ) -> SuggestionResponse:
        suggestions = [Suggestion.model_validate(item) for item in cached.analysis]
        suggestions = self._still_pending(user_id, request.document_id, suggestions)
        metadata = cached.metadata

        log_event("analysis.cache_hit", user_id=user_id, document_id=request.document_id)
        return SuggestionResponse(
            suggestions=suggestions,
            metadata=SuggestionMetadata(
                cached=True,
                token_count=metadata.get("token_count", 0),
                processing_time=(time.perf_counter() - started) * 1000,
                cache_key=key,
                analysis_type=metadata.get("context_type", plan.analysis_type),
                cache_age=metadata.get("cache_age"),
                access_count=metadata.get("access_count"),
            ),
            message=f"Returned {len(suggestions)} cached suggestions",
        )

    def _still_pending(
        self, user_id: str, document_id: str, suggestions: list[Suggestion]
    ) -> list[Suggestion]:
        """Drop cached suggestions the user has since accepted or rejected."""
        try:
            pending = {
                s.id
                for s in self.repository.list_for_document(
                    user_id, document_id, SuggestionStatus.PENDING.value
                )
            }
        except Exception as e:
            logger.warning("Could not refresh cached suggestion status: %s", e)
            return suggestions
        return [s for s in suggestions if not s.id or s.id in pending]

    def call_model(self, system_prompt: str, user_prompt: str) -> list[Any]:
        """
        Two-step model call: first attempt, then one retry with a constrained
        prompt. A second unparseable answer raises AnalysisFailed.
        ModelCallFailed from the provider propagates untouched.
        """
        response = self.provider.complete(system_prompt, user_prompt, ANALYSIS_TEMPERATURE)
        try:
            return extract_json_object(response)["suggestions"]
        except ResponseParseFailed as e:
            counter("analysis.parse_retry")
            logger.warning("Unparseable model response, retrying with constraint: %s", e)

        response = self.provider.complete(
            system_prompt, user_prompt + RETRY_CONSTRAINT, ANALYSIS_TEMPERATURE
        )
        try:
            return extract_json_object(response)["suggestions"][:RETRY_SUGGESTION_CAP]
        except ResponseParseFailed as e:
            counter("analysis.failed")
            log_event("analysis.parse_failed", provider=getattr(self.provider, "name", "unknown"))
            raise AnalysisFailed("Could not parse the model response after retrying") from e

    def _generate(
        self,
        user_id: str,
        request: SuggestionRequest,
        goals: WritingGoals,
        plan: AnalysisPlan,
        accepted: list[AcceptedSuggestion],
    ) -> tuple[list[Suggestion], int]:
        modified_areas = self.tracker.get_modified_areas(request.document_id, user_id)

        system_prompt = build_system_prompt(goals)
        user_prompt = build_user_prompt(
            plan.text, request.content, accepted, modified_areas, differential=plan.is_differential
        )
        token_count = estimate_tokens(system_prompt + user_prompt)

        raw_items = self.call_model(system_prompt, user_prompt)
        candidates = normalize_suggestions(raw_items, request.document_id, user_id)

        try:
            existing = self.repository.pending_original_texts(user_id, request.document_id)
        except Exception as e:
            logger.warning("Could not load pending suggestions for dedup: %s", e)
            existing = set()

        filtered = apply_post_filters(
            candidates, request.content, modified_areas, existing, plan.allowed_spans
        )
        filtered = filter_done_paragraphs(filtered, request.content, self._tags(user_id, request))

        graded = filter_suggestions(filtered, goals.academic_level)
        if filtered and not graded:
            counter("analysis.grade_filter_fallback")
            graded = filtered

        analysis_id = f"analysis_{uuid.uuid4().hex[:12]}"
        stamped = [
            s.model_copy(update={"analysis_id": analysis_id, "status": SuggestionStatus.PENDING.value})
            for s in graded
        ]
        saved = self.repository.create_many(stamped)

        logger.info(
            "Analysis %s: %d raw, %d after filters, %d saved",
            analysis_id,
            len(candidates),
            len(graded),
            len(saved),
        )
        return saved, token_count

    def _tags(self, user_id: str, request: SuggestionRequest) -> list:
        if self.tag_repository is None:
            return []
        try:
            return self.tag_repository.list_for_document(user_id, request.document_id)
        except Exception as e:
            logger.warning("Could not load paragraph tags: %s", e)
            return []
