"""
FastAPI dependencies.

Process-wide singletons (provider, rate limiter, cache) are built once; the
services are cheap wrappers built per request. Tests swap any of them via
``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from draftwise.analysis.cache import AnalysisCache
from draftwise.analysis.modification_tracker import ModificationTracker
from draftwise.analysis.orchestrator import SuggestionOrchestrator
from draftwise.analysis.rate_limiter import RateLimiter
from draftwise.llm.client import LLMProvider, get_provider
from draftwise.progress.service import ProgressService
from draftwise.rubrics.service import RubricService
from draftwise.suggestions.service import SuggestionService
from draftwise.tags.service import TagService


def get_llm_provider() -> LLMProvider:
    return get_provider()


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    return RateLimiter()


@lru_cache(maxsize=1)
def get_analysis_cache() -> AnalysisCache:
    return AnalysisCache()


def get_tracker() -> ModificationTracker:
    return ModificationTracker()


def get_orchestrator(
    provider: LLMProvider = Depends(get_llm_provider),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    cache: AnalysisCache = Depends(get_analysis_cache),
    tracker: ModificationTracker = Depends(get_tracker),
) -> SuggestionOrchestrator:
    return SuggestionOrchestrator(provider, cache=cache, rate_limiter=rate_limiter, tracker=tracker)


def get_suggestion_service(
    tracker: ModificationTracker = Depends(get_tracker),
) -> SuggestionService:
    return SuggestionService(tracker=tracker)


def get_tag_service() -> TagService:
    return TagService()


def get_rubric_service(provider: LLMProvider = Depends(get_llm_provider)) -> RubricService:
    return RubricService(provider)


def get_progress_service() -> ProgressService:
    return ProgressService()
