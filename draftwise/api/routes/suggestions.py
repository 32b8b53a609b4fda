"""
Suggestion endpoints: analysis, accept/reject, listing, and cache controls.

Handlers are plain ``def`` so FastAPI runs them in its threadpool; analysis
blocks on the model call and SQLite.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from draftwise.analysis.cache import AnalysisCache
from draftwise.analysis.orchestrator import SuggestionOrchestrator
from draftwise.api.dependencies import (
    get_analysis_cache,
    get_orchestrator,
    get_progress_service,
    get_suggestion_service,
)
from draftwise.api.middleware.user_auth import AuthenticatedUser, get_current_user
from draftwise.observability.logging import get_logger
from draftwise.progress.service import ProgressService
from draftwise.suggestions.models import Suggestion, SuggestionRequest, SuggestionResponse
from draftwise.suggestions.service import SuggestionService

router = APIRouter(prefix="/api", tags=["suggestions"])
logger = get_logger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================


class ContentRequest(BaseModel):
    content: str


class AcceptResponse(BaseModel):
    new_content: str
    suggestion: Suggestion


class SuggestionListResponse(BaseModel):
    suggestions: list[Suggestion]
    total: int


class ClearStaleResponse(BaseModel):
    cleared: int


# ============================================================================
# Endpoints
# ============================================================================


@router.post("/suggestions/analyze", response_model=SuggestionResponse)
def analyze_document(
    request: SuggestionRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    orchestrator: SuggestionOrchestrator = Depends(get_orchestrator),
    progress: ProgressService = Depends(get_progress_service),
) -> SuggestionResponse:
    result = orchestrator.analyze(user.id, request)
    # Only a fresh full pass sees the whole document
    if not result.metadata.cached and result.metadata.analysis_type == "full":
        progress.record_analysis(user.id, request.document_id, request.content, result.suggestions)
    return result


@router.post("/suggestions/{suggestion_id}/accept", response_model=AcceptResponse)
def accept_suggestion(
    suggestion_id: str,
    body: ContentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: SuggestionService = Depends(get_suggestion_service),
) -> AcceptResponse:
    applied = service.accept(user.id, suggestion_id, body.content)
    return AcceptResponse(new_content=applied.new_content, suggestion=applied.suggestion)


@router.post("/suggestions/{suggestion_id}/reject", response_model=Suggestion)
def reject_suggestion(
    suggestion_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: SuggestionService = Depends(get_suggestion_service),
) -> Suggestion:
    return service.reject(user.id, suggestion_id)


@router.get("/suggestions/stats")
def suggestion_stats(
    document_id: str | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: SuggestionService = Depends(get_suggestion_service),
) -> dict[str, Any]:
    return service.stats(user.id, document_id)


@router.get("/documents/{document_id}/suggestions", response_model=SuggestionListResponse)
def list_document_suggestions(
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: SuggestionService = Depends(get_suggestion_service),
) -> SuggestionListResponse:
    """Pending suggestions for a document, ordered by position."""
    suggestions = service.list_pending(user.id, document_id)
    return SuggestionListResponse(suggestions=suggestions, total=len(suggestions))


@router.post("/documents/{document_id}/suggestions/visible", response_model=SuggestionListResponse)
def list_visible_suggestions(
    document_id: str,
    body: ContentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: SuggestionService = Depends(get_suggestion_service),
) -> SuggestionListResponse:
    """Pending suggestions minus those inside paragraphs tagged done."""
    suggestions = service.list_pending(user.id, document_id, body.content)
    return SuggestionListResponse(suggestions=suggestions, total=len(suggestions))


@router.post("/documents/{document_id}/suggestions/clear-stale", response_model=ClearStaleResponse)
def clear_stale_suggestions(
    document_id: str,
    body: ContentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: SuggestionService = Depends(get_suggestion_service),
) -> ClearStaleResponse:
    return ClearStaleResponse(cleared=service.clear_stale(user.id, document_id, body.content))


@router.get("/cache/stats")
def cache_stats(
    user: AuthenticatedUser = Depends(get_current_user),
    cache: AnalysisCache = Depends(get_analysis_cache),
) -> dict[str, Any]:
    return cache.stats(user.id)


@router.delete("/cache")
def clear_cache(
    user: AuthenticatedUser = Depends(get_current_user),
    cache: AnalysisCache = Depends(get_analysis_cache),
) -> dict[str, int]:
    return {"removed": cache.clear_user(user.id)}
