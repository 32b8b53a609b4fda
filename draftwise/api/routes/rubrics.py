"""Rubric endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from draftwise.api.dependencies import get_rubric_service
from draftwise.api.middleware.user_auth import AuthenticatedUser, get_current_user
from draftwise.errors import NotFound
from draftwise.rubrics.models import Rubric, RubricFeedback
from draftwise.rubrics.repository import RubricRepository
from draftwise.rubrics.service import RubricService
from draftwise.suggestions.models import AcademicLevel

router = APIRouter(prefix="/api/rubrics", tags=["rubrics"])


class ParseRubricRequest(BaseModel):
    document_id: str
    raw_text: str
    title: str | None = None


class AnalyzeRubricRequest(BaseModel):
    document_id: str
    rubric_id: str
    content: str
    academic_level: AcademicLevel | None = None


@router.post("/parse", response_model=Rubric)
def parse_rubric(
    body: ParseRubricRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: RubricService = Depends(get_rubric_service),
) -> Rubric:
    return service.parse_rubric(user.id, body.document_id, body.raw_text, body.title)


@router.post("/analyze", response_model=RubricFeedback)
def analyze_with_rubric(
    body: AnalyzeRubricRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: RubricService = Depends(get_rubric_service),
) -> RubricFeedback:
    rubric = service.get_rubric(user.id, body.rubric_id)
    level = body.academic_level.value if body.academic_level else None
    return service.analyze_against_rubric(user.id, body.document_id, body.content, rubric, level)


@router.get("", response_model=list[Rubric])
def list_rubrics(
    document_id: str = Query(...),
    user: AuthenticatedUser = Depends(get_current_user),
) -> list[Rubric]:
    return RubricRepository.list_for_document(user.id, document_id)


@router.get("/feedback/latest", response_model=RubricFeedback)
def latest_feedback(
    document_id: str = Query(...),
    user: AuthenticatedUser = Depends(get_current_user),
) -> RubricFeedback:
    feedback = RubricRepository.latest_feedback(user.id, document_id)
    if feedback is None:
        raise NotFound("No rubric feedback for this document")
    return feedback
