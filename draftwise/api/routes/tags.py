"""Paragraph tag endpoints, scoped to one document."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from draftwise.api.dependencies import get_tag_service
from draftwise.api.middleware.user_auth import AuthenticatedUser, get_current_user
from draftwise.suggestions.models import ParagraphTag, TagType
from draftwise.tags.service import TagService

router = APIRouter(prefix="/api/documents/{document_id}/tags", tags=["tags"])


class CreateTagRequest(BaseModel):
    paragraph_index: int = Field(ge=0)
    tag_type: TagType
    content: str
    note: str | None = None


class UpdateTagRequest(BaseModel):
    tag_type: TagType | None = None
    note: str | None = None


class ValidateTagsRequest(BaseModel):
    content: str


class TagListResponse(BaseModel):
    tags: list[ParagraphTag]


class ValidateTagsResponse(BaseModel):
    valid_tags: list[ParagraphTag]
    removed_tag_ids: list[str]


@router.get("", response_model=TagListResponse)
def list_tags(
    document_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
) -> TagListResponse:
    return TagListResponse(tags=service.list_tags(user.id, document_id))


@router.post("", response_model=ParagraphTag, status_code=status.HTTP_201_CREATED)
def create_tag(
    document_id: str,
    body: CreateTagRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
) -> ParagraphTag:
    return service.create_tag(
        user.id, document_id, body.paragraph_index, body.tag_type.value, body.content, body.note
    )


@router.patch("/{tag_id}", response_model=ParagraphTag)
def update_tag(
    document_id: str,
    tag_id: str,
    body: UpdateTagRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
) -> ParagraphTag:
    return service.update_tag(
        user.id,
        tag_id,
        tag_type=body.tag_type.value if body.tag_type else None,
        note=body.note,
        document_id=document_id,
    )


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_tag(
    document_id: str,
    tag_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
) -> Response:
    service.delete_tag(user.id, tag_id, document_id=document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/validate", response_model=ValidateTagsResponse)
def validate_tags(
    document_id: str,
    body: ValidateTagsRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: TagService = Depends(get_tag_service),
) -> ValidateTagsResponse:
    result = service.validate_tags(user.id, document_id, body.content)
    return ValidateTagsResponse(valid_tags=result.valid_tags, removed_tag_ids=result.removed_tag_ids)
