"""Rubric and rubric-feedback records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from draftwise.suggestions.models import AcademicLevel


class WordCountRequirement(BaseModel):
    min: int | None = None
    max: int | None = None


class CitationRequirement(BaseModel):
    min: int | None = None
    style: str | None = None  # APA | MLA | Chicago | Harvard


class ExtractedRequirements(BaseModel):
    word_count: WordCountRequirement | None = None
    citation_count: CitationRequirement | None = None
    structure: list[str] = Field(default_factory=list)


class RubricCriterion(BaseModel):
    id: str
    title: str
    description: str = ""
    weight: float = Field(default=1.0, ge=0.0)
    max_score: float = 1.0


class Rubric(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str = ""
    document_id: str
    user_id: str
    title: str = "Assignment Rubric"
    raw_text: str
    assignment_type: str = "essay"
    academic_level: AcademicLevel = AcademicLevel.HIGH_SCHOOL
    extracted_requirements: ExtractedRequirements = Field(default_factory=ExtractedRequirements)
    criteria: list[RubricCriterion] = Field(default_factory=list)
    created_at: str | None = None


class CriterionResult(BaseModel):
    criterion_id: str
    score: float = Field(ge=0.0, le=1.0)
    feedback: str = ""
    met: bool = False


class RubricFeedback(BaseModel):
    id: str = ""
    document_id: str
    user_id: str
    rubric_id: str = ""
    overall_score: float = Field(ge=0.0, le=1.0)
    overall_feedback: str = ""
    criteria_results: list[CriterionResult] = Field(default_factory=list)
    created_at: str | None = None
