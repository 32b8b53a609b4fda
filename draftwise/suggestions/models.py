"""
Domain models (Pydantic v2) for writing suggestions.

Enums are str-valued and models store the plain string (use_enum_values), so
records round-trip through SQLite and JSON without conversion. Field names are
snake_case on the wire, matching the rest of the API.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SuggestionType(str, Enum):
    SPELLING = "spelling"
    GRAMMAR = "grammar"
    CLARITY = "clarity"
    ENGAGEMENT = "engagement"
    TONE = "tone"
    STRUCTURE = "structure"
    DEPTH = "depth"
    VOCABULARY = "vocabulary"


class SuggestionCategory(str, Enum):
    ERROR = "error"
    IMPROVEMENT = "improvement"
    ENHANCEMENT = "enhancement"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class AcademicLevel(str, Enum):
    MIDDLE_SCHOOL = "middle-school"
    HIGH_SCHOOL = "high-school"
    UNDERGRAD = "undergrad"
    GRADUATE = "graduate"


class TagType(str, Enum):
    NEEDS_REVIEW = "needs-review"
    DONE = "done"


class ChangeType(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


class AnalysisType(str, Enum):
    """Requested analysis scope. AUTO lets the orchestrator decide."""

    AUTO = "auto"
    FULL = "full"
    DIFFERENTIAL = "differential"


def enum_value(value: Any) -> Any:
    """Plain value of an Enum member; other values pass through."""
    return value.value if isinstance(value, Enum) else value


# Types whose rewrites are tracked as modified areas
TRACKED_AREA_TYPES = frozenset({SuggestionType.CLARITY.value, SuggestionType.ENGAGEMENT.value})
CORRECTNESS_TYPES = frozenset({SuggestionType.SPELLING.value, SuggestionType.GRAMMAR.value})


class Suggestion(BaseModel):
    """A single inline writing suggestion anchored to character offsets."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = ""
    document_id: str = ""
    user_id: str = ""
    type: SuggestionType
    category: SuggestionCategory
    severity: Severity
    original_text: str
    suggested_text: str
    explanation: str = ""
    confidence: float = Field(default=0.85, ge=0.0, le=1.0)
    start_index: int = Field(default=0, ge=0)
    end_index: int = Field(default=0, ge=0)
    status: SuggestionStatus = SuggestionStatus.PENDING
    grammar_rule: str | None = None
    analysis_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @model_validator(mode="after")
    def _check_span(self) -> Suggestion:
        if self.start_index > self.end_index:
            raise ValueError("start_index must be <= end_index")
        return self


class WritingGoals(BaseModel):
    """Per-request analysis configuration. Never mutated by the core."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    academic_level: AcademicLevel = AcademicLevel.HIGH_SCHOOL
    assignment_type: str = "essay"
    grammar_strictness: str | None = None
    custom_instructions: str | None = None


class AcceptedSuggestion(BaseModel):
    """The slice of an accepted suggestion that feeds the cache key and prompt."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    original_text: str
    suggested_text: str
    type: SuggestionType


class ModifiedArea(BaseModel):
    """A text span rewritten through clarity/engagement suggestions."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = ""
    start_index: int
    end_index: int
    type: SuggestionType
    modification_count: int = 1
    last_modified: str | None = None


class ChangeRecord(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str = ""
    document_id: str
    user_id: str
    paragraph_index: int
    change_type: ChangeType
    old_text: str | None = None
    new_text: str | None = None
    created_at: str | None = None


class ParagraphTag(BaseModel):
    """User-applied marker on a paragraph (needs-review / done)."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = ""
    document_id: str
    user_id: str
    paragraph_index: int = Field(ge=0)
    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)
    text: str
    tag_type: TagType
    note: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class RateLimitRecord(BaseModel):
    user_id: str
    requests: list[float] = Field(default_factory=list)


class SuggestionRequest(BaseModel):
    """Input to SuggestionOrchestrator.analyze."""

    model_config = ConfigDict(use_enum_values=True)

    content: str
    document_id: str
    writing_goals: WritingGoals | None = None
    context_window: int | None = Field(default=None, ge=0)
    analysis_type: AnalysisType = AnalysisType.AUTO
    previous_content: str | None = None
    bypass_cache: bool = False
    accepted_suggestions: list[AcceptedSuggestion] = Field(default_factory=list)


class SuggestionMetadata(BaseModel):
    cached: bool
    token_count: int
    processing_time: float  # milliseconds
    cache_key: str
    analysis_type: str
    cache_age: float | None = None  # seconds since the cached entry was written
    access_count: int | None = None


class SuggestionResponse(BaseModel):
    suggestions: list[Suggestion]
    metadata: SuggestionMetadata
    message: str
