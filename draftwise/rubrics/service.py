"""
Rubric parsing and rubric-based grading.

Both operations ask the model first and fall back to regex heuristics when
the model is unavailable or answers with something unusable, so a rubric
always gets parsed and a draft always gets a score.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import ValidationError

from draftwise.analysis.normalization import parse_json_object
from draftwise.analysis.prompts import RUBRIC_ANALYSIS_SYSTEM_PROMPT, RUBRIC_PARSE_SYSTEM_PROMPT
from draftwise.analysis.structure import analyze_structure
from draftwise.config import DEFAULT_TEMPERATURE
from draftwise.errors import DraftwiseError, InvalidRequest, NotFound, PermissionDenied
from draftwise.llm.client import LLMProvider
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter
from draftwise.rubrics.models import (
    CitationRequirement,
    CriterionResult,
    ExtractedRequirements,
    Rubric,
    RubricCriterion,
    RubricFeedback,
    WordCountRequirement,
)
from draftwise.rubrics.repository import RubricRepository
from draftwise.suggestions.models import AcademicLevel

logger = get_logger(__name__)

_WORD_RANGE = re.compile(r"(\d+)\s*[-–]\s*(\d+)\s*words?", re.IGNORECASE)
_WORD_MIN = re.compile(r"(?:minimum(?: of)?|at\s+least)\s*(\d+)\s*words?", re.IGNORECASE)
_WORD_MAX = re.compile(r"(?:maximum(?: of)?|no more than|at\s+most)\s*(\d+)\s*words?", re.IGNORECASE)
_CITATIONS = re.compile(
    r"(?:(\d+)\s*[-–]\s*\d+|(?:minimum(?: of)?|at\s+least)\s*(\d+))\s*(?:citations?|sources?|references?)",
    re.IGNORECASE,
)
_CITATION_STYLE = re.compile(r"\b(APA|MLA|Chicago|Harvard)\b\s*(?:style|format|citations?)?", re.IGNORECASE)
_BULLET = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")

STRUCTURE_KEYWORDS = ("introduction", "thesis", "body", "conclusion", "paragraph", "outline")


def extract_basic_requirements(text: str) -> ExtractedRequirements:
    """Regex fallback for word count, citation count/style and required sections."""
    requirements = ExtractedRequirements()

    if match := _WORD_RANGE.search(text):
        requirements.word_count = WordCountRequirement(min=int(match[1]), max=int(match[2]))
    else:
        low, high = _WORD_MIN.search(text), _WORD_MAX.search(text)
        if low or high:
            requirements.word_count = WordCountRequirement(
                min=int(low[1]) if low else None, max=int(high[1]) if high else None
            )

    if match := _CITATIONS.search(text):
        requirements.citation_count = CitationRequirement(min=int(match[1] or match[2]))

    if match := _CITATION_STYLE.search(text):
        style = match[1].upper()
        style = style.title() if style in ("CHICAGO", "HARVARD") else style
        if requirements.citation_count is None:
            requirements.citation_count = CitationRequirement()
        requirements.citation_count.style = style

    lowered = text.lower()
    requirements.structure = [k for k in STRUCTURE_KEYWORDS if k in lowered]
    return requirements


def derive_criteria(text: str) -> list[RubricCriterion]:
    """One equally weighted criterion per non-empty rubric line."""
    lines = [_BULLET.sub("", line).strip() for line in text.splitlines()]
    lines = [line for line in lines if len(line) > 3]
    if not lines:
        return [RubricCriterion(id="criterion_1", title="Overall quality", description=text.strip())]

    weight = round(1.0 / len(lines), 4)
    return [
        RubricCriterion(
            id=f"criterion_{i}",
            title=line.split(":")[0][:80],
            description=line,
            weight=weight,
        )
        for i, line in enumerate(lines, start=1)
    ]


def _clamp(value: Any) -> float:
    try:
        return max(0.0, min(1.0, float(value)))
    except (TypeError, ValueError):
        return 0.0


class RubricService:
    def __init__(self, provider: LLMProvider, repository: type[RubricRepository] = RubricRepository):
        self.provider = provider
        self.repository = repository

    def get_rubric(self, user_id: str, rubric_id: str) -> Rubric:
        rubric = self.repository.get(rubric_id)
        if rubric is None:
            raise NotFound(f"Rubric {rubric_id} not found")
        if rubric.user_id != user_id:
            raise PermissionDenied("Rubric belongs to another user")
        return rubric

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse_rubric(
        self, user_id: str, document_id: str, raw_text: str, title: str | None = None
    ) -> Rubric:
        if not raw_text or not raw_text.strip():
            raise InvalidRequest("Rubric text is required")

        rubric = self._parse_with_model(user_id, document_id, raw_text, title)
        if rubric is None:
            counter("rubrics.parse_fallback")
            rubric = Rubric(
                document_id=document_id,
                user_id=user_id,
                title=title or "Assignment Rubric",
                raw_text=raw_text,
                extracted_requirements=extract_basic_requirements(raw_text),
                criteria=derive_criteria(raw_text),
            )
        return self.repository.create(rubric)

    def _parse_with_model(
        self, user_id: str, document_id: str, raw_text: str, title: str | None
    ) -> Rubric | None:
        try:
            response = self.provider.complete(
                RUBRIC_PARSE_SYSTEM_PROMPT, f'Rubric:\n"""\n{raw_text}\n"""', DEFAULT_TEMPERATURE
            )
            data = parse_json_object(response)
        except DraftwiseError as e:
            logger.warning("Rubric parse via model failed, using regex fallback: %s", e)
            return None

        criteria = data.get("criteria")
        requirements = data.get("extractedRequirements") or {}
        if not isinstance(criteria, list) or not isinstance(requirements, dict):
            logger.warning("Model rubric has malformed criteria or requirements, using regex fallback")
            return None
        criteria = [c for c in criteria if isinstance(c, dict)]
        if not criteria:
            return None

        try:
            return Rubric(
                document_id=document_id,
                user_id=user_id,
                title=title or "Assignment Rubric",
                raw_text=raw_text,
                assignment_type=data.get("assignmentType") or "essay",
                academic_level=data.get("academicLevel") or AcademicLevel.HIGH_SCHOOL,
                extracted_requirements=ExtractedRequirements(
                    word_count=requirements.get("wordCount"),
                    citation_count=requirements.get("citationCount"),
                    structure=requirements.get("requiredSections") or [],
                ),
                criteria=[
                    RubricCriterion(
                        id=str(c.get("id") or f"criterion_{i}"),
                        title=c.get("title", ""),
                        description=c.get("description", ""),
                        weight=c.get("weight", 1.0),
                        max_score=c.get("maxScore", 1.0),
                    )
                    for i, c in enumerate(criteria, start=1)
                ],
            )
        except ValidationError as e:
            logger.warning("Model rubric did not validate: %s", e)
            return None

    # ------------------------------------------------------------------
    # Grading
    # ------------------------------------------------------------------

    def analyze_against_rubric(
        self,
        user_id: str,
        document_id: str,
        content: str,
        rubric: Rubric,
        academic_level: str | None = None,
    ) -> RubricFeedback:
        if not content or not content.strip():
            raise InvalidRequest("Content is required")
        if rubric.user_id != user_id:
            raise PermissionDenied("Rubric belongs to another user")

        feedback = self._grade_with_model(user_id, document_id, content, rubric, academic_level)
        if feedback is None:
            counter("rubrics.grade_fallback")
            feedback = heuristic_feedback(user_id, document_id, content, rubric)
        return self.repository.save_feedback(feedback)

    def _grade_with_model(
        self,
        user_id: str,
        document_id: str,
        content: str,
        rubric: Rubric,
        academic_level: str | None,
    ) -> RubricFeedback | None:
        criteria = "\n".join(f"- [{c.id}] {c.title}: {c.description}" for c in rubric.criteria)
        user_prompt = (
            f"Academic level: {academic_level or rubric.academic_level}\n"
            f"Criteria:\n{criteria}\n\n"
            f'Essay:\n"""\n{content}\n"""'
        )
        try:
            data = parse_json_object(
                self.provider.complete(RUBRIC_ANALYSIS_SYSTEM_PROMPT, user_prompt, DEFAULT_TEMPERATURE)
            )
        except DraftwiseError as e:
            logger.warning("Rubric grading via model failed, using heuristics: %s", e)
            return None

        if "overallScore" not in data:
            return None

        results = [
            CriterionResult(
                criterion_id=str(r.get("criterionId", "")),
                score=_clamp(r.get("score")),
                feedback=str(r.get("feedback", "")),
                met=bool(r.get("met", False)),
            )
            for r in data.get("criteriaResults") or []
            if isinstance(r, dict)
        ]
        return RubricFeedback(
            document_id=document_id,
            user_id=user_id,
            rubric_id=rubric.id,
            overall_score=_clamp(data["overallScore"]),
            overall_feedback=str(data.get("overallFeedback", "")),
            criteria_results=results,
        )


def heuristic_feedback(user_id: str, document_id: str, content: str, rubric: Rubric) -> RubricFeedback:
    """Score each criterion from word count, citations and essay structure."""
    report = analyze_structure(content)
    req = rubric.extracted_requirements

    checks: dict[str, tuple[bool, str]] = {}
    if req.word_count is not None:
        low, high = req.word_count.min, req.word_count.max
        ok = (low is None or report.word_count >= low) and (high is None or report.word_count <= high)
        checks["word"] = (ok, f"{report.word_count} words")
    if req.citation_count is not None and req.citation_count.min:
        ok = report.citation_count >= req.citation_count.min
        checks["citation"] = (ok, f"{report.citation_count} citations found")
    structure_ok = report.has_introduction and report.has_conclusion
    checks["structure"] = (
        structure_ok,
        "introduction and conclusion present" if structure_ok else "missing introduction or conclusion",
    )
    checks["thesis"] = (report.has_thesis, "thesis found" if report.has_thesis else "no clear thesis")

    def check_for(criterion: RubricCriterion) -> tuple[bool, str]:
        text = f"{criterion.title} {criterion.description}".lower()
        for keyword, key in (
            ("word", "word"),
            ("length", "word"),
            ("citation", "citation"),
            ("source", "citation"),
            ("thesis", "thesis"),
            ("argument", "thesis"),
        ):
            if keyword in text and key in checks:
                return checks[key]
        return checks["structure"]

    results = []
    for criterion in rubric.criteria:
        met, note = check_for(criterion)
        results.append(
            CriterionResult(
                criterion_id=criterion.id, score=1.0 if met else 0.5, feedback=note, met=met
            )
        )

    total_weight = sum(c.weight for c in rubric.criteria) or 1.0
    overall = (
        sum(r.score * c.weight for r, c in zip(results, rubric.criteria)) / total_weight
        if results
        else 0.0
    )
    met_count = sum(r.met for r in results)
    return RubricFeedback(
        document_id=document_id,
        user_id=user_id,
        rubric_id=rubric.id,
        overall_score=_clamp(overall),
        overall_feedback=f"Estimated without the model: {met_count} of {len(results)} criteria met.",
        criteria_results=results,
    )
