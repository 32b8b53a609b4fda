"""Prompt assembly for suggestion analysis and rubric calls."""

from __future__ import annotations

import re
from collections.abc import Sequence

from draftwise.config import MAX_ACCEPTED_IN_PROMPT, RETRY_SUGGESTION_CAP
from draftwise.suggestions.models import AcceptedSuggestion, ModifiedArea, WritingGoals

SYSTEM_PROMPT_TEMPLATE = """You are an expert writing assistant for {level} students working on a {assignment}.
Analyze the provided text and return suggestions in these categories:

1. SPELLING: misspelled words ("teh" -> "the").
2. GRAMMAR: capitalization, end punctuation, contractions, subject-verb agreement.
3. CLARITY: unclear or confusing sentences. Rewrite the whole problematic sentence.
4. ENGAGEMENT: only for obviously flat or unprofessional prose. Be very conservative.
5. TONE, STRUCTURE, DEPTH, VOCABULARY: only where appropriate for the level.

Guidelines:
- Each suggestion addresses ONE issue with a minimal change.
- originalText must be copied EXACTLY from the text, character for character.
- Before suggesting end punctuation, check the sentence does not already end with . ? or !
- Never suggest reversing a previous change.
- When unsure whether a stylistic change helps, do not suggest it.
{strictness}{custom}
Return a JSON object with a "suggestions" array. Each item has:
type, category ("error" | "improvement" | "enhancement"), severity ("low" | "medium" | "high"),
originalText, suggestedText, explanation, confidence (0 to 1), startIndex, endIndex."""

RETRY_CONSTRAINT = (
    f"\n\nIMPORTANT: Your previous answer could not be parsed. Return ONLY a valid JSON object "
    f'with a "suggestions" array. Return at most {RETRY_SUGGESTION_CAP} suggestions.'
)

RUBRIC_PARSE_SYSTEM_PROMPT = """You convert free-text assignment rubrics into structured JSON.
Return a JSON object with: assignmentType (string), academicLevel
("middle-school" | "high-school" | "undergrad" | "graduate"), extractedRequirements
(object with wordCount {min, max}, citationCount, citationStyle, requiredSections),
and criteria (array of {id, title, description, weight, maxScore})."""

RUBRIC_ANALYSIS_SYSTEM_PROMPT = """You grade student writing against a rubric.
Return a JSON object with: overallScore (0 to 1), overallFeedback (string), and
criteriaResults (array of {criterionId, score (0 to 1), feedback, met (boolean)})."""


def _sanitize(text: str | None, max_length: int = 500) -> str:
    """Strip prompt-injection phrasing from user-supplied instructions."""
    if not text:
        return ""
    text = re.sub(r"(?i)(ignore|disregard).*(instruction|prompt)", "[REDACTED]", text)
    text = re.sub(r"(?i)system\s*:", "", text)
    text = re.sub(r"(?i)assistant\s*:", "", text)
    return text[:max_length]


def build_system_prompt(goals: WritingGoals | None) -> str:
    goals = goals or WritingGoals()
    strictness = (
        f"- Grammar strictness: {goals.grammar_strictness}.\n" if goals.grammar_strictness else ""
    )
    custom_text = _sanitize(goals.custom_instructions)
    custom = f"- Additional instructions from the student: {custom_text}\n" if custom_text else ""
    return SYSTEM_PROMPT_TEMPLATE.format(
        level=goals.academic_level,
        assignment=_sanitize(goals.assignment_type, max_length=80) or "essay",
        strictness=strictness,
        custom=custom,
    )


def format_accepted_suggestions(
    accepted: Sequence[AcceptedSuggestion],
    limit: int = MAX_ACCEPTED_IN_PROMPT,
) -> str:
    recent = list(accepted)[-limit:]
    if not recent:
        return ""
    lines = [f'- "{s.original_text}" -> "{s.suggested_text}" ({s.type})' for s in recent]
    return (
        "RECENTLY ACCEPTED SUGGESTIONS (do not re-suggest):\n"
        + "\n".join(lines)
        + "\nSkip any suggestion that matches or overlaps one of these changes."
    )


def format_modified_areas(areas: Sequence[ModifiedArea], content: str) -> str:
    if not areas:
        return "No previously modified areas."
    lines = [
        f'- Text: "{content[a.start_index:a.end_index]}" (type: {a.type}, '
        f"iterations: {a.modification_count}, position: {a.start_index}-{a.end_index})"
        for a in areas
    ]
    return "PREVIOUSLY MODIFIED AREAS (avoid further clarity/engagement changes here):\n" + "\n".join(
        lines
    )


def build_user_prompt(
    text: str,
    content: str,
    accepted: Sequence[AcceptedSuggestion] = (),
    modified_areas: Sequence[ModifiedArea] = (),
    differential: bool = False,
) -> str:
    """
    Args:
        text: What the model should analyze (full content or rendered context window)
        content: The full current document, used to quote modified areas
    """
    if differential:
        intro = (
            "Only some paragraphs changed. Analyze the CHANGED paragraphs below; CONTEXT "
            "paragraphs are included for reference only. Copy originalText exactly."
        )
    else:
        intro = "Please analyze this text and provide suggestions."

    sections = [f'{intro}\n\n"""\n{text}\n"""', format_modified_areas(modified_areas, content)]
    accepted_block = format_accepted_suggestions(accepted)
    if accepted_block:
        sections.append(accepted_block)
    return "\n\n".join(sections)
