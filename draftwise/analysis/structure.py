"""
Essay structure heuristics (informational only).

First paragraph = introduction, last = conclusion, the rest = body, once
there are at least three paragraphs. Thesis detection is keyword-based and
only looks at the introduction.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any

from draftwise.analysis.paragraphs import split_paragraphs

THESIS_KEYWORDS = (
    "because",
    "should",
    "must",
    "argue",
    "therefore",
    "thus",
    "this essay",
    "i believe",
    "will show",
)
CONCLUSION_KEYWORDS = ("in conclusion", "to conclude", "in summary", "overall", "ultimately")

_SENTENCE_END = re.compile(r"[.!?]+(?:\s|$)")
_WORD = re.compile(r"\b[\w'-]+\b")
_CITATION = re.compile(r"\([A-Z][A-Za-z]+(?: et al\.)?,? \d{4}\)|\[\d+\]")


@dataclass
class StructureReport:
    paragraph_count: int
    has_introduction: bool
    body_paragraph_count: int
    has_conclusion: bool
    has_thesis: bool
    thesis_sentence: str | None
    word_count: int
    sentence_count: int
    citation_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def count_words(text: str) -> int:
    return len(_WORD.findall(text))


def count_sentences(text: str) -> int:
    return len(_SENTENCE_END.findall(text.strip()))


def count_citations(text: str) -> int:
    return len(_CITATION.findall(text))


def find_thesis(paragraph: str) -> str | None:
    """Last introduction sentence containing a thesis keyword."""
    sentences = [s.strip() for s in re.split(r"(?<=[.!?])\s+", paragraph) if s.strip()]
    for sentence in reversed(sentences):
        lowered = sentence.lower()
        if any(keyword in lowered for keyword in THESIS_KEYWORDS):
            return sentence
    return None


def analyze_structure(content: str) -> StructureReport:
    paragraphs = split_paragraphs(content)
    count = len(paragraphs)

    has_intro = count >= 3
    has_conclusion = count >= 3 or (
        count == 2 and any(k in paragraphs[-1].lower() for k in CONCLUSION_KEYWORDS)
    )
    thesis = find_thesis(paragraphs[0]) if paragraphs else None

    return StructureReport(
        paragraph_count=count,
        has_introduction=has_intro,
        body_paragraph_count=count - int(has_intro) - int(has_conclusion),
        has_conclusion=has_conclusion,
        has_thesis=thesis is not None,
        thesis_sentence=thesis,
        word_count=count_words(content),
        sentence_count=count_sentences(content),
        citation_count=count_citations(content),
    )
