"""Unit tests for essay structure heuristics"""

from __future__ import annotations

from draftwise.analysis.structure import (
    analyze_structure,
    count_citations,
    count_words,
    find_thesis,
)

ESSAY = (
    "Homework has a long history. Schools should limit homework because students need rest.\n\n"
    "Studies show benefits of rest (Smith, 2020). Other work agrees [1].\n\n"
    "In conclusion, less homework helps."
)


def test_three_paragraph_essay():
    report = analyze_structure(ESSAY)

    assert report.paragraph_count == 3
    assert report.has_introduction
    assert report.has_conclusion
    assert report.body_paragraph_count == 1
    assert report.thesis_sentence == "Schools should limit homework because students need rest."
    assert report.citation_count == 2
    assert report.sentence_count == 5


def test_two_paragraphs_with_conclusion_keyword():
    report = analyze_structure("Some opening text.\n\nIn summary, that is all.")

    assert not report.has_introduction
    assert report.has_conclusion
    assert report.body_paragraph_count == 1


def test_empty_content():
    report = analyze_structure("")

    assert report.paragraph_count == 0
    assert report.body_paragraph_count == 0
    assert not report.has_thesis
    assert report.to_dict()["word_count"] == 0


def test_counters():
    assert count_words("It's a well-known fact.") == 4
    assert count_citations("(Jones et al., 2019) and (Lee 2001) and [12]") == 3
    assert find_thesis("Cats are pets. Dogs are loyal.") is None
