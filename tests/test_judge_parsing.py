"""Tests for aegis/judge_parsing.py."""

import pytest

from aegis.errors import ParseError
from aegis.judge_parsing import (
    IntentAlignment,
    ScoredFindings,
    parse_intent_alignment,
    parse_score,
    parse_scored_findings,
)


def test_parse_score_plain_float():
    assert parse_score("  0.82\n") == pytest.approx(0.82)


@pytest.mark.parametrize(("raw", "expected"), [("1.7", 1.0), ("-0.2", 0.0)])
def test_parse_score_clamps(raw, expected):
    assert parse_score(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "very clear", "0.8 out of 1", "nan", "inf"])
def test_parse_score_rejects_non_numbers(raw):
    with pytest.raises(ParseError) as exc_info:
        parse_score(raw)
    assert exc_info.value.raw_response == raw


def test_scored_findings_without_issues():
    assert parse_scored_findings("Bias Score: 0.1", "Bias") == ScoredFindings(score=0.1, issues=[])


def test_scored_findings_with_issues_and_blank_lines():
    raw = 'Toxicity Score: 0.75\n\nIssue: "you are an idiot"\nIssue: "shut up"\n'
    findings = parse_scored_findings(raw, "Toxicity")
    assert findings.score == pytest.approx(0.75)
    assert findings.issues == ["you are an idiot", "shut up"]


def test_scored_findings_accepts_line_numbered_issues():
    raw = 'Hallucination Score: 0.4\nLine 2 Issue (hallucination): "The moon is made of cheese"'
    findings = parse_scored_findings(raw, "Hallucination")
    assert findings.issues == ["The moon is made of cheese"]


def test_scored_findings_label_is_case_insensitive():
    assert parse_scored_findings("bias score: 0.3", "Bias").score == pytest.approx(0.3)


def test_scored_findings_keeps_inner_quotes():
    findings = parse_scored_findings('Bias Score: 0.2\nIssue: "the "best" option"', "Bias")
    assert findings.issues == ['the "best" option']


def test_scored_findings_clamps_score():
    assert parse_scored_findings("Bias Score: 3", "Bias").score == 1.0


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "Score: 0.2",
        "Toxicity Score: 0.2",          # wrong label
        "Bias Score: high",
        'Bias Score: 0.2\nThe text seems fine overall.',
        'Bias Score: 0.2\nIssue: unquoted text',
    ],
)
def test_scored_findings_rejects_malformed(raw):
    with pytest.raises(ParseError):
        parse_scored_findings(raw, "Bias")


def test_intent_alignment_parses_both_lines():
    raw = "Intent Alignment: 0.92\nAlignment Explanation: The answer addresses the question: directly."
    assert parse_intent_alignment(raw) == IntentAlignment(
        score=pytest.approx(0.92),
        explanation="The answer addresses the question: directly.",
    )


def test_intent_alignment_ignores_trailing_lines():
    raw = "Intent Alignment: 0.5\nAlignment Explanation: Partly on topic.\nExtra commentary"
    assert parse_intent_alignment(raw).explanation == "Partly on topic."


@pytest.mark.parametrize(
    "raw",
    [
        "Intent Alignment: 0.9",
        "Alignment Explanation: fine\nIntent Alignment: 0.9",
        "Intent Alignment: good\nAlignment Explanation: fine",
        "Intent Alignment: 0.9\nAlignment Explanation:",
    ],
)
def test_intent_alignment_rejects_malformed(raw):
    with pytest.raises(ParseError):
        parse_intent_alignment(raw)
