"""Line grammar for judge responses.

Three response shapes are accepted:

* scalar: the whole trimmed response is one float, e.g. ``0.82``;
* scored findings::

      Bias Score: 0.4
      Issue: "only one side of the debate is presented"

  The first non-blank line carries the score; every further non-blank line
  must be an issue line. ``Line 3 Issue (bias): "..."`` is accepted as an
  issue line too;
* intent alignment::

      Intent Alignment: 0.9
      Alignment Explanation: The answer addresses the question directly.

  Lines after the explanation are ignored.

Scores are clamped to [0, 1]. Anything else raises ParseError.
"""

import math
import re
from dataclasses import dataclass, field

from aegis.errors import ParseError

_ISSUE_RE = re.compile(r'^(?:Line\s+\d+\s+)?Issue(?:\s*\([^)]*\))?\s*:\s*"(?P<text>.*)"\s*$', re.IGNORECASE)
_INTENT_SCORE_RE = re.compile(r"^Intent Alignment\s*:\s*(?P<value>\S+)\s*$", re.IGNORECASE)
_INTENT_EXPLANATION_RE = re.compile(r"^Alignment Explanation\s*:\s*(?P<text>.*\S)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class ScoredFindings:
    score: float
    issues: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class IntentAlignment:
    score: float
    explanation: str


def clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _to_score(token: str, raw: str) -> float:
    try:
        value = float(token)
    except ValueError as exc:
        raise ParseError(f"Not a number: {token!r}", raw_response=raw) from exc
    if not math.isfinite(value):
        raise ParseError(f"Not a finite number: {token!r}", raw_response=raw)
    return clamp(value)


def _lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


def parse_score(text: str) -> float:
    """Parse a response that must consist of a single float."""
    stripped = text.strip()
    if not stripped:
        raise ParseError("Empty response", raw_response=text)
    return _to_score(stripped, text)


def parse_scored_findings(text: str, label: str) -> ScoredFindings:
    """Parse `<Label> Score: <float>` followed by zero or more issue lines."""
    lines = _lines(text)
    if not lines:
        raise ParseError("Empty response", raw_response=text)

    score_re = re.compile(rf"^{re.escape(label)}\s+Score\s*:\s*(?P<value>\S+)\s*$", re.IGNORECASE)
    match = score_re.match(lines[0])
    if not match:
        raise ParseError(f"Expected '{label} Score: <float>', got {lines[0]!r}", raw_response=text)
    score = _to_score(match.group("value"), text)

    issues: list[str] = []
    for line in lines[1:]:
        issue = _ISSUE_RE.match(line)
        if not issue:
            raise ParseError(f"Unexpected line in {label.lower()} analysis: {line!r}", raw_response=text)
        issue_text = issue.group("text").strip()
        if issue_text:
            issues.append(issue_text)

    return ScoredFindings(score=score, issues=issues)


def parse_intent_alignment(text: str) -> IntentAlignment:
    """Parse the two-line intent alignment response."""
    lines = _lines(text)
    if len(lines) < 2:
        raise ParseError("Expected score and explanation lines", raw_response=text)

    score_match = _INTENT_SCORE_RE.match(lines[0])
    if not score_match:
        raise ParseError(f"Expected 'Intent Alignment: <float>', got {lines[0]!r}", raw_response=text)
    explanation_match = _INTENT_EXPLANATION_RE.match(lines[1])
    if not explanation_match:
        raise ParseError(f"Expected 'Alignment Explanation: <text>', got {lines[1]!r}", raw_response=text)

    return IntentAlignment(
        score=_to_score(score_match.group("value"), text),
        explanation=explanation_match.group("text"),
    )
