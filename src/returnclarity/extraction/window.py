"""Return-window extractor.

Order of checks:
1. Durations (``30 days``, ``thirty (30) days``, ``2 weeks``) that sit
   near a return/refund/exchange anchor, scored by proximity and
   qualifying phrases.
2. Hard negatives (``no returns``, ``all sales final``) when no anchored
   duration exists.
3. Open-ended acceptance phrases (``returns accepted``, ``case-by-case``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from returnclarity.constants import (
    WINDOW_ANCHOR_RADIUS,
    ConfidenceLevel,
)
from returnclarity.extraction.confidence import level_from_score
from returnclarity.extraction.schemas import FieldResult
from returnclarity.extraction.sentences import (
    sentence_case,
    sentence_containing,
    truncate,
)

NEGATIVE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"\bno returns?\b",
        r"\ball (?:sales?|purchases|orders|items) (?:are |is )?final\b",
        r"\bnon[- ]?refundable\b",
        r"\bno refunds?\b",
        r"\bwe do(?: not|n'?t) (?:accept|offer) returns\b",
    )
)

OPEN_ENDED_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"\breturns? (?:are |is )?(?:gladly )?accepted\b",
        r"\bwe (?:gladly |happily )?accept returns\b",
        r"\bcase[- ]by[- ]case\b",
        r"\bcontact us to (?:start|initiate|request) a return\b",
    )
)

_UNIT_WORDS: dict[str, int] = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9,
}
_TEEN_WORDS: dict[str, int] = {
    "ten": 10, "eleven": 11, "twelve": 12, "thirteen": 13,
    "fourteen": 14, "fifteen": 15, "sixteen": 16, "seventeen": 17,
    "eighteen": 18, "nineteen": 19,
}
_TENS_WORDS: dict[str, int] = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50, "sixty": 60,
    "seventy": 70, "eighty": 80, "ninety": 90,
}
_WORD_VALUES = {**_UNIT_WORDS, **_TEEN_WORDS, **_TENS_WORDS}

_UNITS = "|".join(_UNIT_WORDS)
_BELOW_HUNDRED = (
    rf"(?:(?:{'|'.join(_TENS_WORDS)})(?:[- ](?:{_UNITS}))?"
    rf"|{'|'.join(_TEEN_WORDS)}|{_UNITS})"
)
# "twenty-five", "forty five", "one hundred and twenty", "a hundred"
_NUMBER_WORD_RE = re.compile(
    rf"\b(?:(?:(?:{_UNITS}|a)\s+)?hundred(?:\s+(?:and\s+)?{_BELOW_HUNDRED})?"
    rf"|{_BELOW_HUNDRED})\b"
)

_DURATION_RE = re.compile(
    r"\b(?P<num>\d{1,3})(?:\s*\(\d{1,3}\))?[\s-]*"
    r"(?P<qual>business |calendar |working )?"
    r"(?P<unit>day|week|month)s?\b"
)
_ANCHOR_RE = re.compile(r"\b(?:return|refund|exchang|replac)\w*")
_QUALIFIER_AFTER_RE = re.compile(
    r"\s*(?:of|from|after|since|following)\s+(?:the\s+)?"
    r"(?:date\s+of\s+|day\s+of\s+)?(?:your\s+)?(?:original\s+)?"
    r"(?:delivery|receipt|purchase|shipment|order|arrival|receiving)"
)
_LEADING_QUALIFIER_RE = re.compile(r"\b(?:within|up to|at least)\s*$")
_CONDITIONAL_RE = re.compile(r"\b(?:if|unless|except)\b")


@dataclass(frozen=True)
class DurationCandidate:
    """An anchored duration match and its accumulated score."""

    value: str
    score: int
    position: int


def _number_value(phrase: str) -> int:
    value = 0
    for word in re.split(r"[\s-]+", phrase):
        if word == "hundred":
            value = (value or 1) * 100
        elif word in _WORD_VALUES:
            value += _WORD_VALUES[word]
    return value


def normalize_number_words(text: str) -> str:
    """Replace spelled-out numbers with digits (``twenty-five`` → ``25``)."""
    return _NUMBER_WORD_RE.sub(
        lambda m: str(_number_value(m.group(0))), text
    )


def _format_duration(match: re.Match[str]) -> str:
    num = int(match.group("num"))
    qual = match.group("qual") or ""
    unit = match.group("unit")
    return f"{num} {qual}{unit}{'' if num == 1 else 's'}"


def score_duration(text: str, match: re.Match[str]) -> int | None:
    """Score one duration match; None when no anchor is nearby."""
    lo = max(0, match.start() - WINDOW_ANCHOR_RADIUS)
    hi = min(len(text), match.end() + WINDOW_ANCHOR_RADIUS)
    anchors = list(_ANCHOR_RE.finditer(text, lo, hi))
    if not anchors:
        return None

    score = 1
    distance = min(
        max(0, match.start() - a.end(), a.start() - match.end())
        for a in anchors
    )
    if distance <= 40:
        score += 2
    elif distance <= 80:
        score += 1

    if _LEADING_QUALIFIER_RE.search(text[max(0, match.start() - 15):match.start()]):
        score += 1
    if _QUALIFIER_AFTER_RE.match(text, match.end()):
        score += 2
    if _CONDITIONAL_RE.search(text, lo, hi):
        score -= 1
    return score


def find_anchored_durations(text: str) -> list[DurationCandidate]:
    """All durations with a nearby anchor, in document order."""
    found: list[DurationCandidate] = []
    for match in _DURATION_RE.finditer(text):
        score = score_duration(text, match)
        if score is None:
            continue
        found.append(
            DurationCandidate(
                value=_format_duration(match),
                score=score,
                position=match.start(),
            )
        )
    return found


def extract_return_window(text: str) -> FieldResult:
    """Extract the return window from normalized lower-cased text."""
    text = normalize_number_words(text)

    candidates = find_anchored_durations(text)
    if candidates:
        # max() keeps the first of equal scores
        best = max(candidates, key=lambda c: c.score)
        return FieldResult(
            value=best.value, confidence=level_from_score(best.score)
        )

    for pattern in NEGATIVE_PATTERNS:
        match = pattern.search(text)
        if match:
            return FieldResult(
                value=sentence_case(match.group(0)),
                confidence=ConfidenceLevel.HIGH,
            )

    for pattern in OPEN_ENDED_PATTERNS:
        match = pattern.search(text)
        if match:
            sentence = sentence_containing(
                text, match.start(), match.end()
            )
            return FieldResult(
                value=truncate(sentence_case(sentence), 120),
                confidence=ConfidenceLevel.MEDIUM,
            )

    return FieldResult.empty()
