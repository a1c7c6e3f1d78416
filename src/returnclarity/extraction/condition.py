"""Condition-requirements extractor (sentence scan)."""

from __future__ import annotations

import re

from returnclarity.constants import ConfidenceLevel
from returnclarity.extraction.confidence import downgrade
from returnclarity.extraction.schemas import FieldResult
from returnclarity.extraction.sentences import join_sentences, split_sentences

CONDITION_KEYWORDS: tuple[str, ...] = (
    "unworn",
    "unwashed",
    "unused",
    "unopened",
    "undamaged",
    "unaltered",
    "tags attached",
    "with tags",
    "original tags",
    "original packaging",
    "original box",
    "original condition",
    "new condition",
    "resalable condition",
    "resellable condition",
    "same condition",
    "not been worn",
    "hygiene seal",
)

ANCHOR_PHRASES: tuple[str, ...] = (
    "must be returned in",
    "must be in",
    "items must be",
    "item must be",
    "products must be",
    "to be eligible for a return",
    "condition you received",
)

_KEYWORD_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in CONDITION_KEYWORDS) + r")\b"
)
_NEGATION_RE = re.compile(r"\b(?:not|no)\b")


def _keyword_hits(sentence: str) -> int:
    return len({m.group(0) for m in _KEYWORD_RE.finditer(sentence)})


def extract_condition_requirements(text: str) -> FieldResult:
    """Extract what condition returned items must be in."""
    qualifying = [s for s in split_sentences(text) if _keyword_hits(s)]
    if not qualifying:
        return FieldResult.empty()

    picked = qualifying[:2]
    confidence = ConfidenceLevel.MEDIUM
    strong = any(_keyword_hits(s) >= 2 for s in picked) or any(
        phrase in s for s in picked for phrase in ANCHOR_PHRASES
    )
    if strong:
        confidence = ConfidenceLevel.HIGH

    # "not been worn" is itself a keyword; only other negations count
    if any(
        _NEGATION_RE.search(s.replace("not been worn", ""))
        for s in picked
    ):
        confidence = downgrade(confidence)

    return FieldResult(
        value=join_sentences(picked, limit=2), confidence=confidence
    )
