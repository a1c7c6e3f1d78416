"""Exclusions extractor: items that cannot be returned."""

from __future__ import annotations

import re

from returnclarity.constants import ConfidenceLevel
from returnclarity.extraction.schemas import FieldResult
from returnclarity.extraction.sentences import join_sentences, split_sentences

EXCLUSION_KEYWORDS: tuple[str, ...] = (
    "final sale",
    "clearance",
    "sale items",
    "gift cards",
    "gift card",
    "personalized",
    "personalised",
    "customized",
    "custom",
    "made to order",
    "intimates",
    "underwear",
    "swimwear",
    "earrings",
    "perishable",
    "digital",
    "non-returnable",
    "cannot be returned",
    "can not be returned",
    "not eligible for return",
    "not eligible",
    "excluded",
)

STRONG_KEYWORDS: frozenset[str] = frozenset({
    "final sale",
    "non-returnable",
    "cannot be returned",
    "can not be returned",
    "not eligible for return",
})

_KEYWORD_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in EXCLUSION_KEYWORDS) + r")\b"
)

MAX_SENTENCES = 3


def _keywords_in(sentence: str) -> set[str]:
    return {m.group(0) for m in _KEYWORD_RE.finditer(sentence)}


def extract_exclusions(text: str) -> FieldResult:
    """Extract categories excluded from returns."""
    picked: list[str] = []
    strong = False
    for sentence in split_sentences(text):
        found = _keywords_in(sentence)
        if not found:
            continue
        picked.append(sentence)
        if found & STRONG_KEYWORDS or len(found) >= 2:
            strong = True
        if len(picked) >= MAX_SENTENCES:
            break

    if not picked:
        return FieldResult.empty()
    return FieldResult(
        value=join_sentences(picked, limit=MAX_SENTENCES),
        confidence=ConfidenceLevel.HIGH if strong else ConfidenceLevel.MEDIUM,
    )
