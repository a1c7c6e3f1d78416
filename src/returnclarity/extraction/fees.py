"""Return/restocking fee extractor.

Specific fee patterns (a percentage or flat amount near "restocking" or
"fee") outrank generic no-fee phrases. When a policy mentions both, the
fee is conditional and is reported at medium, with the no-fee clause
alongside when it sits in another sentence.
"""

from __future__ import annotations

import re

from returnclarity.constants import ConfidenceLevel
from returnclarity.extraction.schemas import FieldResult
from returnclarity.extraction.sentences import (
    join_sentences,
    sentence_containing,
)

_AMOUNT = r"(?:\d{1,2}(?:\.\d+)?\s*%|[$£€]\s?\d+(?:\.\d{2})?|\d+(?:\.\d{2})?\s*(?:usd|eur|gbp|dollars?))"
_FEE_WORD = r"\b(?:restocking|fee)"

# Ordered: amount-then-fee before fee-then-amount
SPECIFIC_FEE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(_AMOUNT + r"[^.\n]{0,40}?" + _FEE_WORD),
    re.compile(
        r"\b(?:restocking|return|processing|handling)\s+fee"
        r"[^.\n]{0,40}?" + _AMOUNT
    ),
)

GENERIC_FEE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"\b(?:restocking|return|processing|handling) fees?\b"
        r"[^.\n]{0,30}?\b(?:may|will|applies|apply|charged|deducted)"
    ),
    re.compile(r"\bsubject to (?:a|an) (?:restocking|return) fee\b"),
)

NO_FEE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bno (?:restocking |return |processing |hidden )?fees?\b"),
    re.compile(r"\bfree returns?\b"),
    re.compile(r"\bfree of charge\b"),
    re.compile(
        r"\bwithout (?:any )?(?:additional |extra )?(?:charges?|fees?)\b"
    ),
    re.compile(r"\bwe do(?: not|n'?t) charge (?:a )?(?:restocking )?fees?\b"),
)


def _first_sentence(
    text: str, patterns: tuple[re.Pattern[str], ...]
) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return sentence_containing(text, match.start(), match.end())
    return None


def extract_fees(text: str) -> FieldResult:
    """Extract restocking/return fees."""
    no_fee = _first_sentence(text, NO_FEE_PATTERNS)

    specific = _first_sentence(text, SPECIFIC_FEE_PATTERNS)
    if specific is not None and no_fee is not None:
        return FieldResult(
            value=join_sentences([specific, no_fee], limit=2),
            confidence=ConfidenceLevel.MEDIUM,
        )
    if specific is not None:
        return FieldResult(
            value=join_sentences([specific], limit=1),
            confidence=ConfidenceLevel.HIGH,
        )

    generic = _first_sentence(text, GENERIC_FEE_PATTERNS)
    if generic is not None and no_fee is not None:
        return FieldResult(
            value=join_sentences([generic, no_fee], limit=2),
            confidence=ConfidenceLevel.MEDIUM,
        )
    if generic is not None and no_fee is None:
        return FieldResult(
            value=join_sentences([generic], limit=1),
            confidence=ConfidenceLevel.MEDIUM,
        )

    if no_fee is not None:
        return FieldResult(
            value=join_sentences([no_fee], limit=1),
            confidence=ConfidenceLevel.MEDIUM,
        )

    return FieldResult.empty()
