"""Heuristic quality score for candidate policy text.

Higher means "more likely to be a real return policy". Shell pages
(404s, JS-required placeholders, login walls) are pushed down hard so a
long but empty page never beats a short real policy.

Scoring rules:
- under ``min_chars`` characters: 0, nothing else counts
- length tiers at 200 / 800 / 2000 chars: +1 each
- distinct policy vocabulary terms: +1 each, at most +6
- return/refund/exchange density of 3+ per 1000 chars: +1
- a "return policy" style heading: +2
- a duration phrase (``30 days``): +1
- a return-process phrase (``start a return``): +1
- shell/landing-page cues: -3
"""

from __future__ import annotations

import re

from returnclarity.constants import QUALITY_MIN_CHARS

LENGTH_TIERS: tuple[int, ...] = (200, 800, 2000)

POLICY_VOCABULARY: tuple[str, ...] = (
    "return",
    "refund",
    "exchange",
    "restocking",
    "store credit",
    "eligible",
    "original condition",
    "unworn",
    "final sale",
    "return shipping",
    "receipt",
    "policy",
)
MAX_VOCABULARY_POINTS = 6

# Phrases, never a bare status code
SHELL_CUES: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p)
    for p in (
        r"\bpage not found\b",
        r"\b404\b[^.\n]{0,40}?\bnot found\b",
        r"\berror 404\b",
        r"\b404 error\b",
        r"\benable javascript\b",
        r"\bjavascript is required\b",
        r"\bno results found\b",
        r"\bsign in to\b",
        r"\blog in to\b",
    )
)

_MENTION_RE = re.compile(r"\b(?:return|refund|exchang)\w*")
_HEADING_RE = re.compile(
    r"\b(?:return|refund)s?(?: (?:and|&) (?:exchanges?|refunds?|returns?))?"
    r" policy\b"
)
_DURATION_RE = re.compile(
    r"\b\d{1,3}[\s-]*(?:business |calendar |working )?(?:day|week|month)s?\b"
)
_PROCESS_RE = re.compile(
    r"\b(?:start|initiate|request|submit) (?:a|your) return\b"
    r"|\breturn (?:portal|label|request|authorization)\b"
    r"|\bcontact us to return\b"
)


def score_policy_text(text: str, *, min_chars: int = QUALITY_MIN_CHARS) -> int:
    """Score normalized page text; 0 means unusable."""
    if len(text) < min_chars:
        return 0
    lowered = text.lower()

    score = sum(1 for tier in LENGTH_TIERS if len(text) >= tier)

    vocabulary = sum(1 for term in POLICY_VOCABULARY if term in lowered)
    score += min(vocabulary, MAX_VOCABULARY_POINTS)

    mentions = len(_MENTION_RE.findall(lowered))
    if mentions * 1000 >= 3 * len(text):
        score += 1

    if _HEADING_RE.search(lowered):
        score += 2
    if _DURATION_RE.search(lowered):
        score += 1
    if _PROCESS_RE.search(lowered):
        score += 1

    if any(cue.search(lowered) for cue in SHELL_CUES):
        score -= 3

    return max(score, 0)
