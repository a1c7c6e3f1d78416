"""Sentence helpers shared by the sentence-scan extractors."""

from __future__ import annotations

import re

from returnclarity.constants import DISPLAY_MAX_CHARS

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?;])\s+|\n+")
_SPACE_RE = re.compile(r"\s+")


def split_sentences(text: str) -> list[str]:
    """Split normalized text into sentence-like units."""
    parts = (_SPACE_RE.sub(" ", p).strip() for p in _SENTENCE_SPLIT_RE.split(text))
    return [p for p in parts if p]


def sentence_case(sentence: str) -> str:
    """Upper-case the first letter, leave the rest alone."""
    for i, ch in enumerate(sentence):
        if ch.isalpha():
            return sentence[:i] + ch.upper() + sentence[i + 1:]
    return sentence


def join_sentences(
    sentences: list[str],
    limit: int,
    max_chars: int = DISPLAY_MAX_CHARS,
) -> str:
    """Join the first *limit* distinct sentences, truncated for display."""
    seen: set[str] = set()
    picked: list[str] = []
    for sentence in sentences:
        key = sentence.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        picked.append(sentence_case(sentence.strip()))
        if len(picked) >= limit:
            break
    return truncate(" ".join(picked), max_chars)


def truncate(text: str, max_chars: int) -> str:
    """Cut at a word boundary and mark the cut with an ellipsis."""
    if len(text) <= max_chars:
        return text
    cut = text[: max_chars - 1]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return cut.rstrip(" ,;:") + "…"


def sentence_containing(text: str, start: int, end: int) -> str:
    """Return the sentence around the span ``text[start:end]``."""
    left = max(
        text.rfind(".", 0, start),
        text.rfind("!", 0, start),
        text.rfind("?", 0, start),
        text.rfind("\n", 0, start),
    )
    right_candidates = [
        i for i in (
            text.find(".", end),
            text.find("!", end),
            text.find("?", end),
            text.find("\n", end),
        )
        if i != -1
    ]
    right = min(right_candidates) + 1 if right_candidates else len(text)
    return _SPACE_RE.sub(" ", text[left + 1:right]).strip()
