"""Markup-to-text normalization for policy pages.

strip_html_to_text() is pure and idempotent: the markup is parsed once,
noise elements are removed from the tree, and the remaining text is
decoded to a fixed point, so a second pass finds nothing left to change.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Comment, Tag

from returnclarity.constants import (
    API_CONTEXT_LEAD_CHARS,
    MAX_TEXT_CHARS,
    MIN_CONTAINER_TEXT_CHARS,
)
from returnclarity.ingestion.document import DocumentLike

_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&nbsp;", "\xa0"),
    # Last, so "&amp;lt;" decodes one level per iteration
    ("&amp;", "&"),
)

DROPPED_TAGS: tuple[str, ...] = (
    "script",
    "style",
    "nav",
    "header",
    "footer",
    "iframe",
    "svg",
    "noscript",
    "template",
)
_OVERLAY_TAGS = frozenset({"div", "section", "aside", "dialog"})
_OVERLAY_PATTERN = re.compile(
    r"chat|cookie|consent|modal|popup|newsletter", re.IGNORECASE
)
BLOCK_TAGS: tuple[str, ...] = (
    "p", "div", "li", "ul", "ol", "dl", "dt", "dd",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "tr", "table", "tbody", "thead", "section", "article", "main",
    "aside", "blockquote", "pre", "hr", "form", "fieldset",
    "details", "summary",
)

# Double-escaped markup only turns into tags after decoding
_RESIDUAL_TAG_RE = re.compile(r"<[a-zA-Z/!?][^<>]*>")
_INLINE_SPACE_RE = re.compile(r"[ \t\f\v\r\xa0]+")
_NEWLINE_PAD_RE = re.compile(r" *\n *")
_MULTI_NEWLINE_RE = re.compile(r"\n{2,}")

_POLICY_MENTION_RE = re.compile(r"\b(?:return|refund)", re.IGNORECASE)

# Ordered most to least specific
POLICY_CONTAINER_SELECTORS: tuple[str, ...] = (
    ".shopify-policy__body",
    ".shopify-policy__container",
    ".rte",
    "main article",
    "article",
    "[role=main]",
    "main",
)


def decode_entities(text: str) -> str:
    """Decode the five common named entities until nothing changes."""
    while True:
        decoded = text
        for entity, char in _ENTITIES:
            decoded = decoded.replace(entity, char)
        if decoded == text:
            return decoded
        text = decoded


def normalize_text(text: str, *, max_chars: int = MAX_TEXT_CHARS) -> str:
    """Collapse whitespace (keeping single newlines) and cap length."""
    text = _INLINE_SPACE_RE.sub(" ", text)
    text = _NEWLINE_PAD_RE.sub("\n", text)
    text = _MULTI_NEWLINE_RE.sub("\n", text)
    text = text.strip()
    return text[:max_chars].strip()


def _is_overlay(element: Tag) -> bool:
    if element.name not in _OVERLAY_TAGS:
        return False
    classes = element.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    element_id = element.get("id") or ""
    marker = " ".join([*classes, str(element_id)])
    return bool(_OVERLAY_PATTERN.search(marker))


def _remove_noise(soup: BeautifulSoup) -> None:
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    for element in soup.find_all(list(DROPPED_TAGS)):
        if not element.decomposed:
            element.decompose()
    # Collected before removal; nested matches die with their parent
    for element in soup.find_all(_is_overlay):
        if not element.decomposed:
            element.decompose()


def _mark_block_boundaries(soup: BeautifulSoup) -> None:
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for element in soup.find_all(list(BLOCK_TAGS)):
        element.insert_before("\n")
        element.insert_after("\n")


def strip_html_to_text(
    markup: str, *, max_chars: int = MAX_TEXT_CHARS
) -> str:
    """Reduce raw markup to readable policy text."""
    soup = BeautifulSoup(markup, "html.parser")
    _remove_noise(soup)
    _mark_block_boundaries(soup)
    text = decode_entities(soup.get_text())
    text = _RESIDUAL_TAG_RE.sub(" ", text)
    return normalize_text(text, max_chars=max_chars)


def extract_policy_text(
    document: DocumentLike, *, max_chars: int = MAX_TEXT_CHARS
) -> str:
    """Text of the first substantial policy container, else the body."""
    for selector in POLICY_CONTAINER_SELECTORS:
        element = document.select_one(selector)
        if element is None:
            continue
        text = strip_html_to_text(element.inner_html(), max_chars=max_chars)
        if len(text) >= MIN_CONTAINER_TEXT_CHARS:
            return text

    body = document.select_one("body")
    markup = body.inner_html() if body is not None else document.html
    return strip_html_to_text(markup, max_chars=max_chars)


def compact_policy_text_for_api(
    text: str, *, max_chars: int = MAX_TEXT_CHARS
) -> str:
    """Cap text for the remote extractor, keeping the policy body.

    Long pages often open with navigation residue; starting shortly
    before the first return/refund mention keeps the part that matters.
    """
    if len(text) <= max_chars:
        return text
    match = _POLICY_MENTION_RE.search(text)
    start = 0
    if match is not None:
        start = max(0, match.start() - API_CONTEXT_LEAD_CHARS)
        # Do not cut a word in half
        if start > 0:
            space = text.find(" ", start)
            if space != -1 and space < match.start():
                start = space + 1
    return text[start:start + max_chars].strip()
