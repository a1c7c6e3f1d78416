"""Narrow document interface shared by the normalizer and resolver.

Anything that can answer CSS selectors works: a live browser page
adapter, or SoupDocument over fetched HTML.
"""

from __future__ import annotations

from typing import Protocol

from bs4 import BeautifulSoup, Tag


class ElementLike(Protocol):
    def get_text(self) -> str: ...
    def get(self, attr: str) -> str | None: ...
    def inner_html(self) -> str: ...


class DocumentLike(Protocol):
    @property
    def html(self) -> str: ...
    def select(self, selector: str) -> list[ElementLike]: ...
    def select_one(self, selector: str) -> ElementLike | None: ...


class SoupElement:
    """ElementLike over a bs4 Tag."""

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    def get_text(self) -> str:
        return self._tag.get_text(" ", strip=True)

    def get(self, attr: str) -> str | None:
        value = self._tag.get(attr)
        if value is None:
            return None
        # Multi-valued attributes (class) come back as lists
        if isinstance(value, list):
            return " ".join(str(v) for v in value)
        return str(value)

    def inner_html(self) -> str:
        return self._tag.decode_contents()


class SoupDocument:
    """DocumentLike backed by BeautifulSoup's built-in HTML parser."""

    def __init__(self, html: str) -> None:
        self._html = html
        self._soup = BeautifulSoup(html, "html.parser")

    @property
    def html(self) -> str:
        return self._html

    def select(self, selector: str) -> list[ElementLike]:
        return [SoupElement(tag) for tag in self._soup.select(selector)]

    def select_one(self, selector: str) -> ElementLike | None:
        tag = self._soup.select_one(selector)
        return SoupElement(tag) if tag is not None else None
