"""HTTP fetch of candidate policy pages."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from returnclarity.config import Settings
from returnclarity.resilience.errors import FetchError

logger = logging.getLogger(__name__)

_HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


@dataclass(frozen=True)
class FetchedPage:
    """Final URL (after redirects) and raw HTML of a fetched page."""

    url: str
    html: str
    status_code: int


class PageFetcher(Protocol):
    async def fetch(self, url: str) -> FetchedPage: ...


class PolicyFetcher:
    """Fetches a single policy candidate as HTML.

    Every failure mode (network error, timeout, non-2xx, non-HTML body)
    raises FetchError so the caller can skip to the next candidate.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
    ) -> None:
        self._client = client
        self._settings = settings

    async def fetch(self, url: str) -> FetchedPage:
        headers = {
            "Accept": "text/html,application/xhtml+xml",
            "User-Agent": self._settings.user_agent,
        }
        try:
            response = await self._client.get(
                url,
                headers=headers,
                timeout=self._settings.fetch_timeout_seconds,
                follow_redirects=True,
            )
        except httpx.TimeoutException as exc:
            raise FetchError(url, "timed out") from exc
        except httpx.HTTPError as exc:
            raise FetchError(url, f"request failed ({exc})") from exc

        if not response.is_success:
            raise FetchError(
                url,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )
        content_type = response.headers.get("content-type", "").lower()
        if content_type and not content_type.startswith(_HTML_CONTENT_TYPES):
            raise FetchError(
                url,
                f"not HTML ({content_type})",
                status_code=response.status_code,
            )

        logger.debug(
            "event=page_fetched url=%s status=%d bytes=%d",
            url,
            response.status_code,
            len(response.content),
        )
        return FetchedPage(
            url=str(response.url),
            html=response.text,
            status_code=response.status_code,
        )
