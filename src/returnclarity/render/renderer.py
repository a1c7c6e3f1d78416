"""Hidden-render fallback for JavaScript-hydrated policy pages.

Help-center apps often ship an empty shell and hydrate the article
client-side, so a plain fetch sees no policy text. The renderer loads
the page in an isolated browser context, waits (bounded) for the DOM to
mention returns or refunds, reads the markup once and always disposes
of the context.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from returnclarity.config import Settings
from returnclarity.ingestion.document import SoupDocument
from returnclarity.ingestion.normalizer import extract_policy_text
from returnclarity.resilience.errors import RenderError

logger = logging.getLogger(__name__)

# Resolves true once body text mentions returns/refunds, false on timeout
_WAIT_FOR_POLICY_TEXT_JS = """
(timeoutMs) => new Promise((resolve) => {
  const matches = () =>
    /return|refund/i.test(document.body ? document.body.innerText : "");
  if (matches()) { resolve(true); return; }
  const observer = new MutationObserver(() => {
    if (matches()) {
      observer.disconnect();
      clearTimeout(timer);
      resolve(true);
    }
  });
  const timer = setTimeout(() => {
    observer.disconnect();
    resolve(false);
  }, timeoutMs);
  observer.observe(document.documentElement, {
    childList: true, subtree: true, characterData: true,
  });
})
"""


class HiddenRenderer(Protocol):
    async def render_text(
        self,
        url: str,
        *,
        timeout: float,
        mutation_timeout: float,
    ) -> str | None: ...


class PlaywrightRenderer:
    """HiddenRenderer backed by headless Chromium.

    The browser is launched on first use and reused; each render gets
    its own context so cookies and storage never leak between pages.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        browser: Browser | None = None,
    ) -> None:
        self._settings = settings
        self._browser = browser
        self._playwright: Playwright | None = None
        self._launch_lock = asyncio.Lock()

    async def _get_browser(self) -> Browser:
        async with self._launch_lock:
            if self._browser is None:
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=True
                )
                logger.info("event=render_browser_launched")
            return self._browser

    async def render_text(
        self,
        url: str,
        *,
        timeout: float,
        mutation_timeout: float,
    ) -> str | None:
        """Rendered policy text, or None when the page shows nothing."""
        try:
            async with asyncio.timeout(timeout):
                return await self._render(url, timeout, mutation_timeout)
        except TimeoutError as exc:
            raise RenderError(f"render timed out: {url}") from exc
        except PlaywrightError as exc:
            raise RenderError(f"render failed: {url} ({exc})") from exc

    async def _render(
        self, url: str, timeout: float, mutation_timeout: float
    ) -> str | None:
        browser = await self._get_browser()
        context: Any = await browser.new_context(
            user_agent=self._settings.user_agent,
            java_script_enabled=True,
        )
        try:
            page = await context.new_page()
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=timeout * 1000,
            )
            found = await page.evaluate(
                _WAIT_FOR_POLICY_TEXT_JS,
                int(min(mutation_timeout, timeout) * 1000),
            )
            html: str = await page.content()
        finally:
            await context.close()

        text = extract_policy_text(
            SoupDocument(html), max_chars=self._settings.max_text_chars
        )
        logger.debug(
            "event=render_complete url=%s mutation_match=%s chars=%d",
            url,
            found,
            len(text),
        )
        return text or None

    async def aclose(self) -> None:
        if self._browser is not None and self._playwright is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self._browser = None
        self._playwright = None
