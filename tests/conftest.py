"""Shared test fixtures: settings, policy texts and pipeline fakes."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from returnclarity.cache import InMemoryKeyValueStore, PolicyCache
from returnclarity.config import Settings
from returnclarity.ingestion.fetcher import FetchedPage
from returnclarity.orchestrator import (
    DetectionResult,
    PageSnapshot,
    PolicyOrchestrator,
)
from returnclarity.resilience.errors import FetchError, RenderError

SCENARIO_TEXT = (
    "Returns are accepted within 30 days of delivery. "
    "Items must be unworn with tags. "
    "A 15% restocking fee applies. "
    "Customer pays return shipping. "
    "Final sale items cannot be returned."
)

NEGATIVE_TEXT = "All sales are final. No returns or exchanges."

# Scores well above the early-stop bar
EXCELLENT_POLICY_TEXT = (
    "Return Policy\n"
    "We accept returns within 30 days of delivery. "
    "To start a return, visit our returns portal. "
    "Items must be unworn, unwashed and in original condition with tags "
    "attached. "
    "A 10% restocking fee applies to opened items. "
    "Refunds are issued to the original payment method within 5 business "
    "days of receiving your return. "
    "Exchanges are free. "
    "Final sale items, gift cards and swimwear cannot be returned. "
    "Customers are responsible for return shipping costs unless the item "
    "is defective or damaged. "
    "Store credit is available for returns without a receipt. "
    "Please review our refund policy for eligible items."
)

# Long enough to be viable, nowhere near the accept bar
FILLER_TEXT = (
    "Welcome to our store. Browse our latest collection of candles "
    "and gifts for every season."
)

SHELL_TEXT = (
    "Loading help center articles. Please enable JavaScript to continue "
    "browsing this page."
)

STORE_ORIGIN = "https://shop.example.com"
PRODUCT_URL = f"{STORE_ORIGIN}/products/candle"


def policy_html(text: str, *, footer: str = "") -> str:
    """Wrap text in storefront-like markup (policy body in ``.rte``)."""
    paragraphs = "".join(f"<p>{line}</p>" for line in text.split("\n"))
    return (
        "<html><head><title>Store</title>"
        "<script>window.Shopify = {};</script></head><body>"
        "<header><nav><a href='/'>Home</a></nav></header>"
        f"<main><div class='rte'>{paragraphs}</div></main>"
        f"<footer>{footer}</footer>"
        "</body></html>"
    )


def make_detection(
    domain: str = "shop.example.com",
    *,
    is_shopify: bool = True,
    confidence: int = 90,
) -> DetectionResult:
    return DetectionResult(
        is_shopify=is_shopify, confidence=confidence, domain=domain
    )


def make_page(url: str = PRODUCT_URL, html: str = "") -> PageSnapshot:
    return PageSnapshot(url=url, html=html or policy_html(FILLER_TEXT))


class FakeFetcher:
    """In-memory PageFetcher; unknown URLs answer 404.

    ``gates`` hold a fetch until the test sets the event, which lets a
    test interleave two runs deterministically.
    """

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        *,
        gates: dict[str, asyncio.Event] | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.pages = pages or {}
        self.gates = gates or {}
        self.errors = errors or {}
        self.calls: list[str] = []

    async def fetch(self, url: str) -> FetchedPage:
        self.calls.append(url)
        gate = self.gates.get(url)
        if gate is not None:
            await gate.wait()
        if url in self.errors:
            raise self.errors[url]
        if url not in self.pages:
            raise FetchError(url, "HTTP 404", status_code=404)
        return FetchedPage(url=url, html=self.pages[url], status_code=200)


class FakeHost:
    """HostBridge that records badge calls."""

    def __init__(self) -> None:
        self.badges: dict[str, tuple[str, str]] = {}
        self.cleared: list[str] = []

    async def set_badge(self, context_id: str, text: str, color: str) -> None:
        self.badges[context_id] = (text, color)

    async def clear_badge(self, context_id: str) -> None:
        self.badges.pop(context_id, None)
        self.cleared.append(context_id)


class FakeRenderer:
    """HiddenRenderer returning canned text (or raising RenderError)."""

    def __init__(
        self, text: str | None = None, *, fail: bool = False
    ) -> None:
        self.text = text
        self.fail = fail
        self.calls: list[str] = []

    async def render_text(
        self,
        url: str,
        *,
        timeout: float,
        mutation_timeout: float,
    ) -> str | None:
        self.calls.append(url)
        if self.fail:
            raise RenderError(f"render failed: {url}")
        return self.text


class FakeClock:
    """Settable epoch clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,  # pyright: ignore[reportCallIssue]
        api_base_url="https://api.example.test/api/v1/",
        auth_token="test-token",
        extension_version="9.9.9",
        cache_path=tmp_path / "cache.json",
        log_dir=tmp_path / "logs",
        detection_wait_seconds=0.2,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> PolicyCache:
    return PolicyCache(InMemoryKeyValueStore(), clock=clock)


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def make_orchestrator(
    settings: Settings, cache: PolicyCache, host: FakeHost
):
    """Factory: orchestrator wired to fakes, local extraction only."""

    def _make(
        fetcher: FakeFetcher,
        **kwargs: object,
    ) -> PolicyOrchestrator:
        return PolicyOrchestrator(
            settings=kwargs.pop("settings", settings),  # type: ignore[arg-type]
            fetcher=fetcher,
            cache=cache,
            host=host,
            **kwargs,  # type: ignore[arg-type]
        )

    return _make
