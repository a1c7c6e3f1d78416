"""Tests for the remote extractor client (httpx MockTransport, no network)."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
from circuitbreaker import CircuitBreakerError
from tenacity import wait_none

from returnclarity.config import Settings
from returnclarity.constants import REMOTE_FIELD_MAX_CHARS, ConfidenceLevel
from returnclarity.extraction.remote import (
    RemoteExtractor,
    parse_extraction_body,
    sanitize_value,
)
from returnclarity.resilience.errors import RemoteExtractionError
from tests.conftest import SCENARIO_TEXT


@pytest.fixture(autouse=True)
def _disable_retry_wait() -> Any:
    """Disable tenacity wait time for fast tests."""
    original_wait = RemoteExtractor._post.retry.wait  # type: ignore[attr-defined]
    RemoteExtractor._post.retry.wait = wait_none()  # type: ignore[attr-defined]
    yield
    RemoteExtractor._post.retry.wait = original_wait  # type: ignore[attr-defined]


def _extractor(
    settings: Settings, handler: Any
) -> tuple[RemoteExtractor, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteExtractor(client, settings), client


GOOD_BODY = {
    "fields": {
        "returnWindow": "30 days",
        "conditionRequirements": "Unworn with tags",
        "fees": "15% restocking fee",
        "returnShipping": "Customer pays",
        "exclusions": "Final sale items",
    },
    "confidence": {
        "returnWindow": "high",
        "conditionRequirements": "medium",
        "fees": "high",
        "returnShipping": "high",
        "exclusions": "medium",
    },
}


# ── Body parsing ─────────────────────────────────────────────


def test_sanitize_value() -> None:
    assert sanitize_value("  30 days ") == "30 days"
    assert sanitize_value("   ") is None
    assert sanitize_value(30) is None
    assert sanitize_value(None) is None
    assert len(sanitize_value("x" * 500) or "") == REMOTE_FIELD_MAX_CHARS


def test_parse_untrusted_body() -> None:
    """Non-strings are dropped, unknown labels become low."""
    result = parse_extraction_body(
        {
            "fields": {
                "returnWindow": "30 days",
                "fees": 15,
                "exclusions": "y" * 300,
                "unexpected": "ignored",
            },
            "confidence": {
                "returnWindow": "certain",
                "fees": "high",
                "exclusions": "HIGH",
            },
        }
    )
    assert result.fields.return_window == "30 days"
    assert result.confidence.return_window == ConfidenceLevel.LOW
    # Dropped value cannot keep a high label
    assert result.fields.fees is None
    assert result.confidence.fees == ConfidenceLevel.LOW
    assert result.fields.exclusions == "y" * REMOTE_FIELD_MAX_CHARS
    assert result.confidence.exclusions == ConfidenceLevel.HIGH


@pytest.mark.parametrize(
    "body",
    [["not", "an", "object"], {"confidence": {}}, {"fields": "30 days"}],
)
def test_parse_rejects_malformed_body(body: object) -> None:
    with pytest.raises(RemoteExtractionError):
        parse_extraction_body(body)


def test_parse_tolerates_missing_confidence() -> None:
    result = parse_extraction_body({"fields": {"fees": "No fee"}})
    assert result.fields.fees == "No fee"
    assert result.confidence.fees == ConfidenceLevel.LOW


# ── HTTP client ──────────────────────────────────────────────


class TestRemoteExtractor:
    @pytest.mark.asyncio
    async def test_success_posts_compacted_text(
        self, settings: Settings
    ) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=GOOD_BODY)

        extractor, client = _extractor(settings, handler)
        async with client:
            result = await extractor.extract(
                SCENARIO_TEXT, "shop.example.com"
            )

        assert result.fields.return_window == "30 days"
        assert result.confidence.fees == ConfidenceLevel.HIGH
        assert len(seen) == 1
        assert str(seen[0].url) == "https://api.example.test/api/v1/extract"
        sent = json.loads(seen[0].content)
        assert sent["domain"] == "shop.example.com"
        assert "30 days" in sent["text"]

    @pytest.mark.asyncio
    async def test_server_error_raises(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "boom"})

        extractor, client = _extractor(settings, handler)
        async with client:
            with pytest.raises(RemoteExtractionError) as exc_info:
                await extractor.extract(SCENARIO_TEXT, "shop.example.com")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>oops</html>")

        extractor, client = _extractor(settings, handler)
        async with client:
            with pytest.raises(RemoteExtractionError, match="invalid JSON"):
                await extractor.extract(SCENARIO_TEXT, "shop.example.com")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, settings: Settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        extractor, client = _extractor(settings, handler)
        async with client:
            with pytest.raises(RemoteExtractionError, match="unreachable"):
                await extractor.extract(SCENARIO_TEXT, "shop.example.com")

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried(self, settings: Settings) -> None:
        """A 429 gets one retry; the second answer wins."""
        responses = [
            httpx.Response(429, json={"error": "slow down"}),
            httpx.Response(200, json=GOOD_BODY),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        extractor, client = _extractor(settings, handler)
        async with client:
            result = await extractor.extract(
                SCENARIO_TEXT, "shop.example.com"
            )
        assert result.fields.return_shipping == "Customer pays"
        assert responses == []
        assert not extractor.circuit_open

    @pytest.mark.asyncio
    async def test_circuit_opens_after_threshold(
        self, settings: Settings
    ) -> None:
        """After 5 server errors the 6th call never reaches the backend."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(503)

        extractor, client = _extractor(settings, handler)
        async with client:
            for _ in range(5):
                with pytest.raises(RemoteExtractionError):
                    await extractor.extract(SCENARIO_TEXT, "shop.example.com")
            assert extractor.circuit_open

            with pytest.raises(CircuitBreakerError):
                await extractor.extract(SCENARIO_TEXT, "shop.example.com")
        assert calls == 5

    @pytest.mark.asyncio
    async def test_breakers_are_per_instance(
        self, settings: Settings
    ) -> None:
        def failing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        first, client = _extractor(settings, failing)
        async with client:
            for _ in range(5):
                with pytest.raises(RemoteExtractionError):
                    await first.extract(SCENARIO_TEXT, "shop.example.com")

        second, client = _extractor(
            settings, lambda request: httpx.Response(200, json=GOOD_BODY)
        )
        async with client:
            result = await second.extract(SCENARIO_TEXT, "shop.example.com")
        assert first.circuit_open
        assert result.has_any_value
