"""Tests for Settings validators and derived endpoints."""

from __future__ import annotations

import logging
from typing import Any

import pytest
from pydantic import ValidationError

from returnclarity.config import Settings


def _settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **overrides)  # pyright: ignore[reportCallIssue]


class TestEndpoints:
    def test_trailing_slash_stripped(self) -> None:
        s = _settings(api_base_url="https://api.example.test/api/v1///")
        assert s.api_base_url == "https://api.example.test/api/v1"
        assert s.extract_url == "https://api.example.test/api/v1/extract"
        assert s.snapshots_url == "https://api.example.test/api/v1/snapshots"

    def test_defaults(self) -> None:
        s = _settings()
        assert s.remote_extractor_enabled is True
        assert s.render_fallback_enabled is True
        assert s.quality_accept_threshold == 6
        assert s.quality_early_stop_threshold == 8
        assert s.cache_ttl_seconds == 24 * 60 * 60


class TestValidation:
    @pytest.mark.parametrize(
        "field",
        [
            "fetch_timeout_seconds",
            "remote_timeout_seconds",
            "render_timeout_seconds",
            "cache_ttl_seconds",
        ],
    )
    def test_non_positive_timeout_raises(self, field: str) -> None:
        with pytest.raises(ValidationError, match="must be positive"):
            _settings(**{field: 0})

    def test_early_stop_below_accept_raises(self) -> None:
        with pytest.raises(ValidationError, match="quality_early_stop"):
            _settings(
                quality_accept_threshold=7,
                quality_early_stop_threshold=5,
            )

    def test_mutation_wait_over_render_budget_warns(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="returnclarity.config"):
            s = _settings(
                mutation_wait_seconds=20, render_timeout_seconds=10
            )
        assert "MUTATION_WAIT_SECONDS" in caplog.text
        assert s.mutation_wait_seconds == 20

    def test_no_warning_within_budget(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="returnclarity.config"):
            _settings()
        assert "MUTATION_WAIT_SECONDS" not in caplog.text


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REMOTE_EXTRACTOR_ENABLED", "false")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "60")
    s = _settings()
    assert s.remote_extractor_enabled is False
    assert s.cache_ttl_seconds == 60
