"""Environment-based configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from returnclarity import constants as c

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and environment variables."""

    # Backend API (remote extractor + snapshots)
    api_base_url: str = "http://localhost:3000/api/v1"
    auth_token: str = ""
    extension_version: str = "1.0.0"
    user_agent: str = "ReturnClarity/1.0 (+policy-summary)"

    # Feature toggles
    remote_extractor_enabled: bool = True
    render_fallback_enabled: bool = True
    # Canonical /policies/ and /pages/ routes of the storefront platform
    platform_routes_enabled: bool = True

    # Timeouts (seconds)
    fetch_timeout_seconds: float = c.FETCH_TIMEOUT
    remote_timeout_seconds: float = c.REMOTE_EXTRACT_TIMEOUT
    render_timeout_seconds: float = c.RENDER_TIMEOUT
    mutation_wait_seconds: float = c.MUTATION_WAIT_TIMEOUT
    detection_wait_seconds: float = c.DETECTION_WAIT_TIMEOUT

    # Quality gate
    quality_accept_threshold: int = c.QUALITY_ACCEPT_THRESHOLD
    quality_early_stop_threshold: int = c.QUALITY_EARLY_STOP_THRESHOLD
    min_detection_confidence: int = c.MIN_DETECTION_CONFIDENCE
    max_text_chars: int = c.MAX_TEXT_CHARS

    # Cache
    cache_ttl_seconds: float = c.CACHE_DEFAULT_TTL_SECONDS
    cache_prune_threshold_bytes: int = c.CACHE_PRUNE_THRESHOLD_BYTES
    cache_path: Path = Path("data/policy-cache.json")

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator(
        "fetch_timeout_seconds",
        "remote_timeout_seconds",
        "render_timeout_seconds",
        "mutation_wait_seconds",
        "detection_wait_seconds",
        "cache_ttl_seconds",
    )
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts and TTLs must be positive")
        return v

    @model_validator(mode="after")
    def _check_thresholds(self) -> Settings:
        if self.quality_early_stop_threshold < self.quality_accept_threshold:
            raise ValueError(
                "quality_early_stop_threshold must be >= "
                "quality_accept_threshold"
            )
        if self.mutation_wait_seconds > self.render_timeout_seconds:
            logger.warning(
                "MUTATION_WAIT_SECONDS (%.1f) exceeds "
                "RENDER_TIMEOUT_SECONDS (%.1f); render budget wins",
                self.mutation_wait_seconds,
                self.render_timeout_seconds,
            )
        return self

    @property
    def extract_url(self) -> str:
        """Remote field-extractor endpoint."""
        return f"{self.api_base_url}/extract"

    @property
    def snapshots_url(self) -> str:
        """Snapshot persistence endpoint."""
        return f"{self.api_base_url}/snapshots"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "extra": "ignore",
    }
