"""Error hierarchy and classification for structured error handling.

Classifies exceptions by category to enable:
- Structured logging (which failures are transient vs permanent)
- Retry decisions for the remote extractor (429 only)
- Informative messages on the snapshot save path
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any


class ErrorClass(Enum):
    TRANSIENT = "transient"  # 429, network errors: retryable
    SERVER = "server"  # 500, 502, 503: retryable
    TIMEOUT = "timeout"  # deadline exceeded: retryable with backoff
    CLIENT = "client"  # 400, 401, 403, 404: do NOT retry
    UNKNOWN = "unknown"  # unclassified: do NOT retry


class ReturnClarityError(Exception):
    """Base class for pipeline errors."""


class FetchError(ReturnClarityError):
    """A single candidate could not be fetched as HTML."""

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{reason}: {url}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class RemoteExtractionError(ReturnClarityError):
    """The remote extractor answered with an error or unusable body."""

    def __init__(
        self, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class RenderError(ReturnClarityError):
    """The hidden-render fallback failed to produce text."""


class SupersededError(ReturnClarityError):
    """A newer run for the same context replaced this one."""


class SnapshotError(ReturnClarityError):
    """Snapshot persistence failed; message is the backend's own."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.details = details or {}


class SnapshotAuthError(SnapshotError):
    """Missing or rejected auth token."""


class DuplicateSnapshotError(SnapshotError):
    """Identical snapshot content already stored (HTTP 409)."""

    @property
    def existing_snapshot_id(self) -> int | None:
        value = self.details.get("existing_snapshot_id")
        return value if isinstance(value, int) else None


class SnapshotValidationError(SnapshotError):
    """Backend rejected the payload (HTTP 422)."""


def classify_error(error: Exception) -> ErrorClass:
    """Classify an error to determine handling strategy.

    Checks structured attributes first (status_code, httpx response),
    falls back to string matching for untyped exceptions.
    """
    # 1. Structured status code (our errors, httpx.HTTPStatusError)
    status_code = getattr(error, "status_code", None)
    if status_code is None:
        response = getattr(error, "response", None)
        status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        if status_code == 429:
            return ErrorClass.TRANSIENT
        if 400 <= status_code < 500:
            return ErrorClass.CLIENT
        if 500 <= status_code < 600:
            return ErrorClass.SERVER

    # 2. Timeout types
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorClass.TIMEOUT

    # 3. Fall back to string matching
    msg = str(error).lower()

    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "429" in msg or "rate limit" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("500", "502", "503", "504")):
        return ErrorClass.SERVER
    if "econnrefused" in msg or "connection" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("400", "401", "403", "404")):
        return ErrorClass.CLIENT

    return ErrorClass.UNKNOWN


def is_rate_limited(error: BaseException) -> bool:
    """Return True for HTTP 429 responses (tenacity retry predicate)."""
    return getattr(error, "status_code", None) == 429
