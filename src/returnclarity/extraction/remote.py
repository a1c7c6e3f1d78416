"""Remote semantic extractor client with circuit breaker and 429 retry.

The backend answers ``POST /extract`` with ``{"fields": {...},
"confidence": {...}}`` keyed by wire names. Everything it returns is
treated as untrusted: non-string values are dropped, strings are capped,
unknown confidence labels become ``low`` and null fields are forced to
``low``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
    CircuitBreakerError,
)
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from returnclarity.config import Settings
from returnclarity.constants import (
    CB_REMOTE_FAILURE_THRESHOLD,
    CB_REMOTE_RECOVERY_TIMEOUT,
    FIELD_NAMES,
    REMOTE_FIELD_MAX_CHARS,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
)
from returnclarity.extraction.confidence import (
    coerce_level,
    enforce_invariants,
)
from returnclarity.extraction.schemas import (
    FIELD_ATTRS,
    ExtractionResult,
    PolicyConfidence,
    PolicyFields,
)
from returnclarity.ingestion.normalizer import compact_policy_text_for_api
from returnclarity.resilience.errors import (
    RemoteExtractionError,
    is_rate_limited,
)

logger = logging.getLogger(__name__)


def _is_non_rate_limit_error(
    thrown_type: type, thrown_value: BaseException
) -> bool:
    """Return True if the failure should count against the breaker.

    A 429 is backpressure, not an outage, so it never opens the circuit.
    """
    return not is_rate_limited(thrown_value)


def sanitize_value(value: object) -> str | None:
    """Keep non-blank strings only, capped for display."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    return value[:REMOTE_FIELD_MAX_CHARS]


def parse_extraction_body(body: object) -> ExtractionResult:
    """Turn an untrusted response body into a valid ExtractionResult.

    Raises RemoteExtractionError when the body is not the expected shape.
    """
    if not isinstance(body, dict):
        raise RemoteExtractionError("response body is not an object")
    raw_fields = body.get("fields")
    raw_confidence = body.get("confidence", {})
    if not isinstance(raw_fields, dict):
        raise RemoteExtractionError("response has no fields object")
    if not isinstance(raw_confidence, dict):
        raw_confidence = {}

    values: dict[str, str | None] = {}
    levels: dict[str, Any] = {}
    for wire, attr in zip(FIELD_NAMES, FIELD_ATTRS, strict=True):
        values[attr] = sanitize_value(raw_fields.get(wire))
        levels[attr] = coerce_level(raw_confidence.get(wire))

    fields = PolicyFields(**values)
    confidence = enforce_invariants(fields, PolicyConfidence(**levels))
    return ExtractionResult(fields=fields, confidence=confidence)


class RemoteExtractor:
    """Client for the backend's semantic field extractor."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
    ) -> None:
        self._client = client
        self._settings = settings
        self._breaker = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
            failure_threshold=CB_REMOTE_FAILURE_THRESHOLD,
            recovery_timeout=CB_REMOTE_RECOVERY_TIMEOUT,
            expected_exception=_is_non_rate_limit_error,
            name="remote_extractor",
        )

    @property
    def circuit_open(self) -> bool:
        return bool(self._breaker.opened)  # pyright: ignore[reportUnknownMemberType]

    async def extract(self, text: str, domain: str) -> ExtractionResult:
        """Ask the backend for the five fields.

        Raises RemoteExtractionError (or CircuitBreakerError while the
        circuit is open); callers fall back to local extraction.
        """
        payload = {
            "text": compact_policy_text_for_api(
                text, max_chars=self._settings.max_text_chars
            ),
            "domain": domain,
        }
        if self.circuit_open:
            raise CircuitBreakerError(self._breaker)  # pyright: ignore[reportUnknownArgumentType]
        body = await self._post(payload)
        result = parse_extraction_body(body)
        logger.info(
            "event=remote_extraction domain=%s has_values=%s",
            domain,
            result.has_any_value,
        )
        return result

    @retry(
        stop=stop_after_attempt(RETRY_MAX_ATTEMPTS),
        wait=wait_exponential_jitter(
            initial=RETRY_INITIAL_WAIT, max=RETRY_MAX_WAIT
        ),
        retry=retry_if_exception(is_rate_limited),
        reraise=True,
    )
    async def _post(self, payload: dict[str, str]) -> object:
        headers = {"Accept": "application/json"}
        with self._breaker:  # pyright: ignore[reportUnknownMemberType]
            try:
                response = await self._client.post(
                    self._settings.extract_url,
                    json=payload,
                    headers=headers,
                    timeout=self._settings.remote_timeout_seconds,
                )
            except httpx.HTTPError as exc:
                raise RemoteExtractionError(
                    f"remote extractor unreachable: {exc}"
                ) from exc
            if not response.is_success:
                raise RemoteExtractionError(
                    f"remote extractor returned {response.status_code}",
                    status_code=response.status_code,
                )
            try:
                return response.json()
            except ValueError as exc:
                raise RemoteExtractionError(
                    "remote extractor returned invalid JSON",
                    status_code=response.status_code,
                ) from exc
