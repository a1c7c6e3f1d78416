"""Snapshot persistence: payload construction and backend client.

Backend error bodies look like ``{"error": {"code", "message",
"details"?, "existing_snapshot_id"?}}``; the message is surfaced to the
caller verbatim.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from returnclarity.config import Settings
from returnclarity.extraction.schemas import PolicySummary
from returnclarity.resilience.errors import (
    DuplicateSnapshotError,
    SnapshotAuthError,
    SnapshotError,
    SnapshotValidationError,
)
from returnclarity.resolution.resolver import get_policy_type

logger = logging.getLogger(__name__)


class SnapshotPayload(BaseModel):
    """Body of ``POST /snapshots`` (snake_case on the wire)."""

    model_config = ConfigDict(frozen=True)

    store_domain: str
    policy_url: str
    page_url: str | None = None
    policy_type: str
    summary: dict[str, Any]
    raw_text_snippet: str
    user_agent: str
    extension_version: str


class SnapshotReceipt(BaseModel):
    """Backend acknowledgement of a stored snapshot."""

    model_config = ConfigDict(extra="ignore")

    id: int
    status: str = "saved"
    store_domain: str | None = None
    policy_url: str | None = None
    extracted_at: str | None = None
    checksum: str | None = None
    created_at: str | None = None


def build_snapshot_payload(
    summary: PolicySummary,
    settings: Settings,
    *,
    page_url: str | None = None,
) -> SnapshotPayload:
    return SnapshotPayload(
        store_domain=summary.domain,
        policy_url=summary.policy_url,
        page_url=page_url or summary.page_url,
        policy_type=get_policy_type(summary.policy_url).value,
        summary={
            "fields": summary.fields.to_wire(),
            "confidence": summary.confidence.to_wire(),
        },
        raw_text_snippet=summary.raw_text_snippet,
        user_agent=settings.user_agent,
        extension_version=settings.extension_version,
    )


def _error_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error
    return {}


class SnapshotClient:
    """Saves policy summaries to the backend."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
    ) -> None:
        self._client = client
        self._settings = settings

    async def save(
        self,
        summary: PolicySummary,
        *,
        page_url: str | None = None,
    ) -> SnapshotReceipt:
        """POST a snapshot; raises a SnapshotError subclass on failure."""
        token = self._settings.auth_token
        if not token:
            raise SnapshotAuthError(
                "Not signed in: an auth token is required to save snapshots"
            )

        payload = build_snapshot_payload(
            summary, self._settings, page_url=page_url
        )
        try:
            response = await self._client.post(
                self._settings.snapshots_url,
                json=payload.model_dump(mode="json"),
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise SnapshotError(f"Snapshot request failed: {exc}") from exc

        if response.status_code == 201:
            try:
                receipt = SnapshotReceipt.model_validate(response.json())
            except (ValueError, ValidationError) as exc:
                logger.warning(
                    "event=snapshot_receipt_invalid domain=%s error=%s",
                    summary.domain,
                    exc,
                )
                raise SnapshotError(
                    "Snapshot saved but the response was unreadable",
                    status_code=201,
                ) from exc
            logger.info(
                "event=snapshot_saved domain=%s id=%d",
                summary.domain,
                receipt.id,
            )
            return receipt

        error = _error_body(response)
        message = str(
            error.get("message")
            or f"API responded with {response.status_code}"
        )
        code = error.get("code")
        logger.warning(
            "event=snapshot_failed domain=%s status=%d code=%s",
            summary.domain,
            response.status_code,
            code,
        )

        status = response.status_code
        if status in (401, 403):
            raise SnapshotAuthError(message, status_code=status, code=code)
        if status == 409:
            raise DuplicateSnapshotError(
                message, status_code=status, code=code, details=error
            )
        if status == 422:
            details = error.get("details")
            raise SnapshotValidationError(
                message,
                status_code=status,
                code=code,
                details=details if isinstance(details, dict) else {},
            )
        raise SnapshotError(message, status_code=status, code=code)
