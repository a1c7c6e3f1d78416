"""Context state, detection input and host message models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, TypeAlias

from pydantic import Field

from returnclarity.constants import ContextStatus
from returnclarity.extraction.schemas import PolicySummary, WireModel


class DetectionIndicators(WireModel):
    has_shopify_global: bool = False
    has_meta_tags: bool = False
    has_cdn_assets: bool = False
    is_myshopify_domain: bool = False


class DetectionResult(WireModel):
    """Storefront detector output, consumed as-is."""

    is_shopify: bool
    confidence: int = Field(ge=0, le=100)
    domain: str
    indicators: DetectionIndicators = Field(
        default_factory=DetectionIndicators
    )


class ContextState(WireModel):
    """What the orchestrator knows about one browsing context.

    Recomputable: losing it (restart, discard) only means detection has
    to run again.
    """

    detection: DetectionResult | None = None
    summary: PolicySummary | None = None
    status: ContextStatus = ContextStatus.IDLE
    from_cache: bool = False
    error_message: str | None = None


class PageSnapshot(WireModel):
    """URL and markup of the page the host is showing."""

    url: str
    html: str = ""


@dataclass(frozen=True)
class ProbeResult:
    """Best text found for a candidate URL and its quality score."""

    url: str
    text: str
    score: int


# ── Host messages ────────────────────────────────────────


class StorefrontDetected(WireModel):
    type: Literal["storefront_detected"] = "storefront_detected"
    context_id: str
    detection: DetectionResult
    page: PageSnapshot


class GetContextState(WireModel):
    type: Literal["get_context_state"] = "get_context_state"
    context_id: str


class SaveSnapshot(WireModel):
    type: Literal["save_snapshot"] = "save_snapshot"
    context_id: str


class ContextNavigated(WireModel):
    type: Literal["context_navigated"] = "context_navigated"
    context_id: str


class ContextClosed(WireModel):
    type: Literal["context_closed"] = "context_closed"
    context_id: str


HostMessage: TypeAlias = (
    StorefrontDetected
    | GetContextState
    | SaveSnapshot
    | ContextNavigated
    | ContextClosed
)
