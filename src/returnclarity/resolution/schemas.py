"""Resolved policy URL candidates."""

from __future__ import annotations

from pydantic import Field

from returnclarity.extraction.schemas import WireModel


class PolicyUrlCandidates(WireModel):
    """Candidate policy URLs for one storefront.

    refund_candidates is ranked and de-duplicated; refund_policy is its
    first element (or None when the list is empty).
    """

    refund_candidates: tuple[str, ...] = Field(default_factory=tuple)
    shipping_policy: str | None = None
    privacy_policy: str | None = None
    terms_of_service: str | None = None
    subscription_policy: str | None = None

    @property
    def refund_policy(self) -> str | None:
        return self.refund_candidates[0] if self.refund_candidates else None
