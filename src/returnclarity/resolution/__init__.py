"""Policy URL resolution for storefront pages."""

from returnclarity.resolution.resolver import (
    get_policy_type,
    is_low_yield_candidate,
    is_policy_page,
    resolve_policy_urls,
)
from returnclarity.resolution.schemas import PolicyUrlCandidates

__all__ = [
    "PolicyUrlCandidates",
    "get_policy_type",
    "is_low_yield_candidate",
    "is_policy_page",
    "resolve_policy_urls",
]
