"""Well-known storefront policy routes."""

from __future__ import annotations

from returnclarity.constants import PolicyType

CANONICAL_PATHS: dict[PolicyType, str] = {
    PolicyType.REFUND: "/policies/refund-policy",
    PolicyType.SHIPPING: "/policies/shipping-policy",
    PolicyType.PRIVACY: "/policies/privacy-policy",
    PolicyType.TERMS: "/policies/terms-of-service",
    PolicyType.SUBSCRIPTION: "/policies/subscription-policy",
}

# Merchant-authored pages, probed after canonical and footer candidates
ALTERNATE_PATHS: dict[PolicyType, tuple[str, ...]] = {
    PolicyType.REFUND: (
        "/pages/returns",
        "/pages/return-policy",
        "/pages/returnpolicy",
        "/pages/refund-policy",
        "/pages/returns-exchanges",
        "/pages/shipping-returns",
    ),
    PolicyType.SHIPPING: (
        "/pages/shipping",
        "/pages/shipping-policy",
        "/pages/delivery",
    ),
}

# Link keywords per type: (positive, in text or href)
TYPE_KEYWORDS: dict[PolicyType, tuple[str, ...]] = {
    PolicyType.REFUND: ("return", "refund", "exchange"),
    PolicyType.SHIPPING: ("shipping", "delivery"),
    PolicyType.PRIVACY: ("privacy",),
    PolicyType.TERMS: ("terms",),
    PolicyType.SUBSCRIPTION: ("subscription",),
}

# Keywords that pull a link away from being the refund policy
REFUND_NEGATIVE_KEYWORDS: tuple[str, ...] = (
    "privacy",
    "terms",
    "shipping",
    "faq",
    "contact",
    "cookie",
)

# Slugs help centers commonly use for their refund article
HELP_CENTER_REFUND_SLUGS: tuple[str, ...] = (
    "return-policy",
    "returns",
    "refund-policy",
    "returns-and-exchanges",
    "returns-exchanges",
)

# Path fragments that identify a policy page
POLICY_PAGE_MARKERS: tuple[str, ...] = (
    "/policies/",
    "/pages/return",
    "/pages/refund",
    "/pages/shipping",
)

# Help-center shapes that usually need a hidden render to show text
LOW_YIELD_MARKERS: tuple[str, ...] = (
    "/apps/help-center",
    "/a/help",
    "/help",
    "/faq",
    "/pages/faq",
)
