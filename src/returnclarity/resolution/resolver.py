"""Candidate resolution: which URLs might hold the store's return policy.

Sources, in probe order:
1. The platform's canonical route (when the store runs on the platform).
2. Same-origin footer links, ranked by keyword score, with help-center
   links expanded into likely refund-article variants.
3. Merchant-authored alternate pages (``/pages/returns`` and friends).

No network access happens here; the orchestrator probes the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from returnclarity.constants import PolicyType
from returnclarity.ingestion.document import DocumentLike
from returnclarity.resolution.routes import (
    ALTERNATE_PATHS,
    CANONICAL_PATHS,
    HELP_CENTER_REFUND_SLUGS,
    LOW_YIELD_MARKERS,
    POLICY_PAGE_MARKERS,
    REFUND_NEGATIVE_KEYWORDS,
    TYPE_KEYWORDS,
)
from returnclarity.resolution.schemas import PolicyUrlCandidates

logger = logging.getLogger(__name__)

FOOTER_LINK_SELECTOR = "footer a[href], [role=contentinfo] a[href]"

_SKIPPED_SCHEMES = ("mailto:", "tel:", "javascript:", "#")
_REFUND_MENTION = ("return", "refund")


@dataclass(frozen=True)
class FooterLink:
    """A same-origin footer link, already resolved and canonicalized."""

    url: str
    text: str
    position: int


def canonicalize_url(url: str) -> str:
    """Drop the fragment, lower-case the host, trim a trailing slash."""
    parts = urlsplit(url)
    path = parts.path
    if len(path) > 1:
        path = path.rstrip("/")
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, parts.query, "")
    )


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def _dedupe(urls: list[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if url in seen:
            continue
        seen.add(url)
        ordered.append(url)
    return tuple(ordered)


def collect_footer_links(
    page_url: str, document: DocumentLike
) -> list[FooterLink]:
    """Same-origin links under the page footer, in document order."""
    origin = _origin(page_url)
    links: list[FooterLink] = []
    seen: set[str] = set()
    for element in document.select(FOOTER_LINK_SELECTOR):
        href = (element.get("href") or "").strip()
        if not href or href.lower().startswith(_SKIPPED_SCHEMES):
            continue
        resolved = canonicalize_url(urljoin(page_url, href))
        if _origin(resolved) != origin or resolved in seen:
            continue
        seen.add(resolved)
        links.append(
            FooterLink(
                url=resolved,
                text=" ".join(element.get_text().lower().split()),
                position=len(links),
            )
        )
    return links


def _href_target(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.path}?{parts.query}".lower()


def score_refund_link(link: FooterLink) -> int:
    """Keyword score of a footer link as a refund-policy candidate."""
    href = _href_target(link.url)
    score = 0
    for keyword in TYPE_KEYWORDS[PolicyType.REFUND]:
        if keyword in link.text:
            score += 3
        if keyword in href:
            score += 2
    for keyword in REFUND_NEGATIVE_KEYWORDS:
        if keyword in link.text or keyword in href:
            score -= 2
    path = urlsplit(link.url).path.lower()
    canonical_like = (CANONICAL_PATHS[PolicyType.REFUND],) + ALTERNATE_PATHS[
        PolicyType.REFUND
    ]
    if path in canonical_like:
        score += 4
    return score


def expand_help_center_link(url: str) -> list[str]:
    """Rewrite a help-center link's embedded sub-path to refund slugs.

    ``/apps/help?path=/articles/general`` becomes
    ``/apps/help?path=/articles/return-policy`` and so on. Links that
    already point at a return/refund article are left alone.
    """
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    for index, (key, value) in enumerate(query):
        if not value.startswith("/"):
            continue
        if any(word in value.lower() for word in _REFUND_MENTION):
            return []
        head = value.rstrip("/").rsplit("/", 1)[0]
        variants: list[str] = []
        for slug in HELP_CENTER_REFUND_SLUGS:
            rewritten = list(query)
            rewritten[index] = (key, f"{head}/{slug}")
            variants.append(
                urlunsplit(
                    (
                        parts.scheme,
                        parts.netloc,
                        parts.path,
                        urlencode(rewritten, safe="/"),
                        "",
                    )
                )
            )
        return variants
    return []


def rank_refund_links(links: list[FooterLink]) -> list[str]:
    """Positive-scoring links, best first, each preceded by expansions."""
    scored = [(score_refund_link(link), link) for link in links]
    kept = [(s, link) for s, link in scored if s > 0]
    kept.sort(key=lambda pair: (-pair[0], pair[1].position))
    ranked: list[str] = []
    for _, link in kept:
        ranked.extend(expand_help_center_link(link.url))
        ranked.append(link.url)
    return ranked


def best_footer_match(
    links: list[FooterLink], policy_type: PolicyType
) -> str | None:
    """Highest keyword-scoring footer link for a non-refund type."""
    best: tuple[int, FooterLink] | None = None
    for link in links:
        href = _href_target(link.url)
        score = 0
        for keyword in TYPE_KEYWORDS[policy_type]:
            if keyword in link.text:
                score += 3
            if keyword in href:
                score += 2
        if score > 0 and (best is None or score > best[0]):
            best = (score, link)
    return best[1].url if best is not None else None


def resolve_policy_urls(
    page_url: str,
    document: DocumentLike,
    *,
    platform_routes: bool = True,
) -> PolicyUrlCandidates:
    """Build ranked, de-duplicated policy candidates for a storefront page."""
    origin = _origin(page_url)
    links = collect_footer_links(page_url, document)

    refund: list[str] = []
    if platform_routes:
        refund.append(origin + CANONICAL_PATHS[PolicyType.REFUND])
    refund.extend(rank_refund_links(links))
    if platform_routes:
        refund.extend(
            origin + path for path in ALTERNATE_PATHS[PolicyType.REFUND]
        )

    def single(policy_type: PolicyType) -> str | None:
        if platform_routes:
            return origin + CANONICAL_PATHS[policy_type]
        return best_footer_match(links, policy_type)

    candidates = PolicyUrlCandidates(
        refund_candidates=_dedupe(refund),
        shipping_policy=single(PolicyType.SHIPPING),
        privacy_policy=single(PolicyType.PRIVACY),
        terms_of_service=single(PolicyType.TERMS),
        subscription_policy=single(PolicyType.SUBSCRIPTION),
    )
    logger.debug(
        "event=candidates_resolved origin=%s refund=%d footer_links=%d",
        origin,
        len(candidates.refund_candidates),
        len(links),
    )
    return candidates


def is_policy_page(url: str) -> bool:
    """True when the URL path looks like a policy page."""
    path = urlsplit(url).path.lower()
    return any(marker in path for marker in POLICY_PAGE_MARKERS)


def is_low_yield_candidate(url: str) -> bool:
    """True for help-center shapes whose text is usually hydrated by JS."""
    parts = urlsplit(url)
    if any(
        value.startswith("/")
        for _, value in parse_qsl(parts.query, keep_blank_values=True)
    ):
        return True
    path = parts.path.lower().rstrip("/") + "/"
    return any(marker + "/" in path for marker in LOW_YIELD_MARKERS)


def get_policy_type(url: str) -> PolicyType:
    """Infer the policy kind from a URL."""
    lower = url.lower()
    if "refund" in lower or "return" in lower:
        return PolicyType.REFUND
    if "shipping" in lower or "delivery" in lower:
        return PolicyType.SHIPPING
    if "privacy" in lower:
        return PolicyType.PRIVACY
    if "terms" in lower:
        return PolicyType.TERMS
    if "subscription" in lower:
        return PolicyType.SUBSCRIPTION
    return PolicyType.UNKNOWN
