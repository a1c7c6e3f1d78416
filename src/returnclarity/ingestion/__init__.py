"""Page ingestion: fetch policy pages and normalize them to text."""

from returnclarity.ingestion.document import (
    DocumentLike,
    ElementLike,
    SoupDocument,
)
from returnclarity.ingestion.fetcher import (
    FetchedPage,
    PageFetcher,
    PolicyFetcher,
)
from returnclarity.ingestion.normalizer import (
    compact_policy_text_for_api,
    extract_policy_text,
    normalize_text,
    strip_html_to_text,
)

__all__ = [
    "DocumentLike",
    "ElementLike",
    "FetchedPage",
    "PageFetcher",
    "PolicyFetcher",
    "SoupDocument",
    "compact_policy_text_for_api",
    "extract_policy_text",
    "normalize_text",
    "strip_html_to_text",
]
