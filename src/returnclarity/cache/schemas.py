"""Cache entry and statistics models."""

from __future__ import annotations

from returnclarity.extraction.schemas import PolicySummary, WireModel


class CacheEntry(WireModel):
    """A cached summary with its write time and lifetime (seconds)."""

    summary: PolicySummary
    cached_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now > self.cached_at + self.ttl


class CacheStats(WireModel):
    entries: int
    bytes_used: int
    oldest_entry_age_seconds: float | None = None
