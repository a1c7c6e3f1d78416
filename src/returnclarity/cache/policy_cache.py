"""Per-domain policy summary cache with TTL and size-triggered pruning."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pydantic import ValidationError

from returnclarity.cache.schemas import CacheEntry, CacheStats
from returnclarity.cache.store import KeyValueStore
from returnclarity.constants import (
    CACHE_DEFAULT_TTL_SECONDS,
    CACHE_PREFIX,
    CACHE_PRUNE_THRESHOLD_BYTES,
)
from returnclarity.extraction.schemas import PolicySummary

logger = logging.getLogger(__name__)


def cache_key(domain: str) -> str:
    return f"{CACHE_PREFIX}{domain}"


class PolicyCache:
    """Summaries keyed by store domain.

    Expired entries are removed lazily on read, and in bulk when a write
    finds the store above the prune threshold. Writes replace the whole
    entry; concurrent writers for the same domain resolve last-write-wins.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        ttl: float = CACHE_DEFAULT_TTL_SECONDS,
        prune_threshold_bytes: int = CACHE_PRUNE_THRESHOLD_BYTES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._ttl = ttl
        self._prune_threshold = prune_threshold_bytes
        self._clock = clock

    def _parse(self, raw: object) -> CacheEntry | None:
        try:
            return CacheEntry.model_validate(raw)
        except ValidationError:
            return None

    async def get(self, domain: str) -> PolicySummary | None:
        key = cache_key(domain)
        raw = await self._store.get(key)
        if raw is None:
            return None
        entry = self._parse(raw)
        if entry is None:
            logger.warning("event=cache_entry_corrupt domain=%s", domain)
            await self._store.remove([key])
            return None
        if entry.is_expired(self._clock()):
            logger.debug("event=cache_expired domain=%s", domain)
            await self._store.remove([key])
            return None
        logger.debug("event=cache_hit domain=%s", domain)
        return entry.summary

    async def set(
        self,
        domain: str,
        summary: PolicySummary,
        ttl: float | None = None,
    ) -> None:
        if await self._store.bytes_in_use() > self._prune_threshold:
            await self.prune_expired()
        entry = CacheEntry(
            summary=summary,
            cached_at=self._clock(),
            ttl=self._ttl if ttl is None else ttl,
        )
        await self._store.set(cache_key(domain), entry.to_wire())

    async def prune_expired(self) -> int:
        """Remove every expired (or unreadable) entry; returns the count."""
        now = self._clock()
        stale: list[str] = []
        for key, raw in (await self._store.get_all(CACHE_PREFIX)).items():
            entry = self._parse(raw)
            if entry is None or entry.is_expired(now):
                stale.append(key)
        if stale:
            await self._store.remove(stale)
            logger.info("event=cache_pruned removed=%d", len(stale))
        return len(stale)

    async def clear(self, domain: str | None = None) -> int:
        """Drop one domain's entry, or every cache entry."""
        if domain is not None:
            keys = [cache_key(domain)]
            if await self._store.get(keys[0]) is None:
                return 0
        else:
            keys = list((await self._store.get_all(CACHE_PREFIX)).keys())
        if keys:
            await self._store.remove(keys)
        return len(keys)

    async def stats(self) -> CacheStats:
        entries = await self._store.get_all(CACHE_PREFIX)
        oldest: float | None = None
        for raw in entries.values():
            entry = self._parse(raw)
            if entry is not None and (oldest is None or entry.cached_at < oldest):
                oldest = entry.cached_at
        return CacheStats(
            entries=len(entries),
            bytes_used=await self._store.bytes_in_use(),
            oldest_entry_age_seconds=(
                None if oldest is None else self._clock() - oldest
            ),
        )
