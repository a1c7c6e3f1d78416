"""Policy summary cache and its key-value backends."""

from returnclarity.cache.policy_cache import PolicyCache, cache_key
from returnclarity.cache.schemas import CacheEntry, CacheStats
from returnclarity.cache.store import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)

__all__ = [
    "CacheEntry",
    "CacheStats",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "PolicyCache",
    "cache_key",
]
