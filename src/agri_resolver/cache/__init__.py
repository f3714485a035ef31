"""TTL cache store with pluggable persistent backends."""

from agri_resolver.cache.backends import InMemoryBackend, JsonFileBackend, PersistentBackend
from agri_resolver.cache.models import CacheEntry
from agri_resolver.cache.store import Clock, TTLCacheStore, epoch_ms

__all__ = [
    "CacheEntry",
    "Clock",
    "InMemoryBackend",
    "JsonFileBackend",
    "PersistentBackend",
    "TTLCacheStore",
    "epoch_ms",
]
