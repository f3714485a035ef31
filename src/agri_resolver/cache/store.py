from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from agri_resolver.cache.backends import PersistentBackend
from agri_resolver.cache.io import decode_entry, encode_entry
from agri_resolver.cache.models import CacheEntry

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def epoch_ms() -> int:
    return int(time.time() * 1000)


class TTLCacheStore:
    """
    Namespaced key/value cache where every entry carries its write time and TTL.

    Memory is the read path; every `set` is mirrored to the persistent backend
    and `init` rehydrates memory from it after a restart. Expired entries are
    never evicted, they stay readable until the next live write replaces them.
    """

    def __init__(self, backend: PersistentBackend, clock: Clock = epoch_ms) -> None:
        self._backend = backend
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def init(self) -> int:
        """Load every decodable record from the backend. Returns the number of entries loaded."""
        loaded: Dict[str, CacheEntry] = {}
        for key, record in self._backend.read_all().items():
            entry = decode_entry(key, record)
            if entry is not None:
                loaded[key] = entry
        self._entries = loaded
        self._initialized = True
        logger.info("Cache store rehydrated. entries=%d", len(loaded))
        return len(loaded)

    def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def set(self, key: str, value: Any, ttl_ms: int) -> CacheEntry:
        entry = CacheEntry(key=key, value=value, written_at_ms=self._clock(), ttl_ms=int(ttl_ms))
        self._entries[key] = entry
        try:
            self._backend.write(key, encode_entry(entry))
        except (OSError, TypeError, ValueError):
            logger.error("Failed to persist cache entry, keeping it in memory only. key=%s", key, exc_info=True)
        return entry

    def is_fresh(self, entry: CacheEntry) -> bool:
        return entry.age_ms(self._clock()) < entry.ttl_ms

    def now_ms(self) -> int:
        return self._clock()

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(key for key in self._entries if key.startswith(prefix))

    def __len__(self) -> int:
        return len(self._entries)
