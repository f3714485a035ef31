from __future__ import annotations

from dataclasses import dataclass
from typing import Any

SchemaVersion = 1


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    value: Any
    written_at_ms: int
    ttl_ms: int

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.written_at_ms
