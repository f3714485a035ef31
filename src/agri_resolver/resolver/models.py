from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Generic, Literal, Optional, Sequence, TypeVar

from agri_resolver.resolver.errors import ConfigurationError

T = TypeVar("T")

Tier = Literal["live", "cached", "mock"]

# Higher rank is more trustworthy.
TIER_RANK: Dict[str, int] = {"live": 2, "cached": 1, "mock": 0}


def worse_tier(left: Tier, right: Tier) -> Tier:
    return left if TIER_RANK[left] <= TIER_RANK[right] else right


def _always() -> bool:
    return True


def _accept_any(_value: Any) -> bool:
    return True


@dataclass(frozen=True, slots=True)
class SourceDescriptor(Generic[T]):
    """
    One prioritized way of fetching a value live.

    `fetch` receives the resolution params and must fail only with
    SourceUnavailable or MalformedResponse. `precondition` is evaluated before
    each attempt; when it returns False the source is skipped. `accept` vets a
    fetched value; a rejected value counts as a failed attempt and is never
    cached.
    """

    name: str
    priority: int
    timeout_ms: int
    fetch: Callable[[Any], Awaitable[T]]
    precondition: Callable[[], bool] = field(default=_always)
    accept: Callable[[Any], bool] = field(default=_accept_any)


@dataclass(frozen=True, slots=True)
class ResolutionResult(Generic[T]):
    value: T
    tier: Tier
    as_of: Optional[int]

    @property
    def is_live(self) -> bool:
        return self.tier == "live"

    def to_dict(self) -> dict:
        return {"value": self.value, "tier": self.tier, "as_of": self.as_of}


@dataclass(frozen=True, slots=True)
class ResolutionPlan(Generic[T]):
    """
    A validated, priority-sorted source list plus the TTL written with each live value.

    Validation happens here so that a broken adapter fails at startup, not on
    the first call.
    """

    sources: Sequence[SourceDescriptor[T]]
    ttl_ms: int

    def __post_init__(self) -> None:
        if not self.sources:
            raise ConfigurationError("Resolution plan has no sources.")
        if self.ttl_ms <= 0:
            raise ConfigurationError(f"Resolution plan TTL must be positive. ttl_ms={self.ttl_ms}")

        names = [s.name for s in self.sources]
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicate source names in resolution plan. names={names}")
        priorities = [s.priority for s in self.sources]
        if len(set(priorities)) != len(priorities):
            raise ConfigurationError(f"Duplicate source priorities in resolution plan. priorities={priorities}")
        for source in self.sources:
            if source.timeout_ms <= 0:
                raise ConfigurationError(
                    f"Source timeout must be positive. source={source.name} timeout_ms={source.timeout_ms}"
                )

        object.__setattr__(self, "sources", tuple(sorted(self.sources, key=lambda s: s.priority)))

    @property
    def source_names(self) -> list[str]:
        return [s.name for s in self.sources]
