from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional, Sequence, TypeVar

from agri_resolver.cache.store import TTLCacheStore
from agri_resolver.resolver.errors import ConfigurationError, MalformedResponse, SourceUnavailable
from agri_resolver.resolver.models import ResolutionPlan, ResolutionResult, SourceDescriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FallbackOrchestrator:
    """
    Resolves a key through live sources, then the cache, then a static default.

    Sources are tried once each in ascending priority, every attempt bounded
    by its own timeout. The cache is written only after a live success, so
    cached and mock answers never feed back into the cache.
    """

    def __init__(self, cache: TTLCacheStore) -> None:
        self._cache = cache

    @property
    def cache(self) -> TTLCacheStore:
        return self._cache

    async def resolve(
        self,
        key: str,
        sources: Sequence[SourceDescriptor[T]],
        ttl_ms: int,
        mock_value: Optional[T],
        params: Any = None,
    ) -> ResolutionResult[T]:
        if not sources and mock_value is None:
            raise ConfigurationError(f"Nothing to resolve from: no sources and no mock value. key={key}")

        for source in sorted(sources, key=lambda s: s.priority):
            if not source.precondition():
                logger.debug("Source skipped, precondition not met. key=%s source=%s", key, source.name)
                continue
            value = await self._attempt(key, source, params)
            if value is None:
                continue
            entry = self._cache.set(key, value, ttl_ms)
            logger.debug("Resolved live. key=%s source=%s", key, source.name)
            return ResolutionResult(value=value, tier="live", as_of=entry.written_at_ms)

        entry = self._cache.get(key)
        if entry is not None:
            logger.info(
                "All sources failed, serving cached value. key=%s fresh=%s written_at_ms=%s",
                key,
                self._cache.is_fresh(entry),
                entry.written_at_ms,
            )
            return ResolutionResult(value=entry.value, tier="cached", as_of=entry.written_at_ms)

        logger.warning("All sources failed and nothing is cached, serving mock value. key=%s", key)
        return ResolutionResult(value=mock_value, tier="mock", as_of=None)

    async def resolve_plan(
        self,
        key: str,
        plan: ResolutionPlan[T],
        mock_value: Optional[T],
        params: Any = None,
    ) -> ResolutionResult[T]:
        return await self.resolve(key, plan.sources, plan.ttl_ms, mock_value, params)

    async def _attempt(self, key: str, source: SourceDescriptor[T], params: Any) -> Optional[T]:
        started = time.monotonic()
        try:
            value = await asyncio.wait_for(source.fetch(params), timeout=source.timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.warning(
                "Source timed out. key=%s source=%s timeout_ms=%s",
                key,
                source.name,
                source.timeout_ms,
            )
            return None
        except SourceUnavailable as e:
            logger.warning("Source unavailable. key=%s source=%s reason=%s", key, source.name, e.reason)
            return None
        except MalformedResponse as e:
            logger.warning("Source returned a malformed response. key=%s source=%s reason=%s", key, source.name, e.reason)
            return None
        except Exception:
            logger.exception("Source failed unexpectedly, treating it as unavailable. key=%s source=%s", key, source.name)
            return None

        if value is None:
            logger.warning("Source returned no value. key=%s source=%s", key, source.name)
            return None
        if not source.accept(value):
            logger.warning("Source returned an unusable value. key=%s source=%s value=%r", key, source.name, value)
            return None
        logger.debug(
            "Source succeeded. key=%s source=%s duration=%.3fs",
            key,
            source.name,
            time.monotonic() - started,
        )
        return value
