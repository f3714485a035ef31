from __future__ import annotations

import logging
from typing import Optional

from agri_resolver.cache.backends import InMemoryBackend, JsonFileBackend, PersistentBackend
from agri_resolver.cache.store import Clock, TTLCacheStore, epoch_ms
from agri_resolver.config.models import AppConfig
from agri_resolver.geo.service import GeoHistoryService
from agri_resolver.http.client import HttpClient
from agri_resolver.narrative.service import NarrativeService
from agri_resolver.price.oracle import PriceOracle
from agri_resolver.resolver.orchestrator import FallbackOrchestrator

logger = logging.getLogger(__name__)


def build_backend(config: AppConfig) -> PersistentBackend:
    path = config.cache.path.strip()
    if not path:
        logger.warning("No cache path configured; cached tier will not survive a restart.")
        return InMemoryBackend()
    return JsonFileBackend(path)


class ResolverRuntime:
    """
    Owns the shared cache store, HTTP client and the three consumer adapters.

    Adapters are constructed eagerly so configuration errors surface on
    startup. Use as an async context manager to close the HTTP session.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        backend: Optional[PersistentBackend] = None,
        http: Optional[HttpClient] = None,
        clock: Clock = epoch_ms,
    ) -> None:
        self.config = config
        self.cache = TTLCacheStore(backend if backend is not None else build_backend(config), clock=clock)
        self.cache.init()
        self.http = http if http is not None else HttpClient(config.http)
        self.orchestrator = FallbackOrchestrator(self.cache)

        self.prices = PriceOracle(settings=config.price, orchestrator=self.orchestrator, http=self.http)
        self.geo = GeoHistoryService(settings=config.geo, orchestrator=self.orchestrator, http=self.http)
        self.narratives = NarrativeService(settings=config.narrative, orchestrator=self.orchestrator, http=self.http)

    async def __aenter__(self) -> ResolverRuntime:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.http.close()
