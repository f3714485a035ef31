from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from agri_resolver.config.models import GeoSettings
from agri_resolver.geo.models import GeoLocation, LocationStats
from agri_resolver.http.client import HttpClient
from agri_resolver.resolver.errors import ConfigurationError, MalformedResponse, SourceUnavailable
from agri_resolver.resolver.models import ResolutionPlan, ResolutionResult, SourceDescriptor
from agri_resolver.resolver.orchestrator import FallbackOrchestrator

logger = logging.getLogger(__name__)

SOURCE_NAME = "geo_api"


def _parse_locations(payload: Any) -> List[dict]:
    if not isinstance(payload, dict) or not isinstance(payload.get("locations"), list):
        raise MalformedResponse(SOURCE_NAME, "response has no 'locations' list")
    try:
        return [GeoLocation.model_validate(item).to_record() for item in payload["locations"]]
    except ValidationError as e:
        raise MalformedResponse(SOURCE_NAME, f"invalid location record: {e.error_count()} errors") from e


def _latest(records: List[dict]) -> Optional[dict]:
    if not records:
        return None
    locations = [GeoLocation.model_validate(r) for r in records]
    return max(locations, key=lambda loc: loc.timestamp).to_record()


class GeoHistoryService:
    """
    Supply-chain location history of crop tokens.

    Histories, nearby searches and stats share the long TTL; the current
    location of a token moves faster and uses its own shorter one.
    """

    def __init__(self, *, settings: GeoSettings, orchestrator: FallbackOrchestrator, http: HttpClient) -> None:
        self._settings = settings
        self._orchestrator = orchestrator
        self._http = http
        self._base_url = settings.base_url.rstrip("/")
        self._mock_histories = self._validate_mocks(settings)

        self._history_plan = self._plan(self._fetch_history, settings.cache_ttl_ms)
        self._current_plan = self._plan(self._fetch_current, settings.current_cache_ttl_ms)
        self._nearby_plan = self._plan(self._fetch_nearby, settings.cache_ttl_ms)
        self._stats_plan = self._plan(self._fetch_stats, settings.cache_ttl_ms)

    @staticmethod
    def _validate_mocks(settings: GeoSettings) -> dict[str, List[dict]]:
        mocks: dict[str, List[dict]] = {}
        for token_id, records in settings.mock_histories.items():
            try:
                mocks[token_id] = [GeoLocation.model_validate(r).to_record() for r in records]
            except ValidationError as e:
                raise ConfigurationError(f"Invalid mock geo history. token_id={token_id}") from e
        return mocks

    def _plan(self, fetch, ttl_ms: int) -> ResolutionPlan:
        return ResolutionPlan(
            sources=[SourceDescriptor(name=SOURCE_NAME, priority=0, timeout_ms=self._settings.timeout_ms, fetch=fetch)],
            ttl_ms=ttl_ms,
        )

    async def _fetch_history(self, token_id: str) -> List[dict]:
        payload = await self._http.get_json(SOURCE_NAME, f"{self._base_url}/token/{token_id}")
        return _parse_locations(payload)

    async def _fetch_current(self, token_id: str) -> dict:
        try:
            payload = await self._http.get_json(SOURCE_NAME, f"{self._base_url}/current/{token_id}")
        except SourceUnavailable as e:
            if e.status == 404:
                # No location recorded for this token.
                return {}
            raise
        if not isinstance(payload, dict) or not isinstance(payload.get("location"), dict):
            raise MalformedResponse(SOURCE_NAME, "response has no 'location' object")
        try:
            return GeoLocation.model_validate(payload["location"]).to_record()
        except ValidationError as e:
            raise MalformedResponse(SOURCE_NAME, f"invalid location record: {e.error_count()} errors") from e

    async def _fetch_nearby(self, query: Tuple[float, float, float]) -> List[dict]:
        lat, lng, radius_km = query
        payload = await self._http.get_json(
            SOURCE_NAME,
            f"{self._base_url}/nearby",
            params={"lat": str(lat), "lng": str(lng), "radius": str(radius_km)},
        )
        return _parse_locations(payload)

    async def _fetch_stats(self, _: Any) -> dict:
        payload = await self._http.get_json(SOURCE_NAME, f"{self._base_url}/stats")
        if not isinstance(payload, dict) or not isinstance(payload.get("stats"), dict):
            raise MalformedResponse(SOURCE_NAME, "response has no 'stats' object")
        try:
            return LocationStats.model_validate(payload["stats"]).to_record()
        except ValidationError as e:
            raise MalformedResponse(SOURCE_NAME, "invalid stats object") from e

    def mock_history(self, token_id: str) -> List[dict]:
        return list(self._mock_histories.get(token_id, []))

    async def get_location_history(self, token_id: str) -> ResolutionResult[List[GeoLocation]]:
        token_id = token_id.strip()
        if not token_id:
            raise ValueError("token_id must not be empty")
        result = await self._orchestrator.resolve_plan(
            f"geo:history:{token_id}",
            self._history_plan,
            self.mock_history(token_id),
            params=token_id,
        )
        return ResolutionResult(
            value=[GeoLocation.model_validate(r) for r in result.value],
            tier=result.tier,
            as_of=result.as_of,
        )

    async def get_current_location(self, token_id: str) -> ResolutionResult[Optional[GeoLocation]]:
        token_id = token_id.strip()
        if not token_id:
            raise ValueError("token_id must not be empty")
        result = await self._orchestrator.resolve_plan(
            f"geo:current:{token_id}",
            self._current_plan,
            _latest(self.mock_history(token_id)),
            params=token_id,
        )
        value = GeoLocation.model_validate(result.value) if result.value else None
        return ResolutionResult(value=value, tier=result.tier, as_of=result.as_of)

    async def find_nearby_locations(
        self, lat: float, lng: float, radius_km: float = 10
    ) -> ResolutionResult[List[GeoLocation]]:
        if radius_km <= 0:
            raise ValueError(f"radius_km must be positive, got {radius_km}")
        query = (float(lat), float(lng), float(radius_km))
        result = await self._orchestrator.resolve_plan(
            "geo:nearby:{}:{}:{}".format(*query),
            self._nearby_plan,
            [],
            params=query,
        )
        return ResolutionResult(
            value=[GeoLocation.model_validate(r) for r in result.value],
            tier=result.tier,
            as_of=result.as_of,
        )

    async def get_location_stats(self) -> ResolutionResult[LocationStats]:
        result = await self._orchestrator.resolve_plan(
            "geo:stats",
            self._stats_plan,
            LocationStats().to_record(),
        )
        return ResolutionResult(
            value=LocationStats.model_validate(result.value),
            tier=result.tier,
            as_of=result.as_of,
        )
