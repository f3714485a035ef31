from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

from agri_resolver.resolver.errors import SourceUnavailable


class FakeClock:
    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeHttpClient:
    """
    Stands in for HttpClient. Responses are keyed by (method, url); a response
    may be a payload, an exception instance to raise, or a callable taking the
    request kwargs.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, str], Any]] = None) -> None:
        self.responses: Dict[Tuple[str, str], Any] = dict(responses or {})
        self.calls: List[dict] = []

    async def get_json(self, source: str, url: str, *, params=None, headers=None) -> Any:
        return await self._respond("GET", source, url, params=params, headers=headers, payload=None)

    async def post_json(self, source: str, url: str, *, payload: Any, headers=None) -> Any:
        return await self._respond("POST", source, url, params=None, headers=headers, payload=payload)

    async def close(self) -> None:
        return None

    async def _respond(self, method: str, source: str, url: str, **kwargs: Any) -> Any:
        self.calls.append({"method": method, "source": source, "url": url, **kwargs})
        await asyncio.sleep(0)
        if (method, url) not in self.responses:
            raise SourceUnavailable(source, f"no route to {url}")
        response = self.responses[(method, url)]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(**kwargs)
        return response

    def urls(self) -> List[str]:
        return [call["url"] for call in self.calls]


def returning(value: Any) -> Callable[[Any], Any]:
    async def _fetch(_params: Any) -> Any:
        return value

    return _fetch


def raising(exc: Exception) -> Callable[[Any], Any]:
    async def _fetch(_params: Any) -> Any:
        raise exc

    return _fetch


def hanging() -> Callable[[Any], Any]:
    async def _fetch(_params: Any) -> Any:
        await asyncio.sleep(3600)

    return _fetch


class CountingFetch:
    def __init__(self, fetch: Callable[[Any], Any]) -> None:
        self._fetch = fetch
        self.calls: List[Any] = []

    async def __call__(self, params: Any) -> Any:
        self.calls.append(params)
        return await self._fetch(params)
