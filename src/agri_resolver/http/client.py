from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

import aiohttp

from agri_resolver.config.models import HttpSettings
from agri_resolver.resolver.errors import MalformedResponse, SourceUnavailable

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Thin aiohttp wrapper for remote sources.

    Every failure leaves this class as SourceUnavailable (transport, status) or
    MalformedResponse (body is not JSON). Rate limits and 5xx are retried with
    exponential backoff up to `max_retries`; the caller's timeout still bounds
    the whole exchange.
    """

    def __init__(self, settings: HttpSettings, session: Optional[aiohttp.ClientSession] = None) -> None:
        self._settings = settings
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> HttpClient:
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"User-Agent": self._settings.user_agent})
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def get_json(
        self,
        source: str,
        url: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        return await self._request(source, "GET", url, params=params, headers=headers, payload=None)

    async def post_json(
        self,
        source: str,
        url: str,
        *,
        payload: Any,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        return await self._request(source, "POST", url, params=None, headers=headers, payload=payload)

    async def _request(
        self,
        source: str,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, str]],
        headers: Optional[Mapping[str, str]],
        payload: Any,
    ) -> Any:
        session = self._ensure_session()
        max_retries = max(0, self._settings.max_retries)
        last_error: Optional[SourceUnavailable] = None

        for attempt in range(max_retries + 1):
            try:
                async with session.request(method, url, params=params, headers=headers, json=payload) as resp:
                    if 200 <= resp.status < 300:
                        try:
                            return await resp.json(content_type=None)
                        except ValueError as e:
                            raise MalformedResponse(source, f"response body is not JSON: {e}") from e

                    # Retry on rate limits (429) or server errors (5xx)
                    if resp.status == 429 or 500 <= resp.status < 600:
                        logger.warning(
                            "HTTP request failed and may be retried. source=%s status=%s attempt=%s",
                            source,
                            resp.status,
                            attempt + 1,
                        )
                        last_error = SourceUnavailable(source, f"HTTP {resp.status}", status=resp.status)
                    else:
                        raise SourceUnavailable(source, f"HTTP {resp.status}", status=resp.status)
            except aiohttp.ClientError as e:
                logger.warning(
                    "HTTP request hit a network error and may be retried. source=%s error=%s attempt=%s",
                    source,
                    e,
                    attempt + 1,
                )
                last_error = SourceUnavailable(source, f"network error: {e}")

            if attempt < max_retries:
                await asyncio.sleep(0.5 * (2**attempt))

        if last_error is not None:
            raise last_error
        raise SourceUnavailable(source, "max retries exceeded")
