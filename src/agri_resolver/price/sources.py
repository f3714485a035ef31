from __future__ import annotations

import logging
from typing import Any

from agri_resolver.config.models import PriceSettings
from agri_resolver.http.client import HttpClient
from agri_resolver.price.models import BRIDGE_CURRENCY, parse_price, split_pair
from agri_resolver.resolver.errors import MalformedResponse, SourceUnavailable

logger = logging.getLogger(__name__)

# keccak256("latestRoundData()")[:4]
LATEST_ROUND_DATA_SELECTOR = "0xfeaf968c"
_WORD_HEX_CHARS = 64


def decode_latest_round_answer(source: str, result_hex: Any, decimals: int) -> float:
    """
    Decode the `answer` field of an ABI-encoded latestRoundData() return value.

    The return tuple is (roundId, answer, startedAt, updatedAt, answeredInRound),
    five 32-byte words; `answer` is the second one and is a signed int256.
    """
    if not isinstance(result_hex, str) or not result_hex.startswith("0x"):
        raise MalformedResponse(source, f"eth_call result is not a hex string: {result_hex!r}")
    body = result_hex[2:]
    if len(body) < 5 * _WORD_HEX_CHARS:
        raise MalformedResponse(source, f"eth_call result too short: {len(body)} hex chars")
    try:
        answer = int(body[_WORD_HEX_CHARS : 2 * _WORD_HEX_CHARS], 16)
    except ValueError as e:
        raise MalformedResponse(source, "eth_call result is not valid hex") from e
    if answer >= 2**255:
        answer -= 2**256
    return parse_price(source, answer / (10**decimals))


class ChainlinkFeedSource:
    """Reads a Chainlink aggregator's latestRoundData() through a node's JSON-RPC eth_call."""

    name = "chainlink"

    def __init__(self, *, settings: PriceSettings, http: HttpClient) -> None:
        self._settings = settings
        self._http = http

    def has_feed(self, pair: str) -> bool:
        return pair in self._settings.chainlink_feeds

    def is_configured(self) -> bool:
        return bool(self._settings.rpc_url.strip())

    async def fetch(self, pair: str) -> float:
        address = self._settings.chainlink_feeds.get(pair)
        if not address:
            raise SourceUnavailable(self.name, f"no price feed configured for {pair}")

        request = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "eth_call",
            "params": [{"to": address, "data": LATEST_ROUND_DATA_SELECTOR}, "latest"],
        }
        data = await self._http.post_json(self.name, self._settings.rpc_url, payload=request)
        if not isinstance(data, dict):
            raise MalformedResponse(self.name, "JSON-RPC response is not an object")
        if data.get("error"):
            raise SourceUnavailable(self.name, f"JSON-RPC error: {data['error']}")
        return decode_latest_round_answer(self.name, data.get("result"), self._settings.chainlink_decimals)


class CoinGeckoSource:
    name = "coingecko"

    def __init__(self, *, settings: PriceSettings, http: HttpClient) -> None:
        self._settings = settings
        self._http = http

    def supports(self, asset: str) -> bool:
        return asset in self._settings.coingecko_ids

    async def fetch(self, pair: str) -> float:
        base, quote = split_pair(pair)
        coin_id = self._settings.coingecko_ids.get(base)
        if not coin_id:
            raise SourceUnavailable(self.name, f"no CoinGecko id known for {base}")

        vs_currency = quote.lower()
        url = f"{self._settings.coingecko_base_url.rstrip('/')}/simple/price"
        data = await self._http.get_json(self.name, url, params={"ids": coin_id, "vs_currencies": vs_currency})
        try:
            raw = data[coin_id][vs_currency]
        except (KeyError, TypeError) as e:
            raise MalformedResponse(self.name, f"no {coin_id}/{vs_currency} quote in response") from e
        return parse_price(self.name, raw)


class CoinMarketCapSource:
    name = "coinmarketcap"

    def __init__(self, *, settings: PriceSettings, http: HttpClient) -> None:
        self._settings = settings
        self._http = http

    def has_api_key(self) -> bool:
        return bool(self._settings.coinmarketcap_api_key.strip())

    async def fetch(self, pair: str) -> float:
        base, quote = split_pair(pair)
        url = f"{self._settings.coinmarketcap_base_url.rstrip('/')}/cryptocurrency/quotes/latest"
        data = await self._http.get_json(
            self.name,
            url,
            params={"symbol": base, "convert": quote},
            headers={"X-CMC_PRO_API_KEY": self._settings.coinmarketcap_api_key},
        )
        try:
            raw = data["data"][base]["quote"][quote]["price"]
        except (KeyError, TypeError) as e:
            raise MalformedResponse(self.name, f"no {base}/{quote} quote in response") from e
        return parse_price(self.name, raw)


class FiatRateSource:
    """USD price of a fiat currency, from an exchange-rate API quoting units per USD."""

    name = "fiat_rates"

    def __init__(self, *, settings: PriceSettings, http: HttpClient) -> None:
        self._settings = settings
        self._http = http

    async def fetch(self, pair: str) -> float:
        base, quote = split_pair(pair)
        if quote != BRIDGE_CURRENCY:
            raise SourceUnavailable(self.name, f"only {BRIDGE_CURRENCY} quotes are supported, got {pair}")

        url = f"{self._settings.fiat_rates_base_url.rstrip('/')}/latest/{BRIDGE_CURRENCY}"
        data = await self._http.get_json(self.name, url)
        if not isinstance(data, dict):
            raise MalformedResponse(self.name, "response is not an object")
        if data.get("result", "success") != "success":
            raise SourceUnavailable(self.name, f"API reported failure: {data.get('error-type', data.get('result'))}")
        try:
            units_per_usd = parse_price(self.name, data["rates"][base])
        except (KeyError, TypeError) as e:
            raise MalformedResponse(self.name, f"no rate for {base} in response") from e
        return 1.0 / units_per_usd
