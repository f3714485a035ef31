from __future__ import annotations

import logging
from typing import Dict, Optional

from agri_resolver.config.models import PriceSettings
from agri_resolver.http.client import HttpClient
from agri_resolver.price.bridge import CrossRateBridge
from agri_resolver.price.models import BRIDGE_CURRENCY, is_usable_price, make_pair, normalize_asset, round_quote, split_pair
from agri_resolver.price.sources import ChainlinkFeedSource, CoinGeckoSource, CoinMarketCapSource, FiatRateSource
from agri_resolver.resolver.errors import ConfigurationError
from agri_resolver.resolver.models import ResolutionPlan, ResolutionResult, SourceDescriptor, worse_tier
from agri_resolver.resolver.orchestrator import FallbackOrchestrator

logger = logging.getLogger(__name__)


class PriceOracle:
    """
    Price quotes and exchange rates for the marketplace.

    Every `ASSET/USD` pair gets its own plan: the on-chain Chainlink feed first
    (when a feed and RPC endpoint are configured), CoinGecko second, and
    CoinMarketCap last when an API key is present. Fiat currencies resolve
    through the exchange-rate API. Everything else goes through the bridge.
    """

    def __init__(
        self,
        *,
        settings: PriceSettings,
        orchestrator: FallbackOrchestrator,
        http: HttpClient,
    ) -> None:
        self._settings = settings
        self._orchestrator = orchestrator

        self._chainlink = ChainlinkFeedSource(settings=settings, http=http)
        self._coingecko = CoinGeckoSource(settings=settings, http=http)
        self._coinmarketcap = CoinMarketCapSource(settings=settings, http=http)
        self._fiat = FiatRateSource(settings=settings, http=http)

        self._mock_usd = self._build_mock_table(settings)
        self._crypto_assets = sorted(self._normalized(settings.mock_prices_usd))
        self._fiat_assets = sorted(a for a in self._mock_usd if a not in self._crypto_assets)
        self._plans = self._build_plans()

        self._bridge = CrossRateBridge(orchestrator, plan_for=self.plan_for, mock_for=self.mock_rate)
        logger.info(
            "Price oracle configured. pairs=%d chainlink_rpc=%s coinmarketcap_key=%s",
            len(self._plans),
            self._chainlink.is_configured(),
            self._coinmarketcap.has_api_key(),
        )

    @staticmethod
    def _normalized(table: Dict[str, float]) -> Dict[str, float]:
        return {normalize_asset(k): float(v) for k, v in table.items()}

    def _build_mock_table(self, settings: PriceSettings) -> Dict[str, float]:
        crypto = self._normalized(settings.mock_prices_usd)
        fiat = self._normalized(settings.mock_fiat_per_usd)
        if not crypto:
            raise ConfigurationError("price.mock_prices_usd must list at least one asset.")

        table: Dict[str, float] = {BRIDGE_CURRENCY: 1.0}
        for asset, usd in crypto.items():
            if usd <= 0:
                raise ConfigurationError(f"Mock price must be positive. asset={asset} price={usd}")
            table[asset] = usd
        for asset, per_usd in fiat.items():
            if per_usd <= 0:
                raise ConfigurationError(f"Mock fiat rate must be positive. asset={asset} rate={per_usd}")
            if asset in crypto:
                raise ConfigurationError(f"Asset listed as both crypto and fiat. asset={asset}")
            if asset != BRIDGE_CURRENCY:
                table[asset] = 1.0 / per_usd
        return table

    def _build_plans(self) -> Dict[str, ResolutionPlan[float]]:
        ttl = self._settings.cache_ttl_ms
        plans: Dict[str, ResolutionPlan[float]] = {}

        for asset in self._crypto_assets:
            pair = make_pair(asset, BRIDGE_CURRENCY)
            sources: list[SourceDescriptor[float]] = []
            if self._chainlink.has_feed(pair):
                sources.append(self._chainlink_descriptor(0))
            if self._coingecko.supports(asset):
                sources.append(
                    SourceDescriptor(
                        name=self._coingecko.name,
                        priority=1,
                        timeout_ms=self._settings.coingecko_timeout_ms,
                        fetch=self._coingecko.fetch,
                        accept=is_usable_price,
                    )
                )
            sources.append(
                SourceDescriptor(
                    name=self._coinmarketcap.name,
                    priority=2,
                    timeout_ms=self._settings.coinmarketcap_timeout_ms,
                    fetch=self._coinmarketcap.fetch,
                    accept=is_usable_price,
                    precondition=self._coinmarketcap.has_api_key,
                )
            )
            plans[pair] = ResolutionPlan(sources=sources, ttl_ms=ttl)

        for asset in self._fiat_assets:
            if asset == BRIDGE_CURRENCY:
                continue
            pair = make_pair(asset, BRIDGE_CURRENCY)
            plans[pair] = ResolutionPlan(
                sources=[
                    SourceDescriptor(
                        name=self._fiat.name,
                        priority=0,
                        timeout_ms=self._settings.fiat_timeout_ms,
                        fetch=self._fiat.fetch,
                        accept=is_usable_price,
                    )
                ],
                ttl_ms=ttl,
            )

        # Feeds quoted in something other than USD are direct pairs of their own.
        for raw_pair in self._settings.chainlink_feeds:
            base, quote = split_pair(raw_pair)
            pair = make_pair(base, quote)
            if pair in plans:
                continue
            for asset in (base, quote):
                if asset not in self._mock_usd:
                    raise ConfigurationError(f"Chainlink feed references an asset without a mock price. pair={pair}")
            plans[pair] = ResolutionPlan(sources=[self._chainlink_descriptor(0)], ttl_ms=ttl)

        return plans

    def _chainlink_descriptor(self, priority: int) -> SourceDescriptor[float]:
        return SourceDescriptor(
            name=self._chainlink.name,
            priority=priority,
            timeout_ms=self._settings.chainlink_timeout_ms,
            fetch=self._chainlink.fetch,
            accept=is_usable_price,
            precondition=self._chainlink.is_configured,
        )

    @property
    def supported_assets(self) -> list[str]:
        return sorted(self._mock_usd)

    @property
    def crypto_assets(self) -> list[str]:
        return list(self._crypto_assets)

    @property
    def fiat_assets(self) -> list[str]:
        return sorted(set(self._fiat_assets) | {BRIDGE_CURRENCY})

    def plan_for(self, pair: str) -> Optional[ResolutionPlan[float]]:
        return self._plans.get(pair)

    def mock_rate(self, pair: str) -> Optional[float]:
        base, quote = split_pair(pair)
        base_usd = self._mock_usd.get(base)
        quote_usd = self._mock_usd.get(quote)
        if base_usd is None or quote_usd is None:
            return None
        return base_usd / quote_usd

    def _check_supported(self, *assets: str) -> None:
        for asset in assets:
            if asset not in self._mock_usd:
                raise ValueError(f"Unsupported asset: {asset}. supported={', '.join(self.supported_assets)}")

    async def get_price(self, pair: str) -> ResolutionResult[float]:
        base, quote = split_pair(pair)
        return await self.get_exchange_rate(base, quote)

    async def get_exchange_rate(self, base: str, quote: str) -> ResolutionResult[float]:
        base = normalize_asset(base)
        quote = normalize_asset(quote)
        self._check_supported(base, quote)
        return await self._bridge.rate(base, quote)

    async def update_all_prices(self) -> Dict[str, dict]:
        """Refresh every configured Chainlink pair; `success` means the value came from a live source."""
        results: Dict[str, dict] = {}
        for raw_pair in self._settings.chainlink_feeds:
            base, quote = split_pair(raw_pair)
            pair = make_pair(base, quote)
            result = await self.get_exchange_rate(base, quote)
            results[pair] = {
                "price": self._present(result.value),
                "tier": result.tier,
                "as_of": result.as_of,
                "success": result.is_live,
            }
        return results

    async def get_token_price(self, symbol: str = "MATIC", currency: str = "USD") -> dict:
        symbol = normalize_asset(symbol)
        currency = normalize_asset(currency)
        result = await self.get_exchange_rate(symbol, currency)
        return {
            "symbol": symbol,
            "currency": currency,
            "price": self._present(result.value),
            "tier": result.tier,
            "as_of": result.as_of,
        }

    async def get_crypto_prices(self, currency: str = "USD") -> dict:
        currency = normalize_asset(currency)
        prices: Dict[str, float] = {}
        tiers: Dict[str, str] = {}
        for asset in self._crypto_assets:
            result = await self.get_exchange_rate(asset, currency)
            prices[asset] = self._present(result.value)
            tiers[asset] = result.tier
        return {"currency": currency, "prices": prices, "tiers": tiers, "tier": self._overall(tiers)}

    async def get_fiat_rates(self, base: str = "USD") -> dict:
        base = normalize_asset(base)
        rates: Dict[str, float] = {}
        tiers: Dict[str, str] = {}
        for asset in self.fiat_assets:
            result = await self.get_exchange_rate(base, asset)
            rates[asset] = self._present(result.value)
            tiers[asset] = result.tier
        return {"base": base, "rates": rates, "tiers": tiers, "tier": self._overall(tiers)}

    async def convert_currency(self, amount: float, from_asset: str = "USD", to_asset: str = "USD") -> dict:
        from_asset = normalize_asset(from_asset)
        to_asset = normalize_asset(to_asset)
        result = await self.get_exchange_rate(from_asset, to_asset)
        return {
            "amount": amount,
            "from": from_asset,
            "to": to_asset,
            "result": self._present(amount * result.value),
            "tier": result.tier,
        }

    def _present(self, value: float) -> float:
        return round_quote(value, self._settings.display_precision)

    @staticmethod
    def _overall(tiers: Dict[str, str]) -> str:
        overall = "live"
        for tier in tiers.values():
            overall = worse_tier(overall, tier)
        return overall
