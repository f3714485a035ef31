"""Price quotes, exchange rates and the USD cross-rate bridge."""

from agri_resolver.price.bridge import CrossRateBridge
from agri_resolver.price.oracle import PriceOracle
from agri_resolver.price.sources import ChainlinkFeedSource, CoinGeckoSource, CoinMarketCapSource, FiatRateSource

__all__ = [
    "ChainlinkFeedSource",
    "CoinGeckoSource",
    "CoinMarketCapSource",
    "CrossRateBridge",
    "FiatRateSource",
    "PriceOracle",
]
