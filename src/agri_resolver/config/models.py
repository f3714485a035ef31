from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = "agri-resolver"


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = 7


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = ""
    rotation: FileRotationSettings = FileRotationSettings()


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "INFO"
    file: FileLoggingSettings = FileLoggingSettings()
    # logger name -> level
    loggers: Dict[str, str] = Field(default_factory=lambda: {"aiohttp": "WARNING"})


class CacheSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Empty path keeps the cache in memory only.
    path: str = "data/cache/resolver-cache.json"


class HttpSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: int = 0
    user_agent: str = "agri-resolver/0.1"


class PriceSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    cache_ttl_ms: int = 5 * 60 * 1000
    display_precision: int = 6

    # Chainlink aggregators, keyed by "ASSET/USD"
    rpc_url: str = ""
    chainlink_feeds: Dict[str, str] = Field(
        default_factory=lambda: {
            "MATIC/USD": "0xAB594600376Ec9fD91F8e885dADF0CE036862dE0",
            "ETH/USD": "0xF9680D99D6C9589e2a93a78A04A279e509205945",
            "BTC/USD": "0xc907E116054Ad103354f2D350FD2514433D57F6f",
        }
    )
    chainlink_decimals: int = 8
    chainlink_timeout_ms: int = 2000

    @field_validator("chainlink_feeds")
    @classmethod
    def _normalize_feed_pairs(cls, feeds: Dict[str, str]) -> Dict[str, str]:
        normalized: Dict[str, str] = {}
        for raw_pair, address in feeds.items():
            parts = [p.strip().upper() for p in raw_pair.split("/")]
            if len(parts) != 2 or not all(parts):
                raise ValueError(f"Chainlink feed key must look like BASE/QUOTE, got {raw_pair!r}")
            pair = "/".join(parts)
            if pair in normalized:
                raise ValueError(f"Chainlink feed listed twice. pair={pair}")
            normalized[pair] = address
        return normalized

    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    coingecko_ids: Dict[str, str] = Field(
        default_factory=lambda: {
            "MATIC": "matic-network",
            "ETH": "ethereum",
            "BTC": "bitcoin",
            "USDT": "tether",
        }
    )
    coingecko_timeout_ms: int = 3000

    coinmarketcap_base_url: str = "https://pro-api.coinmarketcap.com/v1"
    coinmarketcap_api_key: str = ""
    coinmarketcap_timeout_ms: int = 3000

    fiat_rates_base_url: str = "https://open.er-api.com/v6"
    fiat_timeout_ms: int = 3000

    # Static fallback tables
    mock_prices_usd: Dict[str, float] = Field(
        default_factory=lambda: {"MATIC": 0.5, "ETH": 3000.0, "BTC": 60000.0, "USDT": 1.0}
    )
    mock_fiat_per_usd: Dict[str, float] = Field(
        default_factory=lambda: {"USD": 1.0, "EUR": 0.92, "INR": 83.0}
    )


class GeoSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str = "http://localhost:5000/api/geo-location"
    timeout_ms: int = 5000
    cache_ttl_ms: int = 30 * 60 * 1000
    current_cache_ttl_ms: int = 5 * 60 * 1000

    # token id -> list of location records
    mock_histories: Dict[str, list] = Field(default_factory=dict)


class NarrativeLLMSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-3.5-turbo"
    timeout_ms: int = 15000


class NarrativeSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    api_base_url: str = "http://localhost:5000/api/narrative"
    api_timeout_ms: int = 5000
    cache_ttl_ms: int = 30 * 60 * 1000
    llm: NarrativeLLMSettings = NarrativeLLMSettings()

    # kind -> crop type -> text; each kind needs a "default" entry
    mock_narratives: Optional[Dict[str, Dict[str, str]]] = None


class AppConfig(BaseModel):
    """Effective runtime configuration after applying all precedence rules."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    app: AppSettings = AppSettings()
    logging: LoggingSettings = LoggingSettings()
    cache: CacheSettings = CacheSettings()
    http: HttpSettings = HttpSettings()
    price: PriceSettings = PriceSettings()
    geo: GeoSettings = GeoSettings()
    narrative: NarrativeSettings = NarrativeSettings()


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Optional inputs for a configuration loader.

    Implementations may use these to control where configuration is read from.
    """

    yaml_path: str = "data/config/config.yaml"
    env_prefix: str = "AGRI__"
    dotenv_path: Optional[str] = "data/.env"
