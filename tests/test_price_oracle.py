import unittest

from agri_resolver.cache import InMemoryBackend, TTLCacheStore
from agri_resolver.config.models import PriceSettings
from agri_resolver.price.oracle import PriceOracle
from agri_resolver.price.sources import LATEST_ROUND_DATA_SELECTOR, decode_latest_round_answer
from agri_resolver.resolver import ConfigurationError, FallbackOrchestrator, MalformedResponse, SourceUnavailable

from support import FakeClock, FakeHttpClient

COINGECKO_URL = "https://api.coingecko.com/api/v3/simple/price"
CMC_URL = "https://pro-api.coinmarketcap.com/v1/cryptocurrency/quotes/latest"
FIAT_URL = "https://open.er-api.com/v6/latest/USD"
RPC_URL = "https://polygon-rpc.example"


def _word(value: int) -> str:
    return format(value % 2**256, "064x")


def _round_data(answer: int) -> str:
    return "0x" + "".join(_word(v) for v in (18, answer, 1, 2, 18))


def _coingecko(prices: dict):
    def respond(params, headers, payload):
        coin_id = params["ids"]
        vs = params["vs_currencies"]
        if coin_id not in prices:
            return {}
        return {coin_id: {vs: prices[coin_id]}}

    return respond


def _oracle(http: FakeHttpClient, **overrides) -> PriceOracle:
    store = TTLCacheStore(InMemoryBackend(), clock=FakeClock())
    store.init()
    return PriceOracle(
        settings=PriceSettings(**overrides),
        orchestrator=FallbackOrchestrator(store),
        http=http,
    )


class ChainlinkDecodingTests(unittest.TestCase):
    def test_answer_is_second_word_scaled_by_decimals(self) -> None:
        self.assertAlmostEqual(decode_latest_round_answer("chainlink", _round_data(73_000_000), 8), 0.73)

    def test_negative_answer_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponse):
            decode_latest_round_answer("chainlink", _round_data(-5), 8)

    def test_short_result_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponse):
            decode_latest_round_answer("chainlink", "0x" + _word(1), 8)

    def test_non_hex_result_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponse):
            decode_latest_round_answer("chainlink", None, 8)


class PriceOracleWiringTests(unittest.TestCase):
    def test_crypto_pairs_order_chainlink_then_coingecko_then_coinmarketcap(self) -> None:
        oracle = _oracle(FakeHttpClient())
        plan = oracle.plan_for("MATIC/USD")

        self.assertEqual(plan.source_names, ["chainlink", "coingecko", "coinmarketcap"])
        self.assertEqual(plan.ttl_ms, 300_000)

    def test_asset_without_feed_or_coingecko_id_has_coinmarketcap_only(self) -> None:
        oracle = _oracle(FakeHttpClient(), mock_prices_usd={"WHEAT": 7.0}, chainlink_feeds={}, coingecko_ids={})
        self.assertEqual(oracle.plan_for("WHEAT/USD").source_names, ["coinmarketcap"])

    def test_fiat_pairs_use_fiat_rate_source(self) -> None:
        oracle = _oracle(FakeHttpClient())
        self.assertEqual(oracle.plan_for("EUR/USD").source_names, ["fiat_rates"])
        self.assertIsNone(oracle.plan_for("USD/USD"))

    def test_empty_mock_table_is_a_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            _oracle(FakeHttpClient(), mock_prices_usd={})

    def test_feed_for_asset_without_mock_is_a_configuration_error(self) -> None:
        with self.assertRaises(ConfigurationError):
            _oracle(FakeHttpClient(), chainlink_feeds={"LINK/ETH": "0xabc"})

    def test_feed_keys_are_normalized(self) -> None:
        oracle = _oracle(FakeHttpClient(), rpc_url=RPC_URL, chainlink_feeds={" matic/usd ": "0xabc"})

        self.assertEqual(oracle.plan_for("MATIC/USD").source_names, ["chainlink", "coingecko", "coinmarketcap"])
        self.assertEqual(PriceSettings(chainlink_feeds={"eth/Usd": "0xdef"}).chainlink_feeds, {"ETH/USD": "0xdef"})

    def test_malformed_or_duplicate_feed_keys_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PriceSettings(chainlink_feeds={"MATIC": "0xabc"})
        with self.assertRaises(ValueError):
            PriceSettings(chainlink_feeds={"matic/usd": "0xabc", "MATIC/USD": "0xdef"})

    def test_mock_rate_uses_static_tables(self) -> None:
        oracle = _oracle(FakeHttpClient())
        self.assertAlmostEqual(oracle.mock_rate("MATIC/USD"), 0.5)
        self.assertAlmostEqual(oracle.mock_rate("USD/INR"), 83.0)


class PriceOracleResolutionTests(unittest.IsolatedAsyncioTestCase):
    async def test_chainlink_is_skipped_without_rpc_url(self) -> None:
        http = FakeHttpClient({("GET", COINGECKO_URL): _coingecko({"matic-network": 0.71})})
        oracle = _oracle(http)

        result = await oracle.get_price("matic/usd")

        self.assertEqual((result.value, result.tier), (0.71, "live"))
        self.assertEqual(http.urls(), [COINGECKO_URL])

    async def test_chainlink_is_used_first_when_configured(self) -> None:
        http = FakeHttpClient(
            {
                ("POST", RPC_URL): {"jsonrpc": "2.0", "id": 1, "result": _round_data(73_000_000)},
                ("GET", COINGECKO_URL): _coingecko({"matic-network": 0.71}),
            }
        )
        oracle = _oracle(http, rpc_url=RPC_URL)

        result = await oracle.get_price("MATIC/USD")

        self.assertAlmostEqual(result.value, 0.73)
        self.assertEqual(http.urls(), [RPC_URL])
        request = http.calls[0]["payload"]
        self.assertEqual(request["method"], "eth_call")
        self.assertEqual(request["params"][0]["data"], LATEST_ROUND_DATA_SELECTOR)
        self.assertEqual(request["params"][0]["to"], "0xAB594600376Ec9fD91F8e885dADF0CE036862dE0")

    async def test_lowercase_feed_key_still_reads_its_aggregator(self) -> None:
        http = FakeHttpClient({("POST", RPC_URL): {"jsonrpc": "2.0", "id": 1, "result": _round_data(73_000_000)}})
        oracle = _oracle(http, rpc_url=RPC_URL, chainlink_feeds={"matic/usd": "0xabc"})

        result = await oracle.get_price("MATIC/USD")

        self.assertEqual(result.tier, "live")
        self.assertEqual(http.calls[0]["payload"]["params"][0]["to"], "0xabc")

    async def test_zero_quote_is_not_trusted_or_cached(self) -> None:
        http = FakeHttpClient({("GET", COINGECKO_URL): _coingecko({"matic-network": 0.71})})
        oracle = _oracle(http)
        await oracle.get_price("MATIC/USD")
        http.responses[("GET", COINGECKO_URL)] = _coingecko({"matic-network": 0})

        result = await oracle.get_price("MATIC/USD")

        self.assertEqual((result.value, result.tier), (0.71, "cached"))

    async def test_rpc_error_falls_through_to_coingecko(self) -> None:
        http = FakeHttpClient(
            {
                ("POST", RPC_URL): {"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "execution reverted"}},
                ("GET", COINGECKO_URL): _coingecko({"ethereum": 3050.5}),
            }
        )
        oracle = _oracle(http, rpc_url=RPC_URL)

        result = await oracle.get_price("ETH/USD")

        self.assertEqual((result.value, result.tier), (3050.5, "live"))

    async def test_coinmarketcap_needs_an_api_key(self) -> None:
        http = FakeHttpClient(
            {
                ("GET", COINGECKO_URL): SourceUnavailable("coingecko", "HTTP 429"),
                ("GET", CMC_URL): {"data": {"BTC": {"quote": {"USD": {"price": 61000.25}}}}},
            }
        )

        without_key = await _oracle(http).get_price("BTC/USD")
        self.assertEqual(without_key.tier, "mock")
        self.assertNotIn(CMC_URL, http.urls())

        with_key = await _oracle(http, coinmarketcap_api_key="secret").get_price("BTC/USD")
        self.assertEqual((with_key.value, with_key.tier), (61000.25, "live"))
        self.assertEqual(http.calls[-1]["headers"], {"X-CMC_PRO_API_KEY": "secret"})

    async def test_malformed_coingecko_payload_is_not_trusted(self) -> None:
        http = FakeHttpClient({("GET", COINGECKO_URL): {"ethereum": {"usd": "n/a"}}})
        oracle = _oracle(http)

        result = await oracle.get_price("ETH/USD")

        self.assertEqual((result.value, result.tier), (3000.0, "mock"))

    async def test_token_price_is_rounded_only_for_presentation(self) -> None:
        http = FakeHttpClient({("GET", COINGECKO_URL): _coingecko({"matic-network": 0.123456789})})
        oracle = _oracle(http)

        presented = await oracle.get_token_price("matic", "usd")
        raw = await oracle.get_price("MATIC/USD")

        self.assertEqual(presented["price"], 0.123457)
        self.assertEqual(presented["tier"], "live")
        self.assertEqual(raw.value, 0.123456789)

    async def test_fiat_rates_come_from_the_fx_api(self) -> None:
        http = FakeHttpClient({("GET", FIAT_URL): {"result": "success", "rates": {"USD": 1, "EUR": 0.9, "INR": 80.0}}})
        oracle = _oracle(http)

        rates = await oracle.get_fiat_rates("USD")

        self.assertEqual(rates["rates"], {"EUR": 0.9, "INR": 80.0, "USD": 1.0})
        self.assertEqual(rates["tier"], "live")

    async def test_convert_currency_with_everything_down_uses_static_tables(self) -> None:
        oracle = _oracle(FakeHttpClient())

        conversion = await oracle.convert_currency(83, "INR", "EUR")

        self.assertEqual(conversion["result"], 0.92)
        self.assertEqual(conversion["tier"], "mock")

    async def test_crypto_prices_in_fiat_are_bridged(self) -> None:
        http = FakeHttpClient(
            {
                ("GET", COINGECKO_URL): _coingecko(
                    {"matic-network": 0.5, "ethereum": 3000.0, "bitcoin": 60000.0, "tether": 1.0}
                ),
                ("GET", FIAT_URL): {"result": "success", "rates": {"EUR": 0.92, "INR": 83.0}},
            }
        )
        oracle = _oracle(http)

        prices = await oracle.get_crypto_prices("INR")

        self.assertEqual(prices["prices"]["MATIC"], 41.5)
        self.assertEqual(prices["prices"]["BTC"], 4_980_000.0)
        self.assertEqual(prices["tier"], "live")

    async def test_update_all_prices_reports_tier_per_feed(self) -> None:
        http = FakeHttpClient({("GET", COINGECKO_URL): _coingecko({"ethereum": 3001.0})})
        oracle = _oracle(http)

        results = await oracle.update_all_prices()

        self.assertEqual(set(results), {"MATIC/USD", "ETH/USD", "BTC/USD"})
        self.assertTrue(results["ETH/USD"]["success"])
        self.assertEqual(results["BTC/USD"]["tier"], "mock")
        self.assertFalse(results["BTC/USD"]["success"])

    async def test_unknown_asset_is_rejected(self) -> None:
        oracle = _oracle(FakeHttpClient())
        with self.assertRaises(ValueError):
            await oracle.get_exchange_rate("DOGE", "USD")

    async def test_same_asset_rate_is_one(self) -> None:
        http = FakeHttpClient()
        oracle = _oracle(http)

        result = await oracle.get_exchange_rate("ETH", "ETH")

        self.assertEqual(result.value, 1.0)
        self.assertEqual(http.calls, [])


if __name__ == "__main__":
    unittest.main()
