"""Tests for base-unit conversion, prices and the quote engine."""

import asyncio
import json
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from solswap.config import WRAPPED_SOL_MINT
from solswap.errors import QuoteUnavailable
from solswap.routing.base import from_base_units, to_base_units
from solswap.routing.jupiter import JupiterClient, parse_route_hops
from solswap.routing.prices import (
    CoinGeckoPriceProvider,
    CoinpaprikaPriceProvider,
    JupiterPriceProvider,
    PriceFeed,
    create_price_feed,
)
from solswap.routing.quote_engine import QuoteEngine, QuoteRefresher
from solswap.utils.cache import TTLCache

from conftest import USDC_MINT


def quote_response(out_amount: str, route_plan=None, impact="0.0012") -> dict:
    return {
        "inAmount": "2000000000",
        "outAmount": out_amount,
        "priceImpactPct": impact,
        "routePlan": route_plan if route_plan is not None else [],
    }


def make_engine(settings, response=None, prices=None, quote_error=None):
    jupiter = AsyncMock()
    if quote_error:
        jupiter.get_quote = AsyncMock(side_effect=quote_error)
    else:
        jupiter.get_quote = AsyncMock(return_value=response or quote_response("310000000"))
    price_feed = AsyncMock()
    if isinstance(prices, Exception):
        price_feed.get_prices = AsyncMock(side_effect=prices)
    else:
        price_feed.get_prices = AsyncMock(return_value=prices or {})
    return QuoteEngine(jupiter, price_feed, settings=settings)


def set_inputs(refresher, from_token, to_token, amount=Decimal(2)):
    refresher.from_token, refresher.to_token, refresher.amount = from_token, to_token, amount


class TestBaseUnits:
    """Tests for human/base unit conversion."""

    def test_exact_conversion(self):
        assert to_base_units("1.5", 6) == 1500000
        assert to_base_units(Decimal("2"), 9) == 2_000_000_000

    def test_no_float_drift(self):
        """Test 0.1 + 0.2 style inputs convert exactly."""
        assert to_base_units("0.3", 6) == 300000
        assert to_base_units(1.1, 2) == 110

    def test_floors_excess_precision(self):
        assert to_base_units("1.2345678", 6) == 1234567

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_base_units("-1", 6)

    def test_from_base_units(self):
        assert from_base_units(310000000, 6) == Decimal("310")
        assert f"{from_base_units('310000000', 6):.6f}" == "310.000000"


class TestRouteHops:
    def test_labels_in_order(self):
        plan = [{"swapInfo": {"label": "Orca"}}, {"swapInfo": {"label": "Raydium"}}]

        assert parse_route_hops({"routePlan": plan}, "SOL", "USDC") == ["Orca", "Raydium"]

    def test_missing_route_metadata(self):
        assert parse_route_hops({}, "SOL", "USDC") == ["SOL", "USDC"]
        assert parse_route_hops({"routePlan": [{"swapInfo": {}}]}, "SOL", "USDC") == [
            "SOL",
            "USDC",
        ]


class TestQuoteEngine:
    """Tests for QuoteEngine.fetch_quote."""

    @pytest.mark.asyncio
    async def test_quote_with_prices(self, settings, sol_token, usdc_token):
        """Test 2 SOL -> 310 USDC with prices 150 / 1."""
        engine = make_engine(
            settings,
            prices={WRAPPED_SOL_MINT: Decimal("150"), USDC_MINT: Decimal("1")},
        )

        quote = await engine.fetch_quote(sol_token, usdc_token, "2.0", 50)

        assert quote.input_base_units == 2_000_000_000
        assert quote.to_amount_display == "310.000000"
        assert quote.exchange_rate == Decimal("150")
        assert quote.from_usd_value == Decimal("300")
        assert quote.to_usd_value == Decimal("310")
        assert quote.price_impact_percent == Decimal("0.12")
        assert quote.route_hops == ["SOL", "USDC"]

        engine.jupiter.get_quote.assert_awaited_once_with(
            WRAPPED_SOL_MINT, USDC_MINT, 2_000_000_000, 50, platform_fee_bps=None
        )

    @pytest.mark.asyncio
    async def test_price_failure_does_not_block_quote(self, settings, sol_token, usdc_token):
        """Test USD values are N/A when the price feed fails."""
        engine = make_engine(settings, prices=httpx.ConnectError("price api down"))

        quote = await engine.fetch_quote(sol_token, usdc_token, "2")

        assert quote.to_amount_display == "310.000000"
        assert quote.exchange_rate is None
        assert quote.to_dict()["from_usd_value"] == "N/A"
        assert quote.to_dict()["to_usd_value"] == "N/A"

    @pytest.mark.asyncio
    async def test_one_missing_price(self, settings, sol_token, usdc_token):
        """Test the rate needs both prices."""
        engine = make_engine(settings, prices={WRAPPED_SOL_MINT: Decimal("150"), USDC_MINT: None})

        quote = await engine.fetch_quote(sol_token, usdc_token, "2")

        assert quote.exchange_rate is None
        assert quote.from_usd_value == Decimal("300")
        assert quote.to_usd_value is None

    @pytest.mark.asyncio
    async def test_default_slippage(self, settings, sol_token, usdc_token):
        engine = make_engine(settings)

        quote = await engine.fetch_quote(sol_token, usdc_token, "1")

        assert quote.slippage_bps == settings.default_slippage_bps

    @pytest.mark.asyncio
    async def test_routing_failure(self, settings, sol_token, usdc_token):
        """Test aggregator failures surface as QuoteUnavailable."""
        engine = make_engine(settings, quote_error=QuoteUnavailable("no route"))

        with pytest.raises(QuoteUnavailable):
            await engine.fetch_quote(sol_token, usdc_token, "1")

    @pytest.mark.asyncio
    async def test_zero_amount(self, settings, sol_token, usdc_token):
        engine = make_engine(settings)

        with pytest.raises(QuoteUnavailable):
            await engine.fetch_quote(sol_token, usdc_token, "0")
        engine.jupiter.get_quote.assert_not_called()


class TestJupiterClient:
    """Tests for the Jupiter HTTP client."""

    @pytest.mark.asyncio
    async def test_get_quote_params(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json=quote_response("123"))

        client = JupiterClient(transport=httpx.MockTransport(handler))
        data = await client.get_quote(WRAPPED_SOL_MINT, USDC_MINT, 1500000, 50, platform_fee_bps=40)

        assert data["outAmount"] == "123"
        assert seen["amount"] == "1500000"
        assert seen["slippageBps"] == "50"
        assert seen["platformFeeBps"] == "40"

    @pytest.mark.asyncio
    async def test_api_error(self):
        client = JupiterClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(400, json={"error": "Could not find any route"})
            )
        )

        with pytest.raises(QuoteUnavailable, match="Could not find any route"):
            await client.get_quote(WRAPPED_SOL_MINT, USDC_MINT, 1, 50)

    @pytest.mark.asyncio
    async def test_build_swap_transaction_body(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"swapTransaction": "AQID"})

        client = JupiterClient(transport=httpx.MockTransport(handler))
        tx = await client.build_swap_transaction(
            {"outAmount": "1"},
            "wallet",
            fee_account="fees",
            platform_fee_bps=40,
            compute_unit_price_micro_lamports=10000,
        )

        assert tx == "AQID"
        body = bodies[0]
        assert body["wrapAndUnwrapSol"] is True
        assert body["asLegacyTransaction"] is False
        assert body["skipUserAccountsCheck"] is True
        assert body["feeAccount"] == "fees"
        assert body["computeUnitPriceMicroLamports"] == 10000


class TestPriceFeed:
    """Tests for the cached multi-provider price feed."""

    @pytest.mark.asyncio
    async def test_jupiter_prices(self):
        def handler(request):
            return httpx.Response(
                200, json={"data": {WRAPPED_SOL_MINT: {"id": WRAPPED_SOL_MINT, "price": "151.2"}}}
            )

        feed = PriceFeed([JupiterPriceProvider(transport=httpx.MockTransport(handler))])
        prices = await feed.get_prices([WRAPPED_SOL_MINT, USDC_MINT])

        assert prices == {WRAPPED_SOL_MINT: Decimal("151.2"), USDC_MINT: None}

    @pytest.mark.asyncio
    async def test_coingecko_fallback(self):
        """Test CoinGecko fills prices Jupiter could not provide."""

        def jupiter(request):
            return httpx.Response(500)

        def coingecko(request):
            assert request.url.params["ids"] == "solana"
            return httpx.Response(200, json={"solana": {"usd": 149.5}})

        feed = PriceFeed(
            [
                JupiterPriceProvider(transport=httpx.MockTransport(jupiter)),
                CoinGeckoPriceProvider(transport=httpx.MockTransport(coingecko)),
            ]
        )

        assert await feed.get_price(WRAPPED_SOL_MINT) == Decimal("149.5")

    @pytest.mark.asyncio
    async def test_cache_and_stale_fallback(self):
        """Test cached prices are reused and expired ones serve as fallback."""
        now = [0.0]
        responses = [httpx.Response(200, json={"data": {WRAPPED_SOL_MINT: {"price": "150"}}})]
        calls = []

        def handler(request):
            calls.append(1)
            if responses:
                return responses.pop(0)
            return httpx.Response(503)

        feed = PriceFeed(
            [JupiterPriceProvider(transport=httpx.MockTransport(handler))],
            cache=TTLCache(60, clock=lambda: now[0]),
        )

        assert await feed.get_price(WRAPPED_SOL_MINT) == Decimal("150")
        assert await feed.get_price(WRAPPED_SOL_MINT) == Decimal("150")
        assert len(calls) == 1

        now[0] = 120.0
        assert await feed.get_price(WRAPPED_SOL_MINT) == Decimal("150")
        assert len(calls) == 2

    def test_injected_empty_cache_is_used(self, settings):
        """Test an empty injected cache is kept and the settings TTL applies."""
        cache = TTLCache(5.0, name="test")

        assert PriceFeed([], cache=cache).cache is cache
        assert create_price_feed(settings).cache.ttl_seconds == settings.price_cache_ttl_seconds

    @pytest.mark.asyncio
    async def test_coinpaprika_price_and_change(self):
        """Test one ticker request serves both the price and the 24h change."""
        calls = []

        def handler(request):
            calls.append(request.url.path)
            if request.url.path.endswith("/tickers/sol-solana"):
                usd = {"price": 151.5, "percent_change_24h": -3.2}
                return httpx.Response(200, json={"id": "sol-solana", "quotes": {"USD": usd}})
            return httpx.Response(404, json={"error": "id not found"})

        feed = PriceFeed([CoinpaprikaPriceProvider(transport=httpx.MockTransport(handler))])

        prices = await feed.get_prices([WRAPPED_SOL_MINT, USDC_MINT])
        changes = await feed.get_changes_24h([WRAPPED_SOL_MINT, USDC_MINT])

        assert prices == {WRAPPED_SOL_MINT: Decimal("151.5"), USDC_MINT: None}
        assert changes == {WRAPPED_SOL_MINT: Decimal("-3.2"), USDC_MINT: None}
        assert calls.count("/v1/tickers/sol-solana") == 1

    @pytest.mark.asyncio
    async def test_changes_without_capable_provider(self):
        """Test providers without 24h changes leave them unavailable."""
        feed = PriceFeed([JupiterPriceProvider()])

        assert await feed.get_changes_24h([WRAPPED_SOL_MINT]) == {WRAPPED_SOL_MINT: None}


class TestQuoteRefresher:
    """Tests for the quote refresh loop."""

    @pytest.mark.asyncio
    async def test_runs_immediately_when_ready(self, settings, sol_token, usdc_token):
        engine = make_engine(settings)
        refresher = QuoteRefresher(engine, interval=10)

        await refresher.set_inputs(sol_token, usdc_token, "2")
        await asyncio.sleep(0.01)

        assert refresher.quote is not None
        assert refresher.running
        await refresher.stop()

    @pytest.mark.asyncio
    async def test_not_started_without_amount(self, settings, sol_token, usdc_token):
        engine = make_engine(settings)
        refresher = QuoteRefresher(engine, interval=10)

        await refresher.set_inputs(sol_token, usdc_token, "0")
        await asyncio.sleep(0.01)

        assert not refresher.running
        engine.jupiter.get_quote.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_keeps_last_quote(self, settings, sol_token, usdc_token):
        """Test a failed cycle records an error and keeps the last good quote."""
        engine = make_engine(settings)
        refresher = QuoteRefresher(engine, interval=10)
        set_inputs(refresher, sol_token, usdc_token)

        good = await refresher.refresh()
        engine.jupiter.get_quote.side_effect = QuoteUnavailable("timeout")
        assert await refresher.refresh() is None

        assert refresher.quote is good
        assert "Failed to fetch price" in refresher.error

    @pytest.mark.asyncio
    async def test_stale_response_discarded(self, settings, sol_token, usdc_token):
        """Test a slow response started earlier never replaces a newer quote."""
        slow_started = asyncio.Event()
        release_slow = asyncio.Event()
        clock = iter([1.0, 2.0])

        async def get_quote(*args, **kwargs):
            if not slow_started.is_set():
                slow_started.set()
                await release_slow.wait()
                return quote_response("100000000")
            return quote_response("200000000")

        engine = make_engine(settings)
        engine.jupiter.get_quote = AsyncMock(side_effect=get_quote)
        refresher = QuoteRefresher(engine, interval=10, clock=lambda: next(clock))
        set_inputs(refresher, sol_token, usdc_token)

        slow = asyncio.create_task(refresher.refresh())
        await slow_started.wait()
        fast = await refresher.refresh()
        release_slow.set()
        stale = await slow

        assert stale is None
        assert refresher.quote is fast
        assert refresher.quote.output_base_units == 200000000

    @pytest.mark.asyncio
    async def test_input_change_discards_inflight_response(self, settings, sol_token, usdc_token):
        """Test responses for superseded inputs are dropped."""
        release = asyncio.Event()

        async def get_quote(*args, **kwargs):
            await release.wait()
            return quote_response("100000000")

        engine = make_engine(settings)
        engine.jupiter.get_quote = AsyncMock(side_effect=get_quote)
        refresher = QuoteRefresher(engine, interval=10)
        set_inputs(refresher, sol_token, usdc_token)

        inflight = asyncio.create_task(refresher.refresh())
        await asyncio.sleep(0)
        await refresher.set_inputs(sol_token, usdc_token, "0")
        release.set()

        assert await inflight is None
        assert refresher.quote is None
