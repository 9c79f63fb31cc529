"""Quote engine: aggregator quote plus USD pricing, and its refresh loop."""

import asyncio
import logging
import time
from decimal import Decimal
from typing import Awaitable, Callable, Optional

from solswap.config import get_settings
from solswap.errors import QuoteUnavailable
from solswap.routing.base import Amount, Quote, from_base_units, to_base_units, to_decimal
from solswap.routing.jupiter import JupiterClient, parse_route_hops
from solswap.routing.prices import PriceFeed
from solswap.tokens.models import Token
from solswap.utils.polling import PeriodicTask

logger = logging.getLogger(__name__)


class QuoteEngine:
    """Fetch quotes from the aggregator and enrich them with USD prices."""

    def __init__(self, jupiter: JupiterClient, prices: PriceFeed, settings=None):
        self.settings = settings or get_settings()
        self.jupiter = jupiter
        self.prices = prices

    async def _safe_prices(self, mints: list[str]) -> dict[str, Optional[Decimal]]:
        try:
            return await self.prices.get_prices(mints)
        except Exception as e:
            logger.warning(f"Price lookup failed, USD values unavailable: {e}")
            return {}

    async def fetch_quote(
        self,
        from_token: Token,
        to_token: Token,
        input_amount: Amount,
        slippage_bps: Optional[int] = None,
        platform_fee_bps: Optional[int] = None,
    ) -> Quote:
        """Get a quote for swapping input_amount of from_token into to_token.

        Args:
            from_token: Token to sell
            to_token: Token to buy
            input_amount: Human-unit amount of from_token
            slippage_bps: Max slippage, defaults to the configured value
            platform_fee_bps: Optional platform fee to include in the route

        Returns:
            Quote with output amount, prices and route hops

        Raises:
            QuoteUnavailable: If the aggregator cannot route the swap
        """
        started_at = time.time()
        if slippage_bps is None:
            slippage_bps = self.settings.default_slippage_bps

        amount = to_decimal(input_amount)
        if amount <= 0:
            raise QuoteUnavailable("Amount must be greater than zero")

        base_units = to_base_units(amount, from_token.decimals)
        if base_units == 0:
            raise QuoteUnavailable(
                f"Amount is below the smallest unit of {from_token.symbol}"
            )

        response, prices = await asyncio.gather(
            self.jupiter.get_quote(
                from_token.address,
                to_token.address,
                base_units,
                slippage_bps,
                platform_fee_bps=platform_fee_bps,
            ),
            self._safe_prices([from_token.address, to_token.address]),
        )

        try:
            output_base_units = int(response["outAmount"])
        except (KeyError, TypeError, ValueError) as e:
            raise QuoteUnavailable(f"Malformed quote response: {e}") from e
        output_amount = from_base_units(output_base_units, to_token.decimals)

        from_price = prices.get(from_token.address)
        to_price = prices.get(to_token.address)

        exchange_rate = None
        if from_price and to_price and from_price > 0 and to_price > 0:
            exchange_rate = from_price / to_price

        price_impact = None
        if response.get("priceImpactPct") is not None:
            price_impact = Decimal(str(response["priceImpactPct"])) * 100

        quote = Quote(
            from_token=from_token,
            to_token=to_token,
            input_amount=amount,
            input_base_units=base_units,
            output_amount=output_amount,
            output_base_units=output_base_units,
            slippage_bps=slippage_bps,
            exchange_rate=exchange_rate,
            from_price=from_price,
            to_price=to_price,
            from_usd_value=amount * from_price if from_price else None,
            to_usd_value=output_amount * to_price if to_price else None,
            price_impact_percent=price_impact,
            route_hops=parse_route_hops(response, from_token.symbol, to_token.symbol),
            platform_fee_bps=platform_fee_bps,
            timestamp=started_at,
            quote_response=response,
        )

        logger.debug(
            f"Quote {amount} {from_token.symbol} -> {quote.to_amount_display} {to_token.symbol} "
            f"via {' > '.join(quote.route_hops)}"
        )
        return quote


class QuoteRefresher:
    """Keep the current quote fresh while the inputs are complete.

    A refresh runs immediately and then on a fixed interval. Changing inputs
    cancels the pending timer and restarts. Responses whose request started
    before the last applied quote's request are discarded, so the last
    request started wins.
    """

    def __init__(
        self,
        engine: QuoteEngine,
        interval: Optional[float] = None,
        on_quote: Optional[Callable[[Quote], Awaitable[None]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine
        self.interval = interval if interval is not None else engine.settings.quote_refresh_seconds
        self.on_quote = on_quote
        self._clock = clock

        self.from_token: Optional[Token] = None
        self.to_token: Optional[Token] = None
        self.amount: Decimal = Decimal(0)
        self.slippage_bps: Optional[int] = None

        self.quote: Optional[Quote] = None
        self.error: Optional[str] = None
        self._applied_at: Optional[float] = None
        self._generation = 0
        self._task: Optional[PeriodicTask] = None

    @property
    def ready(self) -> bool:
        return self.from_token is not None and self.to_token is not None and self.amount > 0

    @property
    def running(self) -> bool:
        return self._task is not None and self._task.running

    async def set_inputs(
        self,
        from_token: Optional[Token],
        to_token: Optional[Token],
        amount: Amount,
        slippage_bps: Optional[int] = None,
    ) -> None:
        """Update the inputs and restart the refresh loop."""
        await self.stop()

        self.from_token = from_token
        self.to_token = to_token
        self.amount = to_decimal(amount or 0)
        self.slippage_bps = slippage_bps
        self._generation += 1
        self.quote = None
        self.error = None
        self._applied_at = None

        if not self.ready:
            return

        self._task = PeriodicTask(self.refresh, self.interval, name="quote")
        self._task.start()

    async def refresh(self) -> Optional[Quote]:
        """Run one quote cycle.

        Returns:
            The applied quote, or None if the cycle failed or was stale
        """
        if not self.ready:
            return None

        generation = self._generation
        started_at = self._clock()
        try:
            quote = await self.engine.fetch_quote(
                self.from_token, self.to_token, self.amount, self.slippage_bps
            )
        except Exception as e:
            if generation == self._generation:
                self.error = f"Failed to fetch price: {e}"
            logger.warning(f"Quote refresh failed: {e}")
            return None

        if generation != self._generation or (
            self._applied_at is not None and started_at < self._applied_at
        ):
            logger.debug("Discarding stale quote response")
            return None

        self.quote = quote
        self.error = None
        self._applied_at = started_at

        if self.on_quote:
            await self.on_quote(quote)
        return quote

    async def stop(self) -> None:
        if self._task is not None:
            await self._task.stop()
            self._task = None
