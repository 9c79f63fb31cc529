"""USD price feed with provider fallback and caching.

Providers are queried in order for the mints still missing a price. Prices are
cached for a short TTL; when every provider fails, the last cached value is
returned even if expired. Providers that report a 24h change (Coinpaprika)
are asked for it the same way, without the cache.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from solswap.utils.cache import TTLCache

logger = logging.getLogger(__name__)

# Solana mint -> CoinGecko coin id
SOLANA_TOKEN_TO_COINGECKO = {
    "So11111111111111111111111111111111111111112": "solana",
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "usd-coin",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "tether",
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": "msol",
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": "bonk",
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R": "raydium",
}

# Solana mint -> Coinpaprika coin id
SOLANA_TOKEN_TO_COINPAPRIKA = {
    "So11111111111111111111111111111111111111112": "sol-solana",
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "usdc-usd-coin",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "usdt-tether",
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": "bonk-bonk",
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": "jup-jupiter",
    "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm": "wif-dogwifhat",
}


def _to_price(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    return price if price > 0 else None


def _to_change(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


class PriceProvider(ABC):
    """Abstract base class for USD price providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def get_prices(self, mints: list[str]) -> dict[str, Decimal]:
        """Get USD unit prices for the mints this provider knows.

        Returns:
            Mapping of mint to price; unknown mints are omitted
        """
        pass

    async def get_changes_24h(self, mints: list[str]) -> dict[str, Decimal]:
        """Get the 24h price change in percent. Most providers have none."""
        return {}


class JupiterPriceProvider(PriceProvider):
    """Jupiter price API v2."""

    def __init__(
        self,
        base_url: str = "https://api.jup.ag/price/v2",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "Jupiter"

    async def get_prices(self, mints: list[str]) -> dict[str, Decimal]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.base_url, params={"ids": ",".join(mints)})
        response.raise_for_status()

        data = response.json().get("data") or {}
        prices = {}
        for mint in mints:
            price = _to_price((data.get(mint) or {}).get("price"))
            if price is not None:
                prices[mint] = price
        return prices


class CoinGeckoPriceProvider(PriceProvider):
    """CoinGecko simple price endpoint, limited to mints with a known coin id."""

    def __init__(
        self,
        base_url: str = "https://api.coingecko.com/api/v3",
        api_key: str = "",
        coin_ids: Optional[dict[str, str]] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.coin_ids = coin_ids if coin_ids is not None else SOLANA_TOKEN_TO_COINGECKO
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "CoinGecko"

    async def get_prices(self, mints: list[str]) -> dict[str, Decimal]:
        ids = {mint: self.coin_ids[mint] for mint in mints if mint in self.coin_ids}
        if not ids:
            return {}

        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = self.api_key

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}/simple/price",
                params={"ids": ",".join(sorted(set(ids.values()))), "vs_currencies": "usd"},
                headers=headers,
            )
        response.raise_for_status()

        data = response.json()
        prices = {}
        for mint, coin_id in ids.items():
            price = _to_price((data.get(coin_id) or {}).get("usd"))
            if price is not None:
                prices[mint] = price
        return prices


class CoinpaprikaPriceProvider(PriceProvider):
    """Coinpaprika tickers, limited to mints with a known coin id.

    A ticker carries both the USD price and the 24h change. Tickers are held
    for a short TTL so a price lookup followed by a change lookup costs one
    request per coin.
    """

    def __init__(
        self,
        base_url: str = "https://api.coinpaprika.com/v1",
        coin_ids: Optional[dict[str, str]] = None,
        timeout: float = 10.0,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.coin_ids = coin_ids if coin_ids is not None else SOLANA_TOKEN_TO_COINPAPRIKA
        self.timeout = timeout
        self.cache: TTLCache[dict] = (
            cache if cache is not None else TTLCache(60.0, name="coinpaprika-tickers")
        )
        self._transport = transport

    @property
    def name(self) -> str:
        return "Coinpaprika"

    async def _get_usd_quotes(self, mints: list[str]) -> dict[str, dict]:
        quotes = {}
        wanted = {}
        for mint in mints:
            coin_id = self.coin_ids.get(mint)
            if coin_id is None:
                continue
            cached = self.cache.get(coin_id)
            if cached is not None:
                quotes[mint] = cached
            else:
                wanted[mint] = coin_id

        if not wanted:
            return quotes

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for mint, coin_id in wanted.items():
                response = await client.get(f"{self.base_url}/tickers/{coin_id}")
                if response.status_code != 200:
                    logger.debug(f"Coinpaprika has no ticker for {coin_id}: {response.status_code}")
                    continue

                usd = (response.json().get("quotes") or {}).get("USD") or {}
                self.cache.set(coin_id, usd)
                quotes[mint] = usd

        return quotes

    async def get_prices(self, mints: list[str]) -> dict[str, Decimal]:
        prices = {}
        for mint, usd in (await self._get_usd_quotes(mints)).items():
            price = _to_price(usd.get("price"))
            if price is not None:
                prices[mint] = price
        return prices

    async def get_changes_24h(self, mints: list[str]) -> dict[str, Decimal]:
        changes = {}
        for mint, usd in (await self._get_usd_quotes(mints)).items():
            change = _to_change(usd.get("percent_change_24h"))
            if change is not None:
                changes[mint] = change
        return changes


class PriceFeed:
    """Cached multi-provider USD price lookup."""

    def __init__(
        self,
        providers: Optional[list[PriceProvider]] = None,
        cache: Optional[TTLCache] = None,
    ):
        self.providers: list[PriceProvider] = providers or []
        self.cache: TTLCache[Decimal] = (
            cache if cache is not None else TTLCache(60.0, name="prices")
        )

    async def get_prices(self, mints: list[str]) -> dict[str, Optional[Decimal]]:
        """Get USD prices for mints; unavailable prices are None."""
        prices: dict[str, Optional[Decimal]] = {}
        missing = []
        for mint in dict.fromkeys(mints):
            cached = self.cache.get(mint)
            if cached is not None:
                prices[mint] = cached
            else:
                missing.append(mint)

        for provider in self.providers:
            if not missing:
                break
            try:
                found = await provider.get_prices(missing)
            except Exception as e:
                logger.warning(f"{provider.name} price lookup failed: {e}")
                continue

            for mint, price in found.items():
                self.cache.set(mint, price)
                prices[mint] = price
            missing = [mint for mint in missing if mint not in found]

        for mint in missing:
            stale = self.cache.get_stale(mint)
            if stale is not None:
                logger.info(f"Using stale price for {mint}")
            prices[mint] = stale

        return prices

    async def get_price(self, mint: str) -> Optional[Decimal]:
        return (await self.get_prices([mint])).get(mint)

    async def get_changes_24h(self, mints: list[str]) -> dict[str, Optional[Decimal]]:
        """Get 24h price changes in percent; unavailable changes are None."""
        changes: dict[str, Optional[Decimal]] = dict.fromkeys(mints)
        missing = list(changes)

        for provider in self.providers:
            if not missing:
                break
            try:
                found = await provider.get_changes_24h(missing)
            except Exception as e:
                logger.warning(f"{provider.name} 24h change lookup failed: {e}")
                continue

            changes.update(found)
            missing = [mint for mint in missing if mint not in found]

        return changes


def _coinpaprika(settings, transport) -> CoinpaprikaPriceProvider:
    return CoinpaprikaPriceProvider(
        settings.coinpaprika_api,
        cache=TTLCache(settings.price_cache_ttl_seconds, name="coinpaprika-tickers"),
        transport=transport,
    )


def create_price_feed(settings=None, transport=None) -> PriceFeed:
    """Create the Jupiter → CoinGecko → Coinpaprika price feed from settings."""
    from solswap.config import get_settings

    settings = settings or get_settings()
    return PriceFeed(
        providers=[
            JupiterPriceProvider(settings.jupiter_price_api, transport=transport),
            CoinGeckoPriceProvider(
                settings.coingecko_api,
                api_key=settings.coingecko_api_key,
                transport=transport,
            ),
            _coinpaprika(settings, transport),
        ],
        cache=TTLCache(settings.price_cache_ttl_seconds, name="prices"),
    )


def create_portfolio_price_feed(settings=None, transport=None) -> PriceFeed:
    """Create the Coinpaprika → Jupiter feed used to value wallet holdings."""
    from solswap.config import get_settings

    settings = settings or get_settings()
    return PriceFeed(
        providers=[
            _coinpaprika(settings, transport),
            JupiterPriceProvider(settings.jupiter_price_api, transport=transport),
        ],
        cache=TTLCache(settings.price_cache_ttl_seconds, name="portfolio-prices"),
    )
