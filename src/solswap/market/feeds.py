"""Market token lists: trending, verified and newly created tokens.

Every list is a Feed (endpoint, params, mapper, optional fallback feed) fetched
through one MarketDataClient.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

import httpx

from solswap.orders.models import parse_timestamp
from solswap.tokens.models import FALLBACK_IMAGE

logger = logging.getLogger(__name__)

TOP_LIMIT = 10


@dataclass
class MarketToken:
    """A token as listed by a market feed."""

    address: str
    symbol: str
    name: str
    decimals: Optional[int] = None
    image_url: str = FALLBACK_IMAGE
    daily_volume: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "image_url": self.image_url,
            "daily_volume": str(self.daily_volume) if self.daily_volume is not None else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "tags": list(self.tags),
        }


def parse_market_token(entry: dict) -> MarketToken:
    """Map a Jupiter token entry (tagged or new-token shape)."""
    address = entry.get("address") or entry["mint"]
    volume = entry.get("daily_volume")
    try:
        daily_volume = Decimal(str(volume)) if volume is not None else None
    except InvalidOperation:
        daily_volume = None

    try:
        created_at = parse_timestamp(entry.get("created_at"))
    except (TypeError, ValueError, OverflowError):
        created_at = None

    decimals = entry.get("decimals")
    return MarketToken(
        address=address,
        symbol=entry.get("symbol") or address[:4],
        name=entry.get("name") or entry.get("symbol") or address[:8],
        decimals=int(decimals) if decimals is not None else None,
        image_url=entry.get("logoURI") or entry.get("logo_uri") or FALLBACK_IMAGE,
        daily_volume=daily_volume,
        created_at=created_at,
        tags=list(entry.get("tags") or []),
    )


def map_tokens(entries: list[dict]) -> list[MarketToken]:
    tokens = []
    for entry in entries:
        try:
            tokens.append(parse_market_token(entry))
        except (KeyError, TypeError, ValueError) as e:
            logger.debug(f"Skipping malformed market entry: {e}")
    return tokens


def top_by_volume(entries: list[dict], limit: int = TOP_LIMIT) -> list[MarketToken]:
    """Tokens with a daily volume, highest first."""
    tokens = [t for t in map_tokens(entries) if t.daily_volume]
    tokens.sort(key=lambda t: t.daily_volume, reverse=True)
    return tokens[:limit]


@dataclass
class Feed:
    """A market list endpoint and how to map its response."""

    name: str
    path: str
    params: dict = field(default_factory=dict)
    mapper: Callable[[list[dict]], list[MarketToken]] = map_tokens
    fallback: Optional["Feed"] = None


VERIFIED = Feed(name="verified", path="tagged/verified", mapper=top_by_volume)
TRENDING = Feed(
    name="trending",
    path="tagged/birdeye-trending",
    mapper=top_by_volume,
    fallback=VERIFIED,
)


def new_tokens(page: int = 0, limit: int = 5) -> Feed:
    """Paginated feed of recently created tokens."""
    return Feed(
        name="new",
        path="new",
        params={"limit": str(limit), "offset": str(page * limit)},
    )


FEEDS = {feed.name: feed for feed in (TRENDING, VERIFIED)}


class MarketDataClient:
    """Fetch market feeds from the Jupiter token API."""

    def __init__(
        self,
        base_url: str = "https://api.jup.ag/tokens/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _get(self, feed: Feed) -> list[dict]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(f"{self.base_url}/{feed.path}", params=feed.params)
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, list):
            raise ValueError(f"Unexpected {feed.name} response: {type(data).__name__}")
        return data

    async def fetch(self, feed: Feed) -> list[MarketToken]:
        """Fetch a feed, falling back along its fallback chain.

        Returns:
            Mapped tokens, or an empty list if every feed in the chain failed
        """
        current: Optional[Feed] = feed
        while current is not None:
            try:
                return current.mapper(await self._get(current))
            except (httpx.HTTPError, ValueError) as e:
                if current.fallback is not None:
                    logger.warning(
                        f"{current.name} feed failed, falling back to {current.fallback.name}: {e}"
                    )
                else:
                    logger.warning(f"{current.name} feed failed: {e}")
                current = current.fallback

        return []
