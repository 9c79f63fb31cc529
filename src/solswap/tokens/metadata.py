"""Token metadata providers.

Metadata (symbol, name, image) comes from third-party APIs that are queried in
order, each falling back to the next on failure or missing data. Decimals
reported by these APIs are informational only; amount math always uses the
on-chain mint decimals.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from solswap.utils.cache import TTLCache

logger = logging.getLogger(__name__)


@dataclass
class TokenMetadata:
    """Display metadata reported by a provider."""

    address: str
    symbol: str
    name: str
    image_url: Optional[str] = None
    reported_decimals: Optional[int] = None  # untrusted
    source: str = ""


class MetadataProvider(ABC):
    """Abstract base class for metadata providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        pass

    @abstractmethod
    async def get_metadata(self, address: str) -> Optional[TokenMetadata]:
        """Look up metadata for a mint.

        Returns:
            TokenMetadata if the provider knows the token, None otherwise
        """
        pass


class GeckoTerminalProvider(MetadataProvider):
    """GeckoTerminal token endpoint."""

    def __init__(
        self,
        base_url: str = "https://api.geckoterminal.com/api/v2",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "GeckoTerminal"

    async def get_metadata(self, address: str) -> Optional[TokenMetadata]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}/networks/solana/tokens/{address}",
                headers={"Accept": "application/json"},
            )

        if response.status_code != 200:
            logger.debug(f"GeckoTerminal returned {response.status_code} for {address}")
            return None

        attributes = (response.json().get("data") or {}).get("attributes")
        if not attributes or not attributes.get("symbol"):
            return None

        decimals = attributes.get("decimals")
        return TokenMetadata(
            address=address,
            symbol=attributes["symbol"].upper(),
            name=attributes.get("name") or attributes["symbol"],
            image_url=attributes.get("image_url"),
            reported_decimals=int(decimals) if decimals is not None else None,
            source=self.name,
        )


class JupiterTokenListProvider(MetadataProvider):
    """Jupiter full token list, downloaded once and held in a cache."""

    def __init__(
        self,
        list_url: str = "https://token.jup.ag/all",
        cache: Optional[TTLCache] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.list_url = list_url
        self.cache = (
            cache if cache is not None else TTLCache(ttl_seconds=3600.0, name="jupiter-token-list")
        )
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "Jupiter"

    async def _get_index(self) -> dict[str, dict]:
        index = self.cache.get(self.list_url)
        if index is not None:
            return index

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(self.list_url)
        response.raise_for_status()

        index = {t["address"]: t for t in response.json() if t.get("address")}
        self.cache.set(self.list_url, index)
        logger.info(f"Loaded {len(index)} tokens from Jupiter list")
        return index

    async def get_metadata(self, address: str) -> Optional[TokenMetadata]:
        entry = (await self._get_index()).get(address)
        if not entry:
            return None

        decimals = entry.get("decimals")
        return TokenMetadata(
            address=address,
            symbol=entry.get("symbol", ""),
            name=entry.get("name") or entry.get("symbol", ""),
            image_url=entry.get("logoURI"),
            reported_decimals=int(decimals) if decimals is not None else None,
            source=self.name,
        )


class MetadataResolver:
    """Query providers in order until one returns metadata."""

    def __init__(self, providers: Optional[list[MetadataProvider]] = None):
        self.providers: list[MetadataProvider] = providers or []

    def add_provider(self, provider: MetadataProvider) -> None:
        self.providers.append(provider)

    async def resolve(self, address: str) -> Optional[TokenMetadata]:
        for provider in self.providers:
            try:
                metadata = await provider.get_metadata(address)
            except Exception as e:
                logger.warning(f"{provider.name} metadata lookup failed for {address}: {e}")
                continue

            if metadata:
                logger.debug(f"Metadata for {address} from {provider.name}: {metadata.symbol}")
                return metadata

        logger.info(f"No metadata provider knows {address}")
        return None


def create_default_resolver(
    settings=None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> MetadataResolver:
    """Create the GeckoTerminal → Jupiter resolver from settings."""
    from solswap.config import get_settings

    settings = settings or get_settings()
    return MetadataResolver(
        [
            GeckoTerminalProvider(settings.geckoterminal_api, transport=transport),
            JupiterTokenListProvider(
                settings.jupiter_all_tokens_url,
                cache=TTLCache(settings.token_cache_ttl_seconds, name="jupiter-token-list"),
                timeout=settings.http_timeout,
                transport=transport,
            ),
        ]
    )
