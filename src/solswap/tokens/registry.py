"""Token registry: base token list merged with user-imported tokens.

Imported tokens are stored globally (not per wallet) so they stay available
whichever wallet is connected.
"""

import logging
from typing import Optional

import httpx
from solders.pubkey import Pubkey

from solswap.chain.rpc import RpcError, SolanaRpcClient
from solswap.config import WRAPPED_SOL_MINT, get_settings
from solswap.errors import InvalidAddress
from solswap.storage.repository import CUSTOM_TOKENS_KEY, StateStore
from solswap.tokens.metadata import MetadataResolver, create_default_resolver
from solswap.tokens.models import FALLBACK_IMAGE, Token
from solswap.utils.cache import TTLCache

logger = logging.getLogger(__name__)

POPULAR_SYMBOLS = ("SOL", "USDC", "USDT", "BTC", "ETH", "BONK", "JUP", "RAY", "ORCA", "MNGO")

# Used when the base list cannot be downloaded
FALLBACK_TOKENS = [
    Token(WRAPPED_SOL_MINT, "SOL", "Wrapped SOL", 9),
    Token("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", "USDC", "USD Coin", 6),
    Token("Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", "USDT", "USDT", 6),
    Token("JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", "JUP", "Jupiter", 6),
    Token("DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", "BONK", "Bonk", 5),
    Token("EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm", "WIF", "dogwifhat", 6),
    Token("4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R", "RAY", "Raydium", 6),
]


def is_valid_address(address: str) -> bool:
    """Check that address is a base58-encoded 32-byte public key."""
    if not address or not isinstance(address, str):
        return False
    try:
        Pubkey.from_string(address.strip())
    except ValueError:
        return False
    return True


class TokenRegistry:
    """Loads the base token list and merges locally imported tokens.

    Custom tokens always win over base entries with the same address.
    """

    def __init__(
        self,
        rpc: SolanaRpcClient,
        store: StateStore,
        metadata: Optional[MetadataResolver] = None,
        settings=None,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.rpc = rpc
        self.store = store
        self.metadata = metadata or create_default_resolver(self.settings, transport)
        self.cache: TTLCache[Token] = cache if cache is not None else TTLCache(
            self.settings.token_cache_ttl_seconds, name="token-info"
        )
        self._transport = transport
        self._base_tokens: Optional[list[Token]] = None

    async def load_base_tokens(self, force: bool = False) -> list[Token]:
        """Fetch the base token list once and hold it."""
        if self._base_tokens is not None and not force:
            return self._base_tokens

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout, transport=self._transport
            ) as client:
                response = await client.get(self.settings.jupiter_strict_list_url)
            response.raise_for_status()

            tokens = []
            for entry in response.json():
                try:
                    tokens.append(
                        Token(
                            address=entry["address"],
                            symbol=entry["symbol"],
                            name=entry.get("name") or entry["symbol"],
                            decimals=int(entry["decimals"]),
                            image_url=entry.get("logoURI") or FALLBACK_IMAGE,
                        )
                    )
                except (KeyError, TypeError, ValueError) as e:
                    logger.debug(f"Skipping malformed token list entry: {e}")

            self._base_tokens = tokens
            logger.info(f"Loaded {len(tokens)} base tokens")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Base token list unavailable, using fallback set: {e}")
            if self._base_tokens is None:
                self._base_tokens = list(FALLBACK_TOKENS)

        return self._base_tokens

    async def get_custom_tokens(self) -> list[Token]:
        stored = await self.store.load(CUSTOM_TOKENS_KEY, default=[])
        tokens = []
        for entry in stored:
            try:
                tokens.append(Token.from_dict(entry).as_custom())
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping corrupt custom token entry {entry!r}: {e}")
        return tokens

    async def get_tokens(self) -> list[Token]:
        """Get the base list merged with custom tokens, de-duplicated by address."""
        merged: dict[str, Token] = {t.address: t for t in await self.load_base_tokens()}
        for token in await self.get_custom_tokens():
            merged[token.address] = token
        return list(merged.values())

    async def get_token(self, address: str) -> Optional[Token]:
        for token in await self.get_tokens():
            if token.address == address:
                return token
        return None

    async def _build_token(self, address: str) -> Token:
        """Build a token from on-chain decimals plus best-effort metadata."""
        decimals = await self.rpc.get_mint_decimals(address)
        if decimals is None:
            raise InvalidAddress(address, "no token mint account at this address")

        metadata = await self.metadata.resolve(address)
        if metadata is None:
            return Token(
                address=address,
                symbol=f"Token-{address[:4]}",
                name=f"Unknown Token {address[:8]}",
                decimals=decimals,
            )

        if metadata.reported_decimals is not None and metadata.reported_decimals != decimals:
            logger.warning(
                f"{metadata.source} reports {metadata.reported_decimals} decimals for "
                f"{address}, on-chain mint says {decimals}; using on-chain value"
            )

        return Token(
            address=address,
            symbol=metadata.symbol,
            name=metadata.name,
            decimals=decimals,
            image_url=metadata.image_url or FALLBACK_IMAGE,
        )

    async def import_token(self, address: str) -> Token:
        """Import a token by mint address and persist it as a custom token.

        Raises:
            InvalidAddress: If the address is malformed or not a mint
        """
        address = (address or "").strip()
        if not is_valid_address(address):
            raise InvalidAddress(address)

        token = (await self._build_token(address)).as_custom()

        stored = [
            entry
            for entry in await self.store.load(CUSTOM_TOKENS_KEY, default=[])
            if entry.get("address") != address
        ]
        stored.append(token.to_dict())
        await self.store.save(CUSTOM_TOKENS_KEY, stored)
        self.cache.set(address, token)

        logger.info(f"Imported custom token {token.symbol} ({address}), decimals={token.decimals}")
        return token

    async def remove_custom_token(self, address: str) -> bool:
        stored = await self.store.load(CUSTOM_TOKENS_KEY, default=[])
        remaining = [entry for entry in stored if entry.get("address") != address]
        if len(remaining) == len(stored):
            return False
        await self.store.save(CUSTOM_TOKENS_KEY, remaining)
        self.cache.invalidate(address)
        return True

    async def resolve(self, address: str) -> Token:
        """Get a token by address, building it from chain + metadata if unknown.

        Results are cached by address; resolved tokens are not persisted.
        """
        cached = self.cache.get(address)
        if cached is not None:
            return cached

        token = await self.get_token(address)
        if token is None:
            token = await self._build_token(address)

        self.cache.set(address, token)
        return token

    async def search_tokens(self, query: str) -> list[Token]:
        """Search tokens by symbol or name; exact symbol matches first."""
        if not query or len(query.strip()) < 2:
            return []

        query = query.strip()
        needle = query.upper()
        tokens = await self.get_tokens()
        matches = [
            t for t in tokens if needle in t.symbol.upper() or needle in t.name.upper()
        ]

        def rank(token: Token) -> tuple:
            symbol = token.symbol.upper()
            return (symbol != needle, not symbol.startswith(needle), len(symbol))

        matches.sort(key=rank)

        if is_valid_address(query) and not any(t.address == query for t in matches):
            try:
                matches.append(await self.resolve(query))
            except InvalidAddress:
                pass
            except RpcError as e:
                logger.warning(f"Could not resolve searched address {query}: {e}")

        return matches

    async def popular_tokens(self) -> list[Token]:
        tokens = await self.get_tokens()
        return [t for t in tokens if t.symbol in POPULAR_SYMBOLS][:10]
