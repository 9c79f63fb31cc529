"""Wallet portfolio: every token a wallet holds, valued in USD.

Holdings are the native SOL balance plus every non-empty account under the SPL
token programs. Prices and 24h changes come from the portfolio price feed
(Coinpaprika first, then Jupiter). A holding without a price is still listed,
with no USD value.
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from solswap.chain.rpc import LAMPORTS_PER_SOL, SPL_TOKEN_PROGRAMS, RpcError, SolanaRpcClient
from solswap.config import WRAPPED_SOL_MINT
from solswap.errors import InvalidAddress
from solswap.routing.prices import PriceFeed
from solswap.tokens.models import Token
from solswap.tokens.registry import TokenRegistry, is_valid_address

logger = logging.getLogger(__name__)


@dataclass
class Holding:
    """One token position of the wallet."""

    token: Token
    amount: Decimal
    price_usd: Optional[Decimal] = None
    change_24h: Optional[Decimal] = None  # percent

    @property
    def value_usd(self) -> Optional[Decimal]:
        if self.price_usd is None:
            return None
        return self.amount * self.price_usd

    def to_dict(self) -> dict:
        value = self.value_usd
        return {
            "address": self.token.address,
            "symbol": self.token.symbol,
            "name": self.token.name,
            "image_url": self.token.image_url,
            "amount": str(self.amount),
            "price_usd": str(self.price_usd) if self.price_usd is not None else None,
            "value_usd": str(value) if value is not None else None,
            "change_24h": str(self.change_24h) if self.change_24h is not None else None,
        }


@dataclass
class Portfolio:
    wallet: str
    holdings: list[Holding] = field(default_factory=list)
    fetched_at: float = field(default_factory=time.time)

    @property
    def total_value_usd(self) -> Decimal:
        return sum(
            (h.value_usd for h in self.holdings if h.value_usd is not None), Decimal(0)
        )

    def to_dict(self) -> dict:
        return {
            "wallet": self.wallet,
            "total_value_usd": str(self.total_value_usd),
            "holdings": [h.to_dict() for h in self.holdings],
            "fetched_at": self.fetched_at,
        }


def sum_token_accounts(accounts: list[dict]) -> dict[str, tuple[int, int]]:
    """Sum raw amounts per mint across parsed token accounts.

    Returns:
        Mapping of mint to (raw amount, decimals); empty positions are dropped
    """
    totals: dict[str, tuple[int, int]] = {}
    for account in accounts:
        try:
            info = account["account"]["data"]["parsed"]["info"]
            mint = info["mint"]
            amount = int(info["tokenAmount"]["amount"])
            decimals = int(info["tokenAmount"]["decimals"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping unparseable token account: {e}")
            continue

        previous, _ = totals.get(mint, (0, decimals))
        totals[mint] = (previous + amount, decimals)

    return {mint: total for mint, total in totals.items() if total[0] > 0}


class PortfolioTracker:
    """Builds a valued snapshot of a wallet's holdings."""

    def __init__(
        self,
        rpc: SolanaRpcClient,
        registry: TokenRegistry,
        prices: PriceFeed,
    ):
        self.rpc = rpc
        self.registry = registry
        self.prices = prices

    async def _token(self, mint: str, decimals: int) -> Token:
        try:
            return await self.registry.resolve(mint)
        except (InvalidAddress, RpcError) as e:
            logger.warning(f"Could not resolve token {mint}: {e}")
            return Token(
                address=mint,
                symbol=f"Token-{mint[:4]}",
                name=f"Unknown Token {mint[:8]}",
                decimals=decimals,
            )

    async def get_portfolio(self, wallet_address: str) -> Portfolio:
        """Get every holding of the wallet, largest USD value first.

        Wrapped SOL accounts count toward the SOL holding.

        Raises:
            InvalidAddress: If the wallet address is malformed
            RpcError: If the balance or token accounts cannot be read
        """
        if not is_valid_address(wallet_address):
            raise InvalidAddress(wallet_address)

        lamports = await self.rpc.get_balance(wallet_address)
        accounts = []
        for program_id in SPL_TOKEN_PROGRAMS:
            accounts.extend(
                await self.rpc.get_token_accounts_by_program(wallet_address, program_id)
            )

        positions = sum_token_accounts(accounts)
        wrapped, _ = positions.pop(WRAPPED_SOL_MINT, (0, 9))

        holdings = [
            Holding(
                await self._token(WRAPPED_SOL_MINT, 9),
                Decimal(lamports + wrapped) / Decimal(LAMPORTS_PER_SOL),
            )
        ]
        for mint, (raw, decimals) in positions.items():
            token = await self._token(mint, decimals)
            holdings.append(Holding(token, Decimal(raw).scaleb(-decimals)))

        mints = [h.token.address for h in holdings]
        prices = await self.prices.get_prices(mints)
        changes = await self.prices.get_changes_24h(mints)
        for holding in holdings:
            holding.price_usd = prices.get(holding.token.address)
            holding.change_24h = changes.get(holding.token.address)

        holdings.sort(key=lambda h: h.value_usd or Decimal(0), reverse=True)
        logger.info(f"Portfolio for {wallet_address}: {len(holdings)} holdings")
        return Portfolio(wallet=wallet_address, holdings=holdings)
