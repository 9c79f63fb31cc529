"""Balance tracking for the selected swap pair.

Balances are fetched on demand (token selection, wallet connect, after a
confirmed swap); there is no timer polling.
"""

import logging
from decimal import Decimal
from typing import Optional

from solswap.chain.rpc import LAMPORTS_PER_SOL, RpcError, SolanaRpcClient
from solswap.config import WRAPPED_SOL_MINT
from solswap.tokens.models import Token

logger = logging.getLogger(__name__)


def is_native_sol(token: Token) -> bool:
    return token.address == WRAPPED_SOL_MINT


class BalanceTracker:
    """Reads wallet balances and holds the last values for the selected pair."""

    def __init__(self, rpc: SolanaRpcClient):
        self.rpc = rpc
        self.from_balance: Optional[Decimal] = None
        self.to_balance: Optional[Decimal] = None
        self._wallet: Optional[str] = None
        self._last_known: dict[tuple[str, str], Decimal] = {}

    async def get_balance(self, token: Token, wallet_address: str) -> Decimal:
        """Get the human-unit balance of token held by wallet_address.

        Native SOL is read with getBalance. SPL balances sum every token account
        the wallet holds for the mint.

        Raises:
            RpcError: If the RPC endpoint fails
        """
        if is_native_sol(token):
            lamports = await self.rpc.get_balance(wallet_address)
            balance = Decimal(lamports) / Decimal(LAMPORTS_PER_SOL)
        else:
            balance = await self._get_token_balance(token, wallet_address)

        self._last_known[(wallet_address, token.address)] = balance
        return balance

    async def _get_token_balance(self, token: Token, wallet_address: str) -> Decimal:
        accounts = await self.rpc.get_token_accounts_by_owner(wallet_address, token.address)
        total = 0
        for account in accounts:
            try:
                info = account["account"]["data"]["parsed"]["info"]
                total += int(info["tokenAmount"]["amount"])
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unparseable token account for {token.symbol}: {e}")

        return Decimal(total).scaleb(-token.decimals)

    def last_known(self, token: Token, wallet_address: str) -> Optional[Decimal]:
        """Last balance successfully fetched for this wallet and token."""
        return self._last_known.get((wallet_address, token.address))

    async def _fetch(self, token: Token, wallet_address: str) -> Optional[Decimal]:
        try:
            return await self.get_balance(token, wallet_address)
        except RpcError as e:
            logger.warning(f"Failed to fetch {token.symbol} balance for {wallet_address}: {e}")
            return self.last_known(token, wallet_address)

    async def refresh(
        self,
        wallet_address: str,
        from_token: Optional[Token],
        to_token: Optional[Token],
    ) -> tuple[Optional[Decimal], Optional[Decimal]]:
        """Re-fetch balances of both selected tokens.

        A failed fetch falls back to the last value fetched for that same token.

        Returns:
            (from_balance, to_balance)
        """
        if wallet_address != self._wallet:
            self.from_balance = None
            self.to_balance = None
            self._wallet = wallet_address

        if from_token is not None:
            self.from_balance = await self._fetch(from_token, wallet_address)
        if to_token is not None:
            self.to_balance = await self._fetch(to_token, wallet_address)

        return self.from_balance, self.to_balance

    def clear(self) -> None:
        """Forget held balances (wallet disconnected)."""
        self.from_balance = None
        self.to_balance = None
        self._wallet = None
        self._last_known.clear()
