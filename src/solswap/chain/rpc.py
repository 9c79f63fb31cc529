"""Minimal Solana JSON-RPC client for read-only chain queries.

Covers the handful of calls the swap pipeline and portfolio view need: native
balances, SPL token accounts, mint accounts and signature status.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 10**9
SPL_TOKEN_PROGRAMS = (
    "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",
    "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb",
)


class RpcError(Exception):
    """Raised when the RPC endpoint is unreachable or returns an error."""

    pass


@dataclass
class SignatureStatus:
    """Status of a submitted transaction signature."""

    signature: str
    confirmation_status: Optional[str]  # processed, confirmed, finalized
    err: Optional[Any] = None
    slot: Optional[int] = None

    @property
    def is_confirmed(self) -> bool:
        return self.err is None and self.confirmation_status in ("confirmed", "finalized")

    @property
    def is_failed(self) -> bool:
        return self.err is not None


class SolanaRpcClient:
    """Solana JSON-RPC over httpx."""

    def __init__(
        self,
        rpc_url: str = "https://api.mainnet-beta.solana.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize RPC client.

        Args:
            rpc_url: JSON-RPC endpoint
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._transport = transport
        self._request_id = 0

    async def _call(self, method: str, params: list) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.rpc_url, json=payload)
        except httpx.HTTPError as e:
            raise RpcError(f"{method} request failed: {e}") from e

        if response.status_code != 200:
            raise RpcError(f"{method} HTTP {response.status_code}: {response.text[:200]}")

        data = response.json()
        if "error" in data:
            raise RpcError(f"{method} error: {data['error']}")
        return data.get("result")

    async def get_health(self) -> str:
        """Node health: "ok" when the node is caught up."""
        return str(await self._call("getHealth", []))

    async def get_balance(self, address: str) -> int:
        """Get native balance in lamports."""
        result = await self._call("getBalance", [address, {"commitment": "confirmed"}])
        return int(result["value"])

    async def get_token_accounts_by_owner(self, owner: str, mint: str) -> list[dict]:
        """Get parsed SPL token accounts of owner for one mint."""
        result = await self._call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": "confirmed"}],
        )
        return result.get("value", []) if result else []

    async def get_token_accounts_by_program(self, owner: str, program_id: str) -> list[dict]:
        """Get every parsed token account of owner under one token program."""
        result = await self._call(
            "getTokenAccountsByOwner",
            [
                owner,
                {"programId": program_id},
                {"encoding": "jsonParsed", "commitment": "confirmed"},
            ],
        )
        return result.get("value", []) if result else []

    async def get_mint_decimals(self, mint: str) -> Optional[int]:
        """Read decimals from the on-chain mint account.

        Returns:
            Decimals, or None if the account does not exist or is not a mint
        """
        result = await self._call("getAccountInfo", [mint, {"encoding": "jsonParsed"}])
        account = (result or {}).get("value")
        if not account:
            return None

        if account.get("owner") not in SPL_TOKEN_PROGRAMS:
            return None

        data = account.get("data")
        if not isinstance(data, dict):
            return None

        parsed = data.get("parsed") or {}
        if parsed.get("type") != "mint":
            return None

        decimals = (parsed.get("info") or {}).get("decimals")
        return int(decimals) if decimals is not None else None

    async def get_signature_status(self, signature: str) -> Optional[SignatureStatus]:
        """Get status of a signature, searching transaction history.

        Returns:
            SignatureStatus, or None if the cluster does not know the signature
        """
        result = await self._call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        values = (result or {}).get("value") or [None]
        status = values[0]
        if status is None:
            return None

        return SignatureStatus(
            signature=signature,
            confirmation_status=status.get("confirmationStatus"),
            err=status.get("err"),
            slot=status.get("slot"),
        )
