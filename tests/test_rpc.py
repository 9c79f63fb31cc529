"""Tests for the Solana RPC client and balance tracking."""

import json
from decimal import Decimal

import httpx
import pytest

from solswap.chain.balances import BalanceTracker
from solswap.chain.rpc import SPL_TOKEN_PROGRAMS, RpcError, SolanaRpcClient

from conftest import BONK_MINT, USDC_MINT, WALLET


def rpc_transport(results: dict) -> httpx.MockTransport:
    """Mock RPC answering each method with a fixed result (or error)."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method = body["method"]
        answer = results[method]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, dict) and "error" in answer:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], **answer})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": answer})

    return httpx.MockTransport(handler)


def mint_account(decimals: int, owner: str = SPL_TOKEN_PROGRAMS[0], type_: str = "mint") -> dict:
    return {
        "value": {
            "owner": owner,
            "data": {"parsed": {"type": type_, "info": {"decimals": decimals}}},
        }
    }


def token_account(amount: str) -> dict:
    return {"account": {"data": {"parsed": {"info": {"tokenAmount": {"amount": amount}}}}}}


class TestSolanaRpcClient:
    """Tests for SolanaRpcClient."""

    @pytest.mark.asyncio
    async def test_get_balance(self):
        """Test native balance in lamports."""
        rpc = SolanaRpcClient(transport=rpc_transport({"getBalance": {"value": 2_500_000_000}}))

        assert await rpc.get_balance(WALLET) == 2_500_000_000

    @pytest.mark.asyncio
    async def test_mint_decimals(self):
        """Test decimals are read from a parsed mint account."""
        rpc = SolanaRpcClient(transport=rpc_transport({"getAccountInfo": mint_account(5)}))

        assert await rpc.get_mint_decimals(BONK_MINT) == 5

    @pytest.mark.asyncio
    async def test_token_2022_mint(self):
        """Test mints owned by the Token-2022 program are accepted."""
        rpc = SolanaRpcClient(
            transport=rpc_transport({"getAccountInfo": mint_account(9, SPL_TOKEN_PROGRAMS[1])})
        )

        assert await rpc.get_mint_decimals(BONK_MINT) == 9

    @pytest.mark.asyncio
    async def test_missing_account_is_not_a_mint(self):
        """Test an empty account yields None."""
        rpc = SolanaRpcClient(transport=rpc_transport({"getAccountInfo": {"value": None}}))

        assert await rpc.get_mint_decimals(BONK_MINT) is None

    @pytest.mark.asyncio
    async def test_token_account_is_not_a_mint(self):
        """Test a token (holder) account is rejected."""
        rpc = SolanaRpcClient(
            transport=rpc_transport({"getAccountInfo": mint_account(6, type_="account")})
        )

        assert await rpc.get_mint_decimals(BONK_MINT) is None

    @pytest.mark.asyncio
    async def test_system_owned_account_is_not_a_mint(self):
        """Test accounts not owned by a token program are rejected."""
        rpc = SolanaRpcClient(
            transport=rpc_transport(
                {"getAccountInfo": mint_account(6, owner="11111111111111111111111111111111")}
            )
        )

        assert await rpc.get_mint_decimals(BONK_MINT) is None

    @pytest.mark.asyncio
    async def test_rpc_error(self):
        """Test JSON-RPC errors raise RpcError."""
        rpc = SolanaRpcClient(
            transport=rpc_transport({"getBalance": {"error": {"code": -32602, "message": "bad"}}})
        )

        with pytest.raises(RpcError):
            await rpc.get_balance(WALLET)

    @pytest.mark.asyncio
    async def test_network_error(self):
        """Test transport failures raise RpcError."""
        rpc = SolanaRpcClient(
            transport=rpc_transport({"getBalance": httpx.ConnectError("refused")})
        )

        with pytest.raises(RpcError):
            await rpc.get_balance(WALLET)

    @pytest.mark.asyncio
    async def test_signature_status(self):
        """Test parsing of signature statuses."""
        rpc = SolanaRpcClient(
            transport=rpc_transport(
                {
                    "getSignatureStatuses": {
                        "value": [{"confirmationStatus": "finalized", "err": None, "slot": 42}]
                    }
                }
            )
        )

        status = await rpc.get_signature_status("sig")

        assert status.is_confirmed
        assert not status.is_failed
        assert status.slot == 42

    @pytest.mark.asyncio
    async def test_unknown_signature(self):
        """Test an unknown signature yields None."""
        rpc = SolanaRpcClient(
            transport=rpc_transport({"getSignatureStatuses": {"value": [None]}})
        )

        assert await rpc.get_signature_status("sig") is None


class TestBalanceTracker:
    """Tests for BalanceTracker."""

    @pytest.mark.asyncio
    async def test_native_sol_balance(self, sol_token):
        """Test SOL is read from lamports."""
        rpc = SolanaRpcClient(transport=rpc_transport({"getBalance": {"value": 1_500_000_000}}))
        tracker = BalanceTracker(rpc)

        assert await tracker.get_balance(sol_token, WALLET) == Decimal("1.5")

    @pytest.mark.asyncio
    async def test_spl_balance_sums_accounts(self, usdc_token):
        """Test all token accounts for the mint are summed."""
        rpc = SolanaRpcClient(
            transport=rpc_transport(
                {
                    "getTokenAccountsByOwner": {
                        "value": [token_account("1500000"), token_account("250000")]
                    }
                }
            )
        )
        tracker = BalanceTracker(rpc)

        assert await tracker.get_balance(usdc_token, WALLET) == Decimal("1.75")

    @pytest.mark.asyncio
    async def test_no_token_accounts(self, usdc_token):
        """Test a wallet without accounts for the mint has zero balance."""
        rpc = SolanaRpcClient(transport=rpc_transport({"getTokenAccountsByOwner": {"value": []}}))
        tracker = BalanceTracker(rpc)

        assert await tracker.get_balance(usdc_token, WALLET) == Decimal(0)

    @pytest.mark.asyncio
    async def test_refresh_keeps_previous_on_failure(self, sol_token, usdc_token):
        """Test a failed fetch keeps the last value."""
        results = {
            "getBalance": {"value": 2_000_000_000},
            "getTokenAccountsByOwner": {"value": [token_account("5000000")]},
        }
        tracker = BalanceTracker(SolanaRpcClient(transport=rpc_transport(results)))

        assert await tracker.refresh(WALLET, sol_token, usdc_token) == (Decimal(2), Decimal(5))

        results["getBalance"] = {"error": {"code": -32000, "message": "node behind"}}
        from_balance, to_balance = await tracker.refresh(WALLET, sol_token, usdc_token)

        assert from_balance == Decimal(2)
        assert to_balance == Decimal(5)

    @pytest.mark.asyncio
    async def test_failed_fetch_never_borrows_another_tokens_balance(
        self, sol_token, usdc_token, bonk_token
    ):
        """Test a new selection whose fetch fails has no balance rather than the old one."""
        results = {
            "getBalance": {"value": 100_000_000_000},
            "getTokenAccountsByOwner": {"error": {"code": -32000, "message": "node behind"}},
        }
        tracker = BalanceTracker(SolanaRpcClient(transport=rpc_transport(results)))
        await tracker.refresh(WALLET, sol_token, None)

        from_balance, to_balance = await tracker.refresh(WALLET, usdc_token, bonk_token)

        assert from_balance is None
        assert to_balance is None
        assert tracker.last_known(sol_token, WALLET) == Decimal(100)
        assert tracker.last_known(usdc_token, WALLET) is None
