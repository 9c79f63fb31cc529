"""Wallet balance endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from solswap.api.contracts import BalanceEntry, BalancesResponse
from solswap.api.deps import Services, get_services, http_error
from solswap.chain.rpc import RpcError
from solswap.config import WRAPPED_SOL_MINT
from solswap.errors import InvalidAddress, SolswapError
from solswap.tokens import is_valid_address

router = APIRouter()

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@router.get("/balances/{wallet}", response_model=BalancesResponse)
async def get_balances(
    wallet: str,
    tokens: Optional[list[str]] = Query(None, description="Token mints (default SOL, USDC)"),
    services: Services = Depends(get_services),
):
    """Get wallet balances for the given token mints."""
    if not is_valid_address(wallet):
        raise http_error(InvalidAddress(wallet))

    entries = []
    for mint in tokens or [WRAPPED_SOL_MINT, USDC_MINT]:
        try:
            token = await services.registry.resolve(mint)
        except SolswapError as e:
            raise http_error(e)
        except RpcError as e:
            entries.append(BalanceEntry(address=mint, symbol="", error=str(e)))
            continue

        try:
            balance = await services.balances.get_balance(token, wallet)
            entries.append(BalanceEntry(address=mint, symbol=token.symbol, balance=str(balance)))
        except RpcError as e:
            entries.append(BalanceEntry(address=mint, symbol=token.symbol, error=str(e)))

    return BalancesResponse(wallet=wallet, balances=entries)
