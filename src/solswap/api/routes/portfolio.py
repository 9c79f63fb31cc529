"""Wallet portfolio endpoint."""

from fastapi import APIRouter, Depends, HTTPException, status

from solswap.api.contracts import PortfolioResponse
from solswap.api.deps import Services, get_services, http_error
from solswap.chain.rpc import RpcError
from solswap.errors import SolswapError

router = APIRouter()


@router.get("/portfolio/{wallet}", response_model=PortfolioResponse)
async def get_portfolio(wallet: str, services: Services = Depends(get_services)):
    """Every token the wallet holds with USD value and 24h change."""
    try:
        portfolio = await services.portfolio.get_portfolio(wallet)
    except SolswapError as e:
        raise http_error(e)
    except RpcError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return portfolio.to_dict()
