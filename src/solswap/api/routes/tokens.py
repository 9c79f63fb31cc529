"""Token registry endpoints."""

from fastapi import APIRouter, Depends, Query

from solswap.api.contracts import TokenImportRequest, TokenResponse
from solswap.api.deps import Services, get_services, http_error
from solswap.chain.rpc import RpcError
from solswap.errors import QuoteUnavailable, SolswapError

router = APIRouter()


@router.get("/tokens", response_model=list[TokenResponse])
async def list_tokens(
    popular: bool = Query(False, description="Only the popular tokens"),
    services: Services = Depends(get_services),
):
    """List the base token list merged with imported tokens."""
    if popular:
        tokens = await services.registry.popular_tokens()
    else:
        tokens = await services.registry.get_tokens()
    return [token.to_dict() for token in tokens]


@router.get("/tokens/search", response_model=list[TokenResponse])
async def search_tokens(
    q: str = Query(..., description="Symbol, name or mint address"),
    services: Services = Depends(get_services),
):
    """Search tokens by symbol, name or address."""
    tokens = await services.registry.search_tokens(q)
    return [token.to_dict() for token in tokens]


@router.post("/tokens/import", response_model=TokenResponse)
async def import_token(
    request: TokenImportRequest,
    services: Services = Depends(get_services),
):
    """Import a token by mint address."""
    try:
        token = await services.registry.import_token(request.address)
    except RpcError as e:
        raise http_error(QuoteUnavailable(f"Mint lookup failed: {e}"))
    except SolswapError as e:
        raise http_error(e)
    return token.to_dict()
