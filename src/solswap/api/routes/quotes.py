"""Quote endpoint."""

from fastapi import APIRouter, Depends

from solswap.api.contracts import QuoteRequest, QuoteResponse
from solswap.api.deps import Services, get_services, http_error
from solswap.chain.rpc import RpcError
from solswap.errors import QuoteUnavailable, SolswapError

router = APIRouter()


@router.post("/quotes", response_model=QuoteResponse)
async def get_quote(
    request: QuoteRequest,
    services: Services = Depends(get_services),
):
    """Get a swap quote with USD values and route."""
    try:
        from_token = await services.registry.resolve(request.from_token)
        to_token = await services.registry.resolve(request.to_token)
        quote = await services.quote_engine.fetch_quote(
            from_token, to_token, request.amount, request.slippage_bps
        )
    except RpcError as e:
        raise http_error(QuoteUnavailable(f"Token lookup failed: {e}"))
    except SolswapError as e:
        raise http_error(e)

    return quote.to_dict()
