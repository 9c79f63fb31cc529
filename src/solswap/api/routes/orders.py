"""Limit order listing endpoint."""

from fastapi import APIRouter, Depends

from solswap.api.contracts import OrdersResponse
from solswap.api.deps import Services, get_services, http_error
from solswap.errors import InvalidAddress, SolswapError
from solswap.tokens import is_valid_address

router = APIRouter()


@router.get("/orders/{wallet}", response_model=OrdersResponse)
async def list_orders(wallet: str, services: Services = Depends(get_services)):
    """List open orders followed by order history."""
    if not is_valid_address(wallet):
        raise http_error(InvalidAddress(wallet))

    try:
        orders = await services.orders.list_orders(wallet)
    except SolswapError as e:
        raise http_error(e)

    return OrdersResponse(wallet=wallet, orders=[order.to_dict() for order in orders])
