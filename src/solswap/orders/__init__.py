"""Limit orders through the Jupiter limit order API."""

from solswap.orders.client import JupiterLimitOrderClient
from solswap.orders.manager import LimitOrderManager
from solswap.orders.models import LimitOrder, OrderStatus, format_time_remaining, order_amounts

__all__ = [
    "JupiterLimitOrderClient",
    "LimitOrderManager",
    "LimitOrder",
    "OrderStatus",
    "format_time_remaining",
    "order_amounts",
]
