"""Routing: Jupiter aggregator client, price feed and quote engine."""

from solswap.routing.base import Quote, from_base_units, to_base_units
from solswap.routing.jupiter import JupiterClient, create_jupiter_client
from solswap.routing.prices import PriceFeed, create_portfolio_price_feed, create_price_feed
from solswap.routing.quote_engine import QuoteEngine, QuoteRefresher

__all__ = [
    "Quote",
    "to_base_units",
    "from_base_units",
    # Clients
    "JupiterClient",
    "create_jupiter_client",
    "PriceFeed",
    "create_price_feed",
    "create_portfolio_price_feed",
    # Engine
    "QuoteEngine",
    "QuoteRefresher",
]
