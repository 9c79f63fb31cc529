"""Market token lists."""

from solswap.market.feeds import (
    FEEDS,
    TRENDING,
    VERIFIED,
    Feed,
    MarketDataClient,
    MarketToken,
    new_tokens,
)

__all__ = [
    "FEEDS",
    "TRENDING",
    "VERIFIED",
    "Feed",
    "MarketDataClient",
    "MarketToken",
    "new_tokens",
]
