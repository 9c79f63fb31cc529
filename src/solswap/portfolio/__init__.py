"""Wallet portfolio valuation."""

from solswap.portfolio.tracker import Holding, Portfolio, PortfolioTracker, sum_token_accounts

__all__ = [
    "Holding",
    "Portfolio",
    "PortfolioTracker",
    "sum_token_accounts",
]
