"""Local analytics aggregation."""

from solswap.analytics.aggregator import (
    AnalyticsAggregator,
    AnalyticsSummary,
    DailyVolume,
    PairVolume,
    pair_key,
)

__all__ = [
    "AnalyticsAggregator",
    "AnalyticsSummary",
    "DailyVolume",
    "PairVolume",
    "pair_key",
]
