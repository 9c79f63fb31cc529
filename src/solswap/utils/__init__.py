"""Shared utilities."""

from solswap.utils.cache import TTLCache
from solswap.utils.polling import PeriodicTask

__all__ = [
    "TTLCache",
    "PeriodicTask",
]
