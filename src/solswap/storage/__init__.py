"""Local persisted state (custom tokens, analytics)."""

from solswap.storage.database import check_db, close_db, create_state_engine, get_db, init_db
from solswap.storage.models import Base, StateEntry
from solswap.storage.repository import (
    CUSTOM_TOKENS_KEY,
    DAILY_VOLUMES_KEY,
    PAIRS_VOLUME_KEY,
    TRANSACTIONS_KEY,
    StateRepository,
    StateStore,
)

__all__ = [
    # Models
    "Base",
    "StateEntry",
    # Database
    "get_db",
    "check_db",
    "create_state_engine",
    "init_db",
    "close_db",
    # Repository
    "StateRepository",
    "StateStore",
    "CUSTOM_TOKENS_KEY",
    "TRANSACTIONS_KEY",
    "DAILY_VOLUMES_KEY",
    "PAIRS_VOLUME_KEY",
]
