"""Explicitly owned TTL caches.

Caches are created by whoever owns the data and injected into the components
that read it, so no two components share hidden module-level state.
"""

import logging
import time
from typing import Callable, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Key/value cache whose entries expire after ttl_seconds.

    Expired entries are kept so callers can fall back to the last good value
    with get_stale() when a refresh fails.
    """

    def __init__(
        self,
        ttl_seconds: float,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        """Get a fresh value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.ttl_seconds:
            return None
        return value

    def get_stale(self, key: Hashable) -> Optional[V]:
        """Get a value regardless of age."""
        entry = self._entries.get(key)
        return entry[1] if entry else None

    def set(self, key: Hashable, value: V) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        logger.debug(f"Clearing {self.name} ({len(self._entries)} entries)")
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
