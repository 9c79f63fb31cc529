"""Repository for local persisted state.

State is a flat key/value space where every value is a JSON document read and
written wholesale, with no partial updates.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncContextManager, AsyncIterator, Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from solswap.storage.models import StateEntry

logger = logging.getLogger(__name__)

# Storage keys
CUSTOM_TOKENS_KEY = "custom_tokens"
TRANSACTIONS_KEY = "transactions"
DAILY_VOLUMES_KEY = "daily_volumes"
PAIRS_VOLUME_KEY = "pairs_volume"


class StateRepository:
    """Repository for key/value state operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_value(self, key: str, default: Any = None) -> Any:
        """Load and decode the JSON value stored under key."""
        stmt = select(StateEntry).where(StateEntry.key == key)
        result = await self.session.execute(stmt)
        entry = result.scalar_one_or_none()

        if entry is None:
            return default

        try:
            return json.loads(entry.value)
        except json.JSONDecodeError as e:
            logger.error(f"Corrupt state under {key!r}, using default: {e}")
            return default

    async def set_value(self, key: str, value: Any) -> None:
        """Encode value as JSON and replace whatever is stored under key."""
        encoded = json.dumps(value)
        stmt = select(StateEntry).where(StateEntry.key == key)
        result = await self.session.execute(stmt)
        entry = result.scalar_one_or_none()

        if entry is None:
            self.session.add(StateEntry(key=key, value=encoded))
        else:
            entry.value = encoded
        await self.session.flush()

    async def delete_value(self, key: str) -> None:
        """Remove the value stored under key, if any."""
        await self.session.execute(delete(StateEntry).where(StateEntry.key == key))
        await self.session.flush()


class StateStore:
    """Session-scoped access to state; each call runs in its own transaction.

    Args:
        db: Callable returning an async session context manager that commits
            on exit (defaults to solswap.storage.database.get_db)
    """

    def __init__(self, db: Optional[Callable[[], AsyncContextManager[AsyncSession]]] = None):
        if db is None:
            from solswap.storage.database import get_db

            db = get_db
        self._db = db

    async def load(self, key: str, default: Any = None) -> Any:
        async with self._db() as session:
            return await StateRepository(session).get_value(key, default)

    async def save(self, key: str, value: Any) -> None:
        async with self._db() as session:
            await StateRepository(session).set_value(key, value)

    async def delete(self, *keys: str) -> None:
        async with self._db() as session:
            repo = StateRepository(session)
            for key in keys:
                await repo.delete_value(key)

    @asynccontextmanager
    async def repository(self) -> AsyncIterator[StateRepository]:
        """Run several reads and writes in a single transaction."""
        async with self._db() as session:
            yield StateRepository(session)
