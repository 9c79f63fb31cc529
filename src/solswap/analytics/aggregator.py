"""Local analytics over confirmed swaps.

Three documents are kept in local state: the list of recorded transactions,
per-day USD volume and per-pair USD volume. Only confirmed swaps are recorded,
each signature at most once.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

from solswap.config import get_settings
from solswap.storage.repository import (
    DAILY_VOLUMES_KEY,
    PAIRS_VOLUME_KEY,
    TRANSACTIONS_KEY,
    StateStore,
)
from solswap.swap.models import SwapTransaction

logger = logging.getLogger(__name__)

HISTORY_DAYS = 7
TOP_PAIRS = 10


def pair_key(token_a: str, token_b: str) -> tuple[str, list[str]]:
    """Get the direction-independent pair key and its sorted symbols."""
    tokens = sorted([token_a, token_b])
    return f"{tokens[0]}-{tokens[1]}", tokens


def local_date(timestamp: float) -> date:
    return datetime.fromtimestamp(timestamp).date()


@dataclass
class PairVolume:
    pair: str
    tokens: list[str]
    volume: Decimal
    count: int

    def to_dict(self) -> dict:
        return {
            "pair": self.pair,
            "tokens": list(self.tokens),
            "volume": str(self.volume),
            "count": self.count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PairVolume":
        return cls(
            pair=data["pair"],
            tokens=list(data.get("tokens") or data["pair"].split("-")),
            volume=Decimal(str(data.get("volume") or 0)),
            count=int(data.get("count") or 0),
        )


@dataclass
class DailyVolume:
    date: str  # YYYY-MM-DD, local date
    volume: Decimal

    def to_dict(self) -> dict:
        return {"date": self.date, "volume": str(self.volume)}

    @classmethod
    def from_dict(cls, data: dict) -> "DailyVolume":
        return cls(date=data["date"], volume=Decimal(str(data.get("volume") or 0)))


@dataclass
class AnalyticsSummary:
    total_volume: Decimal = Decimal(0)
    volume_24h: Decimal = Decimal(0)
    transactions_24h: int = 0
    top_pairs: list[PairVolume] = field(default_factory=list)
    volume_history: list[DailyVolume] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_volume": str(self.total_volume),
            "volume_24h": str(self.volume_24h),
            "transactions_24h": self.transactions_24h,
            "top_pairs": [p.to_dict() for p in self.top_pairs],
            "volume_history": [d.to_dict() for d in self.volume_history],
        }


class AnalyticsAggregator:
    """Record confirmed swaps and summarize them."""

    def __init__(self, store: StateStore, settings=None):
        self.settings = settings or get_settings()
        self.store = store
        self._lock = asyncio.Lock()

    async def record(self, swap: SwapTransaction, now: Optional[float] = None) -> bool:
        """Record a confirmed swap.

        Args:
            swap: Swap transaction in confirmed status
            now: Unix time the retention window is measured from (defaults to
                current time). The daily bucket is the swap's own local date.

        Returns:
            True if recorded, False if ignored (not confirmed or already recorded)
        """
        if not swap.is_confirmed:
            logger.warning(f"Ignoring {swap.status.value} swap {swap.signature} for analytics")
            return False

        now = now if now is not None else time.time()
        day = local_date(swap.timestamp)
        today = local_date(now)

        async with self._lock:
            async with self.store.repository() as repo:
                transactions = await repo.get_value(TRANSACTIONS_KEY, default=[])
                if any(tx.get("signature") == swap.signature for tx in transactions):
                    logger.info(f"Swap {swap.signature} already recorded, skipping")
                    return False

                transactions.append(swap.to_dict())
                await repo.set_value(TRANSACTIONS_KEY, transactions)

                daily = [
                    DailyVolume.from_dict(d)
                    for d in await repo.get_value(DAILY_VOLUMES_KEY, default=[])
                ]
                daily = self._add_daily_volume(daily, day, swap.usd_value, today)
                await repo.set_value(DAILY_VOLUMES_KEY, [d.to_dict() for d in daily])

                pairs = [
                    PairVolume.from_dict(p)
                    for p in await repo.get_value(PAIRS_VOLUME_KEY, default=[])
                ]
                self._add_pair_volume(pairs, swap.from_token, swap.to_token, swap.usd_value)
                await repo.set_value(PAIRS_VOLUME_KEY, [p.to_dict() for p in pairs])

        logger.info(
            f"Recorded swap {swap.signature}: {swap.from_token}->{swap.to_token} "
            f"${swap.usd_value:.2f}"
        )
        return True

    def _add_daily_volume(
        self, daily: list[DailyVolume], day: date, usd_value: Decimal, today: date
    ) -> list[DailyVolume]:
        key = day.isoformat()
        for entry in daily:
            if entry.date == key:
                entry.volume += usd_value
                break
        else:
            daily.append(DailyVolume(date=key, volume=usd_value))

        # Keep the retention window, today included
        cutoff = (today - timedelta(days=self.settings.analytics_retention_days)).isoformat()
        kept = [entry for entry in daily if entry.date > cutoff]
        if len(kept) != len(daily):
            logger.debug(f"Pruned {len(daily) - len(kept)} daily volume entries")
        return sorted(kept, key=lambda entry: entry.date)

    @staticmethod
    def _add_pair_volume(
        pairs: list[PairVolume], from_token: str, to_token: str, usd_value: Decimal
    ) -> None:
        key, tokens = pair_key(from_token, to_token)
        for entry in pairs:
            if entry.pair == key:
                entry.volume += usd_value
                entry.count += 1
                return
        pairs.append(PairVolume(pair=key, tokens=tokens, volume=usd_value, count=1))

    async def get_transactions(self) -> list[SwapTransaction]:
        stored = await self.store.load(TRANSACTIONS_KEY, default=[])
        transactions = []
        for entry in stored:
            try:
                transactions.append(SwapTransaction.from_dict(entry))
            except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                logger.warning(f"Skipping corrupt transaction record: {e}")
        return transactions

    async def get_daily_volumes(self) -> list[DailyVolume]:
        return [
            DailyVolume.from_dict(d)
            for d in await self.store.load(DAILY_VOLUMES_KEY, default=[])
        ]

    async def get_pairs_volume(self) -> list[PairVolume]:
        return [
            PairVolume.from_dict(p)
            for p in await self.store.load(PAIRS_VOLUME_KEY, default=[])
        ]

    async def summarize(self, now: Optional[datetime] = None) -> AnalyticsSummary:
        """Summarize recorded swaps.

        volume_history always has exactly seven points, oldest first, covering
        the trailing seven local calendar days with zeros for days without
        volume.
        """
        now = now or datetime.now()
        now_ts = now.timestamp()
        day_ago = now_ts - 24 * 60 * 60

        transactions = await self.get_transactions()
        daily = {d.date: d.volume for d in await self.get_daily_volumes()}
        pairs = await self.get_pairs_volume()

        recent = [tx for tx in transactions if tx.timestamp >= day_ago]
        today = now.date()
        history = []
        for offset in range(HISTORY_DAYS - 1, -1, -1):
            key = (today - timedelta(days=offset)).isoformat()
            history.append(DailyVolume(date=key, volume=daily.get(key, Decimal(0))))

        return AnalyticsSummary(
            total_volume=sum((tx.usd_value for tx in transactions), Decimal(0)),
            volume_24h=sum((tx.usd_value for tx in recent), Decimal(0)),
            transactions_24h=len(recent),
            top_pairs=sorted(pairs, key=lambda p: p.volume, reverse=True)[:TOP_PAIRS],
            volume_history=history,
        )

    async def clear(self) -> None:
        """Delete all analytics data."""
        async with self._lock:
            await self.store.delete(TRANSACTIONS_KEY, DAILY_VOLUMES_KEY, PAIRS_VOLUME_KEY)
        logger.info("All analytics data cleared")
