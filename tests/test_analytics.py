"""Tests for swap analytics."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from solswap.analytics.aggregator import AnalyticsAggregator, pair_key
from solswap.storage.repository import DAILY_VOLUMES_KEY, TRANSACTIONS_KEY
from solswap.swap.models import SwapTransaction, TransactionStatus

from conftest import WALLET

NOW = datetime(2024, 5, 10, 12, 0)


def make_swap(
    signature: str,
    from_token: str = "SOL",
    to_token: str = "USDC",
    usd_value: str = "100",
    when: datetime = NOW,
    status: TransactionStatus = TransactionStatus.CONFIRMED,
) -> SwapTransaction:
    return SwapTransaction(
        signature=signature,
        from_token=from_token,
        to_token=to_token,
        from_amount=Decimal("1"),
        to_amount=Decimal("150"),
        usd_value=Decimal(usd_value),
        wallet_address=WALLET,
        status=status,
        timestamp=when.timestamp(),
    )


@pytest.fixture
def aggregator(state_store, settings) -> AnalyticsAggregator:
    return AnalyticsAggregator(state_store, settings=settings)


async def record(aggregator: AnalyticsAggregator, swap: SwapTransaction) -> bool:
    return await aggregator.record(swap, now=swap.timestamp)


class TestPairKey:
    def test_direction_independent(self):
        assert pair_key("SOL", "USDC") == pair_key("USDC", "SOL") == ("SOL-USDC", ["SOL", "USDC"])


class TestAnalyticsAggregator:
    """Tests for AnalyticsAggregator."""

    @pytest.mark.asyncio
    async def test_pair_volume_accumulates_both_directions(self, aggregator):
        """Test A->B and B->A land on one pair entry."""
        await record(aggregator, make_swap("s1", "SOL", "USDC", "100"))
        await record(aggregator, make_swap("s2", "USDC", "SOL", "50"))

        pairs = await aggregator.get_pairs_volume()

        assert len(pairs) == 1
        assert pairs[0].pair == "SOL-USDC"
        assert pairs[0].volume == Decimal("150")
        assert pairs[0].count == 2

    @pytest.mark.asyncio
    async def test_record_is_idempotent(self, aggregator):
        """Test recording the same signature twice counts once."""
        assert await record(aggregator, make_swap("s1")) is True
        assert await record(aggregator, make_swap("s1")) is False

        assert len(await aggregator.get_transactions()) == 1
        daily = await aggregator.get_daily_volumes()
        assert daily[0].volume == Decimal("100")
        assert (await aggregator.get_pairs_volume())[0].count == 1

    @pytest.mark.asyncio
    async def test_unconfirmed_swaps_ignored(self, aggregator):
        for status in (
            TransactionStatus.PENDING,
            TransactionStatus.FAILED,
            TransactionStatus.UNKNOWN,
        ):
            assert await record(aggregator, make_swap(f"s-{status.value}", status=status)) is False

        assert await aggregator.get_transactions() == []
        assert await aggregator.get_daily_volumes() == []

    @pytest.mark.asyncio
    async def test_daily_volume_by_local_date(self, aggregator):
        await record(aggregator, make_swap("s1", usd_value="10"))
        await record(aggregator, make_swap("s2", usd_value="15", when=NOW + timedelta(hours=2)))
        await record(aggregator, make_swap("s3", usd_value="7", when=NOW - timedelta(days=1)))

        daily = await aggregator.get_daily_volumes()

        assert [(d.date, d.volume) for d in daily] == [
            ("2024-05-09", Decimal("7")),
            ("2024-05-10", Decimal("25")),
        ]

    @pytest.mark.asyncio
    async def test_daily_bucket_uses_swap_time(self, aggregator):
        """Test a swap confirmed before midnight but recorded after counts on its own day."""
        swap = make_swap("late", usd_value="12", when=datetime(2024, 5, 9, 23, 59))
        recorded_at = datetime(2024, 5, 10, 0, 1).timestamp()

        assert await aggregator.record(swap, now=recorded_at) is True

        daily = await aggregator.get_daily_volumes()
        assert [(d.date, d.volume) for d in daily] == [("2024-05-09", Decimal("12"))]

    @pytest.mark.asyncio
    async def test_daily_volume_retention(self, aggregator):
        """Test entries older than the retention window are pruned."""
        start = NOW - timedelta(days=40)
        await record(aggregator, make_swap("old", when=start))
        await record(aggregator, make_swap("edge", when=start + timedelta(days=29)))

        assert len(await aggregator.get_daily_volumes()) == 2

        await record(aggregator, make_swap("new", when=start + timedelta(days=30)))
        dates = [d.date for d in await aggregator.get_daily_volumes()]

        assert (start.date()).isoformat() not in dates
        assert dates == sorted(dates)
        assert len(dates) == 2

    @pytest.mark.asyncio
    async def test_summary(self, aggregator):
        """Test totals, the 24h window and the seven-day history."""
        await record(aggregator, make_swap("s1", usd_value="100", when=NOW - timedelta(hours=1)))
        await record(aggregator, make_swap("s2", usd_value="40", when=NOW - timedelta(hours=30)))
        await record(
            aggregator, make_swap("s3", "BONK", "SOL", usd_value="5", when=NOW - timedelta(days=3))
        )

        summary = await aggregator.summarize(now=NOW)

        assert summary.total_volume == Decimal("145")
        assert summary.volume_24h == Decimal("100")
        assert summary.transactions_24h == 1
        assert [p.pair for p in summary.top_pairs] == ["SOL-USDC", "BONK-SOL"]

        history = summary.volume_history
        assert len(history) == 7
        assert history[0].date == "2024-05-04"
        assert history[-1].date == "2024-05-10"
        assert history[-1].volume == Decimal("100")
        assert history[-2].volume == Decimal("40")
        assert history[-4].volume == Decimal("5")
        assert history[0].volume == Decimal(0)

    @pytest.mark.asyncio
    async def test_empty_summary(self, aggregator):
        summary = await aggregator.summarize(now=NOW)

        assert summary.total_volume == Decimal(0)
        assert summary.top_pairs == []
        assert len(summary.volume_history) == 7
        assert all(d.volume == 0 for d in summary.volume_history)

    @pytest.mark.asyncio
    async def test_top_pairs_limited(self, aggregator):
        for i in range(12):
            await record(aggregator, make_swap(f"s{i}", f"T{i:02d}", "USDC", usd_value=str(i + 1)))

        summary = await aggregator.summarize(now=NOW)

        assert len(summary.top_pairs) == 10
        assert summary.top_pairs[0].volume == Decimal("12")

    @pytest.mark.asyncio
    async def test_corrupt_transaction_skipped(self, aggregator, state_store):
        await state_store.save(TRANSACTIONS_KEY, [{"signature": "broken"}])

        assert await aggregator.get_transactions() == []

    @pytest.mark.asyncio
    async def test_clear(self, aggregator, state_store):
        await record(aggregator, make_swap("s1"))

        await aggregator.clear()

        assert await aggregator.get_transactions() == []
        assert await state_store.load(DAILY_VOLUMES_KEY) is None
        assert (await aggregator.summarize(now=NOW)).total_volume == Decimal(0)
