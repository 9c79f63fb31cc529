"""Tests for the cache and polling utilities."""

import asyncio

import pytest

from solswap.utils.cache import TTLCache
from solswap.utils.polling import PeriodicTask


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Tests for TTLCache."""

    def test_fresh_value(self):
        """Test values are returned within the TTL."""
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)
        cache.set("sol", 150)

        clock.now += 59
        assert cache.get("sol") == 150
        assert "sol" in cache

    def test_expired_value(self):
        """Test expired values are hidden from get but kept for get_stale."""
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)
        cache.set("sol", 150)

        clock.now += 61
        assert cache.get("sol") is None
        assert "sol" not in cache
        assert cache.get_stale("sol") == 150

    def test_invalidate_and_clear(self):
        """Test removing entries."""
        cache = TTLCache(60)
        cache.set("a", 1)
        cache.set("b", 2)

        cache.invalidate("a")
        assert cache.get_stale("a") is None
        assert len(cache) == 1

        cache.clear()
        assert len(cache) == 0


class TestPeriodicTask:
    """Tests for PeriodicTask."""

    @pytest.mark.asyncio
    async def test_runs_immediately_and_repeats(self):
        """Test the callback runs at start and on each interval."""
        calls = []

        async def tick():
            calls.append(1)

        task = PeriodicTask(tick, interval=0.01, name="test")
        task.start()
        await asyncio.sleep(0.05)
        await task.stop()

        assert len(calls) >= 2
        assert not task.running

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_loop(self):
        """Test exceptions are logged and the loop continues."""
        calls = []

        async def flaky():
            calls.append(1)
            raise RuntimeError("network down")

        task = PeriodicTask(flaky, interval=0.01, name="flaky")
        task.start()
        await asyncio.sleep(0.05)
        assert task.running
        await task.stop()

        assert len(calls) >= 2

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_timer(self):
        """Test stopping cancels before the next tick."""
        calls = []

        async def tick():
            calls.append(1)

        task = PeriodicTask(tick, interval=10, name="slow")
        task.start()
        await asyncio.sleep(0.01)
        await task.stop()

        assert calls == [1]

    @pytest.mark.asyncio
    async def test_restart_ticks_immediately(self):
        """Test restart cancels the timer and runs again at once."""
        calls = []

        async def tick():
            calls.append(1)

        task = PeriodicTask(tick, interval=10, name="restart")
        task.start()
        await asyncio.sleep(0.01)
        await task.restart()
        await asyncio.sleep(0.01)
        await task.stop()

        assert len(calls) == 2
        assert task.ticks == 2
