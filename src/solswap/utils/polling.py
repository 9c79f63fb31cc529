"""Timer-driven refresh tasks.

The aggregator APIs offer no push channel, so fresh quotes and order lists are
obtained by polling. A PeriodicTask owns one asyncio task; stopping or
restarting it cancels any pending timer immediately.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run an async callback now and then every interval seconds.

    Exceptions raised by the callback are logged and swallowed; the loop
    continues on its next tick.

    Example:
        task = PeriodicTask(refresh_orders, interval=30.0, name="orders")
        task.start()
        ...
        await task.stop()
    """

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        interval: float,
        name: str = "periodic",
        run_immediately: bool = True,
    ):
        self.callback = callback
        self.interval = interval
        self.name = name
        self.run_immediately = run_immediately
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop. A running loop is left untouched."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=f"poll:{self.name}")
        logger.debug(f"Started {self.name} polling every {self.interval}s")

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"Stopped {self.name} polling")

    async def restart(self) -> None:
        """Cancel the pending timer and start over from an immediate tick."""
        await self.stop()
        self.start()

    async def _run(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval)

        while True:
            self.ticks += 1
            try:
                await self.callback()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"{self.name} refresh failed: {type(e).__name__}: {e}")

            await asyncio.sleep(self.interval)
