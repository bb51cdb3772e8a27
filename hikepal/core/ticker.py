import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTicker:
    """
    Fire-and-forget periodic timer on the running event loop.

    One task handle per ticker. ``stop()`` cancels it; since the callback is
    synchronous it cannot run again once cancellation has been requested.
    """

    def __init__(self, name: str, interval: float, callback: Callable[[], None]):
        self.name = name
        self.interval = interval
        self.callback = callback
        self.tick_count = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"ticker:{self.name}")
        logger.debug(f"Ticker {self.name} started ({self.interval}s)")

    def stop(self):
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug(f"Ticker {self.name} stopped after {self.tick_count} ticks")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            self.tick_count += 1
            try:
                self.callback()
            except Exception:
                # A faulty tick must not kill the loop
                logger.exception(f"Ticker {self.name} callback failed")
