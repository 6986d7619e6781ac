"""Advisory "this is taking unusually long" signal for in-flight sends."""

import asyncio
import logging
from typing import Callable, Optional

from common.config.config import LONG_WAIT_THRESHOLD_SECONDS

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECONDS = 1.0


class WaitSignal:
    """Counts elapsed seconds and raises a one-shot long-wait flag.

    The signal only observes time. It never cancels or delays the request it
    accompanies; transport timeouts are configured separately on the client.
    """

    def __init__(
        self,
        threshold_seconds: int = LONG_WAIT_THRESHOLD_SECONDS,
        interval: float = TICK_INTERVAL_SECONDS,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.threshold_seconds = threshold_seconds
        self.interval = interval
        self.on_change = on_change
        self.waiting_seconds = 0
        self.show_long_wait = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Reset the counter and start ticking; restarts a running signal."""
        self._cancel_task()
        self.waiting_seconds = 0
        self.show_long_wait = False
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._notify()

    def stop(self) -> None:
        """Stop ticking and clear the long-wait flag."""
        self._cancel_task()
        self.show_long_wait = False
        self._notify()

    def tick(self) -> None:
        """Advance the counter by one second."""
        self.waiting_seconds += 1
        if self.waiting_seconds >= self.threshold_seconds and not self.show_long_wait:
            self.show_long_wait = True
            logger.info(f"Response pending for {self.waiting_seconds}s, raising long-wait flag")
        self._notify()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.tick()

    def _cancel_task(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()
