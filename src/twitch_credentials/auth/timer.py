"""Recurring renewal timer owned by a credential slot."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RenewalTimer:
    """Runs ``callback(timer)`` every ``interval`` seconds on the running event loop.

    The next sleep only starts once the previous callback has returned, so two
    ticks of the same timer never overlap. Exceptions raised by the callback
    are logged and do not stop the timer.

    Attributes:
        name: Label used in log messages and as the task name.
        interval: Seconds between ticks. May be changed while running; the new
            value applies from the next sleep.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[["RenewalTimer"], Awaitable[None]],
        name: str = "renewal",
    ) -> None:
        self.name = name
        self.interval = interval
        self._callback = callback
        self._cancelled = False
        self._in_tick = False
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"{name}-timer")

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self.interval)
            self._in_tick = True
            try:
                await self._callback(self)
            except Exception:
                logger.exception(f"{self.name} timer tick failed")
            finally:
                self._in_tick = False

    @property
    def task(self) -> asyncio.Task:
        return self._task

    @property
    def active(self) -> bool:
        """True until the timer is cancelled."""
        return not self._cancelled and not self._task.done()

    def cancel(self) -> None:
        """Stop future ticks.

        A tick that is already running is allowed to finish; the timer exits
        once it returns.
        """
        if self._cancelled:
            return
        self._cancelled = True
        if not self._in_tick:
            self._task.cancel()
