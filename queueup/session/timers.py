"""
Cancellable timers for the bounded waits of a session.

Every wait in a session races a timer against the awaited event; whichever
finishes first cancels the other so no timer outlives its session.
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from queueup.config import logger

timer_logger = logger.getChild("session")

T = TypeVar("T")
Callback = Callable[[], Union[Awaitable[Any], Any]]


class ScheduledCallback:
    """Run ``callback`` once after ``delay`` seconds unless cancelled first."""

    def __init__(self, delay: float, callback: Callback, name: str = "timer"):
        self.delay = delay
        self.name = name
        self._callback = callback
        loop = asyncio.get_running_loop()
        self.fires_at = loop.time() + delay
        self._task = loop.create_task(self._run(), name=name)

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        result = self._callback()
        if inspect.isawaitable(result):
            await result

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    @property
    def done(self) -> bool:
        return self._task.done()

    def remaining(self) -> float:
        return max(0.0, self.fires_at - asyncio.get_running_loop().time())


async def race(awaitable: Awaitable[T], timeout: float) -> Optional[T]:
    """
    Await ``awaitable`` for at most ``timeout`` seconds.

    Returns its result, or None when the timer wins. The losing side is cancelled.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        return None


class Debouncer:
    """
    Coalesce re-render requests to at most one per ``interval`` seconds.

    ``trigger`` schedules a trailing render; ``flush`` renders immediately and
    is used for terminal transitions so they are never dropped.
    """

    def __init__(self, interval: float, render: Callback):
        self.interval = interval
        self._render = render
        self._last: Optional[float] = None
        self._pending: Optional[asyncio.Task] = None
        self.renders = 0

    def trigger(self) -> None:
        if self._pending is not None and not self._pending.done():
            return
        loop = asyncio.get_running_loop()
        wait = 0.0 if self._last is None else self._last + self.interval - loop.time()
        self._pending = loop.create_task(self._delayed(max(0.0, wait)))

    async def _delayed(self, wait: float) -> None:
        if wait > 0:
            await asyncio.sleep(wait)
        await self._run()

    async def _run(self) -> None:
        self._last = asyncio.get_running_loop().time()
        self.renders += 1
        try:
            result = self._render()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            timer_logger.warning(f"Render failed: {e}")

    async def flush(self) -> None:
        self.cancel()
        await self._run()

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
