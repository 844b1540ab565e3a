"""
Fixed-interval asyncio ticker.

Calls the callback with the current monotonic time in milliseconds every
interval_ms. Callbacks may be sync or async; an async callback that runs
long delays the next tick instead of overlapping it. A callback that
returns False stops the ticker.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

TickCallback = Callable[[float], Awaitable[object] | object]


class TickScheduler:
    def __init__(self, callback: TickCallback, interval_ms: float = 50, clock: Callable[[], float] = time.monotonic):
        self.callback = callback
        self.interval_ms = interval_ms
        self.clock = clock
        self.ticks = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.create_task(self._run())
        return self._task

    async def _run(self) -> None:
        while True:
            if not await self.tick_once():
                return
            await asyncio.sleep(self.interval_ms / 1000)

    async def tick_once(self) -> bool:
        """Run the callback once. Returns False when the ticker should stop."""
        now_ms = self.clock() * 1000
        self.ticks += 1
        try:
            result = self.callback(now_ms)
            if asyncio.iscoroutine(result):
                result = await result
        except Exception as e:
            logger.error(f"❌ Tick {self.ticks} failed: {e}")
            return True
        return result is not False

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
