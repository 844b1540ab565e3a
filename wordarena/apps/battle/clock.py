"""
Per-prompt countdown for hard battle rooms.

One asyncio task per room. Arming the clock for a cursor cancels
whatever was pending for that room; when the countdown runs out the
expire callback is called with the cursor it was armed for, so an expiry
that lost the race against an answer does nothing.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

ExpireCallback = Callable[[str, int], Awaitable[object]]


class TurnClock:
    def __init__(self, on_expire: ExpireCallback, seconds: float = 10.0) -> None:
        self.on_expire = on_expire
        self.seconds = seconds
        self._tasks: dict[str, asyncio.Task] = {}

    def arm(self, room_id: str, cursor: int, seconds: float | None = None) -> asyncio.Task:
        self.cancel(room_id)
        task = asyncio.create_task(self._run(room_id, cursor, self.seconds if seconds is None else seconds))
        self._tasks[room_id] = task
        return task

    async def _run(self, room_id: str, cursor: int, seconds: float) -> None:
        try:
            await asyncio.sleep(seconds)
        except asyncio.CancelledError:
            return
        if self._tasks.get(room_id) is asyncio.current_task():
            del self._tasks[room_id]
        try:
            await self.on_expire(room_id, cursor)
        except Exception as e:
            logger.error(f"⏰ Turn expiry failed for room {room_id} at cursor {cursor}: {e}")

    def cancel(self, room_id: str) -> None:
        task = self._tasks.pop(room_id, None)
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def is_armed(self, room_id: str) -> bool:
        task = self._tasks.get(room_id)
        return task is not None and not task.done()

    def cancel_all(self) -> None:
        for room_id in list(self._tasks):
            self.cancel(room_id)
