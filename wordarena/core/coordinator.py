"""
coordinator.py — Per-Room Write Serializer
===========================================
The Room Store is last-write-wins with no concurrency control. Every
intent the service accepts (join, answer, damage, ...) goes through
RoomCoordinator.mutate(), which holds the room's asyncio.Lock across a
fresh fetch, the in-memory change and the write-back. Two intents on the
same room therefore never interleave their read-modify-write cycles.

Writes that bypass the coordinator (anything talking to the store
directly) get no such protection.

USAGE:
------
    def bump(room):
        room.cursor += 1
        return room, room.cursor

    room, cursor = await coordinator.mutate(room_id, bump)
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable, TypeVar

from wordarena.apps.rooms.models import dump_room, parse_room
from wordarena.core.database import ROOMS, get_db
from wordarena.core.errors import RoomNotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def changed_fields(before: dict, after: dict) -> dict:
    """Top-level fields whose value differs between two records."""
    return {key: value for key, value in after.items() if before.get(key) != value}


class RoomCoordinator:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock(self, room_id: str) -> asyncio.Lock:
        return self._locks[room_id]

    async def mutate(self, room_id: str, fn: Callable[[Any], tuple[Any, T]]) -> tuple[Any, T]:
        """
        Apply fn to the freshest copy of a room and persist the result.

        fn receives the parsed room and returns (room, result). Only the
        top-level fields that fn actually changed are written.

        Raises:
            RoomNotFoundError: the room does not exist (or vanished mid-way)
        """
        async with self.lock(room_id):
            store = get_db()
            record = await store.get(ROOMS, room_id)
            if record is None:
                raise RoomNotFoundError(f"Room not found: {room_id}", details={"room_id": room_id})

            room, result = fn(parse_room(record))

            fields = changed_fields(record, dump_room(room))
            fields.pop("updated_at", None)
            if not fields:
                return room, result

            stored = await store.update(ROOMS, room_id, fields)
            if stored is None:
                raise RoomNotFoundError(f"Room not found: {room_id}", details={"room_id": room_id})
            return parse_room(stored), result

    def discard(self, room_id: str) -> None:
        """Forget the lock of a deleted room."""
        lock = self._locks.get(room_id)
        if lock is not None and not lock.locked():
            del self._locks[room_id]

    def reset(self) -> None:
        self._locks.clear()


# ═══════════════════════════════════════════════════
# SINGLETON INSTANCE
# ═══════════════════════════════════════════════════

coordinator = RoomCoordinator()
