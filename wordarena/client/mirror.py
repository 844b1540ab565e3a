"""
Local mirrors of server-pushed room state.

Both mirrors consume the {"event", "data"} messages sent by the room and
lobby sockets (see wordarena/apps/ws/schema.py). Every room event carries
the whole room, so applying one is a wholesale replace, never a merge.
"""

from __future__ import annotations

import logging
from typing import Callable

from wordarena.core.errors import RoomNotFoundError

logger = logging.getLogger(__name__)

OPEN_STATUSES = ("waiting", "playing")

Listener = Callable[[dict | None], object]


class RoomMirror:
    """The most recently seen version of one room."""

    def __init__(self, room_id: str | None = None, room: dict | None = None):
        self.room_id = room_id or (room or {}).get("id")
        self._room = room
        self.deleted = False
        self._listeners: list[Listener] = []

    @property
    def room(self) -> dict:
        """
        Raises:
            RoomNotFoundError: the room was deleted, or nothing was seen yet
        """
        if self.deleted or self._room is None:
            raise RoomNotFoundError(f"Room not found: {self.room_id}", details={"room_id": self.room_id})
        return self._room

    @property
    def is_gone(self) -> bool:
        return self.deleted

    def on_change(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def apply(self, message: dict) -> bool:
        """Apply one pushed message. Returns True when the mirror changed."""
        event = message.get("event")
        data = message.get("data") or {}

        if event in ("room_snapshot", "room_update"):
            if self.deleted:
                return False
            if self.room_id is not None and data.get("id") != self.room_id:
                return False
            self.room_id = data.get("id")
            self._room = data
        elif event == "room_deleted":
            if self.room_id is not None and data.get("room_id") not in (None, self.room_id):
                return False
            self.deleted = True
            self._room = None
        else:
            return False

        for listener in self._listeners:
            listener(self._room)
        return True

    def player(self, player_id: str) -> dict | None:
        for entry in self.room.get("players", []):
            if entry.get("id") == player_id:
                return entry
        return None


class RoomListMirror:
    """Open rooms of one mode, as shown in a lobby."""

    def __init__(self, mode: str):
        self.mode = mode
        self._rooms: dict[str, dict] = {}

    @property
    def rooms(self) -> list[dict]:
        """Oldest first."""
        return sorted(self._rooms.values(), key=lambda r: r.get("created_at") or "")

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def get(self, room_id: str) -> dict | None:
        return self._rooms.get(room_id)

    def _put(self, room: dict) -> None:
        # a room that left waiting/playing (or another mode's room) drops out
        if room.get("mode") == self.mode and room.get("status") in OPEN_STATUSES:
            self._rooms[room["id"]] = room
        else:
            self._rooms.pop(room.get("id"), None)

    def apply(self, message: dict) -> bool:
        event = message.get("event")
        data = message.get("data") or {}

        if event == "room_list":
            self._rooms = {}
            for room in data.get("rooms", []):
                self._put(room)
        elif event in ("room_insert", "room_update"):
            self._put(data)
        elif event in ("room_delete", "room_deleted"):
            self._rooms.pop(data.get("room_id"), None)
        else:
            return False
        return True
