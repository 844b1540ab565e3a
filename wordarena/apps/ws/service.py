"""
service.py — WebSocket Connection Manager
==========================================
Keeps track of every open socket and turns room-store change events into
push messages.

    await manager.connect("room123", "u1", websocket)
    ...
    manager.disconnect("room123", "u1")

Room sockets are grouped by room id, lobby sockets by "lobby:<mode>".
"""

import asyncio
import logging

from fastapi import WebSocket

from wordarena.apps.rooms.models import OPEN_STATUSES, parse_room
from wordarena.apps.rooms.service import public_room
from wordarena.core.database import ChangeEvent, Subscription

logger = logging.getLogger(__name__)

_OPEN_VALUES = {s.value for s in OPEN_STATUSES}


def lobby_group(mode: str) -> str:
    return f"lobby:{mode}"


class ConnectionManager:
    """
    group id → {client id → WebSocket}
    """

    def __init__(self):
        self.active_connections: dict[str, dict[str, WebSocket]] = {}

    async def connect(self, group_id: str, client_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.setdefault(group_id, {})[client_id] = websocket
        logger.info(f"✅ {client_id} connected to {group_id} ({self.get_connection_count(group_id)} open)")

    def disconnect(self, group_id: str, client_id: str):
        group = self.active_connections.get(group_id)
        if group is None:
            return
        if group.pop(client_id, None) is not None:
            logger.info(f"❌ {client_id} disconnected from {group_id}")
        if not group:
            del self.active_connections[group_id]

    def get_connection_count(self, group_id: str) -> int:
        return len(self.active_connections.get(group_id, {}))


# ═══════════════════════════════════════════════════
# CHANGE EVENT → PUSH MESSAGE
# ═══════════════════════════════════════════════════

def room_message(event: ChangeEvent) -> dict:
    """Message for a room socket: the whole room, or a deletion notice."""
    if event.event_type == "delete":
        return {"event": "room_deleted", "data": {"room_id": event.record.get("id")}}
    return {"event": "room_update", "data": public_room(parse_room(event.record))}


def lobby_message(event: ChangeEvent) -> dict:
    """
    Message for a lobby socket. Rooms that stopped being open are reported
    as deleted, since the lobby only lists waiting and playing rooms.
    """
    room_id = event.record.get("id")
    if event.event_type == "delete" or event.record.get("status") not in _OPEN_VALUES:
        return {"event": "room_delete", "data": {"room_id": room_id}}
    event_name = "room_insert" if event.event_type == "insert" else "room_update"
    return {"event": event_name, "data": public_room(parse_room(event.record))}


async def pump(websocket: WebSocket, subscription: Subscription, to_message, stop_on_delete: bool = False):
    """Forward every subscription event to one socket until either side closes."""
    async for event in subscription:
        await websocket.send_json(to_message(event))
        if stop_on_delete and event.event_type == "delete":
            await websocket.close()
            return


def start_pump(websocket: WebSocket, subscription: Subscription, to_message, stop_on_delete: bool = False) -> asyncio.Task:
    return asyncio.create_task(pump(websocket, subscription, to_message, stop_on_delete))


async def stop_pump(task: asyncio.Task | None) -> None:
    """Cancel a pump and collect its outcome so a failed send is logged, not lost."""
    if task is None:
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.error(f"❌ Push task failed: {e}")


# ═══════════════════════════════════════════════════
# SINGLETON INSTANCE
# ═══════════════════════════════════════════════════

manager = ConnectionManager()
