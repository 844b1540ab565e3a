"""
feed.py — Realtime Room Feed
=============================
Keeps a RoomMirror / RoomListMirror in sync with the server over a
WebSocket (websockets library).

    mirror = RoomMirror(room_id)
    feed = RoomFeed.for_room("ws://localhost:8000", room_id, session, mirror)
    task = asyncio.create_task(feed.run())
    ...
    await feed.send("answer", {"text": "apple", "cursor": mirror.room["cursor"]})
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Awaitable, Callable
from urllib.parse import quote

import websockets

from wordarena.client.mirror import RoomListMirror, RoomMirror
from wordarena.core.config import get_settings
from wordarena.core.session import Session

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict], Awaitable[None] | None]


class RoomFeed:
    def __init__(
        self,
        url: str,
        mirror: RoomMirror | RoomListMirror,
        on_message: MessageHandler | None = None,
        heartbeat_interval: float | None = None,
    ):
        self.url = url
        self.mirror = mirror
        self.on_message = on_message
        # 0 turns the heartbeat off
        self.heartbeat_interval = get_settings().WS_HEARTBEAT_INTERVAL if heartbeat_interval is None else heartbeat_interval
        self._ws = None
        self.connected = asyncio.Event()

    @classmethod
    def for_room(cls, ws_base_url: str, room_id: str, session: Session, mirror: RoomMirror, **kwargs) -> "RoomFeed":
        url = f"{ws_base_url.rstrip('/')}/ws/rooms/{room_id}/{quote(session.player_id)}?name={quote(session.display_name)}"
        return cls(url, mirror, **kwargs)

    @classmethod
    def for_lobby(cls, ws_base_url: str, mirror: RoomListMirror, **kwargs) -> "RoomFeed":
        return cls(f"{ws_base_url.rstrip('/')}/ws/lobby/{mirror.mode}", mirror, **kwargs)

    async def run(self) -> None:
        """Receive until the server closes the socket (or the room is deleted)."""
        async with websockets.connect(self.url) as ws:
            self._ws = ws
            self.connected.set()
            heartbeat = asyncio.create_task(self._heartbeat()) if self.heartbeat_interval else None
            try:
                async for raw in ws:
                    message = json.loads(raw)
                    await self.handle(message)
                    if message.get("event") == "room_deleted":
                        break
            except websockets.ConnectionClosed as e:
                logger.info(f"🔌 Feed closed: {self.url} ({e})")
            finally:
                if heartbeat is not None:
                    heartbeat.cancel()
                    try:
                        await heartbeat
                    except (asyncio.CancelledError, websockets.ConnectionClosed):
                        pass
                self._ws = None
                self.connected.clear()

    async def handle(self, message: dict) -> None:
        self.mirror.apply(message)
        if message.get("event") == "error":
            logger.warning(f"⚠️  Server error: {message.get('data')}")
        if self.on_message is not None:
            result = self.on_message(message)
            if asyncio.iscoroutine(result):
                await result

    async def send(self, event: str, data: dict | None = None) -> None:
        if self._ws is None:
            raise RuntimeError("Feed is not connected")
        await self._ws.send(json.dumps({"event": event, "data": data or {}}))

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            await self.send("heartbeat", {"timestamp": time.time()})
