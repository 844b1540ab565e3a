"""
RoomFeed against a real server: uvicorn on an ephemeral port, same loop.
"""

import asyncio

import pytest
import uvicorn

from wordarena.client.api_client import GameClient
from wordarena.client.feed import RoomFeed
from wordarena.client.mirror import RoomMirror
from wordarena.core.session import Session
from wordarena.main import create_app

HOST = Session("u1", "Host")
GUEST = Session("u2", "Guest")


async def wait_until(condition, timeout=5.0):
    async def _poll():
        while not condition():
            await asyncio.sleep(0.01)
    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
async def live_server():
    config = uvicorn.Config(create_app(), host="127.0.0.1", port=0, log_level="warning")
    server = uvicorn.Server(config)
    task = asyncio.create_task(server.serve())
    await wait_until(lambda: server.started)
    port = server.servers[0].sockets[0].getsockname()[1]
    yield f"127.0.0.1:{port}"
    server.should_exit = True
    await asyncio.wait_for(task, 10)


async def test_feed_follows_join_then_delete(live_server):
    http_base, ws_base = f"http://{live_server}", f"ws://{live_server}"
    seen = []

    async with GameClient(HOST, base_url=http_base) as host, GameClient(GUEST, base_url=http_base) as guest:
        room = await host.create_room("battle", "Live")
        mirror = RoomMirror(room["id"])
        feed = RoomFeed.for_room(
            ws_base, room["id"], GUEST, mirror,
            on_message=lambda message: seen.append(message["event"]),
            heartbeat_interval=0.05,
        )
        task = asyncio.create_task(feed.run())

        await wait_until(lambda: "room_snapshot" in seen)
        assert mirror.room["player_count"] == 1

        await guest.join(room["id"])
        await wait_until(lambda: mirror.room["player_count"] == 2)
        assert "u2" in [p["id"] for p in mirror.room["players"]]

        await wait_until(lambda: "pong" in seen)

        assert await host.delete_room(room["id"]) is True
        await asyncio.wait_for(task, 5)

    assert seen[-1] == "room_deleted"
    assert mirror.is_gone
    assert not feed.connected.is_set()
