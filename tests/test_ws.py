"""
Room and lobby sockets, through Starlette's TestClient.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from wordarena.apps.ws.service import manager, stop_pump
from wordarena.client.mirror import RoomListMirror, RoomMirror
from wordarena.core.session import Session
from wordarena.main import create_app

HOST = Session("u1", "Host")
GUEST = Session("u2", "Guest")


@pytest.fixture
def client():
    with TestClient(create_app()) as client:
        yield client


def create(client, mode="battle", session=HOST):
    resp = client.post("/api/rooms", json={"mode": mode, "name": "Room"}, headers=session.headers())
    assert resp.status_code == 201
    return resp.json()


def test_room_socket_pushes_updates_and_deletion(client):
    room = create(client)
    mirror = RoomMirror(room["id"])

    with client.websocket_connect(f"/ws/rooms/{room['id']}/u1?name=Host") as ws:
        snapshot = ws.receive_json()
        assert snapshot["event"] == "room_snapshot"
        mirror.apply(snapshot)
        assert mirror.room["player_count"] == 1
        assert manager.get_connection_count(room["id"]) == 1

        client.post(f"/api/rooms/{room['id']}/join", json={}, headers=GUEST.headers())
        update = ws.receive_json()
        assert update["event"] == "room_update"
        mirror.apply(update)
        assert mirror.room["player_count"] == 2

        ws.send_json({"event": "heartbeat", "data": {"timestamp": 1}})
        assert ws.receive_json() == {"event": "pong", "data": {"timestamp": 1}}

        client.delete(f"/api/rooms/{room['id']}", headers=HOST.headers())
        gone = ws.receive_json()
        assert gone == {"event": "room_deleted", "data": {"room_id": room["id"]}}
        mirror.apply(gone)
        assert mirror.is_gone


def test_room_socket_routes_battle_events(client):
    room = create(client)
    client.post(f"/api/rooms/{room['id']}/join", json={}, headers=GUEST.headers())
    client.post(f"/api/battle/{room['id']}/start", headers=HOST.headers())

    with client.websocket_connect(f"/ws/rooms/{room['id']}/u2?name=Guest") as ws:
        assert ws.receive_json()["event"] == "room_snapshot"

        ws.send_json({"event": "answer", "data": {"text": "not it", "cursor": 0}})
        result = ws.receive_json()
        assert result == {"event": "answer_result", "data": {"verdict": "incorrect", "cursor": 0}}

        ws.send_json({"event": "pass", "data": {"confirm": False}})
        error = ws.receive_json()
        assert error["event"] == "error"
        assert error["data"]["code"] == "PASS_NOT_CONFIRMED"

        ws.send_json({"event": "pass", "data": {"confirm": True, "cursor": 0}})
        events = {ws.receive_json()["event"], ws.receive_json()["event"]}
        assert events == {"answer_result", "room_update"}

        ws.send_json(["no", "event"])
        assert ws.receive_json()["data"]["code"] == "invalid_format"

        ws.send_json({"event": "dance"})
        assert ws.receive_json()["data"]["code"] == "unknown_event"


def test_room_socket_for_missing_room(client):
    with client.websocket_connect("/ws/rooms/missing/u1") as ws:
        message = ws.receive_json()
    assert message["event"] == "error"
    assert message["data"]["code"] == "ROOM_NOT_FOUND"


def test_lobby_socket_tracks_open_rooms(client):
    existing = create(client)
    lobby = RoomListMirror("battle")

    with client.websocket_connect("/ws/lobby/battle") as ws:
        lobby.apply(ws.receive_json())
        assert [r["id"] for r in lobby.rooms] == [existing["id"]]

        create(client, mode="survival", session=GUEST)
        new = create(client, session=GUEST)
        insert = ws.receive_json()
        assert insert["event"] == "room_insert"
        assert insert["data"]["id"] == new["id"]
        lobby.apply(insert)

        client.delete(f"/api/rooms/{existing['id']}", headers=HOST.headers())
        delete = ws.receive_json()
        assert delete == {"event": "room_delete", "data": {"room_id": existing["id"]}}
        lobby.apply(delete)

    assert [r["id"] for r in lobby.rooms] == [new["id"]]


async def test_stop_pump_cancels_and_collects_failures(caplog):
    running = asyncio.create_task(asyncio.sleep(10))
    await stop_pump(running)
    assert running.cancelled()

    async def broken_send():
        raise RuntimeError("socket gone")

    failed = asyncio.create_task(broken_send())
    await asyncio.wait([failed])
    await stop_pump(failed)
    assert "socket gone" in caplog.text

    await stop_pump(None)
