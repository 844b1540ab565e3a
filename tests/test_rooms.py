"""
Room lifecycle and membership.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from wordarena.apps.battle.service import start_battle
from wordarena.apps.rooms import service
from wordarena.apps.rooms.models import BattlePlayer, GameMode, RoomStatus, SurvivalPlayer, advance_status
from wordarena.core.database import ROOMS
from wordarena.core.errors import (
    BadPasswordError,
    CapacityError,
    InvalidTransitionError,
    NotHostError,
    NotInRoomError,
    RoomNotFoundError,
    RoomNotJoinableError,
    TransientStoreError,
)
from wordarena.core.session import Session


async def test_create_room_puts_host_in_roster(host):
    room = await service.create_room(host, GameMode.BATTLE, "Battle")
    assert room.status == RoomStatus.WAITING
    assert room.capacity == 2
    assert room.player_count == 1
    assert room.roster["u1"].ready is True
    assert room.cursor == 0


async def test_survival_capacity_is_ten(host):
    room = await service.create_room(host, GameMode.SURVIVAL, "Survival")
    assert room.capacity == 10
    assert isinstance(room.roster["u1"], SurvivalPlayer)


async def test_join_round_trip(host, guest):
    room = await service.create_room(host, GameMode.BATTLE, "Battle")
    await service.join(room.id, guest)

    fetched = await service.get_room(room.id)
    assert fetched.roster["u2"] == BattlePlayer(id="u2", display_name="서연", ready=False, score=0, passes_used=0)
    assert fetched.player_count == 2


async def test_rejoin_is_noop(host, guest):
    room = await service.create_room(host, GameMode.SURVIVAL, "Survival")
    await service.join(room.id, guest)
    again = await service.join(room.id, guest)
    assert again.player_count == 2


async def test_concurrent_joins_never_overfill(host, make_session):
    room = await service.create_room(host, GameMode.SURVIVAL, "Survival")
    joiners = [make_session(i) for i in range(room.capacity)]  # capacity + 1 with the host

    results = await asyncio.gather(*(service.join(room.id, s) for s in joiners), return_exceptions=True)

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], CapacityError)
    fetched = await service.get_room(room.id)
    assert len(fetched.roster) == fetched.capacity


async def test_concurrent_battle_joins_admit_one(host, make_session):
    room = await service.create_room(host, GameMode.BATTLE, "Battle")
    results = await asyncio.gather(
        *(service.join(room.id, make_session(i)) for i in range(3)),
        return_exceptions=True,
    )
    assert sum(1 for r in results if not isinstance(r, Exception)) == 1
    assert len((await service.get_room(room.id)).roster) == 2


async def test_password_gate(host, guest):
    room = await service.create_room(host, GameMode.BATTLE, "Locked", password="1234")

    with pytest.raises(BadPasswordError):
        await service.join(room.id, guest)
    with pytest.raises(BadPasswordError):
        await service.join(room.id, guest, password="0000")

    joined = await service.join(room.id, guest, password="1234")
    assert "u2" in joined.roster


async def test_cannot_join_started_room(battle_room, host):
    room = await battle_room()
    await start_battle(room.id, host)

    with pytest.raises(RoomNotJoinableError):
        await service.join(room.id, Session("u3", "Late"))


async def test_join_missing_room():
    with pytest.raises(RoomNotFoundError):
        await service.join("missing", Session("u3", "Nobody"))


async def test_guest_leave_shrinks_roster(battle_room, guest):
    room = await battle_room()
    left = await service.leave(room.id, guest)
    assert "u2" not in left.roster
    assert left.player_count == 1


async def test_host_leaving_deletes_room(battle_room, host, guest):
    room = await battle_room()
    assert await service.leave(room.id, host) is None

    with pytest.raises(RoomNotFoundError):
        await service.get_room(room.id)


async def test_delete_is_idempotent(host):
    room = await service.create_room(host, GameMode.BATTLE, "Battle")
    assert await service.delete_room(room.id) is True
    assert await service.delete_room(room.id) is False


async def test_only_host_deletes(battle_room, guest):
    room = await battle_room()
    with pytest.raises(NotHostError):
        await service.delete_room_as(room.id, guest)


async def test_list_open_rooms_filters_mode_and_status(host, guest):
    battle = await service.create_room(host, GameMode.BATTLE, "Battle")
    await service.create_room(guest, GameMode.SURVIVAL, "Survival")
    done = await service.create_room(guest, GameMode.BATTLE, "Done")
    await service.get_db().update(ROOMS, done.id, {"status": "finished"})

    rooms = await service.list_open_rooms(GameMode.BATTLE)
    assert [r.id for r in rooms] == [battle.id]


async def test_reap_hosted_rooms(host, guest):
    await service.create_room(host, GameMode.BATTLE, "a")
    await service.create_room(host, GameMode.SURVIVAL, "b")
    keep = await service.create_room(guest, GameMode.BATTLE, "c")

    assert await service.reap_hosted_rooms(host, GameMode.BATTLE) == 1
    assert await service.reap_hosted_rooms(host) == 1
    assert [r.id for r in await service.list_open_rooms(GameMode.BATTLE)] == [keep.id]


async def test_reap_idle_rooms(host):
    room = await service.create_room(host, GameMode.BATTLE, "Battle")
    now = datetime.now(timezone.utc)

    assert await service.reap_idle_rooms(60, now=now) == 0
    assert await service.reap_idle_rooms(60, now=now + timedelta(minutes=5)) == 1
    with pytest.raises(RoomNotFoundError):
        await service.get_room(room.id)


async def test_set_ready(battle_room, guest):
    room = await battle_room()
    updated = await service.set_ready(room.id, guest, True)
    assert updated.roster["u2"].ready is True

    with pytest.raises(NotInRoomError):
        await service.set_ready(room.id, Session("u9", "Stranger"), True)


async def test_public_room_hides_password(host):
    room = await service.create_room(host, GameMode.BATTLE, "Locked", password="secret")
    view = service.public_room(room)
    assert "password" not in view
    assert view["has_password"] is True
    assert view["players"][0]["id"] == "u1"


async def test_status_only_moves_forward(host):
    room = await service.create_room(host, GameMode.BATTLE, "Battle")
    with pytest.raises(InvalidTransitionError):
        advance_status(room, RoomStatus.FINISHED)
    advance_status(room, RoomStatus.PLAYING)
    with pytest.raises(InvalidTransitionError):
        advance_status(room, RoomStatus.WAITING)


async def test_fetch_room_retries_transient_failures(host, store, monkeypatch):
    room = await service.create_room(host, GameMode.BATTLE, "Battle")
    monkeypatch.setattr(service, "_READ_RETRY_DELAYS", [0, 0, 0])
    real_get = store.get
    calls = []

    async def flaky_get(collection, id):
        calls.append(id)
        if len(calls) < 3:
            raise TransientStoreError("blip")
        return await real_get(collection, id)

    monkeypatch.setattr(store, "get", flaky_get)
    fetched = await service.fetch_room(room.id)
    assert fetched.id == room.id
    assert len(calls) == 3


async def test_host_departure_scenario(battle_room, host, guest):
    """Host leaves a waiting room with one other member; the member's next fetch is NotFound."""
    room = await battle_room()
    await service.leave(room.id, host)

    with pytest.raises(RoomNotFoundError):
        await service.fetch_room(room.id)
