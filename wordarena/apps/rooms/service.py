"""
service.py — Room Lifecycle & Membership
=========================================
Creating, listing, joining, leaving and deleting rooms.

Every roster change is a whole-roster replace on the room record, so the
room's change feed is the only "player joined / left" signal subscribers
ever need.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
import random
from datetime import datetime, timezone

from wordarena.apps.rooms.models import (
    BattleRoom,
    Difficulty,
    GameMode,
    OPEN_STATUSES,
    Prompt,
    RoomStatus,
    SurvivalRoom,
    dump_room,
    new_player,
    parse_room,
)
from wordarena.apps.battle.resolver import current_prompt, hint_for
from wordarena.apps.survival.resolver import finish_if_decided
from wordarena.core.catalog import get_catalog
from wordarena.core.config import get_settings
from wordarena.core.coordinator import coordinator
from wordarena.core.database import ROOMS, get_db
from wordarena.core.errors import (
    BadPasswordError,
    CapacityError,
    EmptyCatalogError,
    InvalidTransitionError,
    ModeMismatchError,
    NotEnoughPlayersError,
    NotHostError,
    NotInRoomError,
    RoomNotFoundError,
    RoomNotJoinableError,
    TransientStoreError,
)
from wordarena.core.session import Session

logger = logging.getLogger(__name__)

AnyRoom = BattleRoom | SurvivalRoom

_READ_RETRY_DELAYS = [0.05, 0.1, 0.2]


# ═══════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════

def capacity_for(mode: GameMode) -> int:
    settings = get_settings()
    return settings.BATTLE_CAPACITY if mode == GameMode.BATTLE else settings.SURVIVAL_CAPACITY


def password_gate(room: AnyRoom, supplied: str | None) -> None:
    """
    Casual access gate: exact match against the room's plaintext password.

    Not a security boundary. Rooms without a password always pass.

    Raises:
        BadPasswordError: wrong or missing password
    """
    if not room.password:
        return
    if not hmac.compare_digest((supplied or "").encode(), room.password.encode()):
        raise BadPasswordError("Wrong room password", details={"room_id": room.id})


def require_host(room: AnyRoom, session: Session) -> None:
    if room.host_id != session.player_id:
        raise NotHostError("Only the host can do this", details={"room_id": room.id})


def require_member(room: AnyRoom, session: Session) -> None:
    if session.player_id not in room.roster:
        raise NotInRoomError("You are not in this room", details={"room_id": room.id})


def require_mode(room: AnyRoom, mode: GameMode) -> None:
    if room.mode != mode.value:
        raise ModeMismatchError(
            f"Room {room.id} is a {room.mode} room",
            details={"room_id": room.id, "mode": room.mode},
        )


def require_startable(room: AnyRoom) -> None:
    """Only a waiting room with enough players can start."""
    if room.status != RoomStatus.WAITING:
        raise InvalidTransitionError(
            f"Room {room.id} already started (status: {room.status.value})",
            details={"room_id": room.id, "status": room.status.value},
        )
    minimum = get_settings().MIN_PLAYERS_TO_START
    if len(room.roster) < minimum:
        raise NotEnoughPlayersError(
            f"Need at least {minimum} players (current: {len(room.roster)})",
            details={"room_id": room.id, "players": len(room.roster)},
        )


async def draw_prompt_set(room: AnyRoom, length: int, rng: random.Random | None = None) -> list[Prompt]:
    """
    Shuffle the room's book and keep the first `length` prompts.

    An empty book selection falls back to the default book.

    Raises:
        EmptyCatalogError: the book has no words
    """
    settings = get_settings()
    book = room.selected_book or settings.DEFAULT_BOOK
    academy_id = room.academy_id or settings.DEFAULT_ACADEMY_ID
    prompts = await get_catalog().fetch_prompts_for_book(book, academy_id)
    if not prompts:
        raise EmptyCatalogError(
            f"Book {book!r} has no words",
            details={"book": book, "academy_id": academy_id},
        )
    prompts = list(prompts)
    (rng or random).shuffle(prompts)
    return prompts[:length]


# ═══════════════════════════════════════════════════
# LIFECYCLE
# ═══════════════════════════════════════════════════

async def create_room(
    session: Session,
    mode: GameMode,
    name: str,
    password: str = "",
    difficulty: Difficulty = Difficulty.NORMAL,
    selected_book: str = "",
) -> AnyRoom:
    """
    Create a waiting room with the host as its only (ready) member.

    Not retried on failure: a retry would create a second room with a new id.
    """
    host = new_player(mode, session.player_id, session.display_name, ready=True)
    record = {
        "name": name,
        "mode": mode.value,
        "status": RoomStatus.WAITING.value,
        "host_id": session.player_id,
        "host_name": session.display_name,
        "capacity": capacity_for(mode),
        "player_count": 1,
        "password": password,
        "selected_book": selected_book,
        "academy_id": session.academy_id or get_settings().DEFAULT_ACADEMY_ID,
        "roster": {session.player_id: host.model_dump(mode="json")},
        "prompt_set": [],
        "winner_id": None,
    }
    if mode == GameMode.BATTLE:
        record.update({"difficulty": difficulty.value, "cursor": 0, "last_actor": None})

    stored = await get_db().insert(ROOMS, record)
    room = parse_room(stored)
    logger.info(f"🎮 {mode.value} room created: {room.id} by {session.display_name}")
    return room


async def get_room(room_id: str) -> AnyRoom:
    record = await get_db().get(ROOMS, room_id)
    if record is None:
        raise RoomNotFoundError(f"Room not found: {room_id}", details={"room_id": room_id})
    return parse_room(record)


async def fetch_room(room_id: str, retries: int = len(_READ_RETRY_DELAYS)) -> AnyRoom:
    """get_room() that retries transient store failures. Reads only."""
    for attempt in range(retries + 1):
        try:
            return await get_room(room_id)
        except TransientStoreError:
            if attempt >= retries:
                raise
            delay = _READ_RETRY_DELAYS[min(attempt, len(_READ_RETRY_DELAYS) - 1)]
            logger.warning(f"Room fetch {room_id} failed (attempt {attempt + 1}), retrying in {delay}s")
            await asyncio.sleep(delay)
    raise RoomNotFoundError(f"Room not found: {room_id}")


async def list_open_rooms(mode: GameMode) -> list[AnyRoom]:
    """Waiting and playing rooms of one mode, oldest first."""
    open_values = {s.value for s in OPEN_STATUSES}
    records = await get_db().list(
        ROOMS,
        lambda r: r.get("mode") == mode.value and r.get("status") in open_values,
    )
    records.sort(key=lambda r: r.get("created_at") or "")
    return [parse_room(r) for r in records]


async def delete_room(room_id: str) -> bool:
    """Unconditional hard delete. Deleting a missing room is a no-op."""
    deleted = await get_db().delete(ROOMS, room_id)
    coordinator.discard(room_id)
    if deleted:
        logger.info(f"🗑️  Room deleted: {room_id}")
    return deleted


async def delete_room_as(room_id: str, session: Session) -> bool:
    record = await get_db().get(ROOMS, room_id)
    if record is None:
        return False
    require_host(parse_room(record), session)
    return await delete_room(room_id)


async def reap_hosted_rooms(session: Session, mode: GameMode | None = None) -> int:
    """Delete every room the session's player still hosts (self-cleanup on lobby entry)."""
    records = await get_db().list(
        ROOMS,
        lambda r: r.get("host_id") == session.player_id and (mode is None or r.get("mode") == mode.value),
    )
    count = 0
    for record in records:
        if await delete_room(record["id"]):
            count += 1
    if count:
        logger.info(f"🧹 Reaped {count} room(s) hosted by {session.player_id}")
    return count


async def reap_idle_rooms(max_idle_seconds: float, now: datetime | None = None) -> int:
    """Delete rooms that have not been written for max_idle_seconds."""
    now = now or datetime.now(timezone.utc)

    def _idle(record: dict) -> bool:
        stamp = record.get("updated_at") or record.get("created_at")
        if not stamp:
            return False
        return (now - datetime.fromisoformat(stamp)).total_seconds() > max_idle_seconds

    records = await get_db().list(ROOMS, _idle)
    count = 0
    for record in records:
        if await delete_room(record["id"]):
            count += 1
    if count:
        logger.info(f"🧹 Reaped {count} idle room(s)")
    return count


# ═══════════════════════════════════════════════════
# MEMBERSHIP
# ═══════════════════════════════════════════════════

async def join(room_id: str, session: Session, password: str | None = None) -> AnyRoom:
    """
    Add the session's player to a waiting room.

    Capacity is checked against the roster read inside the room lock, so
    concurrent joins can never overfill a room. Re-joining is a no-op.

    Raises:
        RoomNotFoundError, BadPasswordError, RoomNotJoinableError, CapacityError
    """
    def _join(room: AnyRoom):
        if session.player_id in room.roster:
            return room, False
        password_gate(room, password)
        if room.status != RoomStatus.WAITING:
            raise RoomNotJoinableError(
                f"Room is not accepting players (status: {room.status.value})",
                details={"room_id": room.id, "status": room.status.value},
            )
        if len(room.roster) >= room.capacity:
            raise CapacityError(
                f"Room is full ({room.capacity} players)",
                details={"room_id": room.id, "capacity": room.capacity},
            )
        roster = dict(room.roster)
        roster[session.player_id] = new_player(GameMode(room.mode), session.player_id, session.display_name)
        room.roster = roster
        room.player_count = len(roster)
        return room, True

    room, joined = await coordinator.mutate(room_id, _join)
    if joined:
        logger.info(f"👤 {session.display_name} joined room {room_id} ({room.player_count}/{room.capacity})")
    return room


async def leave(room_id: str, session: Session) -> AnyRoom | None:
    """
    Remove the session's player. When the host leaves the room is deleted
    and None is returned.
    A finished room keeps its roster, so leaving it changes nothing.
    """
    room = await get_room(room_id)
    if room.host_id == session.player_id:
        await delete_room(room_id)
        logger.info(f"🚪 Host {session.player_id} left, room {room_id} deleted")
        return None

    def _leave(room: AnyRoom):
        if session.player_id not in room.roster:
            return room, False
        if room.status == RoomStatus.FINISHED:
            # the result stands; the winner stays on the roster
            return room, False
        roster = dict(room.roster)
        del roster[session.player_id]
        room.roster = roster
        room.player_count = len(roster)
        if isinstance(room, SurvivalRoom) and room.status == RoomStatus.PLAYING:
            finish_if_decided(room)
        return room, True

    room, left = await coordinator.mutate(room_id, _leave)
    if left:
        logger.info(f"🚪 {session.player_id} left room {room_id} ({room.player_count}/{room.capacity})")
    return room


async def set_ready(room_id: str, session: Session, ready: bool) -> AnyRoom:
    def _ready(room: AnyRoom):
        require_member(room, session)
        roster = dict(room.roster)
        roster[session.player_id] = roster[session.player_id].model_copy(update={"ready": ready})
        room.roster = roster
        return room, None

    room, _ = await coordinator.mutate(room_id, _ready)
    return room


def public_room(room: AnyRoom) -> dict:
    """
    Room as shown to players (RoomResponse shape).

    The password never leaves the server; only has_password does. Battle
    rooms expose the current prompt's term (plus the hint in easy rooms),
    never its answer. Survival rooms ship every prompt with its answer.
    """
    data = dump_room(room)
    view = {
        key: data.get(key)
        for key in (
            "id", "name", "mode", "status", "host_id", "host_name", "capacity",
            "player_count", "selected_book", "last_actor", "winner_id",
            "created_at", "updated_at", "difficulty", "cursor",
        )
    }
    view["has_password"] = room.has_password
    view["prompt_count"] = len(room.prompt_set)
    view["players"] = list(data["roster"].values())
    view["current_prompt"] = None
    view["prompts"] = []
    if isinstance(room, SurvivalRoom):
        # boards judge locally, so survival players get the whole set
        view["prompts"] = data["prompt_set"]
    else:
        prompt = current_prompt(room)
        if prompt is not None:
            view["current_prompt"] = {"id": prompt.id, "term": prompt.term, "hint": hint_for(room, prompt)}
    return view
