"""
Room records — the single shared document per game instance.

A room is a tagged variant keyed on `mode`: BattleRoom and SurvivalRoom
share the envelope (id, status, host, capacity, prompt set, winner) and
carry their own roster entry type and mode-specific fields.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from wordarena.core.errors import InvalidTransitionError


class RoomStatus(str, Enum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class GameMode(str, Enum):
    BATTLE = "battle"
    SURVIVAL = "survival"


class Difficulty(str, Enum):
    EASY = "easy"      # first letter of the answer shown as a hint
    NORMAL = "normal"
    HARD = "hard"      # per-prompt countdown


class Effect(str, Enum):
    FOG = "fog"
    SPEED = "speed"
    FLASH = "flash"


OPEN_STATUSES = (RoomStatus.WAITING, RoomStatus.PLAYING)

_STATUS_ORDER = {
    RoomStatus.WAITING: 0,
    RoomStatus.PLAYING: 1,
    RoomStatus.FINISHED: 2,
}


class Prompt(BaseModel):
    """One vocabulary item. Immutable once the room is playing."""
    model_config = ConfigDict(frozen=True)

    id: str
    term: str
    answer: str


# ── Roster entries ──────────────────────────────────

class PlayerBase(BaseModel):
    id: str
    display_name: str
    ready: bool = False
    score: int = 0


class BattlePlayer(PlayerBase):
    passes_used: int = Field(default=0, ge=0)


class SurvivalPlayer(PlayerBase):
    health: int = Field(default=100, ge=0, le=100)
    gauge: int = Field(default=0, ge=0, le=100)
    alive: bool = True
    pending_effect: Effect | None = None


# ── Rooms ───────────────────────────────────────────

class RoomBase(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str = ""
    status: RoomStatus = RoomStatus.WAITING
    host_id: str
    host_name: str = ""
    capacity: int = Field(ge=1)
    player_count: int = 0
    password: str = ""
    selected_book: str = ""
    academy_id: str = ""
    prompt_set: list[Prompt] = Field(default_factory=list)
    winner_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def has_password(self) -> bool:
        return bool(self.password)


class BattleRoom(RoomBase):
    mode: Literal["battle"] = "battle"
    difficulty: Difficulty = Difficulty.NORMAL
    roster: dict[str, BattlePlayer] = Field(default_factory=dict)
    cursor: int = Field(default=0, ge=0)
    last_actor: str | None = None


class SurvivalRoom(RoomBase):
    mode: Literal["survival"] = "survival"
    roster: dict[str, SurvivalPlayer] = Field(default_factory=dict)


Room = Annotated[Union[BattleRoom, SurvivalRoom], Field(discriminator="mode")]

_room_adapter: TypeAdapter[Room] = TypeAdapter(Room)


def parse_room(record: dict) -> BattleRoom | SurvivalRoom:
    """Validate a raw store record into its room variant."""
    return _room_adapter.validate_python(record)


def dump_room(room: BattleRoom | SurvivalRoom) -> dict:
    """Store representation of a room (plain JSON-compatible values)."""
    return room.model_dump(mode="json")


def new_player(mode: GameMode, player_id: str, display_name: str, ready: bool = False) -> BattlePlayer | SurvivalPlayer:
    if mode == GameMode.BATTLE:
        return BattlePlayer(id=player_id, display_name=display_name, ready=ready)
    return SurvivalPlayer(id=player_id, display_name=display_name, ready=ready)


def pass_cap(room: BattleRoom, ratio: float = 0.2) -> int:
    """Passes each player may spend: floor(ratio × |prompt_set|)."""
    return int(len(room.prompt_set) * ratio)


def advance_status(room: RoomBase, new_status: RoomStatus) -> None:
    """Move the room forward along waiting → playing → finished."""
    current = RoomStatus(room.status)
    if _STATUS_ORDER[new_status] != _STATUS_ORDER[current] + 1:
        raise InvalidTransitionError(
            f"Cannot move room {room.id} from {current.value} to {new_status.value}",
            details={"from": current.value, "to": new_status.value},
        )
    room.status = new_status
