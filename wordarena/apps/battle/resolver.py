"""
Battle state deltas.

Pure functions over a BattleRoom: no I/O, no locking. The service runs
them inside RoomCoordinator.mutate(); they work just as well on a raw copy
fetched straight from the store (which is how the lost-update race is
reproduced in the tests).
"""

from __future__ import annotations

from wordarena.apps.rooms.models import BattleRoom, Prompt, RoomStatus, advance_status, pass_cap
from wordarena.core.config import get_settings
from wordarena.core.errors import InvalidTransitionError, NotInRoomError, PassLimitError


def current_prompt(room: BattleRoom) -> Prompt | None:
    if room.status != RoomStatus.PLAYING or room.cursor >= len(room.prompt_set):
        return None
    return room.prompt_set[room.cursor]


def hint_for(room: BattleRoom, prompt: Prompt) -> str | None:
    """Easy rooms show the first letter plus one blank per remaining letter: "a_ _ _ _"."""
    if room.difficulty.value == "easy" and prompt.answer:
        return prompt.answer[0] + " ".join("_" * (len(prompt.answer) - 1))
    return None


def battle_winner(room: BattleRoom) -> str | None:
    """Highest score wins; equal scores go to the lowest player id."""
    if not room.roster:
        return None
    best = min(room.roster.values(), key=lambda p: (-p.score, p.id))
    return best.id


def _require_live_prompt(room: BattleRoom) -> None:
    if room.status != RoomStatus.PLAYING:
        raise InvalidTransitionError(
            f"Room {room.id} is not playing",
            details={"status": room.status.value},
        )
    if room.cursor >= len(room.prompt_set):
        raise InvalidTransitionError(
            f"Room {room.id} has no prompt left",
            details={"cursor": room.cursor},
        )


def _require_player(room: BattleRoom, player_id: str) -> None:
    if player_id not in room.roster:
        raise NotInRoomError(f"{player_id} is not in room {room.id}", details={"player_id": player_id})


def _update_player(room: BattleRoom, player_id: str, **changes) -> None:
    roster = dict(room.roster)
    roster[player_id] = roster[player_id].model_copy(update=changes)
    room.roster = roster


def apply_correct(room: BattleRoom, player_id: str) -> BattleRoom:
    """Reward the player and move everyone to the next prompt."""
    _require_live_prompt(room)
    _require_player(room, player_id)
    player = room.roster[player_id]
    _update_player(room, player_id, score=player.score + get_settings().CORRECT_REWARD)
    room.cursor += 1
    room.last_actor = player_id
    return room


def apply_pass(room: BattleRoom, player_id: str) -> BattleRoom:
    """
    Spend one pass: score penalty (may go negative) and advance.

    Raises:
        PassLimitError: the player already used floor(0.2 × |prompt_set|) passes
    """
    _require_live_prompt(room)
    _require_player(room, player_id)
    settings = get_settings()
    player = room.roster[player_id]
    cap = pass_cap(room, settings.PASS_RATIO)
    if player.passes_used >= cap:
        raise PassLimitError(
            f"No passes left (max {cap})",
            details={"passes_used": player.passes_used, "cap": cap},
        )
    _update_player(
        room,
        player_id,
        score=player.score - settings.PASS_PENALTY,
        passes_used=player.passes_used + 1,
    )
    room.cursor += 1
    return room


def apply_timeout(room: BattleRoom, expected_cursor: int) -> bool:
    """
    Expire the prompt at expected_cursor. Returns False (and changes
    nothing) when the cursor has already moved past it.
    """
    if room.status != RoomStatus.PLAYING or room.cursor != expected_cursor:
        return False
    if room.cursor >= len(room.prompt_set):
        return False
    room.cursor += 1
    return True


def finish_if_exhausted(room: BattleRoom) -> bool:
    """Finish the room once the cursor has walked off the prompt list."""
    if room.status != RoomStatus.PLAYING or room.cursor < len(room.prompt_set):
        return False
    advance_status(room, RoomStatus.FINISHED)
    room.winner_id = battle_winner(room)
    return True
