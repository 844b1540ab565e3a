"""
Survival state deltas.

Pure functions over a SurvivalRoom. Each one touches only the vitals of
the player it is applied for; nobody writes another player's health.
The one cross-player write is an effect landing in a target's
pending_effect slot.
"""

from __future__ import annotations

from wordarena.apps.rooms.models import Effect, RoomStatus, SurvivalRoom, advance_status
from wordarena.core.config import get_settings
from wordarena.core.errors import GameError, InvalidTransitionError, NotInRoomError


class EffectNotReadyError(GameError):
    code = "GAUGE_NOT_FULL"
    status = 409


class InvalidTargetError(GameError):
    code = "INVALID_TARGET"
    status = 409


def _require_playing(room: SurvivalRoom) -> None:
    if room.status != RoomStatus.PLAYING:
        raise InvalidTransitionError(
            f"Room {room.id} is not playing",
            details={"status": room.status.value},
        )


def _require_player(room: SurvivalRoom, player_id: str) -> None:
    if player_id not in room.roster:
        raise NotInRoomError(f"{player_id} is not in room {room.id}", details={"player_id": player_id})


def _update_player(room: SurvivalRoom, player_id: str, **changes) -> None:
    roster = dict(room.roster)
    roster[player_id] = roster[player_id].model_copy(update=changes)
    room.roster = roster


def alive_players(room: SurvivalRoom) -> list[str]:
    return [p.id for p in room.roster.values() if p.alive]


def apply_damage(room: SurvivalRoom, player_id: str, amount: int | None = None) -> bool:
    """
    Take damage. Health and the alive flag change in the same write.

    Returns True when this hit eliminated the player. Hits on a dead
    player change nothing.
    """
    _require_playing(room)
    _require_player(room, player_id)
    player = room.roster[player_id]
    if not player.alive:
        return False
    amount = get_settings().SURVIVAL_DAMAGE if amount is None else max(0, amount)
    health = max(0, player.health - amount)
    eliminated = health <= 0
    _update_player(room, player_id, health=health, alive=not eliminated)
    return eliminated


def apply_match(room: SurvivalRoom, player_id: str) -> int:
    """Score a cleared prompt. Returns the new score."""
    _require_playing(room)
    _require_player(room, player_id)
    settings = get_settings()
    player = room.roster[player_id]
    if not player.alive:
        return player.score
    score = player.score + settings.SURVIVAL_REWARD
    gauge = min(100, player.gauge + settings.GAUGE_PER_MATCH)
    _update_player(room, player_id, score=score, gauge=gauge)
    return score


def apply_effect(room: SurvivalRoom, attacker_id: str, target_id: str, effect: Effect) -> None:
    """Spend a full gauge to drop an effect on another living player."""
    _require_playing(room)
    _require_player(room, attacker_id)
    _require_player(room, target_id)
    attacker = room.roster[attacker_id]
    if not attacker.alive:
        raise InvalidTargetError("Eliminated players cannot attack")
    if attacker.gauge < 100:
        raise EffectNotReadyError(f"Gauge at {attacker.gauge}/100", details={"gauge": attacker.gauge})
    if target_id == attacker_id or not room.roster[target_id].alive:
        raise InvalidTargetError(f"Cannot target {target_id}", details={"target_id": target_id})
    _update_player(room, attacker_id, gauge=0)
    _update_player(room, target_id, pending_effect=Effect(effect))


def clear_effect(room: SurvivalRoom, player_id: str) -> Effect | None:
    _require_player(room, player_id)
    effect = room.roster[player_id].pending_effect
    if effect is not None:
        _update_player(room, player_id, pending_effect=None)
    return effect


def survival_outcome(room: SurvivalRoom) -> tuple[bool, str | None]:
    """(decided, winner_id). Decided once at most one player is alive."""
    alive = alive_players(room)
    if len(alive) > 1:
        return False, None
    return True, (alive[0] if alive else None)


def finish_if_decided(room: SurvivalRoom) -> bool:
    if room.status != RoomStatus.PLAYING:
        return False
    decided, winner_id = survival_outcome(room)
    if not decided:
        return False
    advance_status(room, RoomStatus.FINISHED)
    room.winner_id = winner_id
    return True
