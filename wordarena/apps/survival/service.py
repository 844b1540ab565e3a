"""
service.py — Survival Session
==============================
Multi-player elimination. Each player runs their own falling-prompt board
(client side, see wordarena/client/board.py) and reports only their own
vitals here: damage taken and prompts cleared. The room finishes as soon
as at most one player is left alive.
"""

from __future__ import annotations

import logging

from wordarena.apps.rooms.models import Effect, GameMode, RoomStatus, SurvivalRoom, advance_status
from wordarena.apps.rooms.service import (
    draw_prompt_set,
    get_room,
    require_host,
    require_member,
    require_mode,
    require_startable,
)
from wordarena.apps.survival.resolver import (
    apply_damage,
    apply_effect,
    apply_match,
    clear_effect,
    finish_if_decided,
)
from wordarena.core.config import get_settings
from wordarena.core.coordinator import coordinator
from wordarena.core.session import Session

logger = logging.getLogger(__name__)


def _log_finish(room: SurvivalRoom, finished: bool) -> None:
    if finished:
        logger.info(f"🏁 Survival {room.id} finished, winner: {room.winner_id}")


async def start_survival(room_id: str, session: Session) -> SurvivalRoom:
    """waiting → playing. Host only, needs two players; resets every player's vitals."""
    room = await get_room(room_id)
    require_mode(room, GameMode.SURVIVAL)
    require_host(room, session)
    require_startable(room)

    prompts = await draw_prompt_set(room, get_settings().SURVIVAL_SESSION_LENGTH)

    def _start(room: SurvivalRoom):
        require_startable(room)
        advance_status(room, RoomStatus.PLAYING)
        room.prompt_set = prompts
        room.winner_id = None
        room.roster = {
            pid: p.model_copy(update={
                "health": 100,
                "score": 0,
                "gauge": 0,
                "alive": True,
                "pending_effect": None,
                "ready": True,
            })
            for pid, p in room.roster.items()
        }
        return room, None

    room, _ = await coordinator.mutate(room_id, _start)
    logger.info(f"🚀 Survival {room_id} started: {len(room.roster)} players, {len(prompts)} prompts")
    return room


async def report_damage(room_id: str, session: Session, amount: int | None = None) -> SurvivalRoom:
    """A prompt crossed the danger line on the caller's own board."""
    def _damage(room: SurvivalRoom):
        require_mode(room, GameMode.SURVIVAL)
        require_member(room, session)
        eliminated = apply_damage(room, session.player_id, amount)
        finished = finish_if_decided(room) if eliminated else False
        return room, (eliminated, finished)

    room, (eliminated, finished) = await coordinator.mutate(room_id, _damage)
    if eliminated:
        logger.info(f"💀 {session.player_id} eliminated in room {room_id}")
    _log_finish(room, finished)
    return room


async def report_match(room_id: str, session: Session, prompt_id: str | None = None) -> SurvivalRoom:
    """The caller cleared a falling prompt on their own board."""
    def _match(room: SurvivalRoom):
        require_mode(room, GameMode.SURVIVAL)
        require_member(room, session)
        return room, apply_match(room, session.player_id)

    room, score = await coordinator.mutate(room_id, _match)
    logger.debug(f"{session.player_id} cleared {prompt_id} in room {room_id} (score {score})")
    return room


async def launch_effect(room_id: str, session: Session, target_id: str, effect: Effect) -> SurvivalRoom:
    """Spend a full gauge to drop fog / speed / flash on another player."""
    def _effect(room: SurvivalRoom):
        require_mode(room, GameMode.SURVIVAL)
        require_member(room, session)
        apply_effect(room, session.player_id, target_id, effect)
        return room, None

    room, _ = await coordinator.mutate(room_id, _effect)
    logger.info(f"🌫️  {session.player_id} hit {target_id} with {Effect(effect).value} in room {room_id}")
    return room


async def consume_effect(room_id: str, session: Session) -> tuple[SurvivalRoom, Effect | None]:
    """Take (and clear) the effect waiting for the caller, if any."""
    def _consume(room: SurvivalRoom):
        require_mode(room, GameMode.SURVIVAL)
        require_member(room, session)
        return room, clear_effect(room, session.player_id)

    return await coordinator.mutate(room_id, _consume)
