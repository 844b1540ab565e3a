"""
service.py — Battle Session
============================
Head-to-head mode: both players race on the same shared prompt. A correct
answer or a pass moves the shared cursor; when it walks off the prompt
list the room finishes and the winner is recorded on the room.

Every intent is applied as a fresh read-modify-write under the room lock
(see core/coordinator.py).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from wordarena.apps.battle.clock import TurnClock
from wordarena.apps.battle.resolver import (
    apply_correct,
    apply_pass,
    apply_timeout,
    current_prompt,
    finish_if_exhausted,
)
from wordarena.apps.resolver import Verdict, judge
from wordarena.apps.rooms.models import BattleRoom, Difficulty, GameMode, RoomStatus, advance_status
from wordarena.apps.rooms.service import (
    draw_prompt_set,
    get_room,
    require_host,
    require_member,
    require_mode,
    require_startable,
)
from wordarena.core.config import get_settings
from wordarena.core.coordinator import coordinator
from wordarena.core.errors import GameError, InvalidTransitionError, RoomNotFoundError
from wordarena.core.session import Session

logger = logging.getLogger(__name__)


class PassNotConfirmedError(GameError):
    code = "PASS_NOT_CONFIRMED"
    status = 400


@dataclass
class AnswerOutcome:
    verdict: Verdict
    room: BattleRoom


# ═══════════════════════════════════════════════════
# TURN CLOCK (hard difficulty)
# ═══════════════════════════════════════════════════

async def _expire(room_id: str, cursor: int) -> bool:
    def _timeout(room: BattleRoom):
        advanced = apply_timeout(room, cursor)
        if advanced:
            finish_if_exhausted(room)
        return room, advanced

    try:
        room, advanced = await coordinator.mutate(room_id, _timeout)
    except RoomNotFoundError:
        turn_clock.cancel(room_id)
        return False
    if advanced:
        logger.info(f"⏰ Prompt {cursor} expired in room {room_id}")
        _after_advance(room)
    return advanced


turn_clock = TurnClock(_expire, seconds=get_settings().HARD_TURN_SECONDS)


def _after_advance(room: BattleRoom) -> None:
    if room.status == RoomStatus.FINISHED:
        turn_clock.cancel(room.id)
        logger.info(f"🏁 Battle {room.id} finished, winner: {room.winner_id}")
    elif room.difficulty == Difficulty.HARD and get_settings().ENABLE_TURN_CLOCK:
        turn_clock.arm(room.id, room.cursor, get_settings().HARD_TURN_SECONDS)


# ═══════════════════════════════════════════════════
# SESSION FUNCTIONS
# ═══════════════════════════════════════════════════

async def start_battle(room_id: str, session: Session) -> BattleRoom:
    """
    waiting → playing. Host only, needs two players.

    Draws a shuffled prompt set of BATTLE_SESSION_LENGTH from the room's book.
    """
    room = await get_room(room_id)
    require_mode(room, GameMode.BATTLE)
    require_host(room, session)
    require_startable(room)

    prompts = await draw_prompt_set(room, get_settings().BATTLE_SESSION_LENGTH)

    def _start(room: BattleRoom):
        require_startable(room)
        advance_status(room, RoomStatus.PLAYING)
        room.prompt_set = prompts
        room.cursor = 0
        room.last_actor = None
        room.winner_id = None
        room.roster = {
            pid: p.model_copy(update={"score": 0, "passes_used": 0, "ready": True})
            for pid, p in room.roster.items()
        }
        return room, None

    room, _ = await coordinator.mutate(room_id, _start)
    logger.info(f"🚀 Battle {room_id} started with {len(prompts)} prompts ({room.difficulty.value})")
    _after_advance(room)
    return room


async def submit_answer(room_id: str, session: Session, text: str, cursor: int | None = None) -> AnswerOutcome:
    """
    Judge an answer against the prompt that is current right now.

    cursor is the prompt index the player was looking at; if the shared
    cursor has moved on since, the answer is STALE and nothing changes.
    Wrong answers change nothing either.
    """
    def _answer(room: BattleRoom):
        require_mode(room, GameMode.BATTLE)
        require_member(room, session)
        prompt = current_prompt(room)
        if prompt is None:
            raise InvalidTransitionError(f"No live prompt in room {room.id}", details={"status": room.status.value})
        if cursor is not None and cursor != room.cursor:
            return room, Verdict.STALE
        verdict = judge(prompt, text)
        if verdict == Verdict.CORRECT:
            apply_correct(room, session.player_id)
            finish_if_exhausted(room)
        return room, verdict

    room, verdict = await coordinator.mutate(room_id, _answer)
    if verdict == Verdict.CORRECT:
        logger.info(f"✅ {session.player_id} answered prompt {room.cursor - 1} in room {room_id}")
        _after_advance(room)
    return AnswerOutcome(verdict=verdict, room=room)


async def pass_prompt(room_id: str, session: Session, confirm: bool = False, cursor: int | None = None) -> AnswerOutcome:
    """
    Skip the current prompt for a score penalty.

    The cost is irreversible, so the caller must pass confirm=True.
    """
    if not confirm:
        raise PassNotConfirmedError("Passing costs points and must be confirmed")

    def _pass(room: BattleRoom):
        require_mode(room, GameMode.BATTLE)
        require_member(room, session)
        if cursor is not None and cursor != room.cursor and room.status == RoomStatus.PLAYING:
            return room, Verdict.STALE
        apply_pass(room, session.player_id)
        finish_if_exhausted(room)
        return room, None

    room, verdict = await coordinator.mutate(room_id, _pass)
    if verdict == Verdict.STALE:
        return AnswerOutcome(verdict=Verdict.STALE, room=room)
    logger.info(f"⏭️  {session.player_id} passed in room {room_id}")
    _after_advance(room)
    return AnswerOutcome(verdict=Verdict.PASSED, room=room)


async def expire_prompt(room_id: str, session: Session, cursor: int) -> BattleRoom:
    """Host-issued timeout for the prompt at cursor. No-op if it already moved."""
    room = await get_room(room_id)
    require_mode(room, GameMode.BATTLE)
    require_host(room, session)
    await _expire(room_id, cursor)
    return await get_room(room_id)
