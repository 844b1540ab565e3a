"""
Battle mode: shared cursor, scoring, passes, timeouts and the winner.
"""

import asyncio

import pytest

from wordarena.apps.battle import service
from wordarena.apps.battle.resolver import apply_correct, battle_winner, hint_for
from wordarena.apps.battle.service import PassNotConfirmedError
from wordarena.apps.resolver import Verdict
from wordarena.apps.rooms.models import Difficulty, GameMode, Prompt, RoomStatus, parse_room
from wordarena.apps.rooms.service import create_room, get_room, leave
from wordarena.core.config import get_settings
from wordarena.core.database import ROOMS, get_db
from wordarena.core.errors import (
    EmptyCatalogError,
    InvalidTransitionError,
    NotEnoughPlayersError,
    NotHostError,
    PassLimitError,
)


async def started(battle_room, host, **kwargs):
    room = await battle_room(**kwargs)
    return await service.start_battle(room.id, host)


def answer_at(room, cursor=None):
    return room.prompt_set[room.cursor if cursor is None else cursor].answer


async def test_start_draws_ten_prompts(battle_room, host):
    room = await started(battle_room, host)
    assert room.status == RoomStatus.PLAYING
    assert len(room.prompt_set) == 10
    assert room.cursor == 0
    assert len({p.id for p in room.prompt_set}) == 10


async def test_start_requires_host(battle_room, guest):
    room = await battle_room()
    with pytest.raises(NotHostError):
        await service.start_battle(room.id, guest)


async def test_start_requires_two_players(host):
    room = await create_room(host, GameMode.BATTLE, "Alone")
    with pytest.raises(NotEnoughPlayersError):
        await service.start_battle(room.id, host)


async def test_start_twice_is_rejected(battle_room, host):
    room = await started(battle_room, host)
    with pytest.raises(InvalidTransitionError):
        await service.start_battle(room.id, host)


async def test_start_with_empty_book(battle_room, host):
    room = await battle_room(selected_book="없는 책")
    with pytest.raises(EmptyCatalogError):
        await service.start_battle(room.id, host)
    assert (await get_room(room.id)).status == RoomStatus.WAITING


async def test_correct_answer_scores_and_advances(battle_room, host, guest):
    room = await started(battle_room, host)
    outcome = await service.submit_answer(room.id, guest, f"  {answer_at(room).upper()}! ", cursor=0)

    assert outcome.verdict == Verdict.CORRECT
    assert outcome.room.cursor == 1
    assert outcome.room.roster["u2"].score == 100
    assert outcome.room.last_actor == "u2"


async def test_wrong_answer_changes_nothing(battle_room, host, guest):
    room = await started(battle_room, host)
    outcome = await service.submit_answer(room.id, guest, "definitely wrong")

    assert outcome.verdict == Verdict.INCORRECT
    assert outcome.room.cursor == 0
    assert outcome.room.roster["u2"].score == 0


async def test_stale_answer_is_ignored(battle_room, host, guest):
    room = await started(battle_room, host)
    first = answer_at(room, 0)
    await service.submit_answer(room.id, host, first, cursor=0)

    late = await service.submit_answer(room.id, guest, first, cursor=0)
    assert late.verdict == Verdict.STALE
    assert late.room.cursor == 1
    assert late.room.roster["u2"].score == 0


async def test_simultaneous_correct_answers_advance_once(battle_room, host, guest):
    room = await started(battle_room, host)
    first = answer_at(room, 0)

    a, b = await asyncio.gather(
        service.submit_answer(room.id, host, first, cursor=0),
        service.submit_answer(room.id, guest, first, cursor=0),
    )
    assert sorted([a.verdict, b.verdict]) == sorted([Verdict.CORRECT, Verdict.STALE])
    assert (await get_room(room.id)).cursor == 1


async def test_alternating_answers_finish_the_room(battle_room, host, guest):
    room = await started(battle_room, host)
    players = [host, guest]
    cursors = []
    for i in range(10):
        room = (await service.submit_answer(room.id, players[i % 2], answer_at(room))).room
        cursors.append(room.cursor)

    assert cursors == list(range(1, 11))
    assert room.status == RoomStatus.FINISHED
    assert room.roster["u1"].score == room.roster["u2"].score == 500
    # equal scores go to the lowest player id
    assert room.winner_id == "u1"


async def test_single_scorer_wins(battle_room, host, guest):
    room = await started(battle_room, host)
    for _ in range(10):
        room = (await service.submit_answer(room.id, guest, answer_at(room))).room

    assert room.status == RoomStatus.FINISHED
    assert room.roster["u2"].score == 1000
    assert room.roster["u1"].score == 0
    assert room.winner_id == "u2"


async def test_winner_leaving_finished_battle_stays_on_roster(battle_room, host, guest):
    room = await started(battle_room, host)
    for _ in range(10):
        room = (await service.submit_answer(room.id, guest, answer_at(room))).room
    assert room.winner_id == "u2"

    room = await leave(room.id, guest)
    assert room.status == RoomStatus.FINISHED
    assert room.winner_id in room.roster
    assert room.player_count == 2


async def test_answer_after_finish_is_rejected(battle_room, host, guest):
    room = await started(battle_room, host)
    for _ in range(10):
        room = (await service.submit_answer(room.id, guest, answer_at(room, min(room.cursor, 9)))).room
    with pytest.raises(InvalidTransitionError):
        await service.submit_answer(room.id, guest, "apple")


async def test_pass_limit(battle_room, host, guest):
    """Cap is floor(10 × 0.2) = 2; the third pass changes nothing."""
    room = await started(battle_room, host)
    for expected_cursor in (1, 2):
        outcome = await service.pass_prompt(room.id, guest, confirm=True)
        assert outcome.verdict == Verdict.PASSED
        assert outcome.room.cursor == expected_cursor

    with pytest.raises(PassLimitError):
        await service.pass_prompt(room.id, guest, confirm=True)

    room = await get_room(room.id)
    assert room.cursor == 2
    assert room.roster["u2"].score == -100
    assert room.roster["u2"].passes_used == 2


async def test_pass_needs_confirmation(battle_room, host, guest):
    room = await started(battle_room, host)
    with pytest.raises(PassNotConfirmedError):
        await service.pass_prompt(room.id, guest)
    assert (await get_room(room.id)).cursor == 0


async def test_timeout_after_advance_is_noop(battle_room, host, guest):
    room = await started(battle_room, host)
    await service.submit_answer(room.id, guest, answer_at(room))

    room = await service.expire_prompt(room.id, host, cursor=0)
    assert room.cursor == 1

    room = await service.expire_prompt(room.id, host, cursor=1)
    assert room.cursor == 2


async def test_cursor_never_decreases_or_overflows(battle_room, host, guest):
    room = await started(battle_room, host)
    seen = [room.cursor]
    steps = [
        lambda r: service.submit_answer(r.id, host, answer_at(r)),
        lambda r: service.pass_prompt(r.id, guest, confirm=True),
        lambda r: service.expire_prompt(r.id, host, r.cursor),
        lambda r: service.expire_prompt(r.id, host, 0),
    ]
    for i in range(20):
        room = await get_room(room.id)
        if room.status == RoomStatus.FINISHED:
            break
        try:
            await steps[i % len(steps)](room)
        except PassLimitError:
            pass
        seen.append((await get_room(room.id)).cursor)

    assert seen == sorted(seen)
    assert max(seen) <= 10


async def test_easy_room_hint(battle_room, host):
    room = await started(battle_room, host, difficulty=Difficulty.EASY)
    prompt = room.prompt_set[0]
    hint = hint_for(room, prompt)
    assert hint[0] == prompt.answer[0]
    assert hint.count("_") == len(prompt.answer) - 1

    room.prompt_set = [Prompt(id="x", term="사과", answer="apple")]
    assert hint_for(room, room.prompt_set[0]) == "a_ _ _ _"


async def test_hard_room_turn_clock_expires_prompt(battle_room, host, monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "ENABLE_TURN_CLOCK", True)
    monkeypatch.setattr(settings, "HARD_TURN_SECONDS", 0.05)
    try:
        room = await started(battle_room, host, difficulty=Difficulty.HARD)
        assert service.turn_clock.is_armed(room.id)
        await asyncio.sleep(0.2)
        assert (await get_room(room.id)).cursor >= 1
    finally:
        service.turn_clock.cancel_all()


def test_winner_tie_break_is_deterministic():
    room = parse_room({
        "id": "r", "mode": "battle", "host_id": "b", "capacity": 2,
        "roster": {
            "b": {"id": "b", "display_name": "B", "score": 300},
            "a": {"id": "a", "display_name": "A", "score": 300},
            "c": {"id": "c", "display_name": "C", "score": 100},
        },
    })
    assert battle_winner(room) == "a"


async def test_unserialized_writes_lose_an_increment(battle_room, host, guest):
    """
    Two clients that read cursor=3 and write cursor=4 back straight to the
    store, without the coordinator, leave the cursor at 4: one increment is lost.
    """
    room = await started(battle_room, host)
    store = get_db()
    await store.update(ROOMS, room.id, {"cursor": 3})

    copy_a = parse_room(await store.get(ROOMS, room.id))
    copy_b = parse_room(await store.get(ROOMS, room.id))
    apply_correct(copy_a, "u1")
    apply_correct(copy_b, "u2")
    await store.update(ROOMS, room.id, {"cursor": copy_a.cursor, "roster": copy_a.model_dump(mode="json")["roster"]})
    await store.update(ROOMS, room.id, {"cursor": copy_b.cursor, "roster": copy_b.model_dump(mode="json")["roster"]})

    final = await get_room(room.id)
    assert final.cursor == 4
    assert final.roster["u1"].score == 0
    assert final.roster["u2"].score == 100
