"""
router.py — Battle REST Endpoints
==================================
Start a battle, answer, pass, and host-issued timeouts.
"""

import logging

from fastapi import APIRouter, Depends

from wordarena.apps.battle import service
from wordarena.apps.battle.schema import AnswerRequest, AnswerResponse, PassRequest, TimeoutRequest
from wordarena.apps.rooms.schema import RoomResponse
from wordarena.apps.rooms.service import public_room
from wordarena.core.session import Session, get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/battle", tags=["battle"])


@router.post("/{room_id}/start", response_model=RoomResponse)
async def start_battle_endpoint(room_id: str, session: Session = Depends(get_session)):
    """
    Start the battle (host only).

    Returns:
        200: Room is now playing
        403: Caller is not the host
        409: Not enough players, already started, or the book is empty
    """
    room = await service.start_battle(room_id, session)
    return public_room(room)


@router.post("/{room_id}/answer", response_model=AnswerResponse)
async def answer_endpoint(room_id: str, req: AnswerRequest, session: Session = Depends(get_session)):
    """
    Judge an answer against the current prompt.

    Wrong and stale answers return 200 with the room unchanged.
    """
    outcome = await service.submit_answer(room_id, session, req.text, cursor=req.cursor)
    return {"verdict": outcome.verdict, "room": public_room(outcome.room)}


@router.post("/{room_id}/pass", response_model=AnswerResponse)
async def pass_endpoint(room_id: str, req: PassRequest, session: Session = Depends(get_session)):
    """
    Returns:
        200: Passed (or stale)
        400: confirm was not set
        409: No passes left
    """
    outcome = await service.pass_prompt(room_id, session, confirm=req.confirm, cursor=req.cursor)
    return {"verdict": outcome.verdict, "room": public_room(outcome.room)}


@router.post("/{room_id}/timeout", response_model=RoomResponse)
async def timeout_endpoint(room_id: str, req: TimeoutRequest, session: Session = Depends(get_session)):
    """Host-issued expiry for the prompt at cursor. No-op if it already moved."""
    room = await service.expire_prompt(room_id, session, req.cursor)
    return public_room(room)
