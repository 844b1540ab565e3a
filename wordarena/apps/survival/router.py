"""
router.py — Survival REST Endpoints
====================================
Start a survival round and report the caller's own board events.
"""

import logging

from fastapi import APIRouter, Depends

from wordarena.apps.rooms.schema import RoomResponse
from wordarena.apps.rooms.service import public_room
from wordarena.apps.survival import service
from wordarena.apps.survival.schema import ConsumeEffectResponse, DamageRequest, EffectRequest, MatchRequest
from wordarena.core.session import Session, get_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/survival", tags=["survival"])


@router.post("/{room_id}/start", response_model=RoomResponse)
async def start_survival_endpoint(room_id: str, session: Session = Depends(get_session)):
    """Start the round (host only). Every player's vitals are reset."""
    room = await service.start_survival(room_id, session)
    return public_room(room)


@router.post("/{room_id}/damage", response_model=RoomResponse)
async def damage_endpoint(room_id: str, req: DamageRequest | None = None, session: Session = Depends(get_session)):
    """A prompt reached the danger line on the caller's board."""
    room = await service.report_damage(room_id, session, req.amount if req else None)
    return public_room(room)


@router.post("/{room_id}/match", response_model=RoomResponse)
async def match_endpoint(room_id: str, req: MatchRequest | None = None, session: Session = Depends(get_session)):
    room = await service.report_match(room_id, session, req.prompt_id if req else None)
    return public_room(room)


@router.post("/{room_id}/effect", response_model=RoomResponse)
async def effect_endpoint(room_id: str, req: EffectRequest, session: Session = Depends(get_session)):
    """
    Returns:
        200: Effect delivered to the target
        409: Gauge not full, or the target is invalid
    """
    room = await service.launch_effect(room_id, session, req.target_id, req.effect)
    return public_room(room)


@router.post("/{room_id}/effect/consume", response_model=ConsumeEffectResponse)
async def consume_effect_endpoint(room_id: str, session: Session = Depends(get_session)):
    room, effect = await service.consume_effect(room_id, session)
    return {"effect": effect, "room": public_room(room)}
