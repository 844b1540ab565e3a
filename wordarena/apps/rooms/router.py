"""
router.py — Room REST Endpoints
================================
Create, list, join, leave and delete rooms.

Every endpoint acts for the caller identified by the session headers
(X-Player-Id / X-Player-Name). GameErrors propagate to the handler in
core/errors.py, which renders the error envelope.
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from wordarena.apps.rooms import service
from wordarena.apps.rooms.models import GameMode
from wordarena.apps.rooms.schema import (
    CreateRoomRequest,
    DeleteResponse,
    JoinRequest,
    ReadyRequest,
    RoomListResponse,
    RoomResponse,
)
from wordarena.core.session import Session, get_session

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════
# ROUTER SETUP
# ═══════════════════════════════════════════════════

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


# ═══════════════════════════════════════════════════
# ENDPOINTS
# ═══════════════════════════════════════════════════

@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room_endpoint(req: CreateRoomRequest, session: Session = Depends(get_session)):
    """
    Create a room. The caller becomes its host and first (ready) member.

    Returns:
        201: Room created
        401: No session headers
    """
    room = await service.create_room(
        session,
        mode=req.mode,
        name=req.name,
        password=req.password,
        difficulty=req.difficulty,
        selected_book=req.selected_book,
    )
    return service.public_room(room)


@router.get("", response_model=RoomListResponse)
async def list_rooms_endpoint(mode: GameMode = Query(..., description="battle | survival")):
    """Open (waiting or playing) rooms of one mode, oldest first."""
    rooms = await service.list_open_rooms(mode)
    return {"rooms": [service.public_room(r) for r in rooms], "total": len(rooms)}


@router.delete("/hosted", response_model=DeleteResponse)
async def reap_hosted_endpoint(
    mode: GameMode | None = Query(None, description="Only rooms of this mode"),
    session: Session = Depends(get_session),
):
    """
    Delete every room the caller still hosts.

    Lobby clients call this on entry to clean up rooms left behind by a
    closed tab.
    """
    count = await service.reap_hosted_rooms(session, mode)
    return {"deleted": count}


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room_endpoint(room_id: str):
    """
    Returns:
        200: Room snapshot
        404: Room not found
    """
    room = await service.fetch_room(room_id)
    return service.public_room(room)


@router.delete("/{room_id}", response_model=DeleteResponse)
async def delete_room_endpoint(room_id: str, session: Session = Depends(get_session)):
    """Host-only delete. Deleting a room that is already gone returns deleted=0."""
    deleted = await service.delete_room_as(room_id, session)
    return {"deleted": int(deleted)}


@router.post("/{room_id}/join", response_model=RoomResponse)
async def join_room_endpoint(room_id: str, req: JoinRequest | None = None, session: Session = Depends(get_session)):
    """
    Join a waiting room.

    Returns:
        200: Joined (or already a member)
        403: Wrong password
        404: Room not found
        409: Room full or already started
    """
    room = await service.join(room_id, session, password=req.password if req else None)
    return service.public_room(room)


@router.post("/{room_id}/leave", response_model=RoomResponse | None)
async def leave_room_endpoint(room_id: str, session: Session = Depends(get_session)):
    """Leave a room. When the host leaves the room is deleted and null is returned."""
    room = await service.leave(room_id, session)
    return service.public_room(room) if room is not None else None


@router.post("/{room_id}/ready", response_model=RoomResponse)
async def ready_endpoint(room_id: str, req: ReadyRequest, session: Session = Depends(get_session)):
    room = await service.set_ready(room_id, session, req.ready)
    return service.public_room(room)
