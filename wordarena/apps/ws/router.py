"""
router.py — WebSocket Router
=============================
Realtime push for rooms and lobbies.

ENDPOINTS:
----------
WS /ws/rooms/{room_id}/{player_id}?name=<display name>
WS /ws/lobby/{mode}

FLOW:
-----
1. Client connects, gets a snapshot (room_snapshot / room_list)
2. A store subscription is pumped to the socket in a background task
3. Client events are routed to the same service intents as the REST API
4. On disconnect the subscription is closed
"""

import logging
import uuid

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from wordarena.apps.battle import service as battle_service
from wordarena.apps.rooms import service as room_service
from wordarena.apps.rooms.models import GameMode
from wordarena.apps.survival import service as survival_service
from wordarena.apps.ws.schema import (
    AnswerData,
    ClientEvent,
    DamageData,
    EffectData,
    MatchData,
    PassData,
    error_event,
)
from wordarena.apps.ws.service import lobby_group, lobby_message, manager, room_message, start_pump, stop_pump
from wordarena.core.database import ROOMS, get_db
from wordarena.core.errors import GameError
from wordarena.core.session import Session

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════
# ROUTER SETUP
# ═══════════════════════════════════════════════════

router = APIRouter(tags=["websocket"])


# ═══════════════════════════════════════════════════
# ROOM SOCKET
# ═══════════════════════════════════════════════════

@router.websocket("/ws/rooms/{room_id}/{player_id}")
async def room_socket(
    websocket: WebSocket,
    room_id: str,
    player_id: str,
    name: str | None = Query(None),
):
    """
    Room feed for one player.

    Sends room_snapshot, then room_update per store change. When the room
    is deleted the socket gets room_deleted and is closed.
    """
    logger.info(f"🔌 WebSocket connection attempt: {room_id}/{player_id}")
    await manager.connect(room_id, player_id, websocket)
    session = Session(player_id=player_id, display_name=name or player_id)

    subscription = get_db().subscribe(ROOMS, lambda r: r.get("id") == room_id)
    pump_task = None
    try:
        try:
            room = await room_service.get_room(room_id)
        except GameError as e:
            await websocket.send_json(error_event(e.code, e.message, e.details))
            await websocket.close()
            return

        await websocket.send_json({"event": "room_snapshot", "data": room_service.public_room(room)})
        pump_task = start_pump(websocket, subscription, room_message, stop_on_delete=True)

        while True:
            data = await websocket.receive_json()
            try:
                event = ClientEvent.model_validate(data)
            except ValidationError:
                await websocket.send_json(error_event("invalid_format", "Message must be JSON with an 'event' field"))
                continue

            logger.debug(f"📥 Received from {player_id}: {event.event}")
            try:
                await handle_client_event(room_id, session, event, websocket)
            except GameError as e:
                await websocket.send_json(error_event(e.code, e.message, e.details))
            except ValidationError as e:
                await websocket.send_json(error_event("invalid_data", str(e)))

    except WebSocketDisconnect:
        logger.info(f"🔌 WebSocket disconnected: {room_id}/{player_id}")

    except RuntimeError as e:
        # receive after the pump closed the socket on room deletion
        logger.debug(f"Room socket {room_id}/{player_id} closed: {e}")

    except Exception as e:
        logger.error(f"❌ WebSocket error in {room_id}/{player_id}: {e}")

    finally:
        subscription.close()
        await stop_pump(pump_task)
        manager.disconnect(room_id, player_id)


# ═══════════════════════════════════════════════════
# EVENT HANDLERS
# ═══════════════════════════════════════════════════

async def handle_client_event(room_id: str, session: Session, event: ClientEvent, websocket: WebSocket):
    """
    Route one client event. The resulting room change reaches every socket
    through the store subscription; only per-caller results are answered here.
    """
    if event.event == "heartbeat":
        await websocket.send_json({"event": "pong", "data": {"timestamp": event.data.get("timestamp")}})

    elif event.event == "answer":
        payload = AnswerData.model_validate(event.data)
        outcome = await battle_service.submit_answer(room_id, session, payload.text, cursor=payload.cursor)
        await websocket.send_json({
            "event": "answer_result",
            "data": {"verdict": outcome.verdict.value, "cursor": outcome.room.cursor},
        })

    elif event.event == "pass":
        payload = PassData.model_validate(event.data)
        outcome = await battle_service.pass_prompt(room_id, session, confirm=payload.confirm, cursor=payload.cursor)
        await websocket.send_json({
            "event": "answer_result",
            "data": {"verdict": outcome.verdict.value, "cursor": outcome.room.cursor},
        })

    elif event.event == "damage":
        payload = DamageData.model_validate(event.data)
        await survival_service.report_damage(room_id, session, payload.amount)

    elif event.event == "match":
        payload = MatchData.model_validate(event.data)
        await survival_service.report_match(room_id, session, payload.prompt_id)

    elif event.event == "effect":
        payload = EffectData.model_validate(event.data)
        await survival_service.launch_effect(room_id, session, payload.target_id, payload.effect)

    elif event.event == "consume_effect":
        _, effect = await survival_service.consume_effect(room_id, session)
        await websocket.send_json({"event": "effect", "data": {"effect": effect.value if effect else None}})

    else:
        await websocket.send_json(error_event("unknown_event", f"Unknown event: {event.event}"))


# ═══════════════════════════════════════════════════
# LOBBY SOCKET
# ═══════════════════════════════════════════════════

@router.websocket("/ws/lobby/{mode}")
async def lobby_socket(websocket: WebSocket, mode: GameMode):
    """
    Open-room list for one mode: room_list, then room_insert / room_update /
    room_delete as rooms change.
    """
    group = lobby_group(mode.value)
    client_id = uuid.uuid4().hex[:8]
    await manager.connect(group, client_id, websocket)

    subscription = get_db().subscribe(ROOMS, lambda r: r.get("mode") == mode.value)
    pump_task = None
    try:
        rooms = await room_service.list_open_rooms(mode)
        await websocket.send_json({
            "event": "room_list",
            "data": {"rooms": [room_service.public_room(r) for r in rooms]},
        })
        pump_task = start_pump(websocket, subscription, lobby_message)

        while True:
            data = await websocket.receive_json()
            if isinstance(data, dict) and data.get("event") == "heartbeat":
                await websocket.send_json({"event": "pong", "data": {"timestamp": (data.get("data") or {}).get("timestamp")}})

    except WebSocketDisconnect:
        logger.info(f"🔌 Lobby socket disconnected: {group}/{client_id}")

    except Exception as e:
        logger.error(f"❌ Lobby socket error in {group}: {e}")

    finally:
        subscription.close()
        await stop_pump(pump_task)
        manager.disconnect(group, client_id)
