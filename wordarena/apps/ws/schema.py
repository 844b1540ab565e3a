"""
schema.py — WebSocket Event Schemas
====================================
Every message in either direction is

    {"event": "event_name", "data": {...}}

Server → client (room socket):  room_snapshot, room_update, room_deleted,
                                 answer_result, effect, pong, error
Server → client (lobby socket): room_list, room_insert, room_update,
                                 room_delete, pong, error
Client → server (room socket):  heartbeat, answer, pass, damage, match,
                                 effect, consume_effect
"""

from typing import Any

from pydantic import BaseModel, Field

from wordarena.apps.rooms.models import Effect


class ServerEvent(BaseModel):
    event: str = Field(description="Event type")
    data: dict[str, Any] = Field(default_factory=dict, description="Event payload")


class ClientEvent(BaseModel):
    event: str = Field(description="Event type")
    data: dict[str, Any] = Field(default_factory=dict, description="Event payload")


# ── Client event payloads ───────────────────────────

class AnswerData(BaseModel):
    text: str
    cursor: int | None = None


class PassData(BaseModel):
    confirm: bool = False
    cursor: int | None = None


class DamageData(BaseModel):
    amount: int | None = Field(None, ge=0, le=100)


class MatchData(BaseModel):
    prompt_id: str | None = None


class EffectData(BaseModel):
    target_id: str
    effect: Effect


def error_event(code: str, message: str, details: dict | None = None) -> dict:
    return ServerEvent(
        event="error",
        data={"code": code, "message": message, "details": details or {}},
    ).model_dump()
