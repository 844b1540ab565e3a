"""
schema.py — Room Request/Response Models
=========================================
Pydantic models for the room lifecycle and membership endpoints.
"""

from pydantic import BaseModel, Field

from wordarena.apps.rooms.models import Difficulty, GameMode


# ═══════════════════════════════════════════════════
# REQUEST MODELS
# ═══════════════════════════════════════════════════

class CreateRoomRequest(BaseModel):
    """
    New room request. The caller (from the session headers) becomes the host.
    """
    mode: GameMode = Field(..., description="battle | survival")
    name: str = Field(..., min_length=1, max_length=40, description="Room name shown in the lobby")
    password: str = Field(default="", max_length=40, description="Optional join password (empty = open room)")
    difficulty: Difficulty = Field(default=Difficulty.NORMAL, description="Battle only: easy | normal | hard")
    selected_book: str = Field(default="", max_length=60, description="Vocabulary book to draw prompts from")

    class Config:
        json_schema_extra = {
            "example": {
                "mode": "battle",
                "name": "단어 대결",
                "password": "",
                "difficulty": "normal",
                "selected_book": "기본",
            }
        }


class JoinRequest(BaseModel):
    password: str | None = Field(default=None, description="Room password, if the room has one")


class ReadyRequest(BaseModel):
    ready: bool = Field(default=True, description="Ready flag for the caller")


# ═══════════════════════════════════════════════════
# RESPONSE MODELS
# ═══════════════════════════════════════════════════

class PlayerView(BaseModel):
    """
    One roster entry. Battle rooms fill passes_used; survival rooms fill the vitals.
    """
    id: str
    display_name: str
    ready: bool = False
    score: int = 0
    passes_used: int | None = None
    health: int | None = None
    gauge: int | None = None
    alive: bool | None = None
    pending_effect: str | None = None


class PromptView(BaseModel):
    id: str
    term: str
    hint: str | None = Field(None, description="First letter of the answer (easy battle rooms)")


class RoomResponse(BaseModel):
    """
    Room as players see it. The password itself is never returned.
    """
    id: str
    name: str
    mode: GameMode
    status: str = Field(..., description="waiting | playing | finished")
    host_id: str
    host_name: str
    capacity: int
    player_count: int
    has_password: bool
    selected_book: str = ""
    difficulty: Difficulty | None = None
    cursor: int | None = Field(None, description="Battle only: index of the shared current prompt")
    prompt_count: int = 0
    current_prompt: PromptView | None = None
    prompts: list[dict] = Field(default_factory=list, description="Survival only: the full prompt set (id, term, answer)")
    last_actor: str | None = None
    winner_id: str | None = None
    players: list[PlayerView] = Field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "3f2a9c1e0b7d4e6f8a5b2c1d0e9f8a7b",
                "name": "단어 대결",
                "mode": "battle",
                "status": "playing",
                "host_id": "u1",
                "host_name": "민준",
                "capacity": 2,
                "player_count": 2,
                "has_password": False,
                "difficulty": "easy",
                "cursor": 3,
                "prompt_count": 10,
                "current_prompt": {"id": "기본-4", "term": "사과", "hint": "a"},
                "players": [
                    {"id": "u1", "display_name": "민준", "ready": True, "score": 200, "passes_used": 0},
                    {"id": "u2", "display_name": "서연", "ready": True, "score": 100, "passes_used": 1},
                ],
            }
        }


class RoomListResponse(BaseModel):
    rooms: list[RoomResponse]
    total: int


class DeleteResponse(BaseModel):
    deleted: int = Field(..., description="Number of rooms removed")
