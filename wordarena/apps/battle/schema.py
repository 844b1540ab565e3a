"""
schema.py — Battle Request/Response Models
===========================================
"""

from pydantic import BaseModel, Field

from wordarena.apps.resolver import Verdict
from wordarena.apps.rooms.schema import RoomResponse


class AnswerRequest(BaseModel):
    """
    Answer for the current shared prompt.
    """
    text: str = Field(..., max_length=100, description="What the player typed")
    cursor: int | None = Field(None, ge=0, description="Prompt index the player was answering (stale answers are ignored)")

    class Config:
        json_schema_extra = {
            "example": {
                "text": "apple",
                "cursor": 3,
            }
        }


class PassRequest(BaseModel):
    confirm: bool = Field(False, description="Must be true: passing costs points")
    cursor: int | None = Field(None, ge=0, description="Prompt index the player wants to skip")


class TimeoutRequest(BaseModel):
    cursor: int = Field(..., ge=0, description="Prompt index whose countdown ran out")


class AnswerResponse(BaseModel):
    verdict: Verdict = Field(..., description="correct | incorrect | passed | stale")
    room: RoomResponse
