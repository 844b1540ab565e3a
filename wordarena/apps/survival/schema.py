"""
schema.py — Survival Request/Response Models
=============================================
"""

from pydantic import BaseModel, Field

from wordarena.apps.rooms.models import Effect
from wordarena.apps.rooms.schema import RoomResponse


class DamageRequest(BaseModel):
    amount: int | None = Field(None, ge=0, le=100, description="Damage taken (default: SURVIVAL_DAMAGE)")


class MatchRequest(BaseModel):
    prompt_id: str | None = Field(None, description="Prompt that was cleared")


class EffectRequest(BaseModel):
    """
    Spend a full gauge on another living player.
    """
    target_id: str = Field(..., description="Player to hit")
    effect: Effect = Field(..., description="fog | speed | flash")

    class Config:
        json_schema_extra = {
            "example": {
                "target_id": "u2",
                "effect": "fog",
            }
        }


class ConsumeEffectResponse(BaseModel):
    effect: Effect | None = Field(None, description="The effect that was waiting, if any")
    room: RoomResponse
