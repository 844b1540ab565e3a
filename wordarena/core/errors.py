"""
errors.py — Game Error Taxonomy
================================
Every failure a room operation can surface to a player.

Services raise these; the HTTP layer renders them as

    {"error": {"code": "...", "message": "...", "details": {...}}}

with the status carried by the exception. The client SDK maps the same
envelope back onto these classes, so both sides share one taxonomy.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class GameError(Exception):
    code = "GAME_ERROR"
    status = 400

    def __init__(self, message: str = "", details: dict | None = None, code: str | None = None, status: int | None = None):
        self.code = code or self.code
        self.status = status or self.status
        self.message = message or self.code
        self.details = details or {}
        super().__init__(self.message)


class CapacityError(GameError):
    code = "ROOM_FULL"
    status = 409


class RoomNotFoundError(GameError):
    code = "ROOM_NOT_FOUND"
    status = 404


class BadPasswordError(GameError):
    code = "BAD_PASSWORD"
    status = 403


class NotHostError(GameError):
    code = "NOT_HOST"
    status = 403


class NotInRoomError(GameError):
    code = "NOT_IN_ROOM"
    status = 403


class InvalidTransitionError(GameError):
    code = "INVALID_TRANSITION"
    status = 409


class RoomNotJoinableError(GameError):
    code = "ROOM_NOT_JOINABLE"
    status = 409


class NotEnoughPlayersError(GameError):
    code = "NOT_ENOUGH_PLAYERS"
    status = 409


class PassLimitError(GameError):
    code = "PASS_LIMIT"
    status = 409


class EmptyCatalogError(GameError):
    code = "NO_PROMPTS"
    status = 409


class ModeMismatchError(GameError):
    code = "WRONG_MODE"
    status = 409


class SessionError(GameError):
    code = "NO_SESSION"
    status = 401


class TransientStoreError(GameError):
    code = "STORE_UNAVAILABLE"
    status = 503


class CatalogError(GameError):
    code = "CATALOG_UNAVAILABLE"
    status = 502


ERRORS_BY_CODE: dict[str, type[GameError]] = {
    cls.code: cls
    for cls in (
        CapacityError,
        RoomNotFoundError,
        BadPasswordError,
        NotHostError,
        NotInRoomError,
        InvalidTransitionError,
        RoomNotJoinableError,
        NotEnoughPlayersError,
        PassLimitError,
        EmptyCatalogError,
        ModeMismatchError,
        SessionError,
        TransientStoreError,
        CatalogError,
    )
}


def _from_detail(detail) -> dict:
    if isinstance(detail, list):
        parts = []
        for item in detail:
            if isinstance(item, dict):
                where = ".".join(str(p) for p in item.get("loc", ()))
                parts.append(f"{where}: {item.get('msg', '')}" if where else item.get("msg", ""))
            else:
                parts.append(str(item))
        return {"code": "INVALID_REQUEST", "message": "; ".join(parts), "details": {"errors": detail}}
    return {"code": "INVALID_REQUEST", "message": str(detail), "details": {}}


def error_from_payload(status: int, payload: dict) -> GameError:
    """Rebuild a GameError from an HTTP error envelope."""
    body = payload.get("error")
    if body is None and "detail" in payload:
        # FastAPI request validation: {"detail": [...]} or {"detail": "..."}
        body = _from_detail(payload["detail"])
    body = body or {}
    code = body.get("code", "GAME_ERROR")
    cls = ERRORS_BY_CODE.get(code, GameError)
    return cls(body.get("message", ""), details=body.get("details"), code=code, status=status)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GameError)
    async def game_error_handler(request: Request, exc: GameError):
        logger.warning(f"⚠️  {request.method} {request.url.path} rejected: {exc.code} {exc.message}")
        return JSONResponse(
            status_code=exc.status,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": str(exc) if app.debug else "Internal server error",
                    "details": {},
                }
            },
        )
