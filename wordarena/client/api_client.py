"""
api_client.py — Word Arena REST Client
=======================================
Every room intent as one async call. The session travels in the
X-Player-Id / X-Player-Name / X-Academy-Id headers; error envelopes come
back as the matching GameError subclass.

    async with GameClient(Session("u1", "민준"), base_url="http://localhost:8000") as client:
        room = await client.create_room("battle", "단어 대결")
        await client.start_battle(room["id"])
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from wordarena.core.errors import TransientStoreError, error_from_payload
from wordarena.core.session import Session

logger = logging.getLogger(__name__)

# ── Config ──────────────────────────────────────────
_TIMEOUT = httpx.Timeout(10.0, connect=5.0)
_READ_RETRY_DELAYS = [0.1, 0.3, 0.8]


class GameClient:
    def __init__(
        self,
        session: Session,
        base_url: str = "http://localhost:8000",
        client: httpx.AsyncClient | None = None,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=_TIMEOUT)
        self._owns_client = client is None

    async def __aenter__(self) -> "GameClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── Helpers ─────────────────────────────────────

    async def _request(self, method: str, path: str, json: dict | None = None, params: dict | None = None) -> Any:
        resp = await self._client.request(method, path, json=json, params=params, headers=self.session.headers())
        if resp.status_code >= 400:
            try:
                payload = resp.json()
            except ValueError:
                payload = {"error": {"code": "HTTP_ERROR", "message": resp.text[:200]}}
            raise error_from_payload(resp.status_code, payload)
        return resp.json()

    async def _read(self, path: str, params: dict | None = None) -> Any:
        """GET with retries on transient failures. Writes are never retried."""
        for attempt, delay in enumerate([*_READ_RETRY_DELAYS, None]):
            try:
                return await self._request("GET", path, params=params)
            except (TransientStoreError, httpx.TransportError) as e:
                if delay is None:
                    raise
                logger.warning(f"GET {path} failed (attempt {attempt + 1}): {e}, retrying in {delay}s")
                await asyncio.sleep(delay)

    # ═══════════════════════════════════════════════════
    #  ROOMS
    # ═══════════════════════════════════════════════════

    async def create_room(
        self,
        mode: str,
        name: str,
        password: str = "",
        difficulty: str = "normal",
        selected_book: str = "",
    ) -> dict:
        return await self._request("POST", "/api/rooms", json={
            "mode": mode,
            "name": name,
            "password": password,
            "difficulty": difficulty,
            "selected_book": selected_book,
        })

    async def list_rooms(self, mode: str) -> list[dict]:
        data = await self._read("/api/rooms", params={"mode": mode})
        return data["rooms"]

    async def get_room(self, room_id: str) -> dict:
        return await self._read(f"/api/rooms/{room_id}")

    async def delete_room(self, room_id: str) -> bool:
        data = await self._request("DELETE", f"/api/rooms/{room_id}")
        return bool(data["deleted"])

    async def reap_hosted(self, mode: str | None = None) -> int:
        params = {"mode": mode} if mode else None
        data = await self._request("DELETE", "/api/rooms/hosted", params=params)
        return data["deleted"]

    async def join(self, room_id: str, password: str | None = None) -> dict:
        return await self._request("POST", f"/api/rooms/{room_id}/join", json={"password": password})

    async def leave(self, room_id: str) -> dict | None:
        return await self._request("POST", f"/api/rooms/{room_id}/leave")

    async def set_ready(self, room_id: str, ready: bool = True) -> dict:
        return await self._request("POST", f"/api/rooms/{room_id}/ready", json={"ready": ready})

    # ═══════════════════════════════════════════════════
    #  BATTLE
    # ═══════════════════════════════════════════════════

    async def start_battle(self, room_id: str) -> dict:
        return await self._request("POST", f"/api/battle/{room_id}/start")

    async def answer(self, room_id: str, text: str, cursor: int | None = None) -> tuple[str, dict]:
        """Returns (verdict, room)."""
        data = await self._request("POST", f"/api/battle/{room_id}/answer", json={"text": text, "cursor": cursor})
        return data["verdict"], data["room"]

    async def pass_prompt(self, room_id: str, cursor: int | None = None, confirm: bool = True) -> tuple[str, dict]:
        data = await self._request("POST", f"/api/battle/{room_id}/pass", json={"confirm": confirm, "cursor": cursor})
        return data["verdict"], data["room"]

    async def expire_prompt(self, room_id: str, cursor: int) -> dict:
        return await self._request("POST", f"/api/battle/{room_id}/timeout", json={"cursor": cursor})

    # ═══════════════════════════════════════════════════
    #  SURVIVAL
    # ═══════════════════════════════════════════════════

    async def start_survival(self, room_id: str) -> dict:
        return await self._request("POST", f"/api/survival/{room_id}/start")

    async def report_damage(self, room_id: str, amount: int | None = None) -> dict:
        return await self._request("POST", f"/api/survival/{room_id}/damage", json={"amount": amount})

    async def report_match(self, room_id: str, prompt_id: str | None = None) -> dict:
        return await self._request("POST", f"/api/survival/{room_id}/match", json={"prompt_id": prompt_id})

    async def launch_effect(self, room_id: str, target_id: str, effect: str) -> dict:
        return await self._request(
            "POST",
            f"/api/survival/{room_id}/effect",
            json={"target_id": target_id, "effect": effect},
        )

    async def consume_effect(self, room_id: str) -> tuple[str | None, dict]:
        """Returns (effect or None, room)."""
        data = await self._request("POST", f"/api/survival/{room_id}/effect/consume")
        return data["effect"], data["room"]

