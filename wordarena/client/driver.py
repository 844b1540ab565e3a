"""
driver.py — Survival Client Loop
=================================
Glues a SurvivalBoard to a GameClient. Every board event is applied
locally first and then mirrored to the room: damage from prompts that
crossed the danger line, and prompts the player cleared. Effects other
players launched at us arrive as pending_effect on our roster entry;
sync() consumes them and applies them to the board.

    driver = SurvivalDriver(board, client, room_id)
    driver.start()                 # ticks every TICK_INTERVAL_MS
    await driver.type("apple")     # from the input box
    await driver.sync(mirror.room) # on every room_update
"""
from __future__ import annotations

import logging
import time

import httpx

from wordarena.client.api_client import GameClient
from wordarena.client.board import FallingPrompt, SurvivalBoard, TickResult
from wordarena.client.scheduler import TickScheduler
from wordarena.core.config import get_settings
from wordarena.core.errors import GameError

logger = logging.getLogger(__name__)


class SurvivalDriver:
    def __init__(self, board: SurvivalBoard, client: GameClient, room_id: str, interval_ms: float | None = None):
        self.board = board
        self.client = client
        self.room_id = room_id
        self.unreported_damage = 0
        self.last_error: Exception | None = None
        self.scheduler = TickScheduler(self.on_tick, interval_ms or get_settings().TICK_INTERVAL_MS)

    @property
    def player_id(self) -> str:
        return self.client.session.player_id

    def start(self):
        return self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def on_tick(self, now_ms: float) -> bool:
        """
        One frame. Returns False once the local player is out and the room
        has been told.

        Damage the server did not take because of a transient failure stays
        in unreported_damage and goes out again on the next tick; the error
        itself propagates to the scheduler.
        """
        result: TickResult = self.board.tick(now_ms)
        self.unreported_damage += result.damage
        if result.eliminated:
            logger.info(f"💀 {self.player_id} eliminated locally, stopping board")
        if self.unreported_damage:
            await self._flush_damage()
        return self.board.alive or self.unreported_damage > 0

    async def _flush_damage(self) -> None:
        amount = min(self.unreported_damage, 100)
        try:
            await self.client.report_damage(self.room_id, amount)
        except GameError as e:
            self.last_error = e
            if e.status >= 500:
                raise
            # rejected for good (room finished, player gone)
            logger.warning(f"⚠️  Damage report for {self.player_id} rejected: {e.code} {e.message}")
            self.unreported_damage = 0
            return
        except httpx.TransportError as e:
            self.last_error = e
            raise
        self.unreported_damage -= amount

    async def type(self, text: str) -> FallingPrompt | None:
        cleared = self.board.type(text)
        if cleared is not None:
            await self.client.report_match(self.room_id, cleared.prompt.id)
        return cleared

    async def attack(self, target_id: str, effect: str) -> dict:
        room = await self.client.launch_effect(self.room_id, target_id, effect)
        self.board.spend_gauge()
        return room

    async def sync(self, room: dict, now_ms: float | None = None) -> str | None:
        """Consume and apply an effect waiting on our roster entry, if any."""
        me = next((p for p in room.get("players", []) if p.get("id") == self.player_id), None)
        if me is None or not me.get("pending_effect"):
            return None
        effect, _ = await self.client.consume_effect(self.room_id)
        if effect:
            self.board.apply_effect(effect, time.monotonic() * 1000 if now_ms is None else now_ms)
            logger.info(f"🌫️  {self.player_id} hit by {effect}")
        return effect
