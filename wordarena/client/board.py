"""
Headless survival board.

Prompts spawn at the top (y = 10) and fall toward the danger line. The
board has no clock of its own: the caller passes the current time in
milliseconds to tick(), which makes it fully deterministic under test.

Coordinates are percentages of the play area. A prompt that crosses the
danger line costs the local player SURVIVAL_DAMAGE health; typing a live
prompt's answer clears it for SURVIVAL_REWARD points and gauge.
"""

from __future__ import annotations

import itertools
import random
from dataclasses import dataclass, field

from wordarena.apps.resolver import Verdict, judge
from wordarena.apps.rooms.models import Effect, Prompt
from wordarena.core.config import get_settings

SPAWN_Y = 10.0
# fall speed in %/ms: 0.015–0.035 % per 60 fps frame
BASE_FALL_PER_MS = 0.015 / (1000 / 60)
FALL_JITTER_PER_MS = 0.02 / (1000 / 60)


@dataclass
class FallingPrompt:
    key: int
    prompt: Prompt
    x: float
    y: float
    speed: float  # %/ms


@dataclass
class TickResult:
    damage: int = 0
    crossed: list[FallingPrompt] = field(default_factory=list)
    spawned: FallingPrompt | None = None
    eliminated: bool = False


class SurvivalBoard:
    def __init__(self, prompts: list[Prompt], rng: random.Random | None = None, settings=None):
        settings = settings or get_settings()
        self.prompts = list(prompts)
        self.rng = rng or random.Random()
        self.spawn_interval_ms = settings.SPAWN_INTERVAL_MS
        self.danger_line = settings.DANGER_LINE
        self.damage_per_hit = settings.SURVIVAL_DAMAGE
        self.reward = settings.SURVIVAL_REWARD
        self.gauge_per_match = settings.GAUGE_PER_MATCH
        self.effect_duration_ms = settings.EFFECT_DURATION_MS
        self.speed_effect_multiplier = settings.SPEED_EFFECT_MULTIPLIER

        self.falling: list[FallingPrompt] = []
        self.health = 100
        self.score = 0
        self.gauge = 0
        self.alive = True
        self.active_effect: Effect | None = None
        self.effect_until_ms: float | None = None
        self.speed_multiplier = 1.0
        self._last_tick_ms: float | None = None
        self._last_spawn_ms: float | None = None
        self._keys = itertools.count(1)

    # ── Effects ─────────────────────────────────────

    def apply_effect(self, effect: Effect | str, now_ms: float) -> None:
        """An effect lasts EFFECT_DURATION_MS; speed also multiplies fall and spawn rate."""
        self.active_effect = Effect(effect)
        self.effect_until_ms = now_ms + self.effect_duration_ms
        self.speed_multiplier = self.speed_effect_multiplier if self.active_effect == Effect.SPEED else 1.0

    def _expire_effect(self, now_ms: float) -> None:
        if self.effect_until_ms is not None and now_ms >= self.effect_until_ms:
            self.active_effect = None
            self.effect_until_ms = None
            self.speed_multiplier = 1.0

    # ── Game loop ───────────────────────────────────

    def spawn(self) -> FallingPrompt | None:
        if not self.prompts:
            return None
        item = FallingPrompt(
            key=next(self._keys),
            prompt=self.rng.choice(self.prompts),
            x=self.rng.random() * 70 + 15,
            y=SPAWN_Y,
            speed=BASE_FALL_PER_MS + self.rng.random() * FALL_JITTER_PER_MS,
        )
        self.falling.append(item)
        return item

    def tick(self, now_ms: float) -> TickResult:
        """
        Advance the board to now_ms: move every prompt, apply damage for the
        ones that crossed the danger line, spawn when the interval is up.

        The first tick only spawns. A dead board does nothing.
        """
        result = TickResult()
        if not self.alive:
            return result

        self._expire_effect(now_ms)
        elapsed = 0.0 if self._last_tick_ms is None else max(0.0, now_ms - self._last_tick_ms)
        self._last_tick_ms = now_ms

        still_falling = []
        for item in self.falling:
            item.y += item.speed * self.speed_multiplier * elapsed
            if item.y > self.danger_line:
                result.crossed.append(item)
            else:
                still_falling.append(item)
        self.falling = still_falling

        if result.crossed:
            health_before = self.health
            result.eliminated = self.take_damage(self.damage_per_hit * len(result.crossed))
            # health lost, never more than what was left
            result.damage = health_before - self.health
            if not self.alive:
                return result

        interval = self.spawn_interval_ms / self.speed_multiplier
        if self._last_spawn_ms is None or now_ms - self._last_spawn_ms > interval:
            result.spawned = self.spawn()
            self._last_spawn_ms = now_ms
        return result

    def take_damage(self, amount: int) -> bool:
        """Returns True when this hit eliminated the player."""
        if not self.alive:
            return False
        self.health = max(0, self.health - amount)
        if self.health <= 0:
            self.alive = False
            self.falling = []
            return True
        return False

    def type(self, text: str) -> FallingPrompt | None:
        """Clear the first live prompt whose answer matches text."""
        if not self.alive:
            return None
        for i, item in enumerate(self.falling):
            if judge(item.prompt, text) == Verdict.CORRECT:
                del self.falling[i]
                self.score += self.reward
                self.gauge = min(100, self.gauge + self.gauge_per_match)
                return item
        return None

    def spend_gauge(self) -> bool:
        if self.gauge < 100:
            return False
        self.gauge = 0
        return True
