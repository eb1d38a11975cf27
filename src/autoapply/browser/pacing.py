from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class DelayBand:
    min_sec: float
    max_sec: float


PAGE_LOAD = DelayBand(2.0, 5.0)
FORM_INTERACTION = DelayBand(1.0, 3.0)
NAVIGATION = DelayBand(0.5, 2.0)
KEYSTROKE = DelayBand(0.05, 0.2)
SETTLE = DelayBand(0.1, 0.3)
FIELD_PAUSE = DelayBand(0.3, 0.7)
SEARCH_QUERY = DelayBand(3.0, 6.0)
JITTER_EVERY_CHARS = (3, 5)
JITTER_MAX_PX = 4.0


class HumanPacing:
    """Randomized waits drawn from named bands.

    ``scale`` multiplies every draw; tests run with ``scale=0`` so no real
    sleeping happens while the random sequence is still consumed.
    """

    def __init__(
        self,
        scale: float = 1.0,
        *,
        rng: random.Random | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.scale = scale
        self.rng = rng or random.Random()
        self._sleep = sleep

    def draw(self, band: DelayBand) -> float:
        return self.rng.uniform(band.min_sec, band.max_sec) * self.scale

    async def pause(self, band: DelayBand) -> float:
        delay = self.draw(band)
        if delay > 0:
            await self._sleep(delay)
        return delay

    def jitter_interval(self) -> int:
        return self.rng.randint(*JITTER_EVERY_CHARS)

    def pointer_offset(self, width: float, height: float) -> tuple[float, float]:
        margin_x = min(5.0, width / 2)
        margin_y = min(5.0, height / 2)
        return (
            self.rng.uniform(margin_x, max(margin_x, width - margin_x)),
            self.rng.uniform(margin_y, max(margin_y, height - margin_y)),
        )

    def jitter(self, x: float, y: float, width: float, height: float) -> tuple[float, float]:
        """Nudge a pointer position by a few pixels, kept inside the viewport."""
        nx = x + self.rng.uniform(-JITTER_MAX_PX, JITTER_MAX_PX)
        ny = y + self.rng.uniform(-JITTER_MAX_PX, JITTER_MAX_PX)
        return min(max(nx, 0.0), width), min(max(ny, 0.0), height)
