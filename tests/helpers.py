"""Shared test helpers: virtual time and synthetic audio."""

import asyncio
import heapq
import itertools

import numpy as np

from meeting_mind.speech_to_text.config import DEFAULT_SAMPLE_RATE


async def settle(iterations: int = 50) -> None:
    """Let ready tasks run until the loop is quiet."""
    for _ in range(iterations):
        await asyncio.sleep(0)


class VirtualClock:
    """
    Virtual time for timers and monotonic clocks.

    ``sleep`` parks the caller until ``advance`` moves time past its
    deadline; calling the instance returns the current virtual time.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []
        self._sleepers: list = []
        self._counter = itertools.count()

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self.now + delay, next(self._counter), future))
        await future

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        await settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._sleepers)
            self.now = max(self.now, deadline)
            if not future.done():
                future.set_result(None)
                await settle()
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, f in self._sleepers if not f.done())


def tone(
    level: float,
    seconds: float,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> np.ndarray:
    """Alternating-sign samples whose RMS is exactly ``level``."""
    count = int(seconds * sample_rate)
    signs = np.where(np.arange(count) % 2 == 0, 1.0, -1.0)
    return (signs * level).astype(np.float32)


def sine(
    amplitude: float,
    seconds: float,
    frequency: float = 441.0,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> np.ndarray:
    t = np.arange(int(seconds * sample_rate)) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)
