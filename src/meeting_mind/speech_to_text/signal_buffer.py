"""Append-only sample buffer shared by the capture source and the chunk emitter."""

import threading
from collections import deque

import numpy as np

from .config import SILENCE_WINDOW_SLICES
from ..logging_utils import get_logger
from .models import AudioFrame

logger = get_logger(__name__)

_EMPTY = np.zeros(0, dtype=np.float32)


class SignalBuffer:
    """
    Ordered store of captured audio slices.

    One producer (the capture callback, possibly on a PortAudio thread) pushes
    and one consumer (the chunk emitter tick) drains. ``drain`` swaps the
    slice list for a fresh one under the lock, so a push racing with a drain
    lands in the next drain instead of being lost.
    """

    def __init__(self, recent_slices: int = SILENCE_WINDOW_SLICES) -> None:
        """
        Initialize an empty buffer.

        Args:
            recent_slices: How many of the latest slices ``recent`` keeps
                available after the buffer has been drained
        """
        self._lock = threading.Lock()
        self._slices: list[np.ndarray] = []
        self._sample_count = 0
        self._recent: deque[np.ndarray] = deque(maxlen=recent_slices)
        self._total_pushed = 0

    def push(self, frame: AudioFrame | np.ndarray) -> None:
        """
        Append a frame's samples in arrival order.

        Args:
            frame: AudioFrame or raw float sample array
        """
        samples = frame.samples if isinstance(frame, AudioFrame) else frame
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        if samples.size == 0:
            return

        with self._lock:
            self._slices.append(samples)
            self._sample_count += samples.size
            self._recent.append(samples)
            self._total_pushed += 1

    def drain(self) -> np.ndarray:
        """
        Atomically take everything buffered so far.

        Returns:
            All buffered samples concatenated (empty array if none)
        """
        with self._lock:
            slices = self._slices
            self._slices = []
            self._sample_count = 0

        if not slices:
            return _EMPTY.copy()
        return np.concatenate(slices)

    def recent(self, count: int | None = None) -> list[np.ndarray]:
        """
        Return the latest pushed slices without draining.

        Only slices pushed since the last drain are returned, so a drained
        buffer reports no recent audio.

        Args:
            count: Number of slices (defaults to the configured window)

        Returns:
            Up to ``count`` slices, oldest first
        """
        with self._lock:
            pending = len(self._slices)
            window = list(self._recent)

        limit = len(window) if count is None else min(count, len(window))
        limit = min(limit, pending)
        if limit <= 0:
            return []
        return window[-limit:]

    def clear(self) -> None:
        """Drop all buffered samples."""
        with self._lock:
            self._slices = []
            self._sample_count = 0
            self._recent.clear()
        logger.trace("Signal buffer cleared")

    @property
    def sample_count(self) -> int:
        """Number of samples waiting to be drained."""
        with self._lock:
            return self._sample_count

    @property
    def total_pushed(self) -> int:
        """Number of slices pushed since creation."""
        return self._total_pushed

    def __len__(self) -> int:
        with self._lock:
            return len(self._slices)
