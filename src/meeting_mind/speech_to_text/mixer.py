"""Mixing of several capture sources into one mono stream."""

import threading
import time

import numpy as np

from ..logging_utils import get_logger
from .config import DEFAULT_SAMPLE_RATE
from .models import AudioFrame
from .signal_buffer import SignalBuffer

logger = get_logger(__name__)

# A source that falls this far behind is treated as silent for the gap
MAX_SOURCE_LAG_SECONDS = 0.5


class AudioMixer:
    """
    Sums equal-length runs from every registered source into the signal buffer.

    Each source's callback feeds its own pending queue. Whenever all sources
    have samples, the common prefix is summed (unity gain), clipped to
    [-1, 1] and pushed as one frame. A source that stops delivering is
    padded with silence once the others run ``max_lag_seconds`` ahead.
    With a single source, frames pass straight through.
    """

    def __init__(
        self,
        buffer: SignalBuffer,
        sources: list[str] | None = None,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        max_lag_seconds: float = MAX_SOURCE_LAG_SECONDS,
    ) -> None:
        self._buffer = buffer
        self._lock = threading.Lock()
        self._pending: dict[str, list[np.ndarray]] = {}
        self._pending_counts: dict[str, int] = {}
        self._max_lag_samples = max(1, int(max_lag_seconds * sample_rate))
        for name in sources or []:
            self.add_source(name)

    def add_source(self, name: str) -> None:
        """Register a source that will feed samples."""
        with self._lock:
            if name in self._pending:
                raise ValueError(f"Source '{name}' already registered")
            self._pending[name] = []
            self._pending_counts[name] = 0
        logger.debug(f"Mixer source added: {name}")

    def remove_source(self, name: str) -> None:
        """Unregister a source, discarding its unmixed samples."""
        with self._lock:
            self._pending.pop(name, None)
            self._pending_counts.pop(name, None)

    @property
    def sources(self) -> list[str]:
        """Registered source names."""
        with self._lock:
            return list(self._pending)

    def feed(self, source: str, samples: np.ndarray) -> None:
        """
        Add samples from one source and push any mixable run to the buffer.

        Args:
            source: Registered source name
            samples: Mono float samples from that source
        """
        data = np.asarray(samples, dtype=np.float32).reshape(-1)
        if data.size == 0:
            return

        with self._lock:
            if source not in self._pending:
                raise KeyError(f"Unknown mixer source: {source}")

            if len(self._pending) == 1:
                mixed = data
            else:
                self._pending[source].append(data)
                self._pending_counts[source] += data.size
                mixed = self._mix_available()

        if mixed is not None and mixed.size > 0:
            self._buffer.push(
                AudioFrame(samples=mixed, timestamp=time.monotonic(), source="mixed")
            )

    def _mix_available(self) -> np.ndarray | None:
        counts = self._pending_counts
        common = min(counts.values())
        longest = max(counts.values())

        if common == 0 and longest < self._max_lag_samples:
            return None

        # Lagging sources contribute silence once the lag limit is hit
        length = common if common > 0 else longest
        mixed = np.zeros(length, dtype=np.float32)
        for name in self._pending:
            mixed += self._take(name, length)
        return np.clip(mixed, -1.0, 1.0)

    def _take(self, name: str, length: int) -> np.ndarray:
        """Pop up to ``length`` samples from one source, zero-padding the rest."""
        chunks = self._pending[name]
        available = self._pending_counts[name]
        if available == 0:
            return np.zeros(length, dtype=np.float32)

        joined = np.concatenate(chunks)
        taken = joined[:length]
        rest = joined[length:]
        self._pending[name] = [rest] if rest.size else []
        self._pending_counts[name] = int(rest.size)

        if taken.size < length:
            taken = np.concatenate([taken, np.zeros(length - taken.size, dtype=np.float32)])
        return taken

    def reset(self) -> None:
        """Discard all unmixed samples."""
        with self._lock:
            for name in self._pending:
                self._pending[name] = []
                self._pending_counts[name] = 0
