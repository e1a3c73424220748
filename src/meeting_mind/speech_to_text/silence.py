"""Edge-triggered end-of-utterance detection from sustained low energy."""

import time
from collections.abc import Callable

from ..logging_utils import get_logger
from .config import (
    SILENCE_DURATION,
    SILENCE_WINDOW_SLICES,
    SUSTAINED_SILENCE_THRESHOLD,
)
from .energy import rms_of_slices
from .signal_buffer import SignalBuffer

logger = get_logger(__name__)


class SilenceTrigger:
    """
    Fires once per silence episode.

    Each observation is an RMS measurement. The first quiet observation opens
    an episode; when the episode has lasted ``silence_duration`` seconds the
    trigger fires and latches. Nothing fires again until a loud observation
    clears the latch and a new episode begins.
    """

    def __init__(
        self,
        threshold: float = SUSTAINED_SILENCE_THRESHOLD,
        silence_duration: float = SILENCE_DURATION,
        window_slices: int = SILENCE_WINDOW_SLICES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the trigger.

        Args:
            threshold: RMS below which an observation counts as quiet
            silence_duration: Seconds of continuous quiet before firing
            window_slices: Number of recent buffer slices measured by ``check``
            clock: Monotonic time source in seconds
        """
        if silence_duration < 0:
            raise ValueError("Silence duration must not be negative")

        self.threshold = threshold
        self.silence_duration = silence_duration
        self.window_slices = window_slices
        self._clock = clock
        self._silence_start: float | None = None
        self._fired = False
        self.fire_count = 0

    def observe(self, energy: float, now: float | None = None) -> bool:
        """
        Feed one energy measurement.

        Args:
            energy: RMS of the most recent audio window
            now: Observation time (defaults to the clock)

        Returns:
            True exactly when this observation completes a silence episode
        """
        if now is None:
            now = self._clock()

        if energy >= self.threshold:
            if self._silence_start is not None or self._fired:
                logger.trace(f"Sound resumed (rms={energy:.4f}), silence latch cleared")
            self._silence_start = None
            self._fired = False
            return False

        if self._fired:
            return False

        if self._silence_start is None:
            self._silence_start = now
            logger.trace("Silence episode started")
            return False

        if now - self._silence_start >= self.silence_duration:
            self._silence_start = None
            self._fired = True
            self.fire_count += 1
            logger.debug(
                f"🤫 Silence for {self.silence_duration:.1f}s, end of utterance "
                f"(#{self.fire_count})"
            )
            return True

        return False

    def check(self, buffer: SignalBuffer, now: float | None = None) -> bool:
        """
        Measure the buffer's most recent slices and observe the result.

        A buffer with nothing pushed since the last drain gives no
        observation.

        Args:
            buffer: Signal buffer fed by the capture source
            now: Observation time (defaults to the clock)

        Returns:
            True if the trigger fired
        """
        recent = buffer.recent(self.window_slices)
        if not recent:
            return False
        return self.observe(rms_of_slices(recent), now)

    @property
    def is_latched(self) -> bool:
        """True after firing, until sound resumes."""
        return self._fired

    @property
    def in_silence(self) -> bool:
        """True while an unfired silence episode is being timed."""
        return self._silence_start is not None

    def reset(self) -> None:
        """Forget the current episode and latch."""
        self._silence_start = None
        self._fired = False
