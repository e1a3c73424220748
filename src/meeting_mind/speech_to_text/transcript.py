"""Rolling-window transcript accumulation with hallucination filtering."""

import time
from collections.abc import Callable

from ..logging_utils import get_logger
from .config import HALLUCINATION_PHRASES, MIN_FRAGMENT_LENGTH, ROLLING_WINDOW_SECONDS
from .models import TranscriptFragment

logger = get_logger(__name__)


def normalize_fragment_text(text: str) -> str:
    """Trim and lowercase text for denylist comparison."""
    return (text or "").strip().lower()


def is_hallucination(text: str) -> bool:
    """
    Check whether transcript text is a known non-speech artifact.

    Args:
        text: Raw transcription text

    Returns:
        True for empty or near-empty text and exact denylist matches
    """
    normalized = normalize_fragment_text(text)
    if len(normalized) < MIN_FRAGMENT_LENGTH:
        return True
    return normalized in HALLUCINATION_PHRASES


class UtteranceAccumulator:
    """
    Time-windowed store of accepted transcript fragments.

    Fragments are timestamped on acceptance, so their order is the order in
    which transcriptions completed. Fragments older than the retention window
    are evicted lazily whenever the window is read.
    """

    def __init__(
        self,
        window_seconds: float = ROLLING_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the accumulator.

        Args:
            window_seconds: Retention duration for fragments
            clock: Monotonic time source in seconds
        """
        if window_seconds <= 0:
            raise ValueError("Window must be positive")

        self.window_seconds = window_seconds
        self._clock = clock
        self._fragments: list[TranscriptFragment] = []
        self._sequences: set[int] = set()
        self._unanswered: list[TranscriptFragment] = []
        self._latest_text = ""
        self.rejected_count = 0

    def add_fragment(
        self,
        text: str,
        timestamp: float | None = None,
        sequence: int | None = None,
    ) -> TranscriptFragment | None:
        """
        Accept a transcription result unless it is filtered.

        Args:
            text: Transcribed text
            timestamp: Acceptance time (defaults to the clock)
            sequence: Capture event the text came from; each is accepted once

        Returns:
            The stored fragment, or None if it was rejected
        """
        if is_hallucination(text):
            self.rejected_count += 1
            logger.debug(f"🚫 Filtered transcript artifact: '{(text or '').strip()}'")
            return None

        if sequence is not None and sequence in self._sequences:
            self.rejected_count += 1
            logger.debug(f"Duplicate transcript for chunk #{sequence}, ignoring")
            return None

        if timestamp is None:
            timestamp = self._clock()
        if self._fragments and timestamp < self._fragments[-1].timestamp:
            timestamp = self._fragments[-1].timestamp

        self._evict(timestamp)

        fragment = TranscriptFragment(
            timestamp=timestamp, text=text.strip(), sequence=sequence
        )
        self._fragments.append(fragment)
        self._unanswered.append(fragment)
        if sequence is not None:
            self._sequences.add(sequence)
        self._latest_text = fragment.text
        logger.trace(f"Fragment accepted: '{fragment.text}'")
        return fragment

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        kept = [f for f in self._fragments if f.timestamp > cutoff]
        if len(kept) != len(self._fragments):
            logger.trace(f"Evicted {len(self._fragments) - len(kept)} old fragments")
            self._fragments = kept

    def fragments(self, now: float | None = None) -> list[TranscriptFragment]:
        """Fragments inside the window, oldest first."""
        self._evict(self._clock() if now is None else now)
        return list(self._fragments)

    def current_window(self, now: float | None = None) -> str:
        """
        Evict old fragments and return the live transcript.

        Args:
            now: Read time (defaults to the clock)

        Returns:
            Space-joined text of the fragments still inside the window
        """
        return " ".join(f.text for f in self.fragments(now) if f.text)

    def take_utterance(self) -> str:
        """
        Return the speech accepted since the previous call and mark it answered.

        Returns:
            Space-joined text of the unanswered fragments
        """
        utterance = " ".join(f.text for f in self._unanswered if f.text)
        self._unanswered = []
        return utterance

    @property
    def latest_text(self) -> str:
        """Text of the most recently accepted fragment."""
        return self._latest_text

    def word_count(self, now: float | None = None) -> int:
        """Number of words in the current window."""
        return len(self.current_window(now).split())

    def clear(self) -> None:
        """Drop every fragment."""
        self._fragments = []
        self._sequences = set()
        self._unanswered = []
        self._latest_text = ""

    def __len__(self) -> int:
        return len(self._fragments)
