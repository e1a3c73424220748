"""Data models for audio capture and transcription."""

from dataclasses import dataclass

import numpy as np

from .config import DEFAULT_CHANNELS, DEFAULT_SAMPLE_RATE


@dataclass
class AudioFrame:
    """A run of mono float samples in [-1, 1] delivered by a capture source."""

    samples: np.ndarray
    timestamp: float = 0.0
    source: str = "mixed"

    def __post_init__(self) -> None:
        self.samples = np.asarray(self.samples, dtype=np.float32).reshape(-1)

    def __len__(self) -> int:
        return len(self.samples)


@dataclass
class AudioSegment:
    """A drained block of samples that passed the silence check."""

    samples: np.ndarray
    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = DEFAULT_CHANNELS
    energy: float = 0.0
    sequence: int = 0
    created_at: float = 0.0

    @property
    def duration(self) -> float:
        """Segment length in seconds."""
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate


@dataclass
class EncodedSegment:
    """A WAV-encoded segment ready for the transcription provider."""

    wav_bytes: bytes
    sequence: int
    energy: float
    duration: float
    sample_rate: int


@dataclass(frozen=True)
class TranscriptFragment:
    """One accepted piece of transcript text."""

    timestamp: float
    text: str
    sequence: int | None = None


@dataclass
class ChunkStats:
    """Counters kept by the chunk emitter."""

    ticks: int = 0
    emitted: int = 0
    dropped_short: int = 0
    dropped_silent: int = 0
    last_energy: float = 0.0
