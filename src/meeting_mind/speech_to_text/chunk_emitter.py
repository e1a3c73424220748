"""Periodic conversion of buffered audio into transcription payloads."""

import inspect
import time
from collections.abc import Callable
from typing import Any

from ..logging_utils import get_logger
from .config import (
    CHUNK_SILENCE_THRESHOLD,
    DEFAULT_SAMPLE_RATE,
    MIN_CHUNK_SAMPLES,
    TRANSCRIPTION_SAMPLE_RATE,
)
from .energy import rms
from .models import AudioSegment, ChunkStats, EncodedSegment
from .signal_buffer import SignalBuffer
from .wav import encode_wav

logger = get_logger(__name__)

SegmentSink = Callable[[EncodedSegment], Any]


class ChunkEmitter:
    """Drains the signal buffer on each tick and forwards non-silent segments."""

    def __init__(
        self,
        buffer: SignalBuffer,
        sink: SegmentSink | None = None,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        min_samples: int = MIN_CHUNK_SAMPLES,
        silence_threshold: float = CHUNK_SILENCE_THRESHOLD,
        target_rate: int | None = TRANSCRIPTION_SAMPLE_RATE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the chunk emitter.

        Args:
            buffer: Buffer filled by the capture source
            sink: Receives each encoded segment (sync or async)
            sample_rate: Rate of the buffered samples in Hz
            min_samples: Drains shorter than this are discarded
            silence_threshold: Drains with RMS below this are discarded
            target_rate: Rate of the encoded WAV payload (None keeps capture rate)
            clock: Monotonic time source for segment timestamps
        """
        if sample_rate <= 0:
            raise ValueError("Sample rate must be positive")

        self._buffer = buffer
        self._sink = sink
        self.sample_rate = sample_rate
        self.min_samples = min_samples
        self.silence_threshold = silence_threshold
        self.target_rate = target_rate
        self._clock = clock
        self._next_sequence = 0
        self.stats = ChunkStats()

    def set_sink(self, sink: SegmentSink | None) -> None:
        """Replace the segment sink."""
        self._sink = sink

    def cut_segment(self) -> AudioSegment | None:
        """
        Drain the buffer and apply the length and energy gates.

        Returns:
            The surviving segment, or None when the drain was too short or silent
        """
        self.stats.ticks += 1
        samples = self._buffer.drain()

        if samples.size == 0:
            return None

        if samples.size < self.min_samples:
            self.stats.dropped_short += 1
            logger.trace(f"Chunk too short ({samples.size} samples), discarding")
            return None

        energy = rms(samples)
        self.stats.last_energy = energy
        if energy < self.silence_threshold:
            self.stats.dropped_silent += 1
            logger.trace(f"🔇 Silent chunk (rms={energy:.4f}), not transcribing")
            return None

        segment = AudioSegment(
            samples=samples,
            sample_rate=self.sample_rate,
            energy=energy,
            sequence=self._next_sequence,
            created_at=self._clock(),
        )
        self._next_sequence += 1
        return segment

    def encode(self, segment: AudioSegment) -> EncodedSegment:
        """Encode a segment as a mono 16-bit WAV payload."""
        wav_bytes = encode_wav(segment.samples, segment.sample_rate, self.target_rate)
        return EncodedSegment(
            wav_bytes=wav_bytes,
            sequence=segment.sequence,
            energy=segment.energy,
            duration=segment.duration,
            sample_rate=self.target_rate or segment.sample_rate,
        )

    async def tick(self) -> EncodedSegment | None:
        """
        Run one emitter period: drain, gate, encode and hand off.

        Returns:
            The forwarded payload, or None if nothing was forwarded
        """
        segment = self.cut_segment()
        if segment is None:
            return None

        encoded = self.encode(segment)
        self.stats.emitted += 1
        logger.debug(
            f"🎙️ Chunk #{encoded.sequence}: {encoded.duration:.2f}s, "
            f"rms={encoded.energy:.3f}, {len(encoded.wav_bytes)} bytes"
        )

        if self._sink is not None:
            result = self._sink(encoded)
            if inspect.isawaitable(result):
                await result
        return encoded

    def reset(self) -> None:
        """Reset counters and sequence numbering for a new capture session."""
        self._next_sequence = 0
        self.stats = ChunkStats()
