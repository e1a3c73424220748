"""Tests for multi-source mixing."""

import numpy as np
import pytest

from meeting_mind.speech_to_text.mixer import AudioMixer
from meeting_mind.speech_to_text.signal_buffer import SignalBuffer


@pytest.mark.unit
class TestAudioMixer:
    """Test cases for AudioMixer.feed()."""

    def test_single_source_passes_through(self) -> None:
        buffer = SignalBuffer()
        mixer = AudioMixer(buffer, sources=["microphone"])

        mixer.feed("microphone", np.array([0.1, -0.2], dtype=np.float32))

        np.testing.assert_allclose(buffer.drain(), [0.1, -0.2], rtol=1e-6)

    def test_two_sources_summed(self) -> None:
        """Test that equal-length runs from two sources are added."""
        buffer = SignalBuffer()
        mixer = AudioMixer(buffer, sources=["system", "microphone"])

        mixer.feed("system", np.array([0.1, 0.2, 0.3], dtype=np.float32))
        assert buffer.sample_count == 0
        mixer.feed("microphone", np.array([0.1, 0.1, 0.1], dtype=np.float32))

        np.testing.assert_allclose(buffer.drain(), [0.2, 0.3, 0.4], rtol=1e-6)

    def test_common_prefix_only(self) -> None:
        """Test that only the overlapping length is mixed and the rest waits."""
        buffer = SignalBuffer()
        mixer = AudioMixer(buffer, sources=["system", "microphone"])

        mixer.feed("system", np.full(4, 0.1, dtype=np.float32))
        mixer.feed("microphone", np.full(2, 0.1, dtype=np.float32))
        assert buffer.sample_count == 2

        mixer.feed("microphone", np.full(2, 0.1, dtype=np.float32))
        assert buffer.sample_count == 4

    def test_mix_clipped(self) -> None:
        buffer = SignalBuffer()
        mixer = AudioMixer(buffer, sources=["system", "microphone"])

        mixer.feed("system", np.array([0.8, -0.8], dtype=np.float32))
        mixer.feed("microphone", np.array([0.8, -0.8], dtype=np.float32))

        np.testing.assert_allclose(buffer.drain(), [1.0, -1.0])

    def test_stalled_source_padded_after_max_lag(self) -> None:
        """Test that a silent source does not hold back the other forever."""
        buffer = SignalBuffer()
        mixer = AudioMixer(
            buffer, sources=["system", "microphone"], sample_rate=100, max_lag_seconds=0.1
        )

        mixer.feed("system", np.full(5, 0.5, dtype=np.float32))
        assert buffer.sample_count == 0
        mixer.feed("system", np.full(5, 0.5, dtype=np.float32))

        np.testing.assert_allclose(buffer.drain(), np.full(10, 0.5))

    def test_unknown_source_rejected(self) -> None:
        mixer = AudioMixer(SignalBuffer(), sources=["system"])
        with pytest.raises(KeyError):
            mixer.feed("other", np.ones(4))

    def test_duplicate_source_rejected(self) -> None:
        mixer = AudioMixer(SignalBuffer(), sources=["system"])
        with pytest.raises(ValueError):
            mixer.add_source("system")

    def test_remove_source_returns_to_passthrough(self) -> None:
        buffer = SignalBuffer()
        mixer = AudioMixer(buffer, sources=["system", "microphone"])
        mixer.remove_source("system")

        mixer.feed("microphone", np.full(3, 0.2, dtype=np.float32))

        assert buffer.sample_count == 3
        assert mixer.sources == ["microphone"]
