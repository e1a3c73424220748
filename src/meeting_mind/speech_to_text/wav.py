"""Encoding of float sample blocks into 16-bit PCM WAV payloads."""

import io
import wave

import numpy as np

from .config import (
    DEFAULT_CHANNELS,
    PCM_NEGATIVE_SCALE,
    PCM_POSITIVE_SCALE,
    PCM_SAMPLE_WIDTH,
)


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """
    Convert float samples to signed 16-bit integers.

    Samples are clipped to [-1, 1]; negative values scale by 0x8000 and
    non-negative values by 0x7FFF so both ends map onto the int16 range.

    Args:
        samples: Float samples

    Returns:
        int16 array of the same length
    """
    clipped = np.clip(np.asarray(samples, dtype=np.float64).reshape(-1), -1.0, 1.0)
    scaled = np.where(
        clipped < 0, clipped * PCM_NEGATIVE_SCALE, clipped * PCM_POSITIVE_SCALE
    )
    return scaled.astype(np.int16)


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """
    Resample using linear interpolation.

    Args:
        samples: Float samples
        source_rate: Current sample rate in Hz
        target_rate: Desired sample rate in Hz

    Returns:
        Resampled float32 array
    """
    if source_rate <= 0 or target_rate <= 0:
        raise ValueError("Sample rates must be positive")

    data = np.asarray(samples, dtype=np.float32).reshape(-1)
    if source_rate == target_rate or data.size == 0:
        return data

    new_length = max(1, int(round(data.size * target_rate / source_rate)))
    old_indices = np.linspace(0, data.size - 1, new_length)
    return np.interp(old_indices, np.arange(data.size), data).astype(np.float32)


def encode_wav(
    samples: np.ndarray,
    sample_rate: int,
    target_rate: int | None = None,
) -> bytes:
    """
    Encode samples as a mono 16-bit PCM WAV file.

    Args:
        samples: Float samples in [-1, 1]
        sample_rate: Rate of ``samples`` in Hz
        target_rate: Optional rate to resample to before encoding

    Returns:
        Complete RIFF/WAVE file bytes
    """
    rate = sample_rate
    if target_rate is not None and target_rate != sample_rate:
        samples = resample(samples, sample_rate, target_rate)
        rate = target_rate

    pcm = float_to_pcm16(samples)
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(DEFAULT_CHANNELS)
        wav_file.setsampwidth(PCM_SAMPLE_WIDTH)
        wav_file.setframerate(rate)
        wav_file.writeframes(pcm.astype("<i2").tobytes())
    return buffer.getvalue()
