"""Short-window signal energy (RMS) measurements."""

from collections.abc import Iterable

import numpy as np


def rms(samples: np.ndarray) -> float:
    """
    Root-mean-square energy of a sample array.

    Args:
        samples: Float samples on a [-1, 1] scale

    Returns:
        ``sqrt(mean(samples**2))``, or 0.0 for an empty array
    """
    data = np.asarray(samples, dtype=np.float64).reshape(-1)
    if data.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(data))))


def rms_of_slices(slices: Iterable[np.ndarray]) -> float:
    """RMS over the concatenation of several slices."""
    parts = [np.asarray(s, dtype=np.float64).reshape(-1) for s in slices]
    if not parts:
        return 0.0
    return rms(np.concatenate(parts))


def is_silent(samples: np.ndarray, threshold: float) -> bool:
    """True when the RMS energy of ``samples`` is below ``threshold``."""
    return rms(samples) < threshold
