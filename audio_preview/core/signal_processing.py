"""
General Signal Processing

Level measurements and waveform decimation for the waveform display.

Technical assumptions:
- All functions work on copies, original data remains unchanged
- Waveform decimation keeps every n-th sample (no min/max envelope),
  so the plotted points are real sample values
"""

import math

import numpy as np

from .errors import InvalidArgument
from .spectral import time_range_indices

# Upper bound of plotted points per channel
MAX_WAVEFORM_POINTS = 200_000


def compute_rms(data: np.ndarray, as_db: bool = False) -> float:
    """
    Compute RMS (Root Mean Square) of the signal.

    Args:
        data: Audio data
        as_db: If True, return in dB (reference: 1.0)

    Returns:
        RMS value (linear or dB); 0.0 / -inf for empty data
    """
    if np.size(data) == 0:
        return -np.inf if as_db else 0.0
    rms = float(np.sqrt(np.mean(np.square(data, dtype=np.float64))))

    if as_db:
        if rms == 0:
            return -np.inf
        return 20 * np.log10(rms)

    return rms


def compute_peak(data: np.ndarray, as_db: bool = False) -> float:
    """
    Compute peak value (absolute maximum) of the signal.

    Args:
        data: Audio data
        as_db: If True, return in dB (reference: 1.0)

    Returns:
        Peak value (linear or dB); 0.0 / -inf for empty data
    """
    if np.size(data) == 0:
        return -np.inf if as_db else 0.0
    peak = float(np.max(np.abs(data)))

    if as_db:
        if peak == 0:
            return -np.inf
        return 20 * np.log10(peak)

    return peak


def waveform_points(
    samples: np.ndarray,
    sample_rate: int,
    min_time: float,
    max_time: float,
    max_points: int = MAX_WAVEFORM_POINTS,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Samples of [min_time, max_time) thinned to at most max_points.

    Keeps every step-th sample with step = ceil(count / max_points).

    Returns:
        Tuple of (times in seconds, sample values)
    """
    if max_points < 1:
        raise InvalidArgument("max_points must be at least 1")
    start, end = time_range_indices(len(samples), sample_rate, min_time, max_time)
    if end == start:
        return np.zeros(0), np.zeros(0, dtype=np.asarray(samples).dtype)

    step = math.ceil((end - start) / max_points)
    indices = np.arange(start, end, step)
    return indices / sample_rate, np.asarray(samples)[start:end:step].copy()
