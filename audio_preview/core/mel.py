"""
Mel Filterbank

Projects linear magnitude spectra onto triangular mel bands.

Technical specification:
- Mel scale (O'Shaughnessy): mel = 2595 * log10(1 + hz / 700)
- filter_count + 2 mel-equidistant edge points between min and max
- Edge points are snapped to the nearest FFT bin: round(hz * W / sr)
- Triangles overlap: band k rises from edge k to edge k+1 and falls
  to edge k+2 (peak weight 1.0, no area normalization)

Simplifications:
- Magnitude, not power, is summed under each triangle
- Bands narrower than one bin collapse to a single bin with weight 1.0
"""

import math
from functools import lru_cache

import numpy as np

from .errors import InvalidArgument
from .settings import AnalyzeSettings
from .spectral import SpectrogramResult

# Lower bound for log/mel scales (log10(0) is undefined)
MIN_LOG_FREQUENCY = 1.0


def hz_to_mel(hz):
    """Convert frequency in Hz to mel. Accepts scalars and numpy arrays."""
    if isinstance(hz, np.ndarray):
        return 2595.0 * np.log10(1.0 + hz / 700.0)
    return 2595.0 * math.log10(1.0 + hz / 700.0)


def mel_to_hz(mel):
    """Convert mel to frequency in Hz. Accepts scalars and numpy arrays."""
    return 700.0 * (10.0 ** (mel / 2595.0) - 1.0)


def mel_band_edges(filter_count: int, min_hz: float, max_hz: float) -> np.ndarray:
    """
    filter_count + 2 edge frequencies in Hz, equidistant on the mel scale.

    min_hz is clamped to >= 1 Hz.
    """
    if filter_count < 1:
        raise InvalidArgument(f"Mel filter count must be at least 1, got {filter_count}")
    min_mel = hz_to_mel(max(min_hz, MIN_LOG_FREQUENCY))
    max_mel = hz_to_mel(max(max_hz, MIN_LOG_FREQUENCY))
    return mel_to_hz(np.linspace(min_mel, max_mel, filter_count + 2))


def mel_filterbank(
    filter_count: int,
    num_bins: int,
    min_hz: float,
    max_hz: float,
    sample_rate: int,
) -> np.ndarray:
    """
    Triangular filterbank weights.

    Args:
        filter_count: Number of mel bands
        num_bins: Bins of the one-sided spectrum (W / 2 + 1)
        min_hz: Lower edge of the first band (clamped to >= 1 Hz)
        max_hz: Upper edge of the last band
        sample_rate: Sample rate in Hz

    Returns:
        Read-only weight matrix, Shape: (filter_count, num_bins); all
        zeros when min_hz >= max_hz

    Raises:
        InvalidArgument: filter_count < 1, num_bins < 2 or sample rate <= 0
    """
    if filter_count < 1:
        raise InvalidArgument(f"Mel filter count must be at least 1, got {filter_count}")
    if num_bins < 2:
        raise InvalidArgument(f"Spectrum needs at least 2 bins, got {num_bins}")
    if sample_rate <= 0:
        raise InvalidArgument(f"Sample rate must be positive, got {sample_rate}")
    return _cached_filterbank(
        int(filter_count), int(num_bins), float(min_hz), float(max_hz), int(sample_rate)
    )


@lru_cache(maxsize=16)
def _cached_filterbank(
    filter_count: int,
    num_bins: int,
    min_hz: float,
    max_hz: float,
    sample_rate: int,
) -> np.ndarray:
    weights = np.zeros((filter_count, num_bins))

    if max(min_hz, MIN_LOG_FREQUENCY) >= max_hz:
        weights.setflags(write=False)
        return weights

    fft_size = 2 * (num_bins - 1)
    edges_hz = mel_band_edges(filter_count, min_hz, max_hz)
    edge_bins = np.clip(np.round(edges_hz * fft_size / sample_rate).astype(int), 0, num_bins - 1)

    bins = np.arange(num_bins)
    for k in range(filter_count):
        start, center, end = edge_bins[k], edge_bins[k + 1], edge_bins[k + 2]

        if center > start:
            rising = (bins >= start) & (bins < center)
            weights[k, rising] = (bins[rising] - start) / (center - start)
        if end > center:
            falling = (bins >= center) & (bins <= end)
            weights[k, falling] = (end - bins[falling]) / (end - center)
        else:
            weights[k, center] = 1.0

    weights.setflags(write=False)
    return weights


def project_frame(
    frame: np.ndarray,
    filter_count: int,
    min_hz: float,
    max_hz: float,
    sample_rate: int,
) -> np.ndarray:
    """
    Project one linear magnitude frame onto mel bands.

    Args:
        frame: One-sided magnitude spectrum (W / 2 + 1 values)
        filter_count: Number of mel bands
        min_hz: Lower frequency bound in Hz
        max_hz: Upper frequency bound in Hz
        sample_rate: Sample rate in Hz

    Returns:
        filter_count band magnitudes
    """
    frame = np.asarray(frame, dtype=np.float64)
    if frame.ndim != 1:
        raise InvalidArgument("Mel projection expects a single 1D frame")
    weights = mel_filterbank(filter_count, len(frame), min_hz, max_hz, sample_rate)
    return weights @ frame


def project_spectrogram(result: SpectrogramResult, settings: AnalyzeSettings = None) -> SpectrogramResult:
    """
    Project a whole spectrogram onto mel bands.

    Uses mel_filter_num and the frequency range of settings (default:
    the settings the spectrogram was computed with). The frequency axis
    of the result holds the band center frequencies.
    """
    if settings is None:
        settings = result.settings
    weights = mel_filterbank(
        settings.mel_filter_num,
        result.num_bins,
        settings.min_frequency,
        settings.max_frequency,
        result.sample_rate,
    )
    centers = mel_band_edges(settings.mel_filter_num, settings.min_frequency, settings.max_frequency)[1:-1]

    return SpectrogramResult(
        magnitude=result.magnitude @ weights.T,
        frequencies=centers,
        times=result.times,
        settings=result.settings,
        sample_rate=result.sample_rate,
    )
