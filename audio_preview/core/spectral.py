"""
Spectral Analysis Module

Computes magnitude spectrograms for the preview display.

Technical assumptions:
- STFT with frames starting at i * hop_size (no centering, no
  boundary padding); trailing samples that do not fill a frame are
  left out
- Frame count: floor((N - W) / H) + 1, zero when N < W
- Bin count: W / 2 + 1 (one-sided real FFT)
- Magnitudes are NOT normalized by window energy; dB conversion and
  normalization are left to the caller
- Input samples are never modified
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import fft

from .errors import InvalidArgument
from .settings import AnalyzeSettings, is_power_of_two
from .window import generate_window

logger = logging.getLogger(__name__)


@dataclass
class SpectrogramResult:
    """
    Result of a spectrogram computation.

    Attributes:
        magnitude: Linear magnitudes, Shape: (time_frames, bins)
        frequencies: Center frequency of each bin in Hz
        times: Start time of each frame in seconds (absolute, not
            relative to min_time)
        settings: Settings the matrix was computed with
        sample_rate: Sample rate of the input data
    """
    magnitude: np.ndarray
    frequencies: np.ndarray
    times: np.ndarray
    settings: AnalyzeSettings
    sample_rate: int

    @property
    def num_frames(self) -> int:
        return self.magnitude.shape[0]

    @property
    def num_bins(self) -> int:
        return self.magnitude.shape[1]

    @property
    def is_empty(self) -> bool:
        return self.magnitude.size == 0

    def magnitude_db(self, ref: float = 1.0, min_db: float = -120.0) -> np.ndarray:
        """
        Magnitude in dB.

        Args:
            ref: Reference value (1.0 for dBFS)
            min_db: Floor to avoid log(0)

        Returns:
            Magnitude in dB, Shape: (time_frames, bins)
        """
        mag = np.maximum(self.magnitude, 10 ** (min_db / 20) * ref)
        return 20 * np.log10(mag / ref)

    def peak(self) -> float:
        """Largest magnitude in the matrix (0.0 when empty)."""
        if self.is_empty:
            return 0.0
        return float(np.max(self.magnitude))

    def normalized(self) -> "SpectrogramResult":
        """
        Copy scaled so that the global maximum becomes 1.0.

        An all-zero (silent) or empty matrix is returned unscaled.
        """
        peak = self.peak()
        magnitude = self.magnitude / peak if peak > 0 else self.magnitude.copy()
        return SpectrogramResult(
            magnitude=magnitude,
            frequencies=self.frequencies,
            times=self.times,
            settings=self.settings,
            sample_rate=self.sample_rate,
        )

    def crop_frequency(self, min_hz: float, max_hz: float) -> "SpectrogramResult":
        """
        Keep the bins from floor(min_hz / df) up to floor(max_hz / df).

        min_hz == max_hz keeps nothing but the (empty) frame structure.
        Only meaningful for a raw FFT matrix, not for mel bands.
        """
        df = self.sample_rate / self.settings.window_size
        lo = max(0, int(np.floor(min_hz / df)))
        hi = min(self.num_bins, int(np.floor(max_hz / df)))
        hi = max(hi, lo)
        return SpectrogramResult(
            magnitude=self.magnitude[:, lo:hi],
            frequencies=self.frequencies[lo:hi],
            times=self.times,
            settings=self.settings,
            sample_rate=self.sample_rate,
        )


def frame_count(num_samples: int, window_size: int, hop_size: int) -> int:
    """Number of STFT frames for num_samples samples."""
    if num_samples < window_size:
        return 0
    return (num_samples - window_size) // hop_size + 1


def time_range_indices(
    num_samples: int,
    sample_rate: int,
    min_time: float,
    max_time: float,
) -> tuple[int, int]:
    """
    Sample indices [start, end) of a time range, clamped to the buffer.

    Returns start == end for an empty or inverted range.
    """
    start = min(max(int(np.floor(min_time * sample_rate)), 0), num_samples)
    end = min(max(int(np.floor(max_time * sample_rate)), 0), num_samples)
    return start, max(start, end)


def compute_spectrogram(
    samples: np.ndarray,
    settings: AnalyzeSettings,
    sample_rate: int,
) -> SpectrogramResult:
    """
    Compute the magnitude spectrogram of one channel.

    Uses Short-Time Fourier Transform (STFT) over the samples inside
    [min_time, max_time).

    Frequency-time resolution trade-off:
    - Large window: Good frequency resolution, poor time resolution
    - Small window: Good time resolution, poor frequency resolution

    Args:
        samples: Channel samples (1D)
        settings: Analysis settings
        sample_rate: Sample rate in Hz

    Returns:
        SpectrogramResult; empty (0 frames) when the range holds fewer
        samples than one window

    Raises:
        InvalidArgument: Non-1D data, window size not a power of two,
            hop size <= 0 or sample rate <= 0
    """
    samples = np.asarray(samples)
    if samples.ndim != 1:
        raise InvalidArgument("Spectrogram requires 1D signal (single channel)")
    if sample_rate <= 0:
        raise InvalidArgument(f"Sample rate must be positive, got {sample_rate}")

    window_size = settings.window_size
    hop_size = settings.hop_size
    # AnalyzeSettings validates too; re-check for duck-typed settings objects
    if not is_power_of_two(window_size):
        raise InvalidArgument(f"Window size must be a power of two, got {window_size}")
    if hop_size is None or hop_size <= 0:
        raise InvalidArgument(f"Hop size must be positive, got {hop_size}")

    bins = window_size // 2 + 1
    frequencies = fft.rfftfreq(window_size, d=1.0 / sample_rate)

    start, end = time_range_indices(len(samples), sample_rate, settings.min_time, settings.max_time)
    segment = samples[start:end]
    num_frames = frame_count(len(segment), window_size, hop_size)

    if num_frames == 0:
        logger.debug("Empty spectrogram: %d samples for window %d", len(segment), window_size)
        return SpectrogramResult(
            magnitude=np.zeros((0, bins)),
            frequencies=frequencies,
            times=np.zeros(0),
            settings=settings,
            sample_rate=sample_rate,
        )

    frames = _frame_signal(segment, window_size, hop_size, num_frames)
    window = generate_window(settings.window_function, window_size)
    spectrum = fft.rfft(frames * window, n=window_size, axis=1)
    magnitude = np.abs(spectrum)

    times = (start + np.arange(num_frames) * hop_size) / sample_rate

    logger.debug(
        "Spectrogram %d frames x %d bins (W=%d, H=%d, %s)",
        num_frames, bins, window_size, hop_size, settings.window_function.value,
    )

    return SpectrogramResult(
        magnitude=magnitude,
        frequencies=frequencies,
        times=times,
        settings=settings,
        sample_rate=sample_rate,
    )


def compute_power_spectrum(
    samples: np.ndarray,
    settings: AnalyzeSettings,
    sample_rate: int,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Time-averaged power spectrum of the selected range.

    Mean of |X|^2 over all frames, for an overall spectrum display.

    Returns:
        Tuple of (frequencies, mean power); power is all zeros when
        no frame fits
    """
    result = compute_spectrogram(samples, settings, sample_rate)
    if result.is_empty:
        return result.frequencies, np.zeros(result.num_bins)
    return result.frequencies, np.mean(result.magnitude ** 2, axis=0)


def _frame_signal(
    data: np.ndarray,
    window_size: int,
    hop_size: int,
    num_frames: int,
) -> np.ndarray:
    """Cut data into (num_frames, window_size) frames (strided view, then copied)."""
    needed = (num_frames - 1) * hop_size + window_size
    frames = np.lib.stride_tricks.sliding_window_view(data[:needed], window_size)
    return frames[::hop_size].astype(np.float64)


def analyze_samples(
    samples: np.ndarray,
    sample_rate: int,
    settings: Optional[AnalyzeSettings] = None,
) -> SpectrogramResult:
    """
    Spectrogram over the whole signal.

    Shortcut for callers that have no explicit time range: max_time is
    set to the signal duration.
    """
    samples = np.asarray(samples)
    if sample_rate <= 0:
        raise InvalidArgument(f"Sample rate must be positive, got {sample_rate}")
    if settings is None:
        settings = AnalyzeSettings()
    settings = settings.with_changes(min_time=0.0, max_time=len(samples) / sample_rate)
    return compute_spectrogram(samples, settings, sample_rate)
