"""
Playback Filter Design

Second-order Butterworth high-pass and low-pass sections for the
real-time playback graph.

Technical specification:
- RBJ Audio EQ Cookbook formulas (bilinear transform with frequency
  pre-warping), Q = 1/sqrt(2)
- Magnitude at the cutoff is exactly Q, i.e. -3.01 dB
- Coefficients normalized by a0: y[n] = b0 x[n] + b1 x[n-1] + b2 x[n-2]
  - a1 y[n-1] - a2 y[n-2]

The design functions use scalar math only (no numpy), so they can be
called from an audio callback. Analysis helpers (frequency response,
offline filtering) use scipy.signal.
"""

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import signal

from .errors import InvalidArgument
from .settings import AnalyzeSettings, FilterKind, PlayerSettings

BUTTERWORTH_Q = 1 / math.sqrt(2)


@dataclass(frozen=True)
class FilterCoefficients:
    """
    One biquad section and the inputs it was designed from.

    Attributes:
        b0, b1, b2: Feed-forward coefficients (normalized)
        a1, a2: Feedback coefficients (normalized, a0 = 1)
        cutoff_hz: -3 dB frequency in Hz
        sample_rate: Sample rate in Hz
        kind: High-pass or low-pass
    """
    b0: float
    b1: float
    b2: float
    a1: float
    a2: float
    cutoff_hz: float
    sample_rate: int
    kind: FilterKind

    @property
    def b(self) -> np.ndarray:
        return np.array([self.b0, self.b1, self.b2])

    @property
    def a(self) -> np.ndarray:
        return np.array([1.0, self.a1, self.a2])

    @property
    def sos(self) -> np.ndarray:
        """Second-order-section form, Shape: (1, 6)."""
        return np.array([[self.b0, self.b1, self.b2, 1.0, self.a1, self.a2]])

    def frequency_response(self, frequencies: np.ndarray) -> np.ndarray:
        """
        Complex response at the given frequencies (Hz).

        For documentation and visualization of filter behavior.
        """
        _, h = signal.freqz(self.b, self.a, worN=np.atleast_1d(frequencies), fs=self.sample_rate)
        return h

    def magnitude_db_at(self, hz: float) -> float:
        """Magnitude response in dB at one frequency."""
        h = self.frequency_response(np.array([hz]))
        return float(20 * np.log10(np.abs(h[0])))

    def apply(self, samples: np.ndarray) -> np.ndarray:
        """Filter a signal (1D, or 2D as (channels, samples)) offline."""
        return signal.lfilter(self.b, self.a, samples, axis=-1)


def _validate(cutoff_hz: float, sample_rate: int) -> None:
    if sample_rate <= 0:
        raise InvalidArgument(f"Sample rate must be positive, got {sample_rate}")
    if cutoff_hz <= 0:
        raise InvalidArgument(f"Cutoff must be positive, got {cutoff_hz} Hz")
    if cutoff_hz >= sample_rate / 2:
        raise InvalidArgument(
            f"Cutoff {cutoff_hz} Hz must be below Nyquist ({sample_rate / 2} Hz)"
        )


def design_low_pass(cutoff_hz: float, sample_rate: int) -> FilterCoefficients:
    """
    Butterworth low-pass biquad.

    Raises:
        InvalidArgument: cutoff_hz <= 0 or >= sample_rate / 2
    """
    _validate(cutoff_hz, sample_rate)
    w0 = 2 * math.pi * cutoff_hz / sample_rate
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / (2 * BUTTERWORTH_Q)
    a0 = 1 + alpha

    return FilterCoefficients(
        b0=(1 - cos_w0) / 2 / a0,
        b1=(1 - cos_w0) / a0,
        b2=(1 - cos_w0) / 2 / a0,
        a1=-2 * cos_w0 / a0,
        a2=(1 - alpha) / a0,
        cutoff_hz=cutoff_hz,
        sample_rate=sample_rate,
        kind=FilterKind.LOW_PASS,
    )


def design_high_pass(cutoff_hz: float, sample_rate: int) -> FilterCoefficients:
    """
    Butterworth high-pass biquad.

    Raises:
        InvalidArgument: cutoff_hz <= 0 or >= sample_rate / 2
    """
    _validate(cutoff_hz, sample_rate)
    w0 = 2 * math.pi * cutoff_hz / sample_rate
    cos_w0 = math.cos(w0)
    alpha = math.sin(w0) / (2 * BUTTERWORTH_Q)
    a0 = 1 + alpha

    return FilterCoefficients(
        b0=(1 + cos_w0) / 2 / a0,
        b1=-(1 + cos_w0) / a0,
        b2=(1 + cos_w0) / 2 / a0,
        a1=-2 * cos_w0 / a0,
        a2=(1 - alpha) / a0,
        cutoff_hz=cutoff_hz,
        sample_rate=sample_rate,
        kind=FilterKind.HIGH_PASS,
    )


def design_filter(kind: FilterKind, cutoff_hz: float, sample_rate: int) -> FilterCoefficients:
    """Dispatch on filter kind."""
    if kind is FilterKind.HIGH_PASS:
        return design_high_pass(cutoff_hz, sample_rate)
    if kind is FilterKind.LOW_PASS:
        return design_low_pass(cutoff_hz, sample_rate)
    raise InvalidArgument(f"Unknown filter kind: {kind!r}")


def playback_filter_chain(
    player: PlayerSettings,
    analyze: Optional[AnalyzeSettings] = None,
) -> list[FilterCoefficients]:
    """
    Enabled filter stages in graph order (source -> HPF -> LPF -> gain).

    With match_filter_frequency_to_spectrogram set and analyze settings
    given, the cutoffs follow the displayed frequency range. A matched
    cutoff that is unusable (0 Hz, or at Nyquist) drops its stage
    instead of failing: a full-range display means "no filtering".

    Returns:
        Zero, one or two coefficient sets
    """
    hpf_frequency = player.hpf_frequency
    lpf_frequency = player.lpf_frequency
    matched = player.match_filter_frequency_to_spectrogram and analyze is not None
    if matched:
        hpf_frequency = analyze.min_frequency
        lpf_frequency = analyze.max_frequency

    nyquist = player.sample_rate / 2
    chain = []
    if player.enable_hpf and not (matched and not 0 < hpf_frequency < nyquist):
        chain.append(design_high_pass(hpf_frequency, player.sample_rate))
    if player.enable_lpf and not (matched and not 0 < lpf_frequency < nyquist):
        chain.append(design_low_pass(lpf_frequency, player.sample_rate))
    return chain


def apply_filter_chain(chain: list[FilterCoefficients], samples: np.ndarray) -> np.ndarray:
    """Run samples through every stage of a chain (pass-through when empty)."""
    if not chain:
        return np.array(samples, copy=True)
    sos = np.vstack([stage.sos for stage in chain])
    return signal.sosfilt(sos, samples, axis=-1)
