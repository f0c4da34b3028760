"""
Axis Ticks

Frequency axis mapping for linear, logarithmic and mel scales, plus
"nice number" tick spacing for time and amplitude axes.

Technical assumptions:
- Positions are fractions of the axis length: 0.0 = min, 1.0 = max
  (bottom/left edge to top/right edge)
- Log and mel axes clamp the lower bound to 1 Hz
- Frequency tick labels are truncated integers in Hz
- A degenerate range (min == max) yields a single tick at min
"""

import math
from dataclasses import dataclass

from .errors import InvalidArgument
from .mel import MIN_LOG_FREQUENCY, hz_to_mel, mel_to_hz
from .settings import AnalyzeSettings, FrequencyScale
from ..utils.formatting import format_frequency_tick, format_tick

NICE_MANTISSAS = (1.0, 2.0, 5.0, 10.0)


@dataclass(frozen=True)
class AxisTick:
    """One gridline with its label."""
    value: float
    position: float
    label: str


def round_to_nearest_nice_number(value: float) -> tuple[float, int]:
    """
    Round to the nearest number whose leading digit is 1, 2 or 5.

    value = mantissa * 10^exponent with 1 <= mantissa < 10; the candidate
    mantissa closest in log10 distance wins (ties go to the smaller one).

    Args:
        value: Positive number (e.g. axis span / 10)

    Returns:
        Tuple of (nice value, decimal digits needed to print it);
        (0, 0) for value <= 0

    Examples:
        1.3  -> (1.0, 0)
        0.13 -> (0.1, 1)
        7.5  -> (10.0, 0)
    """
    if not value > 0:
        return 0, 0

    exponent = math.floor(math.log10(value))
    mantissa = value / 10.0 ** exponent

    distances = [abs(math.log10(mantissa) - math.log10(c)) for c in NICE_MANTISSAS]
    nice = NICE_MANTISSAS[distances.index(min(distances))]

    rounded = nice * 10.0 ** exponent
    digits = -exponent - 1 if nice == 10.0 else -exponent
    return rounded, max(0, digits)


def nice_ticks(lo: float, hi: float, divisions: float = 10.0) -> list[AxisTick]:
    """
    Gridlines at multiples of a nice step inside [lo, hi].

    The step is round_to_nearest_nice_number((hi - lo) / divisions),
    labels carry exactly the decimal digits the step needs.
    """
    if hi <= lo:
        return [AxisTick(value=lo, position=0.0, label=format_tick(lo, 0))]

    step, digits = round_to_nearest_nice_number((hi - lo) / divisions)
    first = math.ceil(lo / step) * step
    count = math.floor((hi - lo) / step)
    span = hi - lo

    ticks = []
    for i in range(count + 1):
        value = first + step * i
        position = (value - lo) / span
        # Rounding can push the last multiple just past hi
        if position > 1.0 + 1e-9:
            break
        ticks.append(AxisTick(value=value, position=position, label=format_tick(value, digits)))
    return ticks


def time_axis_ticks(min_time: float, max_time: float) -> list[AxisTick]:
    """Time gridlines, roughly ten across the range."""
    return nice_ticks(min_time, max_time, 10.0)


def amplitude_axis_ticks(
    min_amplitude: float,
    max_amplitude: float,
    vertical_scale: float = 1.0,
) -> list[AxisTick]:
    """Waveform amplitude gridlines; more of them when zoomed in vertically."""
    if vertical_scale <= 0:
        raise InvalidArgument("Vertical scale must be positive")
    return nice_ticks(min_amplitude, max_amplitude, 10.0 * vertical_scale)


def tick_count(vertical_scale: float) -> int:
    """Number of frequency gridlines for a vertical zoom factor."""
    return max(1, round(10 * vertical_scale))


class FrequencyAxis:
    """
    Maps frequencies to axis positions for one scale mode.

    Usage:
        axis = FrequencyAxis(FrequencyScale.MEL, 0, 8000)
        y = axis.to_position(1000.0)
        for tick in axis.ticks(10):
            print(tick.label, tick.position)
    """

    def __init__(self, scale: FrequencyScale, min_hz: float, max_hz: float):
        """
        Initialize axis.

        Args:
            scale: Linear, log or mel
            min_hz: Bottom of the axis in Hz (>= 1 Hz for log/mel)
            max_hz: Top of the axis in Hz

        Raises:
            InvalidArgument: Unknown scale, negative or inverted range
        """
        if not isinstance(scale, FrequencyScale):
            raise InvalidArgument(f"Unknown frequency scale: {scale!r}")
        if min_hz < 0 or max_hz < min_hz:
            raise InvalidArgument(f"Invalid frequency range [{min_hz}, {max_hz}]")

        if scale is not FrequencyScale.LINEAR:
            min_hz = max(min_hz, MIN_LOG_FREQUENCY)
            max_hz = max(max_hz, min_hz)

        self.scale = scale
        self.min_hz = float(min_hz)
        self.max_hz = float(max_hz)
        self._lo = self._forward(self.min_hz)
        self._hi = self._forward(self.max_hz)

    @classmethod
    def from_settings(cls, settings: AnalyzeSettings) -> "FrequencyAxis":
        return cls(settings.frequency_scale, settings.min_frequency, settings.max_frequency)

    def _forward(self, hz: float) -> float:
        if self.scale is FrequencyScale.LOG:
            return math.log10(hz)
        if self.scale is FrequencyScale.MEL:
            return hz_to_mel(hz)
        return hz

    def _inverse(self, coord: float) -> float:
        if self.scale is FrequencyScale.LOG:
            return 10.0 ** coord
        if self.scale is FrequencyScale.MEL:
            return mel_to_hz(coord)
        return coord

    @property
    def is_degenerate(self) -> bool:
        return self._hi <= self._lo

    def to_position(self, hz: float) -> float:
        """Axis position of a frequency (0.0 at min_hz, 1.0 at max_hz)."""
        if self.is_degenerate:
            return 0.0
        if self.scale is not FrequencyScale.LINEAR:
            hz = max(hz, MIN_LOG_FREQUENCY)
        return (self._forward(hz) - self._lo) / (self._hi - self._lo)

    def from_position(self, position: float) -> float:
        """Frequency at an axis position."""
        if self.is_degenerate:
            return self.min_hz
        return self._inverse(self._lo + position * (self._hi - self._lo))

    def ticks(self, count: int = 10) -> list[AxisTick]:
        """
        count gridlines, equidistant in the scale's own coordinate.

        Tick i sits at position i / count, so the first line is on the
        bottom edge and the top edge carries none.
        """
        if count < 1:
            raise InvalidArgument(f"Tick count must be at least 1, got {count}")
        if self.is_degenerate:
            return [AxisTick(value=self.min_hz, position=0.0, label=format_frequency_tick(self.min_hz))]

        ticks = []
        for i in range(count):
            position = i / count
            hz = self.from_position(position)
            ticks.append(AxisTick(value=hz, position=position, label=format_frequency_tick(hz)))
        return ticks


def frequency_axis_ticks(settings: AnalyzeSettings) -> list[AxisTick]:
    """Frequency gridlines for the current settings."""
    axis = FrequencyAxis.from_settings(settings)
    return axis.ticks(tick_count(settings.spectrogram_vertical_scale))
