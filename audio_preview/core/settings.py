"""
Analysis and Player Settings

Immutable value objects handed to the engine by the UI/state layer.

Technical assumptions:
- Settings are validated once at construction (__post_init__)
- Degenerate ranges (min == max, empty time range) are legal values;
  the engine answers them with empty results instead of errors
- Range checks that depend on the audio (Nyquist, duration) happen
  at call time via validate_for()
- from_defaults() accepts the host's loosely typed default dict and
  clamps every field instead of rejecting it
"""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping, Optional

from .errors import InvalidArgument


class WindowFunction(Enum):
    """Analysis window applied to each STFT frame."""
    HANN = "hann"
    HAMMING = "hamming"
    BLACKMAN = "blackman"
    RECTANGULAR = "rectangular"


class FrequencyScale(Enum):
    """Vertical scale of the spectrogram."""
    LINEAR = 0
    LOG = 1
    MEL = 2


class FilterKind(Enum):
    """Biquad stage type in the playback graph."""
    HIGH_PASS = "highpass"
    LOW_PASS = "lowpass"


MIN_WINDOW_SIZE = 256
MAX_WINDOW_SIZE = 32768
DEFAULT_WINDOW_SIZE_INDEX = 2  # 1024

MEL_FILTER_NUM_MIN = 20
MEL_FILTER_NUM_MAX = 200
MEL_FILTER_NUM_DEFAULT = 40

DEFAULT_AMPLITUDE_RANGE_DB = 90.0

VERTICAL_SCALE_MIN = 0.2
VERTICAL_SCALE_MAX = 2.0

# Canvas width the automatic hop size is tuned for (pixels)
SPECTROGRAM_CANVAS_WIDTH = 1800

VOLUME_DB_MIN = -80.0
VOLUME_DB_MAX = 0.0
VOLUME_MIN = 0.0
VOLUME_MAX = 100.0

FILTER_FREQUENCY_MIN = 10.0
FILTER_FREQUENCY_HPF_DEFAULT = 100.0
FILTER_FREQUENCY_LPF_DEFAULT = 10000.0


def as_index(value: Any) -> Optional[int]:
    """Python int of an integer value (int, numpy integer), else None."""
    if isinstance(value, bool):
        return None
    try:
        return operator.index(value)
    except TypeError:
        return None


def is_power_of_two(value: int) -> bool:
    """True for 1, 2, 4, 8, ..."""
    value = as_index(value)
    return value is not None and value > 0 and (value & (value - 1)) == 0


def window_size_from_index(index: int) -> int:
    """Map the UI window-size index (0..7) to 256..32768 samples."""
    return 2 ** (index + 8)


def value_in_range(value: Any, minimum: float, maximum: float, default: float) -> float:
    """
    Return value if it is a number inside [minimum, maximum], else default.

    Used for settings where an out-of-range entry means "not configured".
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value) or value < minimum or value > maximum:
        return default
    return value


def limited_value_in_range(value: Any, minimum: float, maximum: float, default: float) -> float:
    """Clamp a number into [minimum, maximum]; non-numbers give default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return default
    return min(max(value, minimum), maximum)


def range_values(
    min_value: Any,
    max_value: Any,
    min_limit: float,
    max_limit: float,
    min_default: float,
    max_default: float,
) -> tuple[float, float]:
    """
    Validate a (min, max) pair against limits.

    Each side falls back to its default when it is not a number or lies
    outside the limits; the pair falls back entirely when min > max.
    """
    lo = value_in_range(min_value, min_limit, max_limit, min_default)
    hi = value_in_range(max_value, min_limit, max_limit, max_default)
    if lo > hi:
        return min_default, max_default
    return lo, hi


def auto_hop_size(
    window_size: int,
    min_time: float,
    max_time: float,
    sample_rate: int,
    canvas_width: int = SPECTROGRAM_CANVAS_WIDTH,
) -> int:
    """
    Hop size that keeps one frame at least 2*W/1024 pixels wide.

    Never smaller than window_size / 32, so short selections do not
    explode into thousands of overlapping frames.
    """
    min_rect_width = 2 * window_size / 1024
    full_sample_num = (max_time - min_time) * sample_rate
    enough_hop_size = int(min_rect_width * full_sample_num / canvas_width)
    return max(enough_hop_size, window_size // 32)


def _enum_value(enum_cls, value: Any, default):
    """Resolve an enum member from a member, its value or its name."""
    if isinstance(value, enum_cls):
        return value
    for member in enum_cls:
        if value == member.value:
            return member
        if isinstance(value, str) and value.lower() == member.name.lower():
            return member
    return default


@dataclass(frozen=True)
class AnalyzeSettings:
    """
    Parameters of one spectrogram analysis.

    Attributes:
        window_size: FFT size, power of two in [256, 32768]
        hop_size: Frame step in samples (default: window_size // 4)
        window_function: Analysis window
        frequency_scale: Linear, logarithmic or mel axis
        min_frequency: Lower frequency bound in Hz
        max_frequency: Upper frequency bound in Hz
        min_time: Start of the analysed range in seconds
        max_time: End of the analysed range in seconds
        spectrogram_amplitude_range: Displayed dynamic range in dB (> 0)
        mel_filter_num: Number of mel bands
        spectrogram_vertical_scale: Vertical zoom, drives the frequency tick count
        min_amplitude: Lower bound of the waveform amplitude axis
        max_amplitude: Upper bound of the waveform amplitude axis
    """
    window_size: int = 1024
    hop_size: Optional[int] = None
    window_function: WindowFunction = WindowFunction.HANN
    frequency_scale: FrequencyScale = FrequencyScale.LINEAR
    min_frequency: float = 0.0
    max_frequency: float = 22050.0
    min_time: float = 0.0
    max_time: float = 0.0
    spectrogram_amplitude_range: float = DEFAULT_AMPLITUDE_RANGE_DB
    mel_filter_num: int = MEL_FILTER_NUM_DEFAULT
    spectrogram_vertical_scale: float = 1.0
    min_amplitude: float = -1.0
    max_amplitude: float = 1.0

    def __post_init__(self):
        """Derive hop_size and validate everything that needs no audio."""
        if not is_power_of_two(self.window_size):
            raise InvalidArgument(f"Window size must be a power of two, got {self.window_size!r}")
        object.__setattr__(self, "window_size", as_index(self.window_size))
        if not MIN_WINDOW_SIZE <= self.window_size <= MAX_WINDOW_SIZE:
            raise InvalidArgument(
                f"Window size must be in [{MIN_WINDOW_SIZE}, {MAX_WINDOW_SIZE}], got {self.window_size}"
            )

        if self.hop_size is None:
            object.__setattr__(self, "hop_size", self.window_size // 4)
        hop_size = as_index(self.hop_size)
        if hop_size is None or hop_size <= 0:
            raise InvalidArgument(f"Hop size must be a positive integer, got {self.hop_size!r}")
        object.__setattr__(self, "hop_size", hop_size)

        if not isinstance(self.window_function, WindowFunction):
            raise InvalidArgument(f"Unknown window function: {self.window_function!r}")
        if not isinstance(self.frequency_scale, FrequencyScale):
            raise InvalidArgument(f"Unknown frequency scale: {self.frequency_scale!r}")

        if self.min_frequency < 0:
            raise InvalidArgument("Minimum frequency must not be negative")
        if self.max_frequency < self.min_frequency:
            raise InvalidArgument("Maximum frequency must not be below minimum frequency")
        if self.min_time < 0 or self.max_time < 0:
            raise InvalidArgument("Time range must not be negative")
        if not self.spectrogram_amplitude_range > 0:
            raise InvalidArgument("Amplitude range must be a positive dB span")
        if self.mel_filter_num < 1:
            raise InvalidArgument("Mel filter count must be at least 1")
        if self.spectrogram_vertical_scale <= 0:
            raise InvalidArgument("Vertical scale must be positive")

    @property
    def bin_count(self) -> int:
        """Number of non-redundant FFT bins."""
        return self.window_size // 2 + 1

    @property
    def overlap_percent(self) -> float:
        """Frame overlap in percent."""
        return max(0.0, (1 - self.hop_size / self.window_size) * 100)

    def frequency_resolution(self, sample_rate: int) -> float:
        """Bin spacing in Hz."""
        return sample_rate / self.window_size

    def time_resolution(self, sample_rate: int) -> float:
        """Frame spacing in seconds."""
        return self.hop_size / sample_rate

    def effective_min_frequency(self) -> float:
        """Lower bound as used by log/mel scales (clamped to >= 1 Hz)."""
        if self.frequency_scale is FrequencyScale.LINEAR:
            return self.min_frequency
        return max(self.min_frequency, 1.0)

    def validate_for(self, sample_rate: int, duration: Optional[float] = None) -> None:
        """
        Check the ranges that depend on the audio.

        Raises:
            InvalidArgument: sample rate not positive, max frequency above
                Nyquist or time range past the end of the audio
        """
        if sample_rate <= 0:
            raise InvalidArgument(f"Sample rate must be positive, got {sample_rate}")
        if self.max_frequency > sample_rate / 2:
            raise InvalidArgument(
                f"Maximum frequency {self.max_frequency} Hz exceeds Nyquist ({sample_rate / 2} Hz)"
            )
        if duration is not None and self.max_time > duration + 1.0 / sample_rate:
            raise InvalidArgument(
                f"Time range ends at {self.max_time} s but audio lasts {duration} s"
            )

    def with_changes(self, **changes) -> AnalyzeSettings:
        """
        Copy with some fields replaced.

        hop_size is re-derived from the new window size unless given.
        """
        if "window_size" in changes and "hop_size" not in changes:
            changes["hop_size"] = None
        return replace(self, **changes)

    @classmethod
    def from_defaults(
        cls,
        defaults: Mapping[str, Any],
        sample_rate: int,
        duration: float,
        auto_hop: bool = True,
    ) -> AnalyzeSettings:
        """
        Build settings from the host's default configuration.

        Unknown or out-of-range entries fall back to built-in defaults,
        the time range covers the whole buffer.

        Args:
            defaults: Mapping with camelCase keys as stored by the host
                (windowSizeIndex, frequencyScale, melFilterNum, ...)
            sample_rate: Sample rate of the loaded audio
            duration: Duration of the loaded audio in seconds
            auto_hop: Derive hop size from canvas width instead of W/4
        """
        nyquist = sample_rate / 2
        window_size_index = int(value_in_range(
            defaults.get("windowSizeIndex"), 0, 7, DEFAULT_WINDOW_SIZE_INDEX
        ))
        window_size = window_size_from_index(window_size_index)

        min_frequency, max_frequency = range_values(
            defaults.get("minFrequency"), defaults.get("maxFrequency"),
            0, nyquist, 0, nyquist,
        )
        min_amplitude, max_amplitude = range_values(
            defaults.get("minAmplitude"), defaults.get("maxAmplitude"),
            -100, 100, -1.0, 1.0,
        )
        # Stored as a negative floor (e.g. -90); the engine works with the span
        amplitude_floor = value_in_range(
            defaults.get("spectrogramAmplitudeRange"), -1000, 0, -DEFAULT_AMPLITUDE_RANGE_DB
        )
        amplitude_range = abs(amplitude_floor) or DEFAULT_AMPLITUDE_RANGE_DB

        mel_filter_num = defaults.get("melFilterNum")
        if isinstance(mel_filter_num, (int, float)) and not isinstance(mel_filter_num, bool):
            mel_filter_num = math.trunc(mel_filter_num)
        mel_filter_num = int(value_in_range(
            mel_filter_num, MEL_FILTER_NUM_MIN, MEL_FILTER_NUM_MAX, MEL_FILTER_NUM_DEFAULT
        ))

        window_function = _enum_value(
            WindowFunction, defaults.get("windowFunction"), WindowFunction.HANN
        )
        frequency_scale = _enum_value(
            FrequencyScale, defaults.get("frequencyScale"), FrequencyScale.LINEAR
        )

        hop_size = (
            auto_hop_size(window_size, 0.0, duration, sample_rate) if auto_hop else None
        )

        return cls(
            window_size=window_size,
            hop_size=hop_size,
            window_function=window_function,
            frequency_scale=frequency_scale,
            min_frequency=min_frequency,
            max_frequency=max_frequency,
            min_time=0.0,
            max_time=duration,
            spectrogram_amplitude_range=amplitude_range,
            mel_filter_num=mel_filter_num,
            spectrogram_vertical_scale=value_in_range(
                defaults.get("spectrogramVerticalScale"),
                VERTICAL_SCALE_MIN, VERTICAL_SCALE_MAX, 1.0,
            ),
            min_amplitude=min_amplitude,
            max_amplitude=max_amplitude,
        )


@dataclass(frozen=True)
class PlayerSettings:
    """
    Settings of the playback path that affect filter design.

    Attributes:
        sample_rate: Sample rate of the playback graph
        enable_hpf: High-pass stage active
        hpf_frequency: High-pass cutoff in Hz
        enable_lpf: Low-pass stage active
        lpf_frequency: Low-pass cutoff in Hz
        match_filter_frequency_to_spectrogram: Take cutoffs from the
            spectrogram frequency range instead of the fields above
        volume_unit_db: Volume control works in dB
        initial_volume_db: Start volume in dB
        initial_volume: Start volume in percent
    """
    sample_rate: int
    enable_hpf: bool = False
    hpf_frequency: float = FILTER_FREQUENCY_HPF_DEFAULT
    enable_lpf: bool = False
    lpf_frequency: float = FILTER_FREQUENCY_LPF_DEFAULT
    match_filter_frequency_to_spectrogram: bool = False
    volume_unit_db: bool = False
    initial_volume_db: float = VOLUME_DB_MAX
    initial_volume: float = VOLUME_MAX

    def __post_init__(self):
        if self.sample_rate <= 0:
            raise InvalidArgument(f"Sample rate must be positive, got {self.sample_rate}")
        # Disabled stages may keep a cutoff that is invalid for this rate
        nyquist = self.sample_rate / 2
        for name, enabled in (("hpf_frequency", self.enable_hpf), ("lpf_frequency", self.enable_lpf)):
            value = getattr(self, name)
            if enabled and not 0 < value < nyquist:
                raise InvalidArgument(f"{name} must be in (0, {nyquist}) Hz, got {value}")
        if not VOLUME_DB_MIN <= self.initial_volume_db <= VOLUME_DB_MAX:
            raise InvalidArgument(f"Initial volume must be in [{VOLUME_DB_MIN}, {VOLUME_DB_MAX}] dB")
        if not VOLUME_MIN <= self.initial_volume <= VOLUME_MAX:
            raise InvalidArgument(f"Initial volume must be in [{VOLUME_MIN}, {VOLUME_MAX}] %")

    @property
    def initial_gain(self) -> float:
        """Linear gain for the configured start volume."""
        if self.volume_unit_db:
            return 10 ** (self.initial_volume_db / 20)
        return self.initial_volume / VOLUME_MAX

    @classmethod
    def from_defaults(cls, defaults: Mapping[str, Any], sample_rate: int) -> PlayerSettings:
        """
        Build player settings from the host's default configuration.

        Filter cutoffs are clamped into [10 Hz, Nyquist) so the designer
        never sees an unusable value.
        """
        # Nudge the upper clamp just below Nyquist, where a biquad is undefined
        upper = math.nextafter(sample_rate / 2, 0.0)

        def flag(key: str, default: bool) -> bool:
            value = defaults.get(key)
            return value if isinstance(value, bool) else default

        return cls(
            sample_rate=sample_rate,
            enable_hpf=flag("enableHpf", False),
            hpf_frequency=limited_value_in_range(
                defaults.get("hpfFrequency"), FILTER_FREQUENCY_MIN, upper,
                min(FILTER_FREQUENCY_HPF_DEFAULT, upper),
            ),
            enable_lpf=flag("enableLpf", False),
            lpf_frequency=limited_value_in_range(
                defaults.get("lpfFrequency"), FILTER_FREQUENCY_MIN, upper,
                min(FILTER_FREQUENCY_LPF_DEFAULT, upper),
            ),
            match_filter_frequency_to_spectrogram=flag("matchFilterFrequencyToSpectrogram", False),
            volume_unit_db=flag("volumeUnitDb", False),
            initial_volume_db=value_in_range(
                defaults.get("initialVolumeDb"), VOLUME_DB_MIN, VOLUME_DB_MAX, VOLUME_DB_MAX
            ),
            initial_volume=value_in_range(
                defaults.get("initialVolume"), VOLUME_MIN, VOLUME_MAX, VOLUME_MAX
            ),
        )
