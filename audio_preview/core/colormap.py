"""
Amplitude Color Mapping

Maps spectrogram magnitudes to display colors.

Technical assumptions:
- Input magnitudes are linear and already normalized (1.0 = 0 dB)
- dB value 20 * log10(magnitude), clamped to [-range, 0]
- Gradient (quiet -> loud): black, navy, purple, magenta, salmon,
  yellow, white in six equal segments
- Every RGB component is non-decreasing along the gradient, so color
  is monotonic in magnitude
- Components are floored to integers, as the canvas expects
"""

from dataclasses import dataclass

import numpy as np

from .errors import InvalidArgument

# Gradient anchors from level 0.0 (silence) to 1.0 (full scale)
GRADIENT_ANCHORS = np.array([
    (0, 0, 0),
    (0, 0, 125),
    (125, 0, 125),
    (255, 0, 125),
    (255, 125, 125),
    (255, 255, 125),
    (255, 255, 255),
], dtype=np.float64)

_SEGMENTS = len(GRADIENT_ANCHORS) - 1


@dataclass(frozen=True)
class Color:
    """RGB display color plus the normalized level it was derived from."""
    r: int
    g: int
    b: int
    level: float

    @property
    def rgb(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)

    @property
    def css(self) -> str:
        """CSS color string, e.g. "rgb(255,125,125)"."""
        return f"rgb({self.r},{self.g},{self.b})"


def _check_range(dynamic_range_db: float) -> None:
    if not dynamic_range_db > 0:
        raise InvalidArgument(f"Dynamic range must be a positive dB span, got {dynamic_range_db}")


def normalize_level(magnitude, dynamic_range_db: float):
    """
    Normalized display level in [0, 1].

    0.0 at or below -dynamic_range_db (and for magnitude <= 0),
    1.0 at or above 0 dB. Accepts scalars and arrays.
    """
    _check_range(dynamic_range_db)
    mag = np.asarray(magnitude, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        db = np.where(mag > 0, 20 * np.log10(np.where(mag > 0, mag, 1.0)), -dynamic_range_db)
    level = (np.clip(db, -dynamic_range_db, 0.0) + dynamic_range_db) / dynamic_range_db
    if level.ndim == 0:
        return float(level)
    return level


def _gradient(level: np.ndarray) -> np.ndarray:
    """Piecewise-linear gradient lookup, returns floored uint8 RGB."""
    scaled = np.asarray(level) * _SEGMENTS
    segment = np.minimum(np.floor(scaled).astype(int), _SEGMENTS - 1)
    fraction = (scaled - segment)[..., np.newaxis]
    lo = GRADIENT_ANCHORS[segment]
    hi = GRADIENT_ANCHORS[segment + 1]
    return np.floor(lo + (hi - lo) * fraction).astype(np.uint8)


def color_for(magnitude: float, dynamic_range_db: float) -> Color:
    """
    Color of one spectrogram cell.

    Args:
        magnitude: Normalized linear magnitude (1.0 = 0 dB)
        dynamic_range_db: Displayed dynamic range in dB (> 0)

    Returns:
        Color; identical inputs always give identical colors

    Raises:
        InvalidArgument: dynamic_range_db <= 0
    """
    level = normalize_level(magnitude, dynamic_range_db)
    r, g, b = (int(c) for c in _gradient(np.float64(level)))
    return Color(r=r, g=g, b=b, level=level)


def colorize(magnitude: np.ndarray, dynamic_range_db: float) -> np.ndarray:
    """
    Color a whole matrix at once.

    Args:
        magnitude: Normalized magnitudes, Shape: (time_frames, bins)
        dynamic_range_db: Displayed dynamic range in dB (> 0)

    Returns:
        uint8 RGB image, Shape: (time_frames, bins, 3)
    """
    level = normalize_level(np.asarray(magnitude, dtype=np.float64), dynamic_range_db)
    return _gradient(np.asarray(level))
