"""
Audio I/O Module

Holds decoded audio as per-channel float arrays and implements the
cut/export path.

Technical assumptions:
- Decoding of compressed formats is done by the host; load_audio()
  reads WAV files only, via soundfile (libsndfile)
- Channel data is float32, one read-only 1D array per channel
- Exported cuts are 16-bit PCM WAV produced by wav_codec
- Time -> sample index conversion floors (floor(t * sample_rate))
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import soundfile as sf

from .errors import InvalidArgument, UnsupportedFormat
from .wav_codec import encode_wav
from ..utils.formatting import (
    format_channels,
    format_duration,
    format_file_size,
    format_sample_rate,
)

logger = logging.getLogger(__name__)

# libsndfile major formats of RIFF/WAVE files
_WAV_FORMATS = ("WAV", "WAVEX")

_FORBIDDEN_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]+')


@dataclass(frozen=True)
class AudioInfo:
    """File facts shown next to the preview."""
    encoding: str
    format: str
    num_channels: int
    sample_rate: int
    file_size: int
    duration: Optional[float] = None

    def as_rows(self) -> list[tuple[str, str]]:
        """(name, value) pairs for an info table."""
        rows = [
            ("encoding", self.encoding),
            ("format", self.format),
            ("number_of_channel", format_channels(self.num_channels)),
            ("sample_rate", format_sample_rate(self.sample_rate)),
            ("file_size", format_file_size(self.file_size)),
        ]
        if self.duration is not None:
            rows.append(("duration", format_duration(self.duration)))
        return rows


class AudioBuffer:
    """
    Decoded audio: one float32 array per channel plus sample rate.

    The buffer never modifies its data; arrays handed out are read-only
    views; cut() returns copies.
    """

    def __init__(self, channel_data: Sequence[np.ndarray], sample_rate: int):
        """
        Initialize buffer.

        Args:
            channel_data: One 1D sample array per channel, equal lengths
            sample_rate: Sample rate in Hz

        Raises:
            InvalidArgument: No channels, non-1D or unequal channels,
                sample rate <= 0
        """
        if sample_rate <= 0:
            raise InvalidArgument(f"Sample rate must be positive, got {sample_rate}")
        if len(channel_data) == 0:
            raise InvalidArgument("At least one channel is required")

        channels = []
        for ch in channel_data:
            arr = np.array(ch, dtype=np.float32)
            if arr.ndim != 1:
                raise InvalidArgument("Each channel must be a 1D sample array")
            arr.setflags(write=False)
            channels.append(arr)
        if len({len(ch) for ch in channels}) != 1:
            raise InvalidArgument("All channels must have the same length")

        self._channels = tuple(channels)
        self.sample_rate = int(sample_rate)

    @classmethod
    def from_array(cls, data: np.ndarray, sample_rate: int) -> "AudioBuffer":
        """Build from a (samples,) or (samples, channels) array."""
        data = np.asarray(data)
        if data.ndim == 1:
            return cls([data], sample_rate)
        if data.ndim == 2:
            return cls([data[:, ch] for ch in range(data.shape[1])], sample_rate)
        raise InvalidArgument("Audio array must be 1D or 2D")

    @property
    def number_of_channels(self) -> int:
        return len(self._channels)

    @property
    def length(self) -> int:
        """Samples per channel."""
        return len(self._channels[0])

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.length / self.sample_rate

    def get_channel_data(self, channel: int) -> np.ndarray:
        """
        Read-only samples of one channel.

        Raises:
            InvalidArgument: Channel index out of range
        """
        if not 0 <= channel < self.number_of_channels:
            raise InvalidArgument(
                f"Channel {channel} not available ({self.number_of_channels} channels)"
            )
        return self._channels[channel]

    def amplitude_range(self) -> tuple[float, float]:
        """Smallest and largest sample over all channels ((0, 0) when empty)."""
        if self.length == 0:
            return 0.0, 0.0
        return (
            float(min(np.min(ch) for ch in self._channels)),
            float(max(np.max(ch) for ch in self._channels)),
        )

    def time_to_sample(self, time_seconds: float) -> int:
        """Sample index of a time, clamped to [0, length]."""
        sample = int(np.floor(time_seconds * self.sample_rate))
        return max(0, min(sample, self.length))

    def sample_to_time(self, sample: int) -> float:
        """Convert sample index to time in seconds."""
        return sample / self.sample_rate

    def cut(self, min_time: float, max_time: float) -> list[np.ndarray]:
        """
        Copy of every channel between floor(min_time*sr) and floor(max_time*sr).

        An inverted range gives empty channels.
        """
        start = self.time_to_sample(min_time)
        end = max(start, self.time_to_sample(max_time))
        return [ch[start:end].copy() for ch in self._channels]


def load_audio(file_path: str | Path) -> AudioBuffer:
    """
    Read a WAV file into an AudioBuffer.

    Raises:
        FileNotFoundError: File does not exist
        ValueError: Format not readable by libsndfile
        UnsupportedFormat: Readable, but not a WAV container (FLAC, AIFF, ...)
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")

    try:
        with sf.SoundFile(path) as f:
            if f.format not in _WAV_FORMATS:
                raise UnsupportedFormat(f"Unsupported audio file {path.name}: {f.format} is not WAV")
            data = f.read(dtype="float32", always_2d=True)
            sample_rate = f.samplerate
    except sf.LibsndfileError as e:
        raise ValueError(f"Unsupported audio file {path.name}: {e}") from e

    logger.debug("Loaded %s: %d ch, %d Hz, %d frames", path, data.shape[1], sample_rate, data.shape[0])
    return AudioBuffer.from_array(data, sample_rate)


def read_audio_info(file_path: str | Path) -> AudioInfo:
    """File facts (encoding, container, channels, rate, size, duration)."""
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")
    info = sf.info(path)
    return AudioInfo(
        encoding=info.subtype,
        format=info.format,
        num_channels=info.channels,
        sample_rate=info.samplerate,
        file_size=path.stat().st_size,
        duration=info.duration,
    )


def default_cut_filename(now: Optional[datetime] = None) -> str:
    """cut_YYYYMMDD_HHMMSS (without extension)."""
    now = now or datetime.now()
    return f"cut_{now:%Y%m%d_%H%M%S}"


def sanitize_cut_filename(name: str, now: Optional[datetime] = None) -> str:
    """
    Turn user input into a safe .wav file name.

    Runs of characters that are illegal on common filesystems become a
    single "_"; an empty name falls back to default_cut_filename().
    """
    if not name:
        return default_cut_filename(now) + ".wav"
    return _FORBIDDEN_FILENAME_CHARS.sub("_", name) + ".wav"


def encode_cut(
    buffer: AudioBuffer,
    min_time: float,
    max_time: float,
    bit_depth: int = 16,
) -> bytes:
    """WAV bytes of the selected time range, all channels."""
    return encode_wav(buffer.cut(min_time, max_time), buffer.sample_rate, bit_depth)


def export_cut(
    buffer: AudioBuffer,
    min_time: float,
    max_time: float,
    directory: str | Path,
    filename: str = "",
) -> Path:
    """
    Write the selected time range to <directory>/<sanitized filename>.

    Returns:
        Path of the written file
    """
    path = Path(directory) / sanitize_cut_filename(filename)
    payload = encode_cut(buffer, min_time, max_time)
    path.write_bytes(payload)
    logger.info("Exported cut %.3f-%.3f s to %s (%d bytes)", min_time, max_time, path, len(payload))
    return path
