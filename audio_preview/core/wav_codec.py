"""
WAV Codec

Encodes per-channel float samples to a RIFF/WAVE PCM byte buffer and
decodes such buffers back.

Technical specification:
- Canonical 44-byte header: RIFF, size, WAVE, "fmt " (16 bytes, PCM=1),
  "data", size
- Interleaved little-endian integer samples
- Float -> int: clamp to [-1, 1], scale by 2^(bits-1), round, clip to
  the integer range (8-bit is unsigned with offset 128)
- Int -> float: divide by 2^(bits-1)
- Supported bit depths: 8, 16, 24, 32

Decoding walks the chunk list, skips unknown chunks (LIST, fact, ...)
and honors RIFF pad bytes. WAVE_FORMAT_EXTENSIBLE is accepted when its
sub-format is PCM.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .errors import InvalidArgument, MalformedContainer, UnsupportedFormat

logger = logging.getLogger(__name__)

WAVE_FORMAT_PCM = 0x0001
WAVE_FORMAT_EXTENSIBLE = 0xFFFE
SUPPORTED_BIT_DEPTHS = (8, 16, 24, 32)

HEADER_SIZE = 44
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_CHUNK = struct.Struct("<4sI")
_FMT = struct.Struct("<HHIIHH")


@dataclass(frozen=True)
class WavFormat:
    """
    Contents of the "fmt " chunk plus the data chunk location.

    Attributes:
        format_tag: 1 for PCM, 0xFFFE for extensible
        num_channels: Interleaved channel count
        sample_rate: Frames per second
        byte_rate: sample_rate * block_align
        block_align: Bytes per frame
        bits_per_sample: Bit depth
        data_offset: Byte offset of the sample data
        data_size: Byte length of the sample data
    """
    format_tag: int
    num_channels: int
    sample_rate: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_offset: int
    data_size: int

    @property
    def num_frames(self) -> int:
        return self.data_size // self.block_align

    @property
    def duration_seconds(self) -> float:
        return self.num_frames / self.sample_rate


def encode_wav(
    channels: Sequence[np.ndarray],
    sample_rate: int,
    bit_depth: int = 16,
) -> bytes:
    """
    Encode channels into a WAV file image.

    Args:
        channels: One 1D float sample array per channel, equal lengths
        sample_rate: Sample rate in Hz
        bit_depth: 8, 16, 24 or 32

    Returns:
        Complete RIFF/WAVE byte buffer

    Raises:
        InvalidArgument: No channels, unequal lengths, non-1D channel,
            sample rate <= 0 or unsupported bit depth
    """
    if len(channels) == 0:
        raise InvalidArgument("At least one channel is required")
    if sample_rate <= 0:
        raise InvalidArgument(f"Sample rate must be positive, got {sample_rate}")
    if bit_depth not in SUPPORTED_BIT_DEPTHS:
        raise InvalidArgument(f"Unsupported bit depth: {bit_depth}")

    arrays = [np.asarray(ch, dtype=np.float64) for ch in channels]
    if any(a.ndim != 1 for a in arrays):
        raise InvalidArgument("Each channel must be a 1D sample array")
    if len({len(a) for a in arrays}) != 1:
        raise InvalidArgument("All channels must have the same length")

    num_channels = len(arrays)
    # (frames, channels) in C order is the interleaved layout
    frames = np.clip(np.stack(arrays, axis=1), -1.0, 1.0)
    payload = _quantize(frames, bit_depth)

    block_align = num_channels * bit_depth // 8
    data_size = len(payload)
    pad = data_size & 1

    header = _HEADER.pack(
        b"RIFF",
        HEADER_SIZE - 8 + data_size + pad,
        b"WAVE",
        b"fmt ",
        16,
        WAVE_FORMAT_PCM,
        num_channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        bit_depth,
        b"data",
        data_size,
    )
    logger.debug(
        "Encoded WAV: %d ch, %d Hz, %d bit, %d frames",
        num_channels, sample_rate, bit_depth, frames.shape[0],
    )
    return header + payload + b"\x00" * pad


def _quantize(frames: np.ndarray, bit_depth: int) -> bytes:
    scale = float(2 ** (bit_depth - 1))
    ints = np.round(frames * scale)

    if bit_depth == 8:
        return np.clip(ints + 128, 0, 255).astype(np.uint8).tobytes()

    ints = np.clip(ints, -scale, scale - 1)
    if bit_depth == 16:
        return ints.astype("<i2").tobytes()
    if bit_depth == 32:
        return ints.astype("<i4").tobytes()

    # 24 bit: low three bytes of each little-endian int32
    as_bytes = ints.astype("<i4").reshape(-1, 1).view(np.uint8)
    return as_bytes[:, :3].tobytes()


def read_wav_format(data: bytes) -> WavFormat:
    """
    Validate the container and locate fmt/data chunks.

    Raises:
        MalformedContainer: Bad magic, RIFF size not matching the buffer,
            truncated chunk, missing fmt/data chunk, inconsistent block
            alignment or partial trailing frame
        UnsupportedFormat: Non-PCM encoding or unsupported bit depth
    """
    data = bytes(data)
    if len(data) < 12:
        raise MalformedContainer(f"Buffer too short for a RIFF header ({len(data)} bytes)")

    magic, riff_size, wave = struct.unpack_from("<4sI4s", data, 0)
    if magic != b"RIFF" or wave != b"WAVE":
        raise MalformedContainer("Missing RIFF/WAVE magic bytes")
    if riff_size + 8 != len(data):
        raise MalformedContainer(
            f"RIFF size {riff_size} does not match buffer length {len(data)}"
        )

    fmt = None
    data_chunk = None
    offset = 12
    end = len(data)
    while offset < end:
        if offset + _CHUNK.size > end:
            raise MalformedContainer(f"Truncated chunk header at byte {offset}")
        chunk_id, chunk_size = _CHUNK.unpack_from(data, offset)
        body = offset + _CHUNK.size
        if body + chunk_size > end:
            raise MalformedContainer(
                f"Chunk {chunk_id!r} declares {chunk_size} bytes, only {end - body} available"
            )

        if chunk_id == b"fmt ":
            if chunk_size < _FMT.size:
                raise MalformedContainer(f"fmt chunk too short ({chunk_size} bytes)")
            fmt = _FMT.unpack_from(data, body)
            if fmt[0] == WAVE_FORMAT_EXTENSIBLE:
                # cbSize(2) validBits(2) channelMask(4) then the sub-format GUID
                if chunk_size < 40:
                    raise MalformedContainer("Extensible fmt chunk too short")
                sub_format = struct.unpack_from("<H", data, body + 24)[0]
                if sub_format != WAVE_FORMAT_PCM:
                    raise UnsupportedFormat(f"Unsupported extensible sub-format {sub_format:#06x}")
        elif chunk_id == b"data":
            data_chunk = (body, chunk_size)
        else:
            logger.debug("Skipping WAV chunk %r (%d bytes)", chunk_id, chunk_size)

        offset = body + chunk_size + (chunk_size & 1)

    if fmt is None:
        raise MalformedContainer("Missing fmt chunk")
    if data_chunk is None:
        raise MalformedContainer("Missing data chunk")

    format_tag, num_channels, sample_rate, byte_rate, block_align, bits = fmt
    if format_tag not in (WAVE_FORMAT_PCM, WAVE_FORMAT_EXTENSIBLE):
        raise UnsupportedFormat(f"Unsupported format tag {format_tag:#06x} (only PCM)")
    if bits not in SUPPORTED_BIT_DEPTHS:
        raise UnsupportedFormat(f"Unsupported bit depth: {bits}")
    if num_channels < 1 or sample_rate < 1:
        raise MalformedContainer("Channel count and sample rate must be positive")
    if block_align != num_channels * bits // 8:
        raise MalformedContainer(
            f"Block align {block_align} inconsistent with {num_channels} ch x {bits} bit"
        )
    data_offset, data_size = data_chunk
    if data_size % block_align != 0:
        raise MalformedContainer(
            f"Data size {data_size} is not a multiple of block align {block_align}"
        )

    return WavFormat(
        format_tag=format_tag,
        num_channels=num_channels,
        sample_rate=sample_rate,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits,
        data_offset=data_offset,
        data_size=data_size,
    )


def decode_wav(data: bytes) -> tuple[list[np.ndarray], int]:
    """
    Decode a WAV file image.

    Args:
        data: Complete RIFF/WAVE byte buffer

    Returns:
        Tuple of (list of float32 channel arrays in [-1, 1], sample rate)

    Raises:
        MalformedContainer: See read_wav_format
        UnsupportedFormat: Non-PCM encoding or unsupported bit depth
    """
    data = bytes(data)
    fmt = read_wav_format(data)
    raw = data[fmt.data_offset:fmt.data_offset + fmt.data_size]
    bits = fmt.bits_per_sample

    if bits == 8:
        values = (np.frombuffer(raw, dtype=np.uint8).astype(np.float64) - 128) / 128.0
    elif bits == 16:
        values = np.frombuffer(raw, dtype="<i2") / 32768.0
    elif bits == 32:
        values = np.frombuffer(raw, dtype="<i4") / 2147483648.0
    else:
        triples = np.frombuffer(raw, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        ints = triples[:, 0] | (triples[:, 1] << 8) | (triples[:, 2] << 16)
        ints = (ints ^ 0x800000) - 0x800000  # sign-extend
        values = ints / 8388608.0

    frames = values.reshape(-1, fmt.num_channels)
    channels = [frames[:, ch].astype(np.float32) for ch in range(fmt.num_channels)]

    logger.debug(
        "Decoded WAV: %d ch, %d Hz, %d bit, %d frames",
        fmt.num_channels, fmt.sample_rate, bits, fmt.num_frames,
    )
    return channels, fmt.sample_rate
