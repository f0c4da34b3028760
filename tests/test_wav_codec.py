"""
Tests für WAV-Kodierung und -Dekodierung.
"""

import io
import struct

import pytest
import numpy as np
import soundfile as sf

from audio_preview.core.errors import InvalidArgument, MalformedContainer, UnsupportedFormat
from audio_preview.core.wav_codec import (
    HEADER_SIZE,
    decode_wav,
    encode_wav,
    read_wav_format,
)


def _sine(freq, sr, n, amplitude=0.8):
    t = np.arange(n) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def _chunk(chunk_id, body):
    pad = b"\x00" if len(body) % 2 else b""
    return struct.pack("<4sI", chunk_id, len(body)) + body + pad


def _fmt_chunk(channels=1, sr=8000, bits=16, tag=1):
    block = channels * bits // 8
    return _chunk(b"fmt ", struct.pack("<HHIIHH", tag, channels, sr, sr * block, block, bits))


def _riff(*chunks):
    body = b"WAVE" + b"".join(chunks)
    return struct.pack("<4sI", b"RIFF", len(body)) + body


class TestHeader:
    """Tests für den kanonischen 44-Byte-Header."""

    def test_layout(self):
        """Magics, Größen und fmt-Felder stehen an festen Offsets."""
        data = encode_wav([np.zeros(100), np.zeros(100)], 44100, 16)

        assert data[0:4] == b"RIFF"
        assert struct.unpack_from("<I", data, 4)[0] == len(data) - 8
        assert data[8:12] == b"WAVE"
        assert data[12:16] == b"fmt "
        assert struct.unpack_from("<I", data, 16)[0] == 16

        tag, channels, sr, byte_rate, block_align, bits = struct.unpack_from("<HHIIHH", data, 20)
        assert (tag, channels, sr, bits) == (1, 2, 44100, 16)
        assert block_align == 4
        assert byte_rate == 44100 * 4

        assert data[36:40] == b"data"
        assert struct.unpack_from("<I", data, 40)[0] == 100 * 4
        assert len(data) == HEADER_SIZE + 400

    def test_odd_data_size_is_padded(self):
        """Ungerade Datengröße bekommt ein Füllbyte."""
        data = encode_wav([np.zeros(3)], 8000, 8)

        assert struct.unpack_from("<I", data, 40)[0] == 3
        assert len(data) == HEADER_SIZE + 4
        assert struct.unpack_from("<I", data, 4)[0] == len(data) - 8

    def test_sample_encoding(self):
        """Quantisierung: round(x * 2^15), geklemmt."""
        data = encode_wav([np.array([0.0, 0.5, -0.5, 1.0, -1.0, 2.0])], 44100, 16)
        values = np.frombuffer(data[HEADER_SIZE:], dtype="<i2")

        np.testing.assert_array_equal(values, [0, 16384, -16384, 32767, -32768, 32767])

    def test_eight_bit_is_unsigned(self):
        """8 Bit: vorzeichenlos mit Offset 128."""
        data = encode_wav([np.array([0.0, -1.0, 1.0, 0.5])], 8000, 8)

        assert list(data[HEADER_SIZE:]) == [128, 0, 255, 192]

    def test_interleaving(self):
        """Kanäle werden frameweise verschachtelt."""
        left = np.array([0.25, 0.5])
        right = np.array([-0.25, -0.5])
        data = encode_wav([left, right], 44100, 16)
        values = np.frombuffer(data[HEADER_SIZE:], dtype="<i2")

        np.testing.assert_array_equal(values, [8192, -8192, 16384, -16384])


class TestRoundTrip:
    """Tests für Kodieren und Dekodieren."""

    @pytest.mark.parametrize("sr", [44100, 48000])
    @pytest.mark.parametrize("num_channels", [1, 2])
    def test_within_one_lsb(self, sr, num_channels):
        """Abweichung höchstens 1 LSB bei 16 Bit."""
        channels = [_sine(440 * (i + 1), sr, sr // 4) for i in range(num_channels)]

        decoded, decoded_sr = decode_wav(encode_wav(channels, sr, 16))

        assert decoded_sr == sr
        assert len(decoded) == num_channels
        for original, result in zip(channels, decoded):
            assert result.dtype == np.float32
            assert np.max(np.abs(result - original)) <= 1 / 32768

    @pytest.mark.parametrize("bits", [8, 24, 32])
    def test_other_bit_depths(self, bits):
        """8, 24 und 32 Bit werden ebenfalls unterstützt."""
        original = _sine(1000, 22050, 2001)

        decoded, _ = decode_wav(encode_wav([original], 22050, bits))

        assert len(decoded[0]) == 2001
        assert np.max(np.abs(decoded[0] - original)) <= 1 / 2 ** (bits - 1) + 1e-6

    def test_empty_channel(self):
        """Null Samples ergeben einen gültigen, leeren Container."""
        decoded, sr = decode_wav(encode_wav([np.zeros(0)], 44100))

        assert sr == 44100
        assert len(decoded[0]) == 0

    def test_soundfile_reads_output(self):
        """Die Ausgabe ist für libsndfile eine gültige WAV-Datei."""
        original = _sine(440, 48000, 4800)

        data, sr = sf.read(io.BytesIO(encode_wav([original, -original], 48000, 16)))

        assert sr == 48000
        assert data.shape == (4800, 2)
        np.testing.assert_allclose(data[:, 0], original, atol=2 / 32768)
        np.testing.assert_allclose(data[:, 1], -original, atol=2 / 32768)

    def test_decode_soundfile_output(self):
        """Von libsndfile geschriebene 24-Bit-Dateien werden gelesen."""
        original = _sine(440, 44100, 1000, amplitude=0.5)
        buffer = io.BytesIO()
        sf.write(buffer, original, 44100, format="WAV", subtype="PCM_24")

        decoded, sr = decode_wav(buffer.getvalue())

        assert sr == 44100
        np.testing.assert_allclose(decoded[0], original, atol=1e-5)


class TestDecodeChunks:
    """Tests für das Durchlaufen der Chunk-Liste."""

    def test_skips_unknown_chunks(self):
        """LIST-Chunks vor und nach den Daten werden übersprungen."""
        samples = np.array([100, -100, 2000], dtype="<i2").tobytes()
        data = _riff(
            _fmt_chunk(),
            _chunk(b"LIST", b"INFOtest!"),
            _chunk(b"data", samples),
            _chunk(b"junk", b"\x00" * 7),
        )

        channels, sr = decode_wav(data)

        assert sr == 8000
        np.testing.assert_allclose(channels[0], np.array([100, -100, 2000]) / 32768)

    def test_extensible_pcm(self):
        """WAVE_FORMAT_EXTENSIBLE mit PCM-Subformat wird akzeptiert."""
        guid_tail = b"\x00\x00\x00\x00\x10\x00\x80\x00\x00\xaa\x00\x38\x9b\x71"
        fmt_body = struct.pack("<HHIIHH", 0xFFFE, 1, 8000, 16000, 2, 16)
        fmt_body += struct.pack("<HHIH", 22, 16, 4, 1) + guid_tail
        data = _riff(_chunk(b"fmt ", fmt_body), _chunk(b"data", b"\x00\x40"))

        channels, _ = decode_wav(data)

        assert channels[0][0] == pytest.approx(0.5)

    def test_extensible_float_rejected(self):
        """Extensible mit Float-Subformat wird abgelehnt."""
        guid_tail = b"\x00\x00\x00\x00\x10\x00\x80\x00\x00\xaa\x00\x38\x9b\x71"
        fmt_body = struct.pack("<HHIIHH", 0xFFFE, 1, 8000, 32000, 4, 32)
        fmt_body += struct.pack("<HHIH", 22, 32, 4, 3) + guid_tail
        data = _riff(_chunk(b"fmt ", fmt_body), _chunk(b"data", b"\x00" * 4))

        with pytest.raises(UnsupportedFormat):
            decode_wav(data)

    def test_read_format(self):
        """Formatinformation ohne Dekodierung der Samples."""
        fmt = read_wav_format(encode_wav([np.zeros(441), np.zeros(441)], 44100, 24))

        assert fmt.num_channels == 2
        assert fmt.bits_per_sample == 24
        assert fmt.num_frames == 441
        assert fmt.duration_seconds == pytest.approx(0.01)
        assert fmt.data_offset == HEADER_SIZE


class TestMalformed:
    """Tests für fehlerhafte Container."""

    def test_too_short(self):
        """Weniger als 12 Bytes."""
        with pytest.raises(MalformedContainer):
            decode_wav(b"RIFF")

    def test_bad_magic(self):
        """Falsche Magic-Bytes."""
        data = bytearray(encode_wav([np.zeros(10)], 8000))
        data[0:4] = b"RIFX"

        with pytest.raises(MalformedContainer):
            decode_wav(bytes(data))

    def test_riff_size_mismatch(self):
        """RIFF-Größe passt nicht zur Pufferlänge."""
        data = encode_wav([np.zeros(10)], 8000) + b"\x00\x00"

        with pytest.raises(MalformedContainer):
            decode_wav(data)

    def test_truncated(self):
        """Abgeschnittene Datei (Größe im Header angepasst)."""
        data = bytearray(encode_wav([np.zeros(100)], 8000)[:-50])
        struct.pack_into("<I", data, 4, len(data) - 8)

        with pytest.raises(MalformedContainer):
            decode_wav(bytes(data))

    def test_missing_data_chunk(self):
        """fmt ohne data."""
        with pytest.raises(MalformedContainer):
            decode_wav(_riff(_fmt_chunk()))

    def test_missing_fmt_chunk(self):
        """data ohne fmt."""
        with pytest.raises(MalformedContainer):
            decode_wav(_riff(_chunk(b"data", b"\x00\x00")))

    def test_non_pcm_rejected(self):
        """IEEE-Float (Tag 3) ist nicht unterstützt."""
        data = _riff(_fmt_chunk(bits=32, tag=3), _chunk(b"data", b"\x00" * 4))

        with pytest.raises(UnsupportedFormat):
            decode_wav(data)

    def test_unsupported_is_malformed_subclass(self):
        """UnsupportedFormat ist auch ein MalformedContainer und ValueError."""
        assert issubclass(UnsupportedFormat, MalformedContainer)
        assert issubclass(MalformedContainer, ValueError)


class TestEncodeErrors:
    """Tests für ungültige Kodier-Parameter."""

    def test_no_channels(self):
        with pytest.raises(InvalidArgument):
            encode_wav([], 44100)

    def test_unequal_lengths(self):
        with pytest.raises(InvalidArgument):
            encode_wav([np.zeros(10), np.zeros(11)], 44100)

    @pytest.mark.parametrize("bits", [0, 12, 64])
    def test_unsupported_bit_depth(self, bits):
        with pytest.raises(InvalidArgument):
            encode_wav([np.zeros(10)], 44100, bits)

    def test_invalid_sample_rate(self):
        with pytest.raises(InvalidArgument):
            encode_wav([np.zeros(10)], 0)
