"""
Core DSP module - fully testable without GUI dependencies.

This module contains all signal processing logic:
- Window functions and STFT spectrograms
- Mel filterbank and frequency axis mapping
- Amplitude-to-color mapping
- Playback filter design (biquad HPF/LPF)
- WAV encode/decode and cut export
"""

from .errors import InvalidArgument, MalformedContainer, UnsupportedFormat
from .settings import (
    AnalyzeSettings,
    PlayerSettings,
    WindowFunction,
    FrequencyScale,
    FilterKind,
)
from .window import generate_window
from .spectral import SpectrogramResult, compute_spectrogram, frame_count
from .mel import hz_to_mel, mel_to_hz, mel_filterbank, project_frame, project_spectrogram
from .axis import (
    AxisTick,
    FrequencyAxis,
    round_to_nearest_nice_number,
    frequency_axis_ticks,
    time_axis_ticks,
    amplitude_axis_ticks,
)
from .colormap import Color, color_for, colorize
from .filters import (
    FilterCoefficients,
    design_high_pass,
    design_low_pass,
    playback_filter_chain,
)
from .wav_codec import encode_wav, decode_wav, read_wav_format
from .audio_io import AudioBuffer, load_audio, export_cut
from .analyzer import (
    ChannelAnalysis,
    WaveformData,
    compute_channel_spectrogram,
    analyze_channel,
    analyze_buffer,
    analyze_waveform,
)
from .recompute import SpectrogramRecomputer

__all__ = [
    "InvalidArgument",
    "MalformedContainer",
    "UnsupportedFormat",
    "AnalyzeSettings",
    "PlayerSettings",
    "WindowFunction",
    "FrequencyScale",
    "FilterKind",
    "generate_window",
    "SpectrogramResult",
    "compute_spectrogram",
    "frame_count",
    "hz_to_mel",
    "mel_to_hz",
    "mel_filterbank",
    "project_frame",
    "project_spectrogram",
    "AxisTick",
    "FrequencyAxis",
    "round_to_nearest_nice_number",
    "frequency_axis_ticks",
    "time_axis_ticks",
    "amplitude_axis_ticks",
    "Color",
    "color_for",
    "colorize",
    "FilterCoefficients",
    "design_high_pass",
    "design_low_pass",
    "playback_filter_chain",
    "encode_wav",
    "decode_wav",
    "read_wav_format",
    "AudioBuffer",
    "load_audio",
    "export_cut",
    "ChannelAnalysis",
    "WaveformData",
    "compute_channel_spectrogram",
    "analyze_channel",
    "analyze_buffer",
    "analyze_waveform",
    "SpectrogramRecomputer",
]
