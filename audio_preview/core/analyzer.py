"""
Analysis Pipeline

Turns an AudioBuffer plus AnalyzeSettings into everything a renderer
needs: a normalized spectrogram, its color image and the axis ticks.

Pipeline per channel:
1. STFT magnitude spectrogram of [min_time, max_time)
2. Linear/log: crop to [min_frequency, max_frequency]
   Mel: project onto mel_filter_num triangular bands
3. Normalize to the global maximum (1.0 = 0 dB)
4. Colorize with the displayed dynamic range
"""

import logging
from dataclasses import dataclass

import numpy as np

from .audio_io import AudioBuffer
from .axis import AxisTick, amplitude_axis_ticks, frequency_axis_ticks, time_axis_ticks
from .colormap import colorize
from .mel import project_spectrogram
from .settings import AnalyzeSettings, FrequencyScale
from .signal_processing import compute_peak, compute_rms, waveform_points
from .spectral import SpectrogramResult, compute_spectrogram

logger = logging.getLogger(__name__)


@dataclass
class ChannelAnalysis:
    """
    Rendering data of one channel's spectrogram.

    Attributes:
        channel: Channel index
        spectrogram: Normalized magnitudes (1.0 = loudest cell), cropped
            to the frequency range or projected onto mel bands
        image: RGB image, Shape: (time_frames, bins, 3)
        frequency_ticks: Gridlines of the frequency axis
        time_ticks: Gridlines of the time axis
    """
    channel: int
    spectrogram: SpectrogramResult
    image: np.ndarray
    frequency_ticks: list[AxisTick]
    time_ticks: list[AxisTick]


@dataclass
class WaveformData:
    """
    Rendering data of one channel's waveform.

    Attributes:
        channel: Channel index
        times: Time of each plotted point in seconds
        values: Sample value of each plotted point
        amplitude_ticks: Gridlines of the amplitude axis
        time_ticks: Gridlines of the time axis
        peak_db: Peak level of the selected range in dBFS
        rms_db: RMS level of the selected range in dBFS
    """
    channel: int
    times: np.ndarray
    values: np.ndarray
    amplitude_ticks: list[AxisTick]
    time_ticks: list[AxisTick]
    peak_db: float
    rms_db: float


def compute_channel_spectrogram(
    buffer: AudioBuffer,
    channel: int,
    settings: AnalyzeSettings,
) -> SpectrogramResult:
    """Raw (un-normalized, uncropped) spectrogram of one buffer channel."""
    return compute_spectrogram(buffer.get_channel_data(channel), settings, buffer.sample_rate)


def spectrogram_for_display(
    samples: np.ndarray,
    settings: AnalyzeSettings,
    sample_rate: int,
) -> SpectrogramResult:
    """
    Spectrogram of one channel, reduced to the displayed frequency range
    and normalized to its maximum.
    """
    settings.validate_for(sample_rate)
    result = compute_spectrogram(samples, settings, sample_rate)

    if settings.frequency_scale is FrequencyScale.MEL:
        result = project_spectrogram(result, settings)
    else:
        result = result.crop_frequency(settings.effective_min_frequency(), settings.max_frequency)

    return result.normalized()


def analyze_channel(
    buffer: AudioBuffer,
    channel: int,
    settings: AnalyzeSettings,
) -> ChannelAnalysis:
    """
    Full spectrogram analysis of one channel.

    Args:
        buffer: Decoded audio
        channel: Channel index
        settings: Analysis settings

    Returns:
        ChannelAnalysis; an empty time range gives an empty image but
        still a full set of ticks

    Raises:
        InvalidArgument: Channel out of range or settings inconsistent
            with the audio (frequency above Nyquist, time past the end)
    """
    settings.validate_for(buffer.sample_rate, buffer.duration)
    samples = buffer.get_channel_data(channel)

    spectrogram = spectrogram_for_display(samples, settings, buffer.sample_rate)
    image = colorize(spectrogram.magnitude, settings.spectrogram_amplitude_range)

    logger.debug(
        "Channel %d: %s spectrogram %d x %d",
        channel, settings.frequency_scale.name.lower(), spectrogram.num_frames, spectrogram.num_bins,
    )

    return ChannelAnalysis(
        channel=channel,
        spectrogram=spectrogram,
        image=image,
        frequency_ticks=frequency_axis_ticks(settings),
        time_ticks=time_axis_ticks(settings.min_time, settings.max_time),
    )


def analyze_buffer(buffer: AudioBuffer, settings: AnalyzeSettings) -> list[ChannelAnalysis]:
    """Spectrogram analysis of every channel."""
    return [analyze_channel(buffer, ch, settings) for ch in range(buffer.number_of_channels)]


def analyze_waveform(
    buffer: AudioBuffer,
    channel: int,
    settings: AnalyzeSettings,
    waveform_vertical_scale: float = 1.0,
) -> WaveformData:
    """Waveform points, levels and axis ticks of one channel's selection."""
    settings.validate_for(buffer.sample_rate, buffer.duration)
    samples = buffer.get_channel_data(channel)
    times, values = waveform_points(samples, buffer.sample_rate, settings.min_time, settings.max_time)

    start = buffer.time_to_sample(settings.min_time)
    end = max(start, buffer.time_to_sample(settings.max_time))
    selection = samples[start:end]

    return WaveformData(
        channel=channel,
        times=times,
        values=values,
        amplitude_ticks=amplitude_axis_ticks(
            settings.min_amplitude, settings.max_amplitude, waveform_vertical_scale
        ),
        time_ticks=time_axis_ticks(settings.min_time, settings.max_time),
        peak_db=compute_peak(selection, as_db=True),
        rms_db=compute_rms(selection, as_db=True),
    )
