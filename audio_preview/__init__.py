"""
Audio Preview - analysis and rendering-data engine for an audio preview.

Decoded PCM in, spectrogram matrices, axis ticks, colors, playback
filter coefficients and WAV bytes out.
"""

__version__ = "1.0.0"
