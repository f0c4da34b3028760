"""
Utility module for Audio Preview.

Contains label formatting helpers used by the core and by hosts.
"""

from .formatting import (
    format_tick,
    format_frequency_tick,
    format_sample_rate,
    format_channels,
    format_duration,
    format_file_size,
)

__all__ = [
    "format_tick",
    "format_frequency_tick",
    "format_sample_rate",
    "format_channels",
    "format_duration",
    "format_file_size",
]
