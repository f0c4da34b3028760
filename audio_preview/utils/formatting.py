"""
Formatting functions for display.

Converts numerical values to readable strings.
"""

import math


def format_tick(value: float, digits: int) -> str:
    """
    Format an axis tick with a fixed number of decimals.

    Args:
        value: Tick value
        digits: Decimal digits (from round_to_nearest_nice_number)

    Returns:
        Formatted string (e.g. "0.25" or "10"); never "-0"
    """
    text = f"{value:.{max(0, digits)}f}"
    if text.startswith("-") and float(text) == 0:
        return text[1:]
    return text


def format_frequency_tick(hz: float) -> str:
    """Frequency tick label: truncated integer Hz (e.g. "1234")."""
    return str(math.trunc(hz))


def format_sample_rate(sr: int) -> str:
    """Format sample rate with thousands separator (e.g. "44,100 Hz")."""
    return f"{sr:,} Hz"


def format_channels(num_channels: int) -> str:
    """
    Format channel count.

    Returns:
        "1 ch (mono)", "2 ch (stereo)" or "N ch (unsupported)"
    """
    if num_channels == 1:
        layout = "mono"
    elif num_channels == 2:
        layout = "stereo"
    else:
        layout = "unsupported"
    return f"{num_channels} ch ({layout})"


def format_duration(seconds: float) -> str:
    """Duration with one decimal (e.g. "3.5 s")."""
    return f"{seconds:,.1f} s"


def format_file_size(num_bytes: int) -> str:
    """File size with thousands separator (e.g. "1,234 bytes")."""
    return f"{num_bytes:,} bytes"
