"""
Error types of the analysis engine.

All errors derive from ValueError, so callers that already guard
parameter problems with ``except ValueError`` keep working.
"""


class InvalidArgument(ValueError):
    """Out-of-range, non-power-of-two or otherwise unusable parameter."""


class MalformedContainer(ValueError):
    """RIFF/WAVE buffer whose magic bytes or chunk sizes are inconsistent."""


class UnsupportedFormat(MalformedContainer):
    """Well-formed WAVE buffer in an encoding the codec does not handle."""
