"""Exceptions raised by the tracing pipeline.

Every failure a caller can act on derives from ``TraceError`` and carries a
human-readable message suitable for showing to a user as-is.
"""


class TraceError(Exception):
    """Base class for tracing failures."""


class DecodeError(TraceError):
    """The input bytes could not be decoded as an image."""


class ConfigError(TraceError, ValueError):
    """An option value is not one of the accepted choices."""


class KeyColorError(TraceError):
    """No candidate key color is free in the image."""
