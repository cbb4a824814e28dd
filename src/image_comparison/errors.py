"""Exceptions raised by the comparison engine.

ConfigurationError fails fast at engine construction; ArtifactIOError wraps
every failed read or write of a reference, mask, marked or difference image.
Size mismatches and stale masks are handled, not raised.
"""


class ComparisonError(Exception):
    """Base exception for all comparison engine errors."""

    pass


class ConfigurationError(ComparisonError, ValueError):
    """Invalid configuration (unknown algorithm, out-of-range tolerance)."""

    pass


class ArtifactIOError(ComparisonError, OSError):
    """A reference, mask or output image could not be read or written."""

    pass
