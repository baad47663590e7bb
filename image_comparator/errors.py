"""
Exceptions raised by the comparison core.
"""


class ComparisonError(Exception):
    """Base class for image comparison failures."""


class DecodeFailure(ComparisonError):
    """A source image could not be read or decoded into pixels."""


class InvalidDimensions(ComparisonError, ValueError):
    """Zero-area input reached the compare engine."""


class BufferLengthMismatch(ComparisonError, ValueError):
    """Pixel buffers differ in length or do not match their declared size."""
