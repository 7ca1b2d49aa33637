"""
Exception types raised by the Open Canvas engine.

Every error derives from ImageEngineError so callers can catch engine
failures in one place. Errors that describe a bad argument also derive
from ValueError.
"""


class ImageEngineError(Exception):
    """Base class for all engine errors."""


class InvalidBufferError(ImageEngineError, ValueError):
    """Raised when a raster buffer's pixel length does not match its dimensions."""


class UnsupportedAngleError(ImageEngineError, ValueError):
    """Raised when a rotation is not a multiple of 90 degrees."""


class ImageDecodeError(ImageEngineError, ValueError):
    """Raised when source image bytes cannot be accepted or decoded."""


class EncodingError(ImageEngineError):
    """Raised when a buffer cannot be encoded into an image blob."""
