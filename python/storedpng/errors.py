# python/storedpng/errors.py
# Exception hierarchy raised by the stored-DEFLATE PNG encoder
# Exists so callers can tell bad input apart from buffer and sink failures
# RELEVANT FILES: python/storedpng/encoder.py, python/storedpng/sink.py, tests/test_errors.py

from __future__ import annotations


class EncodeError(RuntimeError):
    """Base class for every failure of an encode call.

    All encode errors are terminal: no partial output is returned and no
    partially written file is left behind.
    """


class InvalidDimensions(EncodeError, ValueError):
    """Width or height is not a positive integer, or the pixel count is wrong."""


class SizeOverflow(EncodeError, OverflowError):
    """A chunk length or image dimension does not fit a PNG 4-byte field."""


class AllocationFailure(EncodeError, MemoryError):
    """The staging buffer could not grow."""


class SinkWriteFailure(EncodeError, OSError):
    """The destination could not be created or written at the required size."""


__all__ = [
    "EncodeError",
    "InvalidDimensions",
    "SizeOverflow",
    "AllocationFailure",
    "SinkWriteFailure",
]
