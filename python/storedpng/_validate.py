# python/storedpng/_validate.py
# Input guards shared by the encoder, config loader and CLI
# Exists to turn loose caller input into checked integers before any byte is staged
# RELEVANT FILES: python/storedpng/encoder.py, python/storedpng/config.py, tests/test_layout.py
from __future__ import annotations

from pathlib import Path
from typing import Tuple

from .errors import InvalidDimensions, SizeOverflow

# PNG four-byte unsigned integers are limited to 2**31 - 1
PNG_UINT31_MAX = 0x7FFFFFFF


def _as_int(name: str, v) -> int:
    if isinstance(v, bool):
        raise InvalidDimensions(f"{name} must be an integer, got bool")
    try:
        i = int(v)
    except Exception as e:
        raise InvalidDimensions(f"{name} must be an integer, got {type(v).__name__}") from e
    if i != v:
        raise InvalidDimensions(f"{name} must be an integer, got {v!r}")
    return i


def size_wh(width, height) -> Tuple[int, int]:
    w = _as_int("width", width)
    h = _as_int("height", height)
    if w <= 0 or h <= 0:
        raise InvalidDimensions(f"width and height must be > 0, got {w}x{h}")
    if w > PNG_UINT31_MAX or h > PNG_UINT31_MAX:
        raise SizeOverflow(f"width/height must be <= {PNG_UINT31_MAX}")
    return w, h


def uint31(name: str, value: int) -> int:
    """Check that ``value`` fits a PNG four-byte unsigned integer."""
    v = int(value)
    if v < 0 or v > PNG_UINT31_MAX:
        raise SizeOverflow(f"{name}={v} does not fit a PNG 4-byte length field")
    return v


def parse_size(text: str) -> Tuple[int, int]:
    """Parse ``"WIDTHxHEIGHT"`` into a checked pair."""
    parts = str(text).lower().split("x")
    if len(parts) != 2:
        raise InvalidDimensions(f"size must look like WIDTHxHEIGHT, got {text!r}")
    try:
        w, h = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise InvalidDimensions(f"size must look like WIDTHxHEIGHT, got {text!r}") from e
    return size_wh(w, h)


def png_path(p: str | Path) -> Path:
    path = Path(p)
    if path.suffix.lower() != ".png":
        raise ValueError("path must end with .png")
    parent = path.resolve().parent
    if not parent.exists():
        raise ValueError(f"directory does not exist: {parent}")
    return path
