# python/storedpng/pixels.py
# Pixel normalizer: packed native 32-bit pixels -> RGBA scanline bytes
# Exists to reorder channels into PNG order without touching the caller's buffer
# RELEVANT FILES: python/storedpng/encoder.py, python/storedpng/deflate.py, tests/test_pixels.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

import numpy as np

from .errors import InvalidDimensions

RGBA = "rgba"
# Little-endian read of a packed 0xAARRGGBB value
NATIVE_ORDER = "bgra"


def channel_permutation(order: str) -> List[int]:
    """Return source byte indices that produce R, G, B, A from ``order``."""
    key = str(order).strip().lower()
    if len(key) != 4 or sorted(key) != sorted(RGBA):
        raise ValueError(f"channel order must be a permutation of 'rgba', got {order!r}")
    return [key.index(c) for c in RGBA]


def _native_bytes(pixels: Any) -> np.ndarray:
    if isinstance(pixels, (bytes, bytearray, memoryview)):
        return np.frombuffer(pixels, dtype=np.uint8)
    arr = np.asarray(pixels)
    if arr.size == 0:
        return np.empty(0, dtype=np.uint8)
    if arr.dtype == np.uint8:
        return np.ascontiguousarray(arr).reshape(-1)
    if arr.dtype.kind not in "iu":
        raise TypeError(f"pixels must be integer packed values or uint8 bytes, got dtype {arr.dtype}")
    return np.ascontiguousarray(arr.astype("<u4", copy=False)).view(np.uint8).reshape(-1)


@dataclass
class PackedImage:
    """A bitmap of ``width*height`` packed 32-bit pixels in native channel order.

    ``pixels`` may be a sequence or integer array of packed values (flat or
    ``(height, width)``), or raw bytes / a ``uint8`` array of
    ``width*height*4`` bytes. The caller keeps ownership; the encoder only
    reads it.
    """

    width: int
    height: int
    pixels: Any

    @property
    def pixel_count(self) -> int:
        return int(self.width) * int(self.height)

    @classmethod
    def from_rgba(cls, rgba: np.ndarray, target_order: str = NATIVE_ORDER) -> "PackedImage":
        packed = pack_rgba(rgba, target_order)
        height, width = packed.shape
        return cls(width=width, height=height, pixels=packed)


def normalize_pixels(image: PackedImage, source_order: str = NATIVE_ORDER) -> np.ndarray:
    """Return a new ``(height, width, 4)`` uint8 array in R, G, B, A order.

    The input buffer is never written. A zero-pixel image yields an empty
    array.
    """
    perm = channel_permutation(source_order)
    width, height = int(image.width), int(image.height)
    raw = _native_bytes(image.pixels)
    expected = max(width, 0) * max(height, 0) * 4
    if raw.size != expected:
        raise InvalidDimensions(
            f"pixel buffer holds {raw.size} bytes, expected {expected} for {width}x{height}"
        )
    if expected == 0:
        return np.empty((max(height, 0), max(width, 0), 4), dtype=np.uint8)
    # Fancy indexing copies, so the result never aliases the source
    return np.ascontiguousarray(raw.reshape(height, width, 4)[..., perm])


def pack_rgba(rgba: np.ndarray, target_order: str = NATIVE_ORDER) -> np.ndarray:
    """Pack an ``(H, W, 3|4)`` uint8 RGB(A) array into ``(H, W)`` uint32 values.

    Bytes of each value are laid out in ``target_order`` when read
    little-endian, so ``normalize_pixels`` with the same order inverts it.
    """
    arr = np.asarray(rgba)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError("rgba must be numpy array with shape (H,W,3|4)")
    if arr.dtype != np.uint8:
        arr = arr.astype(np.uint8)
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=2)
    key = str(target_order).strip().lower()
    channel_permutation(key)
    order = [RGBA.index(c) for c in key]
    ordered = np.ascontiguousarray(arr[..., order])
    return ordered.view("<u4").reshape(arr.shape[0], arr.shape[1])


__all__ = [
    "NATIVE_ORDER",
    "PackedImage",
    "channel_permutation",
    "normalize_pixels",
    "pack_rgba",
]
