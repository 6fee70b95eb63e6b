# python/storedpng/deflate.py
# Stored-DEFLATE block framer: filter bytes, scanlines and 5-byte block headers
# Exists to split the scanline stream into <= 65535 byte stored blocks on the fly
# RELEVANT FILES: python/storedpng/layout.py, python/storedpng/zlib_stream.py, tests/test_deflate.py
"""
Stored ("BTYPE=00") DEFLATE framing.

The framer walks the normalized RGBA rows once and yields byte segments in
output order. Each segment is tagged with ``is_payload``: block headers are
framing (``False``), filter bytes and pixel bytes are payload (``True``).
Payload segments are exactly the bytes a decoder inflates back, which is
what Adler-32 must cover.

A zero-length payload is framed as a single empty final block
(``01 00 00 FF FF``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple, Union

import numpy as np

from .errors import EncodeError
from .layout import MAX_STORED_BLOCK, ScanlineLayout

Segment = Union[bytes, memoryview]

FILTER_NONE = 0
_FILTER_NONE_BYTE = bytes([FILTER_NONE])


def stored_block_header(length: int, final: bool) -> bytes:
    """5-byte stored block header: BFINAL/BTYPE, LEN and NLEN (little-endian)."""
    if not (0 <= length <= MAX_STORED_BLOCK):
        raise ValueError(f"stored block length must be within [0, {MAX_STORED_BLOCK}], got {length}")
    lo = length & 0xFF
    hi = (length >> 8) & 0xFF
    return bytes([1 if final else 0, lo, hi, ~lo & 0xFF, ~hi & 0xFF])


@dataclass
class BlockCursor:
    """Running position of the framer in image, block and scanline."""

    remaining_in_image: int
    remaining_in_block: int = 0
    position_in_scanline: int = 0

    def advance(self, n: int, line_size: int) -> None:
        if n > self.remaining_in_block or n > self.remaining_in_image:
            raise EncodeError(
                f"stored block overrun: {n} bytes with {self.remaining_in_block} left in block, "
                f"{self.remaining_in_image} left in image"
            )
        self.remaining_in_image -= n
        self.remaining_in_block -= n
        self.position_in_scanline = (self.position_in_scanline + n) % line_size


def iter_stored_blocks(
    rows: np.ndarray,
    layout: ScanlineLayout,
) -> Iterator[Tuple[Segment, bool]]:
    """Yield ``(segment, is_payload)`` pairs framing ``rows`` as stored blocks.

    ``rows`` is the ``(height, width, 4)`` uint8 output of the pixel
    normalizer. Pixel segments are memoryview slices of it, so the full
    DEFLATE stream is never assembled.
    """
    block_limit = layout.validate().max_block_size
    flat = np.ascontiguousarray(rows, dtype=np.uint8).reshape(-1)
    if flat.size != layout.pixel_bytes:
        raise EncodeError(f"row buffer holds {flat.size} bytes, layout expects {layout.pixel_bytes}")

    if layout.image_size == 0:
        yield stored_block_header(0, True), False
        return

    view = memoryview(flat)
    line_size = layout.line_size
    cursor = BlockCursor(remaining_in_image=layout.image_size)
    offset = 0
    while cursor.remaining_in_image > 0:
        if cursor.remaining_in_block == 0:
            size = min(block_limit, cursor.remaining_in_image)
            final = cursor.remaining_in_image <= block_limit
            cursor.remaining_in_block = size
            yield stored_block_header(size, final), False

        if cursor.position_in_scanline == 0:
            yield _FILTER_NONE_BYTE, True
            cursor.advance(1, line_size)
            continue

        n = min(
            line_size - cursor.position_in_scanline,
            cursor.remaining_in_block,
            cursor.remaining_in_image,
        )
        yield view[offset:offset + n], True
        offset += n
        cursor.advance(n, line_size)


__all__ = [
    "FILTER_NONE",
    "BlockCursor",
    "stored_block_header",
    "iter_stored_blocks",
]
