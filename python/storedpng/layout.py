# python/storedpng/layout.py
# Byte-count bookkeeping for the PNG / zlib / stored-DEFLATE framings
# Exists so every layer agrees on sizes before the first byte is emitted
# RELEVANT FILES: python/storedpng/deflate.py, python/storedpng/encoder.py, tests/test_layout.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from ._validate import uint31

BYTES_PER_PIXEL = 4
FILTER_BYTES_PER_LINE = 1
MAX_STORED_BLOCK = 0xFFFF
STORED_BLOCK_HEADER_SIZE = 5
ZLIB_HEADER_SIZE = 2
ZLIB_TRAILER_SIZE = 4

# signature(8) + IHDR chunk(12 + 13) + IDAT length and type(8)
FILE_PREFIX_SIZE = 8 + 25 + 8
# IDAT CRC(4) + IEND chunk(12)
FILE_SUFFIX_SIZE = 4 + 12


@dataclass(frozen=True)
class ScanlineLayout:
    """Derived sizes for a ``width`` x ``height`` RGBA image.

    ``image_size`` counts the decompressed stream (one filter byte per
    scanline plus pixel bytes). ``data_size`` is the IDAT chunk length:
    the zlib header, one 5-byte header per stored block, the payload and
    the Adler-32 trailer.
    """

    width: int
    height: int
    max_block_size: int = MAX_STORED_BLOCK

    @property
    def line_size(self) -> int:
        return self.width * BYTES_PER_PIXEL + FILTER_BYTES_PER_LINE

    @property
    def image_size(self) -> int:
        return self.line_size * self.height

    @property
    def pixel_bytes(self) -> int:
        return self.width * self.height * BYTES_PER_PIXEL

    @property
    def block_count(self) -> int:
        # An empty stream still needs one (empty) final block
        blocks = -(-self.image_size // self.max_block_size)
        return max(1, blocks)

    @property
    def overhead_size(self) -> int:
        return STORED_BLOCK_HEADER_SIZE * self.block_count + ZLIB_HEADER_SIZE + ZLIB_TRAILER_SIZE

    @property
    def data_size(self) -> int:
        return self.image_size + self.overhead_size

    @property
    def file_size(self) -> int:
        return FILE_PREFIX_SIZE + self.data_size + FILE_SUFFIX_SIZE

    def validate(self) -> "ScanlineLayout":
        if not (1 <= self.max_block_size <= MAX_STORED_BLOCK):
            raise ValueError(f"max_block_size must be within [1, {MAX_STORED_BLOCK}]")
        uint31("line_size", self.line_size)
        uint31("data_size", self.data_size)
        return self

    def to_dict(self) -> Dict[str, int]:
        return {
            "width": self.width,
            "height": self.height,
            "line_size": self.line_size,
            "image_size": self.image_size,
            "block_count": self.block_count,
            "overhead_size": self.overhead_size,
            "data_size": self.data_size,
            "file_size": self.file_size,
        }


def describe_layout(width: int, height: int, max_block_size: int = MAX_STORED_BLOCK) -> Dict[str, int]:
    """Return the layout numbers an encode of this size would use."""
    return ScanlineLayout(int(width), int(height), int(max_block_size)).validate().to_dict()
