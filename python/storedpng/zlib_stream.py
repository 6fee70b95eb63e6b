# python/storedpng/zlib_stream.py
# zlib container around the stored-DEFLATE blocks (2-byte header, Adler-32 trailer)
# RELEVANT FILES: python/storedpng/deflate.py, python/storedpng/checksum.py, tests/test_zlib_stream.py

from __future__ import annotations

import struct
from typing import Iterator, Optional, Tuple

import numpy as np

from .checksum import ChecksumState
from .deflate import Segment, iter_stored_blocks
from .layout import ScanlineLayout

# CMF=0x08 (deflate, 256-byte window), FLG=0x1D (no dictionary, fastest level, FCHECK)
ZLIB_HEADER = b"\x08\x1d"


def zlib_trailer(adler: int) -> bytes:
    return struct.pack(">I", adler & 0xFFFFFFFF)


def iter_zlib_stream(
    rows: np.ndarray,
    layout: ScanlineLayout,
    checksums: Optional[ChecksumState] = None,
) -> Iterator[Tuple[Segment, bool]]:
    """Yield the zlib stream for ``rows`` as ``(segment, is_payload)`` pairs.

    Adler-32 runs over payload segments only, starting from a fresh stream
    state in ``checksums``. The header and trailer are framing.
    """
    state = checksums if checksums is not None else ChecksumState()
    state.reset_stream()
    yield ZLIB_HEADER, False
    for segment, is_payload in iter_stored_blocks(rows, layout):
        if is_payload:
            state.update_adler(segment)
        yield segment, is_payload
    yield zlib_trailer(state.adler), False


__all__ = ["ZLIB_HEADER", "zlib_trailer", "iter_zlib_stream"]
