# python/storedpng/checksum.py
# Incremental CRC-32 and Adler-32 engines used by the chunk and zlib framers
# Exists so checksums can be threaded through a streaming encode without buffering the stream
# RELEVANT FILES: python/storedpng/chunks.py, python/storedpng/zlib_stream.py, tests/test_checksum.py
"""
CRC-32 (PNG chunks) and Adler-32 (zlib stream) checksums.

Both engines are pure functions of ``(state, bytes)`` so callers can feed
data piecewise as it is emitted::

    state = CRC32_INIT
    state = crc32_update(state, b"IDAT")
    state = crc32_update(state, payload)
    crc = state ^ 0xFFFFFFFF

The CRC lookup table is process-wide. It is built once, on first use, under
a lock and is never mutated afterwards.
"""

from __future__ import annotations

import threading
from typing import Optional, Tuple, Union

import numpy as np

BytesLike = Union[bytes, bytearray, memoryview, np.ndarray]

CRC32_POLYNOMIAL = 0xEDB88320
CRC32_INIT = 0xFFFFFFFF
ADLER32_INIT = 1
ADLER32_MOD = 65521

# Bytes summed per numpy pass; keeps the int64 running sums far from overflow
_ADLER_RUN = 1 << 16

_crc_lock = threading.Lock()
_crc_table: Optional[Tuple[int, ...]] = None
_crc_table_array: Optional[np.ndarray] = None


def _as_u8(data: BytesLike) -> np.ndarray:
    if isinstance(data, np.ndarray):
        return np.ascontiguousarray(data).view(np.uint8).reshape(-1)
    return np.frombuffer(data, dtype=np.uint8)


def _build_crc_table() -> np.ndarray:
    c = np.arange(256, dtype=np.uint32)
    for _ in range(8):
        c = np.where(c & 1, np.uint32(CRC32_POLYNOMIAL) ^ (c >> 1), c >> 1).astype(np.uint32)
    c.setflags(write=False)
    return c


def _table() -> Tuple[int, ...]:
    global _crc_table, _crc_table_array
    table = _crc_table
    if table is None:
        with _crc_lock:
            if _crc_table is None:
                arr = _build_crc_table()
                _crc_table_array = arr
                _crc_table = tuple(int(v) for v in arr)
            table = _crc_table
    return table


def crc_table() -> np.ndarray:
    """Return the read-only 256-entry CRC-32 lookup table."""
    _table()
    return _crc_table_array


def crc32_update(state: int, data: BytesLike) -> int:
    """Advance a running (non-inverted) CRC-32 over ``data``."""
    table = _table()
    c = int(state) & 0xFFFFFFFF
    for byte in _as_u8(data).tobytes():
        c = table[(c ^ byte) & 0xFF] ^ (c >> 8)
    return c


def crc32(data: BytesLike) -> int:
    """Standard CRC-32 of ``data`` (as used by PNG, zlib and gzip)."""
    return crc32_update(CRC32_INIT, data) ^ 0xFFFFFFFF


def adler32(state: int, data: BytesLike) -> int:
    """Advance an Adler-32 checksum; start a stream with ``ADLER32_INIT``."""
    s1 = int(state) & 0xFFFF
    s2 = (int(state) >> 16) & 0xFFFF
    buf = _as_u8(data)
    for start in range(0, buf.size, _ADLER_RUN):
        run = buf[start:start + _ADLER_RUN].astype(np.int64)
        sums = np.cumsum(run)
        n = int(run.size)
        s2 = (s2 + n * s1 + int(sums.sum())) % ADLER32_MOD
        s1 = (s1 + int(sums[-1])) % ADLER32_MOD
    return (s2 << 16) | s1


class ChecksumState:
    """Running checksums for one encode.

    ``crc`` is chunk scoped and restarts with every :meth:`begin_chunk`.
    ``adler`` spans the whole decompressed IDAT stream.
    """

    def __init__(self) -> None:
        self.crc = CRC32_INIT
        self.adler = ADLER32_INIT

    def begin_chunk(self, chunk_type: bytes) -> None:
        self.crc = crc32_update(CRC32_INIT, chunk_type)

    def update_crc(self, data: BytesLike) -> None:
        self.crc = crc32_update(self.crc, data)

    def update_adler(self, data: BytesLike) -> None:
        self.adler = adler32(self.adler, data)

    def reset_stream(self) -> None:
        self.adler = ADLER32_INIT

    def chunk_crc(self) -> int:
        return self.crc ^ 0xFFFFFFFF


__all__ = [
    "CRC32_POLYNOMIAL",
    "CRC32_INIT",
    "ADLER32_INIT",
    "ADLER32_MOD",
    "crc_table",
    "crc32",
    "crc32_update",
    "adler32",
    "ChecksumState",
]
