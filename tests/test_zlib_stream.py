# tests/test_zlib_stream.py
# zlib container: header, Adler-32 scope and trailer
# RELEVANT FILES: python/storedpng/zlib_stream.py

import struct
import zlib

import numpy as np

from storedpng.checksum import ChecksumState
from storedpng.layout import ScanlineLayout
from storedpng.zlib_stream import ZLIB_HEADER, iter_zlib_stream, zlib_trailer

from pngparse import stored_blocks


def _stream(rows, layout, checksums=None):
    return b"".join(bytes(seg) for seg, _ in iter_zlib_stream(rows, layout, checksums))


def test_header_is_a_valid_zlib_header():
    cmf, flg = ZLIB_HEADER
    assert cmf & 0x0F == 8  # deflate
    assert not flg & 0x20  # no preset dictionary
    assert (cmf * 256 + flg) % 31 == 0


def test_stream_decompresses_to_filtered_scanlines():
    rows = np.random.default_rng(5).integers(0, 256, size=(6, 9, 4), dtype=np.uint8)
    layout = ScanlineLayout(9, 6, max_block_size=50)
    stream = _stream(rows, layout)
    expected = b"".join(b"\x00" + r.tobytes() for r in rows)
    assert zlib.decompress(stream) == expected
    assert len(stream) == layout.data_size


def test_adler_excludes_headers_and_framing():
    rows = np.full((3, 2, 4), 0x41, dtype=np.uint8)
    layout = ScanlineLayout(2, 3, max_block_size=4)
    state = ChecksumState()
    stream = _stream(rows, layout, state)
    payload = b"".join(b"\x00" + r.tobytes() for r in rows)
    assert state.adler == zlib.adler32(payload)
    assert stream[-4:] == struct.pack(">I", zlib.adler32(payload))

    blocks, trailer = stored_blocks(stream)
    assert b"".join(p for _, _, p in blocks) == payload
    assert trailer == zlib_trailer(state.adler)


def test_payload_flags_cover_exactly_the_inflated_bytes():
    rows = np.arange(24, dtype=np.uint8).reshape(2, 3, 4)
    layout = ScanlineLayout(3, 2, max_block_size=5)
    payload = b"".join(bytes(seg) for seg, p in iter_zlib_stream(rows, layout) if p)
    framing = [bytes(seg) for seg, p in iter_zlib_stream(rows, layout) if not p]
    assert payload == b"".join(b"\x00" + r.tobytes() for r in rows)
    assert framing[0] == ZLIB_HEADER
    assert len(framing) == layout.block_count + 2


def test_stream_checksum_restarts_per_stream():
    rows = np.zeros((1, 1, 4), dtype=np.uint8)
    layout = ScanlineLayout(1, 1)
    state = ChecksumState()
    first = _stream(rows, layout, state)
    second = _stream(rows, layout, state)
    assert first == second
