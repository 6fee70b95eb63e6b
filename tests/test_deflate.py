# tests/test_deflate.py
# Stored-DEFLATE block framing: headers, block splitting and filter-byte placement
# RELEVANT FILES: python/storedpng/deflate.py, python/storedpng/layout.py

import zlib

import numpy as np
import pytest

from storedpng.deflate import BlockCursor, iter_stored_blocks, stored_block_header
from storedpng.errors import EncodeError
from storedpng.layout import ScanlineLayout


def _frame(rows, layout):
    headers = []
    payload = bytearray()
    for segment, is_payload in iter_stored_blocks(rows, layout):
        if is_payload:
            payload += bytes(segment)
        else:
            seg = bytes(segment)
            assert len(seg) == 5
            headers.append((seg[0], seg[1] | (seg[2] << 8)))
    return headers, bytes(payload)


def _expected_payload(rows):
    return b"".join(b"\x00" + row.tobytes() for row in rows)


def test_stored_block_header_layout():
    assert stored_block_header(0, True) == bytes([1, 0x00, 0x00, 0xFF, 0xFF])
    assert stored_block_header(0x1234, False) == bytes([0, 0x34, 0x12, 0xCB, 0xED])
    assert stored_block_header(65535, True) == bytes([1, 0xFF, 0xFF, 0x00, 0x00])
    with pytest.raises(ValueError):
        stored_block_header(65536, True)


def test_image_size_65535_is_one_final_block():
    layout = ScanlineLayout(64, 255)
    assert layout.image_size == 65535
    rows = np.random.default_rng(1).integers(0, 256, size=(255, 64, 4), dtype=np.uint8)
    headers, payload = _frame(rows, layout)
    assert headers == [(1, 65535)]
    assert payload == _expected_payload(rows)


def test_image_size_65536_splits_into_two_blocks():
    # width 0 gives one-byte scanlines, the only way to reach an even image size
    layout = ScanlineLayout(0, 65536)
    assert layout.image_size == 65536
    rows = np.empty((65536, 0, 4), dtype=np.uint8)
    headers, payload = _frame(rows, layout)
    assert headers == [(0, 65535), (1, 1)]
    assert payload == b"\x00" * 65536
    assert layout.block_count == 2


def test_filter_bytes_precede_each_scanline_across_block_boundaries():
    # 7-byte blocks against 9-byte scanlines put boundaries mid-row and on row starts
    layout = ScanlineLayout(2, 7, max_block_size=7)
    rows = np.arange(2 * 7 * 4, dtype=np.uint8).reshape(7, 2, 4)
    headers, payload = _frame(rows, layout)
    assert payload == _expected_payload(rows)
    assert [length for _, length in headers] == [7] * 9
    assert [final for final, _ in headers] == [0] * 8 + [1]
    assert len(headers) == layout.block_count


def test_final_flag_set_once_on_short_last_block():
    layout = ScanlineLayout(3, 4, max_block_size=20)
    rows = np.ones((4, 3, 4), dtype=np.uint8)
    headers, _ = _frame(rows, layout)
    assert [h[1] for h in headers] == [20, 20, 12]
    assert sum(final for final, _ in headers) == 1
    assert headers[-1][0] == 1


def test_blocks_inflate_as_raw_deflate():
    layout = ScanlineLayout(5, 3, max_block_size=11)
    rows = np.random.default_rng(3).integers(0, 256, size=(3, 5, 4), dtype=np.uint8)
    raw = b"".join(bytes(seg) for seg, _ in iter_stored_blocks(rows, layout))
    assert zlib.decompress(raw, -15) == _expected_payload(rows)


def test_empty_payload_is_single_empty_final_block():
    layout = ScanlineLayout(0, 0)
    segments = list(iter_stored_blocks(np.empty((0, 0, 4), dtype=np.uint8), layout))
    assert segments == [(bytes([1, 0, 0, 0xFF, 0xFF]), False)]
    assert layout.block_count == 1
    assert layout.data_size == 11


def test_row_buffer_size_must_match_layout():
    with pytest.raises(EncodeError):
        list(iter_stored_blocks(np.zeros((2, 2, 4), dtype=np.uint8), ScanlineLayout(3, 2)))


def test_block_cursor_guards_overrun():
    cursor = BlockCursor(remaining_in_image=10, remaining_in_block=3)
    cursor.advance(3, line_size=5)
    assert cursor.position_in_scanline == 3
    assert cursor.remaining_in_block == 0
    with pytest.raises(EncodeError):
        cursor.advance(1, line_size=5)
