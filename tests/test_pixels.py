# tests/test_pixels.py
# Pixel normalizer: native packed BGRA -> RGBA rows, never in place
# RELEVANT FILES: python/storedpng/pixels.py

import numpy as np
import pytest

from storedpng import InvalidDimensions, PackedImage, normalize_pixels, pack_rgba
from storedpng.pixels import channel_permutation


def test_native_packed_values_become_rgba():
    # 0xAARRGGBB read little-endian is B, G, R, A in memory
    img = PackedImage(width=2, height=1, pixels=[0x80112233, 0xFF0A0B0C])
    rows = normalize_pixels(img)
    assert rows.shape == (1, 2, 4)
    assert rows.dtype == np.uint8
    assert rows[0, 0].tolist() == [0x11, 0x22, 0x33, 0x80]
    assert rows[0, 1].tolist() == [0x0A, 0x0B, 0x0C, 0xFF]


def test_raw_native_bytes_are_accepted():
    raw = bytes([3, 2, 1, 4, 30, 20, 10, 40])  # B G R A per pixel
    rows = normalize_pixels(PackedImage(2, 1, raw))
    assert rows.reshape(-1).tolist() == [1, 2, 3, 4, 10, 20, 30, 40]


def test_source_buffer_is_not_modified():
    src = np.array([[0xFF010203, 0xFF040506], [0x7F070809, 0x000A0B0C]], dtype=np.uint32)
    before = src.copy()
    rows = normalize_pixels(PackedImage(2, 2, src))
    assert np.array_equal(src, before)
    assert not np.shares_memory(rows, src)
    assert rows[1, 0].tolist() == [7, 8, 9, 0x7F]


def test_other_source_orders():
    rgba = np.arange(2 * 3 * 4, dtype=np.uint8).reshape(2, 3, 4)
    for order in ("rgba", "bgra", "argb", "abgr"):
        packed = pack_rgba(rgba, order)
        assert packed.shape == (2, 3)
        assert np.array_equal(normalize_pixels(PackedImage(3, 2, packed), order), rgba)


def test_pack_rgba_fills_alpha_for_rgb():
    rgb = np.full((2, 2, 3), 9, dtype=np.uint8)
    img = PackedImage.from_rgba(rgb)
    assert (img.width, img.height) == (2, 2)
    rows = normalize_pixels(img)
    assert (rows[..., :3] == 9).all()
    assert (rows[..., 3] == 255).all()


def test_pixel_count_mismatch_is_rejected():
    with pytest.raises(InvalidDimensions, match="expected 16"):
        normalize_pixels(PackedImage(2, 2, [0, 0, 0]))


def test_zero_pixel_image_yields_empty_buffer():
    rows = normalize_pixels(PackedImage(0, 5, []))
    assert rows.size == 0
    assert rows.shape == (5, 0, 4)


def test_invalid_channel_order():
    with pytest.raises(ValueError):
        channel_permutation("rgbb")
    with pytest.raises(ValueError):
        channel_permutation("rgb")
    assert channel_permutation("BGRA") == [2, 1, 0, 3]


def test_float_pixels_are_rejected():
    with pytest.raises(TypeError):
        normalize_pixels(PackedImage(1, 1, np.array([1.5])))
