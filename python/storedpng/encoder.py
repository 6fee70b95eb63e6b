# python/storedpng/encoder.py
# Encode orchestration: validates input, drives the framers and hands bytes to the sink
# Exists to run Start -> HeaderWritten -> StreamingIDAT -> Finalizing -> Done in one pass
# RELEVANT FILES: python/storedpng/chunks.py, python/storedpng/zlib_stream.py, python/storedpng/sink.py, tests/test_encoder.py
"""
Uncompressed PNG encoder.

Turns a bitmap of packed 32-bit pixels into an 8-bit RGBA PNG whose single
IDAT chunk holds a zlib stream of stored DEFLATE blocks. Sizes are computed
up front, so the IDAT length is written before its body and every checksum
is accumulated while bytes stream into the staging buffer.

Example:
    >>> from storedpng import encode_png
    >>> data = encode_png([0xFFFF0000, 0xFF00FF00, 0xFF0000FF, 0x80FFFFFF], 2, 2)
    >>> data[:8]
    b'\\x89PNG\\r\\n\\x1a\\n'
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import numpy as np

from ._validate import size_wh
from .checksum import ChecksumState
from .chunks import IDAT, ChunkWriter
from .config import ConfigSource, EncoderConfig, load_encoder_config
from .errors import AllocationFailure, EncodeError, InvalidDimensions
from .layout import ScanlineLayout
from .pixels import PackedImage, normalize_pixels, pack_rgba
from .sink import OutputBuffer, PathLike, write_blob
from .zlib_stream import iter_zlib_stream

logger = logging.getLogger(__name__)


class EncodeState(Enum):
    START = "start"
    HEADER_WRITTEN = "header_written"
    STREAMING_IDAT = "streaming_idat"
    FINALIZING = "finalizing"
    DONE = "done"


_NEXT_STATE = {
    EncodeState.START: EncodeState.HEADER_WRITTEN,
    EncodeState.HEADER_WRITTEN: EncodeState.STREAMING_IDAT,
    EncodeState.STREAMING_IDAT: EncodeState.FINALIZING,
    EncodeState.FINALIZING: EncodeState.DONE,
}


class PngEncoder:
    """Single-use encoder for one image.

    Args:
        config: EncoderConfig, mapping, JSON path or None for defaults
    """

    def __init__(self, config: ConfigSource = None):
        self.config: EncoderConfig = load_encoder_config(config)
        self.state = EncodeState.START
        self.layout: Optional[ScanlineLayout] = None

    def _advance(self, target: EncodeState) -> None:
        if _NEXT_STATE.get(self.state) is not target:
            raise EncodeError(f"invalid encoder transition {self.state.value} -> {target.value}")
        self.state = target

    def encode(self, image: PackedImage) -> bytes:
        if self.state is not EncodeState.START:
            raise EncodeError("PngEncoder encodes a single image; create a new encoder")
        cfg = self.config

        try:
            width, height = size_wh(image.width, image.height)
            layout = ScanlineLayout(width, height, cfg.max_block_size).validate()
            rows = normalize_pixels(image, cfg.source_order)
        except EncodeError as exc:
            logger.error("rejected %rx%r image: %s", image.width, image.height, exc)
            raise
        self.layout = layout
        logger.debug(
            "encoding %dx%d: image_size=%d blocks=%d data_size=%d file_size=%d",
            width, height, layout.image_size, layout.block_count, layout.data_size, layout.file_size,
        )

        buffer = OutputBuffer(layout.file_size, cfg.staging_limit_bytes)
        try:
            checksums = ChecksumState()
            writer = ChunkWriter(buffer, checksums)
            writer.write_signature()
            writer.write_ihdr(width, height)
            self._advance(EncodeState.HEADER_WRITTEN)

            writer.begin_chunk(IDAT, layout.data_size)
            self._advance(EncodeState.STREAMING_IDAT)
            framing_segments = 0
            for segment, is_payload in iter_zlib_stream(rows, layout, checksums):
                writer.feed(segment)
                if not is_payload:
                    framing_segments += 1
            writer.end_chunk()
            self._advance(EncodeState.FINALIZING)

            writer.write_iend()
            if cfg.verify_layout:
                _check_layout(layout, len(buffer), framing_segments)
            data = buffer.getvalue()
            self._advance(EncodeState.DONE)
        except EncodeError as exc:
            logger.error("encode of %dx%d image failed in state %s: %s", width, height, self.state.value, exc)
            raise
        except MemoryError as exc:
            logger.error("encode of %dx%d image failed: out of memory", width, height)
            raise AllocationFailure(f"out of memory while encoding {width}x{height} image") from exc
        finally:
            buffer.release()
        return data


def _check_layout(layout: ScanlineLayout, written: int, framing_segments: int) -> None:
    # zlib header + trailer + one header per stored block
    if framing_segments != layout.block_count + 2:
        raise EncodeError(
            f"emitted {framing_segments - 2} stored blocks, layout expects {layout.block_count}"
        )
    if written != layout.file_size:
        raise EncodeError(f"staged {written} bytes, layout expects {layout.file_size}")


def _as_image(image: Any, width: Optional[int], height: Optional[int]) -> PackedImage:
    if isinstance(image, PackedImage):
        return image
    if width is not None and height is not None:
        return PackedImage(width=width, height=height, pixels=image)
    if not isinstance(image, (bytes, bytearray, memoryview)):
        try:
            image = np.asarray(image)
        except ValueError as exc:
            raise InvalidDimensions(f"pixels do not form a rectangular array: {exc}") from exc
        if image.ndim == 2 and image.dtype != np.uint8:
            return PackedImage(width=image.shape[1], height=image.shape[0], pixels=image)
        if image.ndim == 3 and image.shape[2] == 4 and image.dtype == np.uint8:
            return PackedImage(width=image.shape[1], height=image.shape[0], pixels=image)
    raise InvalidDimensions("width and height are required unless pixels carry a (H, W) shape")


def encode_png(
    image: Any,
    width: Optional[int] = None,
    height: Optional[int] = None,
    *,
    config: ConfigSource = None,
) -> bytes:
    """Encode packed native-order pixels as an uncompressed RGBA PNG.

    Args:
        image: PackedImage, or pixels accepted by PackedImage
        width: Image width, required when ``image`` is flat
        height: Image height, required when ``image`` is flat
        config: Encoder configuration source

    Returns:
        The complete PNG file as bytes

    Raises:
        InvalidDimensions: Non-positive size or mismatched pixel count
        SizeOverflow: A chunk length does not fit its 4-byte field
        AllocationFailure: The staging buffer could not grow
    """
    return PngEncoder(config).encode(_as_image(image, width, height))


def encode_rgba(rgba: np.ndarray, *, config: ConfigSource = None) -> bytes:
    """Encode an ``(H, W, 3|4)`` uint8 array already in R, G, B(, A) order."""
    packed = pack_rgba(rgba, "rgba")
    cfg = load_encoder_config(config, overrides={"source_order": "rgba"})
    return encode_png(packed, config=cfg)


def write_png(
    path: PathLike,
    image: Any,
    width: Optional[int] = None,
    height: Optional[int] = None,
    *,
    config: ConfigSource = None,
) -> Path:
    """Encode ``image`` and persist it to ``path`` through the exact-size file sink."""
    data = encode_png(image, width, height, config=config)
    out = write_blob(path, data)
    logger.info("wrote %s (%d bytes)", out, len(data))
    return out


__all__ = [
    "EncodeState",
    "PngEncoder",
    "encode_png",
    "encode_rgba",
    "write_png",
]
