# python/storedpng/__init__.py
# Public Python API for the uncompressed (stored-DEFLATE) PNG encoder
# Exists to expose encode/write entry points, checksums and error types in one place
# RELEVANT FILES: python/storedpng/encoder.py, python/storedpng/checksum.py, tests/test_encoder.py
from ._memory import (
    memory_metrics as _mem_metrics,
    override_staging_limit as _override_staging_limit,
)
from .checksum import ADLER32_INIT, ChecksumState, adler32, crc32, crc32_update, crc_table
from .config import EncoderConfig, load_encoder_config
from .encoder import EncodeState, PngEncoder, encode_png, encode_rgba, write_png
from .errors import (
    AllocationFailure,
    EncodeError,
    InvalidDimensions,
    SinkWriteFailure,
    SizeOverflow,
)
from .layout import ScanlineLayout, describe_layout
from .pixels import PackedImage, normalize_pixels, pack_rgba

__version__ = "0.1.0"


def memory_metrics() -> dict:
    """Snapshot of staging-buffer memory across the process."""
    return _mem_metrics()


def override_staging_limit(limit_bytes: int) -> None:
    _override_staging_limit(limit_bytes)


__all__ = [
    "ADLER32_INIT",
    "AllocationFailure",
    "ChecksumState",
    "EncodeError",
    "EncodeState",
    "EncoderConfig",
    "InvalidDimensions",
    "PackedImage",
    "PngEncoder",
    "ScanlineLayout",
    "SinkWriteFailure",
    "SizeOverflow",
    "adler32",
    "crc32",
    "crc32_update",
    "crc_table",
    "describe_layout",
    "encode_png",
    "encode_rgba",
    "load_encoder_config",
    "memory_metrics",
    "normalize_pixels",
    "override_staging_limit",
    "pack_rgba",
    "write_png",
]
