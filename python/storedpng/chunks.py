# python/storedpng/chunks.py
# PNG chunk framer: signature, IHDR, streamed IDAT and IEND with CRC-32 trailers
# Exists to own the file layout while chunk bodies are produced incrementally
# RELEVANT FILES: python/storedpng/checksum.py, python/storedpng/encoder.py, tests/test_chunks.py

from __future__ import annotations

import logging
import struct
from typing import Optional

from ._validate import size_wh, uint31
from .checksum import ChecksumState, crc32
from .errors import EncodeError

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

IHDR = b"IHDR"
IDAT = b"IDAT"
IEND = b"IEND"

BIT_DEPTH = 8
COLOR_TYPE_RGBA = 6  # truecolour with alpha
COMPRESSION_DEFLATE = 0
FILTER_ADAPTIVE = 0
INTERLACE_NONE = 0

IEND_CRC = 0xAE426082


def ihdr_payload(width: int, height: int) -> bytes:
    """13-byte IHDR body for an 8-bit RGBA, non-interlaced image."""
    w, h = size_wh(width, height)
    return struct.pack(
        ">IIBBBBB",
        w,
        h,
        BIT_DEPTH,
        COLOR_TYPE_RGBA,
        COMPRESSION_DEFLATE,
        FILTER_ADAPTIVE,
        INTERLACE_NONE,
    )


class ChunkWriter:
    """Write PNG chunks into an append-only sink.

    Whole chunks go through :meth:`write_chunk`. A chunk whose body is
    produced piecewise is framed with :meth:`begin_chunk`, any number of
    :meth:`feed` calls and :meth:`end_chunk`; its CRC-32 is accumulated as the
    bytes pass through and the declared length is checked at the end.
    """

    def __init__(self, sink, checksums: Optional[ChecksumState] = None):
        self.sink = sink
        self.checksums = checksums if checksums is not None else ChecksumState()
        self._open_type: Optional[bytes] = None
        self._declared = 0
        self._fed = 0

    def write_signature(self) -> None:
        self.sink.append(PNG_SIGNATURE)

    def begin_chunk(self, chunk_type: bytes, length: int) -> None:
        if self._open_type is not None:
            raise EncodeError(f"chunk {self._open_type!r} is still open")
        if len(chunk_type) != 4:
            raise ValueError(f"chunk type must be 4 bytes, got {chunk_type!r}")
        self._declared = uint31(f"{chunk_type.decode('latin-1')} length", length)
        self._fed = 0
        self._open_type = bytes(chunk_type)
        self.sink.append(struct.pack(">I", self._declared))
        self.sink.append(self._open_type)
        self.checksums.begin_chunk(self._open_type)

    def feed(self, data) -> None:
        if self._open_type is None:
            raise EncodeError("feed() called with no open chunk")
        mv = memoryview(data).cast("B")
        self._fed += mv.nbytes
        if self._fed > self._declared:
            raise EncodeError(
                f"chunk {self._open_type!r} body exceeds declared length {self._declared}"
            )
        self.sink.append(mv)
        self.checksums.update_crc(mv)

    def end_chunk(self) -> int:
        """Close the open chunk, append its CRC-32 and return it."""
        if self._open_type is None:
            raise EncodeError("end_chunk() called with no open chunk")
        if self._fed != self._declared:
            raise EncodeError(
                f"chunk {self._open_type!r} declared {self._declared} bytes but received {self._fed}"
            )
        crc = self.checksums.chunk_crc()
        self.sink.append(struct.pack(">I", crc))
        logger.debug("wrote %s chunk: %d bytes, crc %08x", self._open_type.decode("latin-1"), self._fed, crc)
        self._open_type = None
        return crc

    def write_chunk(self, chunk_type: bytes, data: bytes = b"") -> int:
        self.begin_chunk(chunk_type, len(data))
        if data:
            self.feed(data)
        return self.end_chunk()

    def write_ihdr(self, width: int, height: int) -> int:
        return self.write_chunk(IHDR, ihdr_payload(width, height))

    def write_iend(self) -> int:
        crc = self.write_chunk(IEND)
        if crc != IEND_CRC:
            raise EncodeError(f"IEND CRC mismatch: {crc:08x} != {IEND_CRC:08x}")
        return crc


def chunk_crc(chunk_type: bytes, data: bytes = b"") -> int:
    """CRC-32 over ``type + data``, the range a PNG chunk CRC covers."""
    return crc32(bytes(chunk_type) + bytes(data))


__all__ = [
    "PNG_SIGNATURE",
    "IHDR",
    "IDAT",
    "IEND",
    "IEND_CRC",
    "ChunkWriter",
    "chunk_crc",
    "ihdr_payload",
]
