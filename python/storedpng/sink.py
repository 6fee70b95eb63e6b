# python/storedpng/sink.py
# Output collaborators: a growable staging buffer and an exact-size file sink
# Exists so the encoder stages bytes in memory and persists them in one final write
# RELEVANT FILES: python/storedpng/_memory.py, python/storedpng/encoder.py, tests/test_sink.py
"""
Staging and persistence for encoded PNG bytes.

:class:`OutputBuffer` is an append-only byte container with amortized
doubling growth, checkpoint/restore for scoped cleanup, and staging-memory
accounting through :mod:`storedpng._memory`.

:class:`FileSink` stages a file of an exact size next to the destination,
maps it with :mod:`mmap` and only moves it into place once every byte was
written. A failed or aborted sink removes the staged file and leaves any
existing destination untouched.
"""

from __future__ import annotations

import logging
import mmap
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from . import _memory
from .errors import AllocationFailure, SinkWriteFailure

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

# mkstemp creates 0600 files
_FILE_MODE = 0o644


class OutputBuffer:
    """Append-only growable byte buffer owned by a single encode call."""

    def __init__(self, initial_capacity: int = 4096, limit_bytes: Optional[int] = None):
        if initial_capacity < 0:
            raise ValueError("initial_capacity must be non-negative")
        self._limit = limit_bytes
        self._data = bytearray()
        self._length = 0
        self._released = False
        _memory.update_memory_usage(buffer_count_delta=1)
        try:
            self._grow_to(int(initial_capacity))
        except AllocationFailure:
            _memory.update_memory_usage(buffer_count_delta=-1)
            self._released = True
            raise

    def __len__(self) -> int:
        return self._length

    def __enter__(self) -> "OutputBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    @property
    def capacity(self) -> int:
        return len(self._data)

    def _grow_to(self, capacity: int) -> None:
        extra = capacity - len(self._data)
        if extra <= 0:
            return
        _memory.reserve(extra, self._limit)
        try:
            self._data.extend(bytes(extra))
        except MemoryError as exc:
            _memory.release(extra)
            raise AllocationFailure(f"cannot grow staging buffer to {capacity} bytes") from exc
        logger.debug("staging buffer grown to %d bytes", capacity)

    def _ensure(self, n: int) -> int:
        if self._released:
            raise RuntimeError("OutputBuffer has been released")
        needed = self._length + n
        if needed > len(self._data):
            self._grow_to(max(needed, 2 * len(self._data)))
        return self._length

    def allocate(self, n: int) -> memoryview:
        """Reserve ``n`` bytes at the end and return a writable view of them.

        Release the view (``with buf.allocate(n) as view: ...``) before the
        next allocation; a live view pins the underlying storage.
        """
        n = int(n)
        if n < 0:
            raise ValueError(f"cannot allocate a negative byte count ({n})")
        start = self._ensure(n)
        self._length = start + n
        return memoryview(self._data)[start:start + n]

    def append(self, data) -> None:
        mv = memoryview(data).cast("B")
        start = self._ensure(mv.nbytes)
        self._data[start:start + mv.nbytes] = mv
        self._length = start + mv.nbytes

    def checkpoint(self) -> int:
        return self._length

    def restore(self, mark: int) -> None:
        """Discard everything appended after ``mark``."""
        if not (0 <= mark <= self._length):
            raise ValueError(f"checkpoint {mark} is outside the buffer (length {self._length})")
        self._length = mark

    def getvalue(self) -> bytes:
        return bytes(self._data[:self._length])

    def release(self) -> None:
        """Drop all staged bytes and return their budget."""
        if self._released:
            return
        _memory.release(len(self._data))
        _memory.update_memory_usage(buffer_count_delta=-1)
        self._data = bytearray()
        self._length = 0
        self._released = True


class FileSink:
    """Exact-size, memory-mapped destination file.

    Bytes land in a temporary sibling of ``path``; :meth:`flush_and_close`
    moves it over the destination, so an existing file survives a failed
    or aborted write.
    """

    def __init__(self, path: Path, size: int, fh, mapping: Optional[mmap.mmap], staging: Optional[Path] = None):
        self.path = path
        self.size = size
        self._fh = fh
        self._map = mapping
        self._staging = staging if staging is not None else path
        self._cursor = 0

    @classmethod
    def create_for_write(cls, path: PathLike, size: int) -> "FileSink":
        target = Path(path)
        size = int(size)
        if size < 0:
            raise SinkWriteFailure(f"cannot create {target} with negative size {size}")
        try:
            fd, name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        except OSError as exc:
            raise SinkWriteFailure(f"cannot create {target}: {exc}") from exc
        staging = Path(name)
        try:
            fh = os.fdopen(fd, "w+b")
        except OSError as exc:
            os.close(fd)
            _unlink_quietly(staging)
            raise SinkWriteFailure(f"cannot create {target}: {exc}") from exc
        try:
            os.chmod(staging, _FILE_MODE)
            fh.truncate(size)
            mapping = mmap.mmap(fh.fileno(), size) if size > 0 else None
        except (OSError, ValueError) as exc:
            fh.close()
            _unlink_quietly(staging)
            raise SinkWriteFailure(f"cannot size {target} to {size} bytes: {exc}") from exc
        logger.debug("opened %s for %d bytes (staging %s)", target, size, staging.name)
        return cls(target, size, fh, mapping, staging)

    def __enter__(self) -> "FileSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.flush_and_close()
        else:
            self.abort()

    @property
    def closed(self) -> bool:
        return self._fh is None

    def write(self, data) -> None:
        if self._fh is None:
            raise SinkWriteFailure(f"{self.path} is already closed")
        mv = memoryview(data).cast("B")
        end = self._cursor + mv.nbytes
        if end > self.size:
            raise SinkWriteFailure(
                f"write of {mv.nbytes} bytes overruns {self.path} ({self._cursor}/{self.size} used)"
            )
        if mv.nbytes:
            self._map[self._cursor:end] = mv
        self._cursor = end

    def flush_and_close(self) -> None:
        if self._fh is None:
            return
        if self._cursor != self.size:
            written = self._cursor
            self.abort()
            raise SinkWriteFailure(f"{self.path} received {written} of {self.size} bytes")
        try:
            if self._map is not None:
                self._map.flush()
                self._map.close()
            self._fh.close()
            if self._staging != self.path:
                os.replace(self._staging, self.path)
        except OSError as exc:
            self._map = None
            self._fh = None
            _unlink_quietly(self._staging)
            raise SinkWriteFailure(f"cannot flush {self.path}: {exc}") from exc
        self._map = None
        self._fh = None
        logger.debug("flushed %s (%d bytes)", self.path, self.size)

    def abort(self) -> None:
        """Close without committing and remove the staged bytes."""
        if self._fh is None:
            return
        if self._map is not None:
            self._map.close()
        self._fh.close()
        self._map = None
        self._fh = None
        _unlink_quietly(self._staging)
        logger.debug("aborted %s", self.path)


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass


def write_blob(path: PathLike, data) -> Path:
    """Persist ``data`` to ``path`` through an exact-size :class:`FileSink`."""
    mv = memoryview(data).cast("B")
    with FileSink.create_for_write(path, mv.nbytes) as sink:
        sink.write(mv)
    return sink.path


__all__ = ["OutputBuffer", "FileSink", "write_blob"]
