# python/storedpng/_memory.py
# Staging-memory accounting shared by every OutputBuffer in the process.
# Keeps encode buffers within a host memory budget and reports usage.
# RELEVANT FILES:python/storedpng/sink.py, python/storedpng/__init__.py

from __future__ import annotations

import threading
from typing import Dict, Optional

from .errors import AllocationFailure

STAGING_LIMIT_BYTES: int = 512 * 1024 * 1024  # 512 MiB budget for staged PNG bytes
_lock = threading.Lock()
_GLOBAL_MEMORY = {
    "buffer_count": 0,
    "buffer_bytes": 0,
    "peak_bytes": 0,
}


def update_memory_usage(*, buffer_bytes_delta: int = 0, buffer_count_delta: int = 0) -> None:
    """Apply deltas to the staging counters, clamping at zero."""
    with _lock:
        _GLOBAL_MEMORY["buffer_bytes"] = max(
            0, _GLOBAL_MEMORY["buffer_bytes"] + int(buffer_bytes_delta)
        )
        _GLOBAL_MEMORY["buffer_count"] = max(
            0, _GLOBAL_MEMORY["buffer_count"] + int(buffer_count_delta)
        )
        _GLOBAL_MEMORY["peak_bytes"] = max(
            _GLOBAL_MEMORY["peak_bytes"], _GLOBAL_MEMORY["buffer_bytes"]
        )


def reserve(nbytes: int, limit_bytes: Optional[int] = None) -> None:
    """Account for ``nbytes`` more staging memory or raise AllocationFailure."""
    limit = STAGING_LIMIT_BYTES if limit_bytes is None else int(limit_bytes)
    with _lock:
        requested = _GLOBAL_MEMORY["buffer_bytes"] + int(nbytes)
        if requested > limit:
            raise AllocationFailure(
                f"Staging memory budget exceeded: {requested} / {limit} bytes"
            )
        _GLOBAL_MEMORY["buffer_bytes"] = requested
        _GLOBAL_MEMORY["peak_bytes"] = max(_GLOBAL_MEMORY["peak_bytes"], requested)


def release(nbytes: int) -> None:
    update_memory_usage(buffer_bytes_delta=-int(nbytes))


def memory_metrics() -> Dict[str, float]:
    """Return a snapshot of tracked staging memory."""
    with _lock:
        buffer_bytes = int(_GLOBAL_MEMORY["buffer_bytes"])
        return {
            "buffer_count": int(_GLOBAL_MEMORY["buffer_count"]),
            "buffer_bytes": buffer_bytes,
            "peak_bytes": int(_GLOBAL_MEMORY["peak_bytes"]),
            "limit_bytes": STAGING_LIMIT_BYTES,
            "within_budget": buffer_bytes <= STAGING_LIMIT_BYTES,
            "utilization_ratio": buffer_bytes / STAGING_LIMIT_BYTES if STAGING_LIMIT_BYTES else 0.0,
        }


def override_staging_limit(limit_bytes: int) -> None:
    global STAGING_LIMIT_BYTES
    STAGING_LIMIT_BYTES = int(limit_bytes)


__all__ = [
    "STAGING_LIMIT_BYTES",
    "update_memory_usage",
    "reserve",
    "release",
    "memory_metrics",
    "override_staging_limit",
]
