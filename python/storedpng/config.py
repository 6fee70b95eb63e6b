# python/storedpng/config.py
# Encoder configuration parsing: dataclass defaults, mappings, JSON files and env overrides
# Exists to keep CLI, library callers and tests on one validated set of encoder knobs
# RELEVANT FILES: python/storedpng/encoder.py, python/storedpng/cli.py, tests/test_config.py
from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .layout import MAX_STORED_BLOCK
from .pixels import NATIVE_ORDER, channel_permutation

ConfigSource = Union["EncoderConfig", Mapping[str, Any], str, Path, None]

_ENV_PREFIX = "STOREDPNG_"

_ORDER_ALIASES: Dict[str, str] = {
    "native": NATIVE_ORDER,
    "argb32": NATIVE_ORDER,
    "packedargb": NATIVE_ORDER,
    "rgba32": "rgba",
    "packedabgr": "rgba",
}

_KEY_ALIASES: Dict[str, str] = {
    "block_size": "max_block_size",
    "max_block": "max_block_size",
    "order": "source_order",
    "channel_order": "source_order",
    "staging_limit": "staging_limit_bytes",
    "memory_limit": "staging_limit_bytes",
}


def _normalize_key(value: Any) -> str:
    return "".join(
        c
        for c in str(value).strip().lower()
        if c not in {"-", "_", " ", "."}
    )


def _normalize_order(value: Any) -> str:
    key = _normalize_key(value)
    order = _ORDER_ALIASES.get(key, key)
    channel_permutation(order)
    return order


def _to_bool(value: Any, label: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{label} must be a boolean, got {value!r}")


def _maybe_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return int(value)


@dataclass
class EncoderConfig:
    max_block_size: int = MAX_STORED_BLOCK
    source_order: str = NATIVE_ORDER
    staging_limit_bytes: Optional[int] = None
    verify_layout: bool = True

    def to_dict(self) -> dict:
        return {
            "max_block_size": self.max_block_size,
            "source_order": self.source_order,
            "staging_limit_bytes": self.staging_limit_bytes,
            "verify_layout": self.verify_layout,
        }

    def copy(self) -> "EncoderConfig":
        return copy.deepcopy(self)

    def validate(self) -> None:
        if not (1 <= int(self.max_block_size) <= MAX_STORED_BLOCK):
            raise ValueError(f"max_block_size must be within [1, {MAX_STORED_BLOCK}]")
        channel_permutation(self.source_order)
        if self.staging_limit_bytes is not None and self.staging_limit_bytes <= 0:
            raise ValueError("staging_limit_bytes must be positive when set")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], default: Optional["EncoderConfig"] = None) -> "EncoderConfig":
        base = copy.deepcopy(default) if default is not None else cls()
        data = {_KEY_ALIASES.get(k, k): v for k, v in data.items()}
        unknown = set(data) - set(base.to_dict())
        if unknown:
            raise ValueError(f"Unknown encoder config keys: {', '.join(sorted(unknown))}")
        if "max_block_size" in data:
            base.max_block_size = int(data["max_block_size"])
        if "source_order" in data:
            base.source_order = _normalize_order(data["source_order"])
        if "staging_limit_bytes" in data:
            base.staging_limit_bytes = _maybe_int(data["staging_limit_bytes"])
        if "verify_layout" in data:
            base.verify_layout = _to_bool(data["verify_layout"], "verify_layout")
        return base


def _load_from_path(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix in {".json", ""}:
        data = json.loads(text)
        if not isinstance(data, Mapping):
            raise TypeError(f"encoder config file must hold a JSON object: {path}")
        return data
    raise ValueError(f"Unsupported encoder config file format: {path}")


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for field_name in ("max_block_size", "source_order", "staging_limit", "verify_layout"):
        value = environ.get(_ENV_PREFIX + field_name.upper())
        if value not in (None, ""):
            out[field_name] = value
    return out


def load_encoder_config(
    config: ConfigSource = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> EncoderConfig:
    """Build a validated :class:`EncoderConfig`.

    Precedence, lowest first: ``config`` (mapping, JSON path or ``None`` for
    defaults), ``STOREDPNG_*`` environment variables, then ``overrides``.
    An ``EncoderConfig`` instance is taken as already resolved and only
    ``overrides`` apply on top of it.
    """
    if isinstance(config, EncoderConfig):
        cfg = config.copy()
    elif isinstance(config, Mapping):
        cfg = EncoderConfig.from_mapping(config)
    elif isinstance(config, (str, Path)):
        cfg = EncoderConfig.from_mapping(_load_from_path(Path(config)))
    elif config is None:
        cfg = EncoderConfig()
    else:
        raise TypeError("config must be EncoderConfig, mapping, path, or None")

    env = {} if isinstance(config, EncoderConfig) else _env_overrides(os.environ if environ is None else environ)
    if env:
        cfg = EncoderConfig.from_mapping(env, cfg)
    if overrides:
        cfg = EncoderConfig.from_mapping({k: v for k, v in overrides.items() if v is not None}, cfg)
    cfg.validate()
    return cfg


__all__ = ["EncoderConfig", "ConfigSource", "load_encoder_config"]
