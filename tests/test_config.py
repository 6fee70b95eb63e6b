# tests/test_config.py
# Encoder configuration parsing and validation
# RELEVANT FILES: python/storedpng/config.py

from __future__ import annotations

import json
from pathlib import Path

import pytest

from storedpng import EncoderConfig, load_encoder_config


def test_defaults() -> None:
    cfg = load_encoder_config(environ={})
    assert cfg.max_block_size == 65535
    assert cfg.source_order == "bgra"
    assert cfg.staging_limit_bytes is None
    assert cfg.verify_layout is True


def test_mapping_with_aliases() -> None:
    cfg = load_encoder_config({"block_size": 1024, "channel_order": "native", "verify_layout": "no"}, environ={})
    assert cfg.max_block_size == 1024
    assert cfg.source_order == "bgra"
    assert cfg.verify_layout is False


def test_json_path(tmp_path: Path) -> None:
    path = tmp_path / "encoder.json"
    path.write_text(json.dumps({"max_block_size": 300, "source_order": "RGBA"}), encoding="utf-8")
    cfg = load_encoder_config(str(path), environ={})
    assert cfg.max_block_size == 300
    assert cfg.source_order == "rgba"


def test_environment_then_overrides() -> None:
    env = {"STOREDPNG_MAX_BLOCK_SIZE": "4096", "STOREDPNG_STAGING_LIMIT": "1048576"}
    cfg = load_encoder_config(None, environ=env)
    assert cfg.max_block_size == 4096
    assert cfg.staging_limit_bytes == 1048576
    cfg = load_encoder_config(None, overrides={"max_block_size": 16, "source_order": None}, environ=env)
    assert cfg.max_block_size == 16
    assert cfg.source_order == "bgra"


def test_instance_is_copied_and_ignores_environment() -> None:
    base = EncoderConfig(max_block_size=99)
    cfg = load_encoder_config(base, environ={"STOREDPNG_MAX_BLOCK_SIZE": "7"})
    assert cfg.max_block_size == 99
    assert cfg is not base


@pytest.mark.parametrize(
    "data",
    [
        {"max_block_size": 0},
        {"max_block_size": 65536},
        {"source_order": "rgbx"},
        {"staging_limit_bytes": -1},
        {"verify_layout": "maybe"},
        {"compression": 9},
    ],
)
def test_invalid_values_rejected(data) -> None:
    with pytest.raises(ValueError):
        load_encoder_config(data, environ={})


def test_bad_source_type() -> None:
    with pytest.raises(TypeError):
        load_encoder_config(42, environ={})


def test_to_dict_roundtrip() -> None:
    cfg = EncoderConfig(max_block_size=10, source_order="argb")
    assert EncoderConfig.from_mapping(cfg.to_dict()) == cfg
