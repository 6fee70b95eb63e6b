#!/usr/bin/env python3
"""
storedpng command line tool

Writes uncompressed (stored-DEFLATE) RGBA PNG files.

Usage:
    python -m storedpng convert input.jpg output.png
    python -m storedpng pattern 64x48 ramp.png
    python -m storedpng layout 640x480

RELEVANT FILES: python/storedpng/encoder.py, python/storedpng/config.py, tests/test_cli.py
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import warnings
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from ._validate import parse_size, png_path
from .config import load_encoder_config
from .encoder import encode_rgba
from .errors import EncodeError
from .layout import describe_layout
from .sink import write_blob

logger = logging.getLogger(__name__)


def ramp_pattern(width: int, height: int) -> np.ndarray:
    """Deterministic ``(height, width, 4)`` RGBA ramp."""
    y, x = np.mgrid[0:height, 0:width]
    r = ((x + 13) % 256).astype(np.uint8)
    g = ((y + 29) % 256).astype(np.uint8)
    b = (((x * 7) ^ (y * 11)) % 256).astype(np.uint8)
    a = np.full((height, width), 200, dtype=np.uint8)
    return np.stack([r, g, b, a], axis=-1)


def load_rgba(path: Path) -> np.ndarray:
    """Load any Pillow-readable image as an RGBA uint8 array."""
    try:
        from PIL import Image
    except Exception as exc:  # pragma: no cover - optional dependency
        raise ImportError("Pillow is required for 'storedpng convert'") from exc

    with Image.open(path) as img:
        if img.mode != "RGBA":
            warnings.warn(f"{path}: converting {img.mode} image to RGBA", stacklevel=2)
            img = img.convert("RGBA")
        return np.array(img, dtype=np.uint8)


def _cmd_convert(args: argparse.Namespace) -> int:
    cfg = load_encoder_config(args.config, overrides={"max_block_size": args.max_block_size})
    logger.debug("encoder config: %s", cfg.to_dict())
    rgba = load_rgba(args.input)
    data = encode_rgba(rgba, config=cfg)
    out = write_blob(png_path(args.output), data)
    print(f"{out}: {rgba.shape[1]}x{rgba.shape[0]}, {len(data)} bytes")
    return 0


def _cmd_pattern(args: argparse.Namespace) -> int:
    cfg = load_encoder_config(args.config, overrides={"max_block_size": args.max_block_size})
    logger.debug("encoder config: %s", cfg.to_dict())
    width, height = parse_size(args.size)
    data = encode_rgba(ramp_pattern(width, height), config=cfg)
    out = write_blob(png_path(args.output), data)
    print(f"{out}: {width}x{height}, {len(data)} bytes")
    return 0


def _cmd_layout(args: argparse.Namespace) -> int:
    cfg = load_encoder_config(args.config, overrides={"max_block_size": args.max_block_size})
    width, height = parse_size(args.size)
    print(json.dumps(describe_layout(width, height, cfg.max_block_size), indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storedpng",
        description="Write uncompressed RGBA PNG files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Re-encode an image without compression
  storedpng convert photo.jpg photo_stored.png

  # Write a 64x48 test ramp using small stored blocks
  storedpng pattern 64x48 ramp.png --max-block-size 1024

  # Show block and byte counts for a size
  storedpng layout 1920x1080
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=Path, default=None, help="JSON encoder config file")
    parser.add_argument("--max-block-size", type=int, default=None, help="Stored block payload limit (1-65535)")
    sub = parser.add_subparsers(dest="command", required=True)

    convert = sub.add_parser("convert", help="Re-encode an image file as a stored PNG")
    convert.add_argument("input", type=Path, help="Image readable by Pillow")
    convert.add_argument("output", type=Path, help="Destination .png path")
    convert.set_defaults(func=_cmd_convert)

    pattern = sub.add_parser("pattern", help="Write a deterministic RGBA test ramp")
    pattern.add_argument("size", help="WIDTHxHEIGHT")
    pattern.add_argument("output", type=Path, help="Destination .png path")
    pattern.set_defaults(func=_cmd_pattern)

    layout = sub.add_parser("layout", help="Print the byte layout for an image size")
    layout.add_argument("size", help="WIDTHxHEIGHT")
    layout.set_defaults(func=_cmd_layout)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (EncodeError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
