"""Tile extraction from raw RGB24 frames."""

from __future__ import annotations

from PIL import Image

from .models import CellRect, GridSpec


def frame_image(frame: bytes, grid: GridSpec) -> Image.Image:
    if len(frame) != grid.frame_size:
        raise ValueError(f"Frame size must be {grid.frame_size} bytes, got {len(frame)}")
    return Image.frombuffer("RGB", (grid.frame_width, grid.frame_height), frame, "raw", "RGB", 0, 1)


def crop_tile(frame: bytes, grid: GridSpec, rect: CellRect) -> bytes:
    return frame_image(frame, grid).crop(rect.box).tobytes()
