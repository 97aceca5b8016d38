"""Typed frame and grid models."""

from __future__ import annotations

from dataclasses import dataclass

BYTES_PER_PIXEL = 3


@dataclass(frozen=True)
class GridSpec:
    grid_width: int = 3
    grid_height: int = 2
    cell_size: int = 80

    def __post_init__(self) -> None:
        for name in ("grid_width", "grid_height", "cell_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    @property
    def frame_width(self) -> int:
        return self.grid_width * self.cell_size

    @property
    def frame_height(self) -> int:
        return self.grid_height * self.cell_size

    @property
    def frame_size(self) -> int:
        return self.frame_width * self.frame_height * BYTES_PER_PIXEL

    @property
    def total_cells(self) -> int:
        return self.grid_width * self.grid_height


@dataclass(frozen=True)
class CellRect:
    cell_index: int
    left: int
    top: int
    width: int
    height: int

    @property
    def box(self) -> tuple[int, int, int, int]:
        return (self.left, self.top, self.left + self.width, self.top + self.height)
