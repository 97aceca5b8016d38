"""Grid-to-pixel layout for tiled output surfaces."""

from __future__ import annotations

from functools import lru_cache

from .models import CellRect, GridSpec


@lru_cache(maxsize=32)
def layout(grid: GridSpec) -> tuple[CellRect, ...]:
    """Return one square rectangle per cell, ordered row-major."""
    size = grid.cell_size
    return tuple(
        CellRect(
            cell_index=index,
            left=size * (index % grid.grid_width),
            top=size * (index // grid.grid_width),
            width=size,
            height=size,
        )
        for index in range(grid.total_cells)
    )
