import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "frames"))

from deckvideo_frames.geometry import layout
from deckvideo_frames.models import CellRect, GridSpec


class GridSpecTests(unittest.TestCase):
    def test_mini_dimensions(self):
        grid = GridSpec(3, 2, 80)
        self.assertEqual(grid.frame_width, 240)
        self.assertEqual(grid.frame_height, 160)
        self.assertEqual(grid.frame_size, 115200)
        self.assertEqual(grid.total_cells, 6)

    def test_defaults(self):
        self.assertEqual(GridSpec(), GridSpec(3, 2, 80))

    def test_rejects_non_positive(self):
        for args in ((0, 2, 80), (3, 0, 80), (3, 2, 0), (-1, 2, 80)):
            with self.assertRaises(ValueError):
                GridSpec(*args)

    def test_rejects_non_integer(self):
        with self.assertRaises(ValueError):
            GridSpec(3, 2, 80.0)
        with self.assertRaises(ValueError):
            GridSpec(True, 2, 80)


class LayoutTests(unittest.TestCase):
    def test_mini_layout_row_major(self):
        cells = layout(GridSpec(3, 2, 80))
        self.assertEqual(
            [(c.left, c.top) for c in cells],
            [(0, 0), (80, 0), (160, 0), (0, 80), (80, 80), (160, 80)],
        )
        self.assertEqual(cells[0], CellRect(0, 0, 0, 80, 80))
        self.assertEqual(cells[5], CellRect(5, 160, 80, 80, 80))
        self.assertEqual([c.cell_index for c in cells], list(range(6)))

    def test_cells_tile_frame_exactly(self):
        for grid in (GridSpec(1, 1, 1), GridSpec(5, 3, 7), GridSpec(8, 4, 96), GridSpec(2, 5, 3)):
            cells = layout(grid)
            self.assertEqual(len(cells), grid.grid_width * grid.grid_height)
            covered = set()
            for c in cells:
                self.assertEqual((c.width, c.height), (grid.cell_size, grid.cell_size))
                pixels = {(x, y) for x in range(c.left, c.left + c.width) for y in range(c.top, c.top + c.height)}
                self.assertFalse(covered & pixels)
                covered |= pixels
            self.assertEqual(len(covered), grid.frame_width * grid.frame_height)
            self.assertTrue(all(0 <= x < grid.frame_width and 0 <= y < grid.frame_height for x, y in covered))

    def test_row_major_index(self):
        grid = GridSpec(4, 3, 10)
        for c in layout(grid):
            row, col = c.top // 10, c.left // 10
            self.assertEqual(c.cell_index, row * grid.grid_width + col)

    def test_box(self):
        self.assertEqual(CellRect(4, 80, 80, 80, 80).box, (80, 80, 160, 160))


if __name__ == "__main__":
    unittest.main()
