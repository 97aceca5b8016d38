import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "frames"))

from deckvideo_frames.geometry import layout
from deckvideo_frames.models import GridSpec
from deckvideo_frames.tiles import crop_tile


def _frame(grid):
    # Each pixel encodes its own coordinates so crops can be checked exactly.
    out = bytearray()
    for y in range(grid.frame_height):
        for x in range(grid.frame_width):
            out += bytes([x % 256, y % 256, (x + y) % 256])
    return bytes(out)


def _expected(frame, grid, rect):
    stride = grid.frame_width * 3
    rows = []
    for y in range(rect.top, rect.top + rect.height):
        start = y * stride + rect.left * 3
        rows.append(frame[start : start + rect.width * 3])
    return b"".join(rows)


class CropTileTests(unittest.TestCase):
    def test_crops_every_cell(self):
        grid = GridSpec(3, 2, 4)
        frame = _frame(grid)
        for rect in layout(grid):
            tile = crop_tile(frame, grid, rect)
            self.assertEqual(len(tile), 4 * 4 * 3)
            self.assertEqual(tile, _expected(frame, grid, rect))

    def test_corner_pixel_of_last_cell(self):
        grid = GridSpec(3, 2, 80)
        frame = _frame(grid)
        last = layout(grid)[5]
        tile = crop_tile(frame, grid, last)
        self.assertEqual(tile[:3], bytes([160, 80, 240]))

    def test_rejects_short_frame(self):
        grid = GridSpec(1, 1, 2)
        with self.assertRaises(ValueError):
            crop_tile(b"\x00" * 5, grid, layout(grid)[0])


if __name__ == "__main__":
    unittest.main()
