import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "frames"))

from deckvideo_frames.store import FrameStore


class FrameStoreTests(unittest.TestCase):
    def test_append_and_index(self):
        store = FrameStore(4)
        store.append(b"abcd")
        store.extend([b"efgh", bytearray(b"ijkl")])
        self.assertEqual(len(store), 3)
        self.assertEqual(store[2], b"ijkl")
        self.assertIsInstance(store[2], bytes)
        self.assertEqual(store.total_bytes, 12)
        self.assertFalse(store.is_empty)

    def test_rejects_wrong_size(self):
        store = FrameStore(4)
        with self.assertRaises(ValueError):
            store.append(b"abc")
        self.assertTrue(store.is_empty)

    def test_sealed_store_is_read_only(self):
        store = FrameStore(2)
        store.append(b"ab")
        store.seal()
        self.assertTrue(store.is_sealed)
        with self.assertRaises(RuntimeError):
            store.append(b"cd")
        self.assertEqual(list(store), [b"ab"])


if __name__ == "__main__":
    unittest.main()
