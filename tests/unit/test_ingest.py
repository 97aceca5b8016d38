import random
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(ROOT / "packages" / "frames"))

from deckvideo_frames.errors import DecodeError, EmptyStreamError, IngestionError, PipeClosedError
from deckvideo_frames.ingest import FrameAccumulator, ingest
from deckvideo_frames.models import GridSpec
from deckvideo_frames.store import FrameStore

GRID = GridSpec(2, 1, 2)  # frame_size = 4 * 2 * 3 = 24


class FakeSource:
    def __init__(self, chunks, error=None):
        self.chunks = list(chunks)
        self.error = error
        self.yielded = 0
        self.closed = False

    def __aiter__(self):
        return self._gen()

    async def _gen(self):
        for chunk in self.chunks:
            if self.closed:
                return
            self.yielded += 1
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.closed = True


def _payload(frames, extra=0):
    return bytes(i % 251 for i in range(frames * GRID.frame_size + extra))


def _split(data, cuts):
    out, last = [], 0
    for cut in sorted(cuts):
        out.append(data[last:cut])
        last = cut
    out.append(data[last:])
    return out


class FrameAccumulatorTests(unittest.TestCase):
    def test_keeps_remainder_between_chunks(self):
        acc = FrameAccumulator(4)
        self.assertEqual(acc.feed(b"ab"), [])
        self.assertEqual(acc.feed(b"cdefghij"), [b"abcd", b"efgh"])
        self.assertEqual(acc.pending, 2)
        self.assertEqual(acc.feed(b"kl"), [b"ijkl"])
        self.assertEqual(acc.pending, 0)


class IngestTests(unittest.IsolatedAsyncioTestCase):
    async def test_chunk_boundaries_do_not_change_frames(self):
        data = _payload(5, extra=7)
        reference = await ingest(FakeSource([data]), GRID)
        rng = random.Random(1234)
        chunkings = [
            [data[i : i + 1] for i in range(len(data))],
            [data[i : i + 23] for i in range(0, len(data), 23)],
            [data[i : i + 25] for i in range(0, len(data), 25)],
        ]
        for _ in range(10):
            cuts = rng.sample(range(1, len(data)), rng.randint(1, 20))
            chunkings.append(_split(data, cuts))
        for chunks in chunkings:
            store = await ingest(FakeSource(chunks), GRID)
            self.assertEqual(list(store), list(reference))

    async def test_remainder_bytes_are_dropped(self):
        for extra in (0, 1, GRID.frame_size - 1):
            data = _payload(3, extra=extra)
            store = await ingest(FakeSource([data]), GRID)
            self.assertEqual(len(store), 3)
            self.assertEqual(store[2], data[2 * GRID.frame_size : 3 * GRID.frame_size])
            self.assertTrue(store.is_sealed)

    async def test_mini_grid_example(self):
        grid = GridSpec(3, 2, 80)
        data = bytes(3 * 115200)
        store = await ingest(FakeSource([data[:100000], data[100000:]]), grid)
        self.assertEqual(len(store), 3)
        self.assertEqual(store.frame_size, 115200)

    async def test_empty_stream(self):
        with self.assertRaises(EmptyStreamError):
            await ingest(FakeSource([]), GRID)

    async def test_partial_frame_only_is_empty(self):
        with self.assertRaises(EmptyStreamError):
            await ingest(FakeSource([b"\x00" * (GRID.frame_size - 1)]), GRID)

    async def test_pipe_closed_after_frames_is_benign(self):
        data = _payload(2, extra=5)
        store = await ingest(FakeSource([data], error=PipeClosedError("closed")), GRID)
        self.assertEqual(len(store), 2)

    async def test_pipe_closed_before_frames_fails(self):
        with self.assertRaises(IngestionError) as ctx:
            await ingest(FakeSource([b"\x00" * 3], error=PipeClosedError("closed")), GRID)
        self.assertNotIsInstance(ctx.exception, EmptyStreamError)

    async def test_decode_error_discards_partial_frames(self):
        store = FrameStore(GRID.frame_size)
        with self.assertRaises(IngestionError) as ctx:
            await ingest(FakeSource([_payload(2)], error=DecodeError("boom", returncode=1)), GRID, store)
        self.assertIsInstance(ctx.exception.__cause__, DecodeError)
        self.assertTrue(store.is_empty)
        self.assertFalse(store.is_sealed)

    async def test_second_call_is_noop(self):
        store = await ingest(FakeSource([_payload(2)]), GRID)
        source = FakeSource([_payload(4)])
        again = await ingest(source, GRID, store)
        self.assertIs(again, store)
        self.assertEqual(len(store), 2)
        self.assertEqual(source.yielded, 0)

    async def test_progress_callback(self):
        seen = []
        await ingest(FakeSource([_payload(7)]), GRID, on_progress=seen.append, progress_every=3)
        self.assertEqual(seen, [3, 6])

    async def test_max_frames_closes_source(self):
        frame_chunks = [bytes([n]) * GRID.frame_size for n in range(10)]
        source = FakeSource(frame_chunks)
        store = await ingest(source, GRID, max_frames=4)
        self.assertEqual(len(store), 4)
        self.assertEqual(store[3], bytes([3]) * GRID.frame_size)
        self.assertTrue(source.closed)
        self.assertEqual(source.yielded, 4)

    async def test_rejects_mismatched_store(self):
        with self.assertRaises(ValueError):
            await ingest(FakeSource([]), GRID, FrameStore(GRID.frame_size + 1))


if __name__ == "__main__":
    unittest.main()
