"""Streaming ingestion of a raw decode stream into fixed-size frames."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Callable

from .errors import EmptyStreamError, IngestionError, PipeClosedError
from .models import GridSpec
from .store import FrameStore

log = logging.getLogger("deckvideo.frames")


class FrameAccumulator:
    """Collects irregular chunks and yields exact frame-size slices."""

    def __init__(self, frame_size: int) -> None:
        if frame_size < 1:
            raise ValueError("frame_size must be positive")
        self.frame_size = frame_size
        self._pending = bytearray()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def feed(self, chunk: bytes) -> list[bytes]:
        self._pending += chunk
        frames: list[bytes] = []
        size = self.frame_size
        while len(self._pending) >= size:
            frames.append(bytes(self._pending[:size]))
            del self._pending[:size]
        return frames


async def _close_source(chunks: AsyncIterable[bytes]) -> None:
    aclose = getattr(chunks, "aclose", None)
    if aclose is not None:
        await aclose()


async def ingest(
    chunks: AsyncIterable[bytes],
    grid: GridSpec,
    store: FrameStore | None = None,
    *,
    on_progress: Callable[[int], None] | None = None,
    progress_every: int = 50,
    max_frames: int | None = None,
) -> FrameStore:
    """Slice a raw RGB24 byte stream into frames and commit them to `store`.

    Frames are only committed once the stream finished (or was closed after
    `max_frames`); a failed decode leaves the store untouched.
    """
    if store is None:
        store = FrameStore(grid.frame_size)
    if store.frame_size != grid.frame_size:
        raise ValueError(f"Store frame size {store.frame_size} does not match grid frame size {grid.frame_size}")
    if not store.is_empty:
        log.info("frames already loaded (%d), skipping decode", len(store), extra={"event": "ingest_skipped"})
        return store

    accumulator = FrameAccumulator(grid.frame_size)
    frames: list[bytes] = []
    capped = False

    try:
        async for chunk in chunks:
            for frame in accumulator.feed(chunk):
                frames.append(frame)
                if on_progress is not None and progress_every > 0 and len(frames) % progress_every == 0:
                    on_progress(len(frames))
                if max_frames is not None and len(frames) >= max_frames:
                    capped = True
                    break
            if capped:
                break
    except PipeClosedError as exc:
        if not frames:
            raise IngestionError("decoder output closed before any frame was decoded") from exc
        log.info(
            "decoder output closed after %d frames, keeping them",
            len(frames),
            extra={"event": "ingest_pipe_closed"},
        )
    except Exception as exc:
        raise IngestionError(f"decode failed after {len(frames)} frames: {exc}") from exc
    finally:
        if capped:
            await _close_source(chunks)

    if not frames:
        raise EmptyStreamError("decoder finished without producing any frames")

    if accumulator.pending:
        log.debug("dropping %d trailing bytes", accumulator.pending, extra={"event": "ingest_trailing_bytes"})

    store.extend(frames)
    store.seal()
    log.info(
        "loaded %d frames (%d bytes)",
        len(store),
        store.total_bytes,
        extra={"event": "ingest_done"},
    )
    return store
