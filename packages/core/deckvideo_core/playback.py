"""Fixed-interval playback of stored frames onto a grid of device cells."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from deckvideo_device import DeckHandle
from deckvideo_frames import CellRect, FrameStore, GridSpec, crop_tile, layout

from .errors import DispatchError, NotReadyError

log = logging.getLogger("deckvideo.playback")

CropFn = Callable[[bytes, GridSpec, CellRect], "bytes | Awaitable[bytes]"]


@dataclass
class PlaybackStats:
    ticks: int = 0
    dispatched_ticks: int = 0
    dropped_ticks: int = 0
    cells_sent: int = 0
    cells_failed: int = 0
    fps: float = 0.0
    started_at: float | None = None
    failures_by_cell: dict[int, int] = field(default_factory=dict)


class PlaybackLoop:
    """Timer that fans each frame out to every cell of the device.

    Each tick issues one dispatch task (crop and upload for every cell,
    concurrently) and advances the frame cursor immediately. The cursor is
    not gated on upload completion, so slow uploads skew frames rather than
    slow the frame rate. At most `max_inflight_ticks` dispatch tasks run at
    once; further ticks skip their dispatch but still advance.

    Successive loops for the same player share `stats` and `inflight`, so
    counters survive a restart and one drain covers every earlier dispatch.
    """

    def __init__(
        self,
        store: FrameStore,
        grid: GridSpec,
        device: DeckHandle | None,
        interval_ms: float,
        *,
        crop: CropFn = crop_tile,
        max_inflight_ticks: int = 2,
        start_cursor: int = 0,
        stats: PlaybackStats | None = None,
        inflight: set[asyncio.Task[None]] | None = None,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if store.frame_size != grid.frame_size:
            raise ValueError("Store frame size does not match grid")
        self.store = store
        self.grid = grid
        self.device = device
        self.interval_ms = interval_ms
        self.max_inflight_ticks = max(1, max_inflight_ticks)
        self.frame_cursor = start_cursor % len(store) if len(store) else 0
        self.stats = stats if stats is not None else PlaybackStats()

        self._crop = crop
        self._cells = layout(grid)
        self._running = False
        self._timer: asyncio.Task[None] | None = None
        self._inflight: set[asyncio.Task[None]] = inflight if inflight is not None else set()
        self._started_at: float | None = None
        self._start_ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def start(self) -> None:
        if self.store.is_empty:
            raise NotReadyError("Cannot start playback: no frames loaded")
        if self.device is None or not self.device.is_open:
            raise NotReadyError("Cannot start playback: device not connected")
        if self._running:
            return
        loop = asyncio.get_running_loop()
        self._running = True
        self._started_at = loop.time()
        self._start_ticks = self.stats.ticks
        if self.stats.started_at is None:
            self.stats.started_at = self._started_at
        self._timer = loop.create_task(self._run_timer(), name="deckvideo-playback-timer")
        log.info(
            "playback started at %.1f ms per frame",
            self.interval_ms,
            extra={"event": "playback_start"},
        )

    def stop(self) -> None:
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _run_timer(self) -> None:
        loop = asyncio.get_running_loop()
        interval = self.interval_ms / 1000
        deadline = loop.time()
        while self._running:
            deadline += interval
            delay = deadline - loop.time()
            if delay < -interval:
                # More than a whole tick late; re-anchor instead of bursting.
                deadline = loop.time()
                delay = 0.0
            await asyncio.sleep(max(delay, 0.0))
            self.tick()

    def tick(self) -> bool:
        """Dispatch the current frame and advance the cursor. No-op once stopped."""
        if not self._running:
            return False

        index = self.frame_cursor
        frame = self.store[index]
        self.stats.ticks += 1

        if len(self._inflight) >= self.max_inflight_ticks:
            self.stats.dropped_ticks += 1
            log.debug("dispatch backlog full, dropping frame %d", index, extra={"event": "tick_dropped"})
        else:
            task = asyncio.get_running_loop().create_task(self._dispatch(index, frame))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            self.stats.dispatched_ticks += 1

        self.frame_cursor = (index + 1) % len(self.store)

        loop_time = asyncio.get_running_loop().time()
        if self._started_at is not None and loop_time > self._started_at:
            self.stats.fps = (self.stats.ticks - self._start_ticks) / (loop_time - self._started_at)
        return True

    async def _dispatch(self, frame_index: int, frame: bytes) -> None:
        await asyncio.gather(*(self._dispatch_cell(frame_index, frame, rect) for rect in self._cells))

    async def _dispatch_cell(self, frame_index: int, frame: bytes, rect: CellRect) -> None:
        try:
            tile = self._crop(frame, self.grid, rect)
            if inspect.isawaitable(tile):
                tile = await tile
            await self.device.upload_cell(rect.cell_index, tile)  # type: ignore[union-attr]
        except Exception as exc:
            error = DispatchError(rect.cell_index, frame_index, exc)
            self.stats.cells_failed += 1
            self.stats.failures_by_cell[rect.cell_index] = self.stats.failures_by_cell.get(rect.cell_index, 0) + 1
            log.warning(
                "%s",
                error,
                extra={"event": "dispatch_error", "frame": frame_index, "cell": rect.cell_index},
            )
            return
        self.stats.cells_sent += 1

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for in-flight dispatches; cancel what is left after `timeout`.

        Returns the number of dispatch tasks that had to be cancelled.
        """
        pending = set(self._inflight)
        if not pending:
            return 0
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
            log.warning(
                "cancelled %d dispatches still running after %.2fs",
                len(still_running),
                timeout or 0.0,
                extra={"event": "drain_timeout"},
            )
        return len(still_running)
