"""Player lifecycle: preload, connect, play, stop, reconnect, and shutdown."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from deckvideo_device import DeckDevice, DeckHandle, DeckTransport, DeviceError, DeviceRuntimeError, discover_device
from deckvideo_frames import FfmpegDecodeSource, FrameStore, GridSpec, IngestionError, crop_tile, ingest

from .errors import NotReadyError, PlayerError
from .playback import CropFn, PlaybackLoop, PlaybackStats

log = logging.getLogger("deckvideo.player")

SourceFactory = Callable[[str, float, int, int], AsyncIterable[bytes]]


class PlayerState(str, Enum):
    IDLE = "Idle"
    LOADED = "Loaded"
    CONNECTED = "Connected"
    PLAYING = "Playing"
    STOPPED = "Stopped"
    CLOSED = "Closed"


@dataclass
class PlayerStatus:
    state: PlayerState = PlayerState.IDLE
    device_path: str | None = None
    frames_loaded: int = 0
    frame_cursor: int = 0
    fps: float = 0.0
    ticks: int = 0
    dropped_ticks: int = 0
    cells_sent: int = 0
    cells_failed: int = 0
    device_errors: int = 0
    last_error: str | None = None


class VideoPlayer:
    def __init__(
        self,
        video_path: str | Path,
        grid: GridSpec | None = None,
        fps: float = 30.0,
        *,
        transport: DeckTransport,
        source_factory: SourceFactory = FfmpegDecodeSource,
        crop: CropFn = crop_tile,
        max_frames: int | None = None,
        progress_every: int = 50,
        brightness: int | None = None,
        device_path: str | None = None,
        max_inflight_ticks: int = 2,
        drain_timeout_s: float | None = 1.0,
        on_progress: Callable[[int], None] | None = None,
        on_device_error: Callable[[DeviceRuntimeError], None] | None = None,
    ) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        self.video_path = str(video_path)
        self.grid = grid or GridSpec()
        self.fps = fps
        self.frame_delay_ms = 1000.0 / fps
        self.max_frames = max_frames
        self.progress_every = progress_every
        self.brightness = brightness
        self.device_path = device_path
        self.max_inflight_ticks = max_inflight_ticks
        self.drain_timeout_s = drain_timeout_s

        self.store = FrameStore(self.grid.frame_size)

        self._transport = transport
        self._source_factory = source_factory
        self._crop = crop
        self._on_progress = on_progress
        self._on_device_error = on_device_error

        self._handle: DeckHandle | None = None
        self._playback: PlaybackLoop | None = None
        self._stats = PlaybackStats()
        self._inflight: set[asyncio.Task[None]] = set()
        self._cursor = 0
        self._state = PlayerState.IDLE
        self._device_path: str | None = None
        self._device_errors = 0
        self._last_error: str | None = None
        self._events: list[dict[str, Any]] = []

    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._playback is not None and self._playback.running

    @property
    def is_connected(self) -> bool:
        return self._handle is not None and self._handle.is_open

    @property
    def handle(self) -> DeckHandle | None:
        return self._handle

    @property
    def frame_cursor(self) -> int:
        if self._playback is not None:
            return self._playback.frame_cursor
        return self._cursor

    @property
    def status(self) -> PlayerStatus:
        return PlayerStatus(
            state=self._state,
            device_path=self._device_path,
            frames_loaded=len(self.store),
            frame_cursor=self.frame_cursor,
            device_errors=self._device_errors,
            last_error=self._last_error,
            fps=self._stats.fps if self.is_playing else 0.0,
            ticks=self._stats.ticks,
            dropped_ticks=self._stats.dropped_ticks,
            cells_sent=self._stats.cells_sent,
            cells_failed=self._stats.cells_failed,
        )

    def recent_events(self, limit: int = 200) -> list[dict[str, Any]]:
        return self._events[-limit:]

    def _log_event(self, event: str, **fields: Any) -> None:
        row = {
            "ts_utc": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "state": self._state.value,
        }
        row.update(fields)
        self._events.append(row)
        if len(self._events) > 1000:
            self._events = self._events[-1000:]

    def _ensure_not_closed(self) -> None:
        if self._state is PlayerState.CLOSED:
            raise PlayerError("Player has been shut down")

    def _report_progress(self, count: int) -> None:
        log.info("loaded %d frames...", count, extra={"event": "preload_progress"})
        if self._on_progress is not None:
            self._on_progress(count)

    async def preload_frames(self) -> FrameStore:
        self._ensure_not_closed()
        if not self.store.is_empty:
            log.info("Frames already pre-loaded. Skipping...", extra={"event": "preload_skipped"})
            return self.store

        self._log_event("preload_start", path=self.video_path, fps=self.fps)
        source = self._source_factory(self.video_path, self.fps, self.grid.frame_width, self.grid.frame_height)
        try:
            await ingest(
                source,
                self.grid,
                self.store,
                on_progress=self._report_progress,
                progress_every=self.progress_every,
                max_frames=self.max_frames,
            )
        except IngestionError as exc:
            self._last_error = str(exc)
            self._log_event("preload_error", error=str(exc))
            raise

        if self._state is PlayerState.IDLE:
            self._state = PlayerState.LOADED
        self._log_event("preload_ok", frames=len(self.store))
        return self.store

    async def connect(self) -> str:
        self._ensure_not_closed()
        if self.is_connected:
            log.info("device already connected", extra={"event": "connect_skipped"})
            return self._device_path or ""

        self._log_event("connect_start")
        path = self.device_path
        if not path:
            device: DeckDevice = await asyncio.to_thread(discover_device, self._transport)
            path = device.path

        handle = await self._transport.connect(path)
        try:
            await handle.clear_all()
            if self.brightness is not None:
                await handle.set_brightness(self.brightness)
        except DeviceError as exc:
            self._last_error = str(exc)
            self._log_event("connect_error", path=path, error=str(exc))
            try:
                await handle.close()
            except DeviceError as close_exc:
                log.warning("closing %s after failed setup: %s", path, close_exc, extra={"event": "connect_close_error"})
            raise

        self._handle = handle
        self._device_path = path
        handle.add_error_listener(self._handle_device_error)

        if handle.key_count < self.grid.total_cells:
            log.warning(
                "device has %d keys but the grid needs %d; extra cells will fail",
                handle.key_count,
                self.grid.total_cells,
                extra={"event": "grid_exceeds_device"},
            )

        if self._state in (PlayerState.IDLE, PlayerState.LOADED, PlayerState.STOPPED):
            self._state = PlayerState.CONNECTED
        log.info(
            "Connected to Stream Deck. Grid: %dx%d.",
            self.grid.grid_width,
            self.grid.grid_height,
            extra={"event": "connect_ok"},
        )
        self._log_event("connect_ok", path=path, keys=handle.key_count)
        return path

    def _handle_device_error(self, error: DeviceRuntimeError) -> None:
        self._device_errors += 1
        self._last_error = str(error)
        log.error("device error: %s", error, extra={"event": "device_error"})
        self._log_event("device_error", error=str(error))
        if self._on_device_error is not None:
            self._on_device_error(error)

    def start_playback(self) -> None:
        self._ensure_not_closed()
        if self.is_playing:
            log.info("Playback is already running.", extra={"event": "playback_already_running"})
            return
        if self.store.is_empty or not self.is_connected:
            raise NotReadyError("Cannot start playback: device not connected or frames not loaded")

        self._playback = PlaybackLoop(
            self.store,
            self.grid,
            self._handle,
            self.frame_delay_ms,
            crop=self._crop,
            max_inflight_ticks=self.max_inflight_ticks,
            start_cursor=self._cursor,
            stats=self._stats,
            inflight=self._inflight,
        )
        self._playback.start()
        self._state = PlayerState.PLAYING
        self._log_event("playback_start", fps=self.fps, frames=len(self.store), cursor=self._cursor)

    def stop_playback(self) -> None:
        if not self.is_playing:
            return
        assert self._playback is not None
        self._playback.stop()
        self._cursor = self._playback.frame_cursor
        self._state = PlayerState.STOPPED
        log.info("Playback stopped.", extra={"event": "playback_stop"})
        self._log_event("playback_stop", cursor=self._cursor)

    async def _release_handle(self) -> None:
        if self._playback is not None:
            # Loops share one task set, so this also covers earlier runs.
            await self._playback.drain(self.drain_timeout_s)
        handle, self._handle = self._handle, None
        if handle is not None:
            await handle.close()

    async def reconnect(self) -> str:
        """Close the current device and connect again, resuming playback if it was running."""
        self._ensure_not_closed()
        was_playing = self.is_playing
        self.stop_playback()
        try:
            await self._release_handle()
        except DeviceError as exc:
            # The old device is usually already gone at this point.
            log.warning("closing previous device failed: %s", exc, extra={"event": "reconnect_close_error"})
        self._state = PlayerState.LOADED if not self.store.is_empty else PlayerState.IDLE
        self._log_event("reconnect", resume=was_playing)

        path = await self.connect()
        if was_playing:
            self.start_playback()
        return path

    async def shutdown(self) -> None:
        if self._state is PlayerState.CLOSED:
            return
        self.stop_playback()
        try:
            await self._release_handle()
        finally:
            self._state = PlayerState.CLOSED
            self._log_event("shutdown")
            log.info("Stream Deck connection closed.", extra={"event": "shutdown"})
