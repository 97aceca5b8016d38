"""CLI entrypoints for tiled video playback, preload checks, and diagnostics."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import functools
import json
import signal
from dataclasses import asdict
from pathlib import Path

from deckvideo_core import (
    AppConfig,
    PerformanceController,
    PerformanceTargets,
    PlayerError,
    VideoPlayer,
    build_doctor_payload,
    load_config,
)
from deckvideo_core.diagnostics import describe_device
from deckvideo_core.logging_setup import (
    configure_logging,
    get_logger,
    install_crash_hooks,
    install_loop_exception_handler,
)
from deckvideo_device import DeckTransport, DeviceError
from deckvideo_frames import FfmpegDecodeSource, FramesError, GridSpec, ingest


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


def _device_transport() -> DeckTransport:
    from deckvideo_device.elgato import StreamDeckTransport

    return StreamDeckTransport()


def _settings(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(Path(args.config).expanduser() if args.config else None)
    if getattr(args, "video", None):
        cfg.video.path = args.video
    if getattr(args, "ffmpeg", None):
        cfg.video.ffmpeg_binary = args.ffmpeg
    if getattr(args, "fps", None) is not None:
        cfg.playback.fps = args.fps
    if getattr(args, "max_frames", None) is not None:
        cfg.playback.max_frames = args.max_frames
    if getattr(args, "grid_width", None) is not None:
        cfg.grid.width = args.grid_width
    if getattr(args, "grid_height", None) is not None:
        cfg.grid.height = args.grid_height
    if getattr(args, "cell_size", None) is not None:
        cfg.grid.cell_size = args.cell_size
    if getattr(args, "device", None):
        cfg.device.path_override = args.device
    if getattr(args, "brightness", None) is not None:
        cfg.device.brightness = max(0, min(100, args.brightness))
    return cfg


def _grid(cfg: AppConfig) -> GridSpec:
    return GridSpec(grid_width=cfg.grid.width, grid_height=cfg.grid.height, cell_size=cfg.grid.cell_size)


def _source_factory(cfg: AppConfig):
    return functools.partial(FfmpegDecodeSource, ffmpeg_binary=cfg.video.ffmpeg_binary)


def build_player(cfg: AppConfig, transport: DeckTransport) -> VideoPlayer:
    if not cfg.video.path:
        raise ValueError("No video path given")
    return VideoPlayer(
        cfg.video.path,
        _grid(cfg),
        cfg.playback.fps,
        transport=transport,
        source_factory=_source_factory(cfg),
        max_frames=cfg.playback.max_frames,
        progress_every=cfg.playback.progress_every,
        brightness=cfg.device.brightness,
        device_path=cfg.device.path_override,
        max_inflight_ticks=cfg.playback.max_inflight_ticks,
        drain_timeout_s=cfg.playback.drain_timeout_s,
    )


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, stop: asyncio.Event) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler.
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))


async def _monitor(player: VideoPlayer, perf: PerformanceController, interval_s: float) -> None:
    log = get_logger()
    while True:
        await asyncio.sleep(interval_s)
        status = player.status
        budget = perf.sample(status.fps)
        log.info(
            "frame=%d/%d fps=%.1f sent=%d failed=%d dropped=%d cpu=%.1f%% rss=%.0fMB",
            status.frame_cursor,
            status.frames_loaded,
            status.fps,
            status.cells_sent,
            status.cells_failed,
            status.dropped_ticks,
            budget.cpu_percent,
            budget.rss_mb,
            extra={"event": "playback_status"},
        )
        if budget.warning:
            log.warning("performance warning: %s", budget.warning, extra={"event": budget.warning})


async def play(cfg: AppConfig, transport: DeckTransport, stats_interval_s: float = 10.0) -> int:
    log = get_logger()
    loop = asyncio.get_running_loop()
    install_loop_exception_handler(loop)

    player = build_player(cfg, transport)
    stop = asyncio.Event()
    _install_signal_handlers(loop, stop)

    try:
        await player.preload_frames()
        await player.connect()
        player.start_playback()
    except (FramesError, DeviceError, PlayerError) as exc:
        log.error("Critical Failure: %s", exc, extra={"event": "startup_failed"})
        await player.shutdown()
        return 1

    perf = PerformanceController(
        PerformanceTargets(
            cpu_percent_max=cfg.performance.cpu_percent_max,
            rss_mb_max=cfg.performance.rss_mb_max,
            fps_min=cfg.playback.fps * cfg.performance.fps_min_ratio,
        )
    )
    monitor = asyncio.create_task(_monitor(player, perf, stats_interval_s)) if stats_interval_s > 0 else None
    try:
        await stop.wait()
    finally:
        if monitor is not None:
            monitor.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await monitor
        await player.shutdown()
    log.info("Exiting cleanly.", extra={"event": "exit"})
    return 0


def cmd_play(args: argparse.Namespace) -> int:
    cfg = _settings(args)
    if not cfg.video.path:
        get_logger().error("No video path given", extra={"event": "startup_failed"})
        return 2
    install_crash_hooks()
    return asyncio.run(play(cfg, _device_transport(), stats_interval_s=args.stats_interval))


async def preload(cfg: AppConfig) -> dict[str, object]:
    grid = _grid(cfg)
    source = _source_factory(cfg)(cfg.video.path, cfg.playback.fps, grid.frame_width, grid.frame_height)
    store = await ingest(
        source,
        grid,
        on_progress=lambda count: get_logger().info("Loaded %d frames...", count, extra={"event": "preload_progress"}),
        progress_every=cfg.playback.progress_every,
        max_frames=cfg.playback.max_frames,
    )
    return {
        "frames": len(store),
        "frame_size": store.frame_size,
        "bytes": store.total_bytes,
        "frame_width": grid.frame_width,
        "frame_height": grid.frame_height,
        "cells": grid.total_cells,
        "seconds": len(store) / cfg.playback.fps,
    }


def cmd_preload(args: argparse.Namespace) -> int:
    cfg = _settings(args)
    if not cfg.video.path:
        _print_json({"success": False, "error": "No video path given"})
        return 2
    try:
        result = asyncio.run(preload(cfg))
    except FramesError as exc:
        _print_json({"success": False, "error": str(exc)})
        return 1
    result["success"] = True
    _print_json(result)
    return 0


def cmd_list_devices(_args: argparse.Namespace) -> int:
    transport = _device_transport()
    _print_json(
        {
            "decks": [describe_device(d) for d in transport.enumerate()],
            "hid": [describe_device(d) for d in transport.scan()],
        }
    )
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = _settings(args)
    transport: DeckTransport | None
    error = None
    try:
        transport = _device_transport()
    except Exception as exc:
        transport = None
        error = f"{type(exc).__name__}: {exc}"
    payload = build_doctor_payload(cfg, transport)
    if error:
        payload["device_error"] = error
    _print_json(payload)
    return 0


def cmd_show_config(args: argparse.Namespace) -> int:
    _print_json(asdict(_settings(args)))
    return 0


def _add_video_options(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("video", nargs="?", default=None, help="Video file to play (defaults to config video.path)")
    cmd.add_argument("--fps", type=_positive_float, default=None, help="Target frame rate")
    cmd.add_argument("--grid-width", type=_positive_int, default=None, help="Keys per row")
    cmd.add_argument("--grid-height", type=_positive_int, default=None, help="Key rows")
    cmd.add_argument("--cell-size", type=_positive_int, default=None, help="Key size in pixels")
    cmd.add_argument("--max-frames", type=_positive_int, default=None, help="Stop decoding after this many frames")
    cmd.add_argument("--ffmpeg", default=None, help="ffmpeg executable")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="deckvideo", description="Play a video across Stream Deck keys")
    parser.add_argument("--config", default=None, help="Path to a JSON config file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    play_cmd = sub.add_parser("play", help="Decode a video and loop it on the device")
    _add_video_options(play_cmd)
    play_cmd.add_argument("--device", default=None, help="Explicit device path")
    play_cmd.add_argument("--brightness", type=int, default=None, help="Key brightness 0-100")
    play_cmd.add_argument("--stats-interval", type=float, default=10.0, help="Seconds between status logs, 0 disables")
    play_cmd.set_defaults(func=cmd_play)

    preload_cmd = sub.add_parser("preload", help="Decode only and report the frame count")
    _add_video_options(preload_cmd)
    preload_cmd.set_defaults(func=cmd_preload)

    list_cmd = sub.add_parser("list-devices", help="List Stream Decks and HID devices")
    list_cmd.set_defaults(func=cmd_list_devices)

    doctor_cmd = sub.add_parser("doctor", help="Print diagnostics for ffmpeg and devices")
    doctor_cmd.set_defaults(func=cmd_doctor)

    config_cmd = sub.add_parser("show-config", help="Print the effective configuration")
    _add_video_options(config_cmd)
    config_cmd.set_defaults(func=cmd_show_config)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    cfg = load_config(Path(args.config).expanduser() if args.config else None)
    configure_logging(
        keep_files=cfg.logging.keep_log_files,
        console=args.command in ("play", "preload"),
        level="DEBUG" if args.verbose else cfg.logging.level,
    )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
