"""Persistent player settings schema and load/save helpers."""

from __future__ import annotations

import json
import os
import platform
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any


CONFIG_VERSION = 1
MAX_FPS = 120.0


@dataclass
class VideoConfig:
    path: str | None = None
    ffmpeg_binary: str = "ffmpeg"


@dataclass
class PlaybackConfig:
    fps: float = 30.0
    max_frames: int | None = None
    progress_every: int = 50
    max_inflight_ticks: int = 2
    drain_timeout_s: float = 1.0


@dataclass
class GridConfig:
    width: int = 3
    height: int = 2
    cell_size: int = 80


@dataclass
class DeviceConfig:
    path_override: str | None = None
    brightness: int | None = None


@dataclass
class LoggingConfig:
    keep_log_files: int = 7
    level: str = "INFO"


@dataclass
class PerformanceConfig:
    cpu_percent_max: float = 25.0
    rss_mb_max: float = 1024.0
    fps_min_ratio: float = 0.8


@dataclass
class AppConfig:
    config_version: int = CONFIG_VERSION
    video: VideoConfig = field(default_factory=VideoConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    grid: GridConfig = field(default_factory=GridConfig)
    device: DeviceConfig = field(default_factory=DeviceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)


def config_root() -> Path:
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
        return base / "DeckVideo"
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / "DeckVideo"
    return Path.home() / ".config" / "deckvideo"


def config_path() -> Path:
    return config_root() / "config.json"


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    if not isinstance(raw, dict):
        return defaults
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _positive_int(value: Any, default: int) -> int:
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        return default


def _normalize_playback(cfg: AppConfig) -> None:
    pb = cfg.playback
    try:
        fps = float(pb.fps)
    except (TypeError, ValueError):
        fps = PlaybackConfig.fps
    if fps <= 0:
        fps = PlaybackConfig.fps
    pb.fps = min(fps, MAX_FPS)
    pb.max_frames = None if pb.max_frames in (None, 0) else _positive_int(pb.max_frames, 1)
    pb.progress_every = _positive_int(pb.progress_every, PlaybackConfig.progress_every) if pb.progress_every else 0
    pb.max_inflight_ticks = _positive_int(pb.max_inflight_ticks, PlaybackConfig.max_inflight_ticks)
    try:
        pb.drain_timeout_s = max(0.0, float(pb.drain_timeout_s))
    except (TypeError, ValueError):
        pb.drain_timeout_s = PlaybackConfig.drain_timeout_s


def _normalize_grid(cfg: AppConfig) -> None:
    cfg.grid.width = _positive_int(cfg.grid.width, GridConfig.width)
    cfg.grid.height = _positive_int(cfg.grid.height, GridConfig.height)
    cfg.grid.cell_size = _positive_int(cfg.grid.cell_size, GridConfig.cell_size)


def _normalize_device(cfg: AppConfig) -> None:
    if cfg.device.brightness is not None:
        try:
            cfg.device.brightness = max(0, min(100, int(cfg.device.brightness)))
        except (TypeError, ValueError):
            cfg.device.brightness = None
    if not cfg.device.path_override:
        cfg.device.path_override = None


def _normalize_logging(cfg: AppConfig) -> None:
    level = str(cfg.logging.level).upper()
    cfg.logging.level = level if level in ("DEBUG", "INFO", "WARNING", "ERROR") else "INFO"
    cfg.logging.keep_log_files = max(2, _positive_int(cfg.logging.keep_log_files, LoggingConfig.keep_log_files))


def load_config(path: Path | None = None) -> AppConfig:
    path = path or config_path()
    if not path.exists():
        return AppConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return AppConfig()
    if not isinstance(raw, dict):
        return AppConfig()

    cfg = AppConfig(
        config_version=_positive_int(raw.get("config_version", CONFIG_VERSION), CONFIG_VERSION),
        video=_merge(VideoConfig, raw.get("video", {})),
        playback=_merge(PlaybackConfig, raw.get("playback", {})),
        grid=_merge(GridConfig, raw.get("grid", {})),
        device=_merge(DeviceConfig, raw.get("device", {})),
        logging=_merge(LoggingConfig, raw.get("logging", {})),
        performance=_merge(PerformanceConfig, raw.get("performance", {})),
    )

    _normalize_playback(cfg)
    _normalize_grid(cfg)
    _normalize_device(cfg)
    _normalize_logging(cfg)
    return cfg


def save_config(cfg: AppConfig, path: Path | None = None) -> Path:
    cfg.config_version = CONFIG_VERSION
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(asdict(cfg), indent=2, sort_keys=True), encoding="utf-8")
    return path
