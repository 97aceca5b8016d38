"""Core player services: playback loop, lifecycle, settings, diagnostics."""

from .config import AppConfig, load_config, save_config
from .diagnostics import build_doctor_payload
from .errors import DispatchError, NotReadyError, PlayerError
from .performance import BudgetStatus, PerformanceController, PerformanceTargets
from .playback import PlaybackLoop, PlaybackStats
from .player import PlayerState, PlayerStatus, VideoPlayer

__all__ = [
    "AppConfig",
    "BudgetStatus",
    "DispatchError",
    "NotReadyError",
    "PerformanceController",
    "PerformanceTargets",
    "PlaybackLoop",
    "PlaybackStats",
    "PlayerError",
    "PlayerState",
    "PlayerStatus",
    "VideoPlayer",
    "build_doctor_payload",
    "load_config",
    "save_config",
]
