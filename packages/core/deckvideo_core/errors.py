"""Player level errors."""

from __future__ import annotations


class PlayerError(RuntimeError):
    pass


class NotReadyError(PlayerError):
    """Playback was requested before frames were loaded or a device connected."""


class DispatchError(PlayerError):
    def __init__(self, cell_index: int, frame_index: int, cause: BaseException) -> None:
        super().__init__(f"cell {cell_index} of frame {frame_index} failed: {cause!r}")
        self.cell_index = cell_index
        self.frame_index = frame_index
        self.cause = cause
