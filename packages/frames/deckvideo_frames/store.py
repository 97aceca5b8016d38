"""In-memory store of decoded raw frames."""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class FrameStore:
    """Append-only sequence of equally sized RGB24 frame buffers.

    Frames are appended while a video is ingested; after `seal()` the store is
    read-only and playback may index into it freely.
    """

    def __init__(self, frame_size: int) -> None:
        if frame_size < 1:
            raise ValueError("frame_size must be positive")
        self.frame_size = frame_size
        self._frames: list[bytes] = []
        self._sealed = False

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index: int) -> bytes:
        return self._frames[index]

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._frames)

    @property
    def is_empty(self) -> bool:
        return not self._frames

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    @property
    def total_bytes(self) -> int:
        return len(self._frames) * self.frame_size

    def append(self, frame: bytes) -> None:
        if self._sealed:
            raise RuntimeError("Frame store is sealed")
        if len(frame) != self.frame_size:
            raise ValueError(f"Frame size must be {self.frame_size} bytes, got {len(frame)}")
        self._frames.append(bytes(frame))

    def extend(self, frames: Iterable[bytes]) -> None:
        for frame in frames:
            self.append(frame)

    def seal(self) -> None:
        self._sealed = True
