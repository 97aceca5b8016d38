"""Errors raised while decoding and ingesting frames."""

from __future__ import annotations


class FramesError(RuntimeError):
    pass


class IngestionError(FramesError):
    """Decoding failed before a usable frame sequence was collected."""


class EmptyStreamError(IngestionError):
    """The decode stream ended without producing a single whole frame."""


class DecodeError(FramesError):
    def __init__(self, message: str, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class PipeClosedError(DecodeError):
    """The decoder stopped because its output pipe was closed by the reader."""
