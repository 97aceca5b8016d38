"""ffmpeg subprocess producing a raw RGB24 byte stream."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
import signal
from collections import deque
from collections.abc import AsyncIterator
from pathlib import Path

from .errors import DecodeError, PipeClosedError

log = logging.getLogger("deckvideo.decode")

_SIGPIPE = getattr(signal, "SIGPIPE", None)


class FfmpegDecodeSource:
    """Async iterable of raw frame bytes decoded by an ffmpeg child process."""

    def __init__(
        self,
        path: str | Path,
        fps: float,
        width: int,
        height: int,
        ffmpeg_binary: str = "ffmpeg",
        read_size: int = 65536,
        terminate_timeout_s: float = 2.0,
    ) -> None:
        if fps <= 0:
            raise ValueError("fps must be positive")
        if width < 1 or height < 1:
            raise ValueError("Output size must be positive")
        self.path = str(path)
        self.fps = fps
        self.width = width
        self.height = height
        self.ffmpeg_binary = ffmpeg_binary
        self.read_size = read_size
        self.terminate_timeout_s = terminate_timeout_s

        self._process: asyncio.subprocess.Process | None = None
        self._stream_iter: AsyncIterator[bytes] | None = None
        self._stderr_tail: deque[str] = deque(maxlen=20)
        self._closing = False

    def command(self) -> list[str]:
        return [
            self.ffmpeg_binary,
            "-hide_banner",
            "-loglevel",
            "error",
            "-i",
            self.path,
            "-an",
            "-vf",
            f"fps={self.fps:g}",
            "-pix_fmt",
            "rgb24",
            "-s",
            f"{self.width}x{self.height}",
            "-f",
            "rawvideo",
            "pipe:1",
        ]

    @property
    def stderr_tail(self) -> str:
        return "\n".join(self._stderr_tail)

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._stream_iter is None:
            self._stream_iter = self._stream()
        return self._stream_iter

    def _check_inputs(self) -> str:
        binary = shutil.which(self.ffmpeg_binary)
        if binary is None:
            raise DecodeError(f"ffmpeg executable not found: {self.ffmpeg_binary}")
        if "://" not in self.path and not Path(self.path).is_file():
            raise DecodeError(f"Video file not found: {self.path}")
        return binary

    async def _drain_stderr(self, stream: asyncio.StreamReader) -> None:
        while True:
            line = await stream.readline()
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            if text:
                self._stderr_tail.append(text)
                log.debug("ffmpeg: %s", text)

    async def _stream(self) -> AsyncIterator[bytes]:
        binary = self._check_inputs()
        cmd = self.command()
        cmd[0] = binary
        log.info(
            "starting ffmpeg decode at %g fps, %dx%d",
            self.fps,
            self.width,
            self.height,
            extra={"event": "decode_start"},
        )
        self._process = process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        assert process.stdout is not None and process.stderr is not None
        stderr_task = asyncio.create_task(self._drain_stderr(process.stderr))

        try:
            while True:
                try:
                    chunk = await process.stdout.read(self.read_size)
                except (BrokenPipeError, ConnectionResetError) as exc:
                    raise PipeClosedError(f"ffmpeg output pipe closed: {exc}") from exc
                if not chunk:
                    break
                yield chunk

            returncode = await process.wait()
            await stderr_task
        finally:
            await self._terminate()
            if not stderr_task.done():
                stderr_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await stderr_task

        if self._closing:
            return
        if _SIGPIPE is not None and returncode == -_SIGPIPE:
            raise PipeClosedError("ffmpeg terminated by SIGPIPE", returncode=returncode, stderr=self.stderr_tail)
        if returncode != 0:
            raise DecodeError(
                f"ffmpeg exited with status {returncode}: {self.stderr_tail or 'no diagnostics'}",
                returncode=returncode,
                stderr=self.stderr_tail,
            )

    async def _terminate(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=self.terminate_timeout_s)
        except asyncio.TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
        log.debug("ffmpeg terminated", extra={"event": "decode_terminated"})

    async def aclose(self) -> None:
        self._closing = True
        if self._stream_iter is not None:
            await self._stream_iter.aclose()  # type: ignore[attr-defined]
        await self._terminate()
