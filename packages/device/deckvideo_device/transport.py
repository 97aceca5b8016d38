"""Capability interfaces between the playback core and a keypad device."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from .errors import DeviceRuntimeError
from .models import DeckDevice

ErrorListener = Callable[[DeviceRuntimeError], None]


@runtime_checkable
class DeckHandle(Protocol):
    """One open connection to a device with a fixed grid of image cells."""

    @property
    def is_open(self) -> bool: ...

    @property
    def key_count(self) -> int: ...

    async def clear_all(self) -> None: ...

    async def upload_cell(self, cell_index: int, data: bytes) -> None: ...

    async def set_brightness(self, percent: int) -> None: ...

    async def close(self) -> None: ...

    def add_error_listener(self, listener: ErrorListener) -> None: ...


class DeckTransport(Protocol):
    def enumerate(self) -> list[DeckDevice]:
        """Devices the keypad driver recognises."""
        ...

    def scan(self) -> list[DeckDevice]:
        """Every attached HID device, unfiltered."""
        ...

    async def connect(self, path: str) -> DeckHandle: ...


class ErrorNotifier:
    """Fan-out of device faults to registered listeners."""

    def __init__(self) -> None:
        self._listeners: list[ErrorListener] = []

    def add(self, listener: ErrorListener) -> None:
        self._listeners.append(listener)

    def notify(self, error: DeviceRuntimeError) -> None:
        for listener in list(self._listeners):
            listener(error)
