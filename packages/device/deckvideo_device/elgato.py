"""Stream Deck adapter over the streamdeck and hidapi libraries."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

import hid
from PIL import Image
from StreamDeck.DeviceManager import DeviceManager
from StreamDeck.ImageHelpers import PILHelper
from StreamDeck.Transport.Transport import TransportError

from .errors import DeviceRuntimeError, NoDeviceFoundError, UnsupportedDeviceError
from .models import DeckDevice
from .transport import ErrorListener, ErrorNotifier

log = logging.getLogger("deckvideo.device")


def _tile_side(data: bytes) -> int:
    side = math.isqrt(len(data) // 3)
    if side < 1 or side * side * 3 != len(data):
        raise ValueError(f"Tile of {len(data)} bytes is not a square RGB24 image")
    return side


class StreamDeckHandle:
    """Async facade over one open `StreamDeck` object.

    The library is blocking and guards each device with its own lock, so every
    call runs in a worker thread while holding that lock.
    """

    def __init__(self, deck: Any) -> None:
        self._deck = deck
        self._errors = ErrorNotifier()
        self._open = True
        self._key_count = int(deck.key_count())
        self._key_size: tuple[int, int] = tuple(deck.key_image_format()["size"])  # type: ignore[assignment]

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def key_count(self) -> int:
        return self._key_count

    @property
    def key_size(self) -> tuple[int, int]:
        return self._key_size

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._errors.add(listener)

    async def _call(self, what: str, fn, *args) -> Any:
        if not self._open:
            raise DeviceRuntimeError("Device is closed")
        try:
            return await asyncio.to_thread(fn, *args)
        except TransportError as exc:
            error = DeviceRuntimeError(f"{what} failed: {exc}")
            self._errors.notify(error)
            raise error from exc

    def _native_image(self, data: bytes) -> bytes:
        side = _tile_side(data)
        image = Image.frombytes("RGB", (side, side), data)
        if image.size != self._key_size:
            image = image.resize(self._key_size)
        return PILHelper.to_native_key_format(self._deck, image)

    def _set_key_sync(self, cell_index: int, data: bytes) -> None:
        native = self._native_image(data)
        with self._deck:
            self._deck.set_key_image(cell_index, native)

    def _clear_sync(self) -> None:
        with self._deck:
            for key in range(self._key_count):
                self._deck.set_key_image(key, None)

    def _brightness_sync(self, percent: int) -> None:
        with self._deck:
            self._deck.set_brightness(percent)

    def _close_sync(self) -> None:
        with self._deck:
            self._deck.reset()
            self._deck.close()

    async def clear_all(self) -> None:
        await self._call("clear", self._clear_sync)

    async def upload_cell(self, cell_index: int, data: bytes) -> None:
        if not 0 <= cell_index < self._key_count:
            raise IndexError(f"Key {cell_index} out of range for a {self._key_count}-key deck")
        await self._call(f"upload to key {cell_index}", self._set_key_sync, cell_index, data)

    async def set_brightness(self, percent: int) -> None:
        await self._call("set brightness", self._brightness_sync, max(0, min(100, int(percent))))

    async def close(self) -> None:
        if not self._open:
            return
        try:
            await self._call("close", self._close_sync)
        finally:
            self._open = False


class StreamDeckTransport:
    def __init__(self, manager: Any = None) -> None:
        self._manager = manager if manager is not None else DeviceManager()

    @staticmethod
    def _describe(deck: Any) -> DeckDevice:
        return DeckDevice(
            path=str(deck.id()),
            product=str(deck.deck_type()),
            vendor_id=deck.vendor_id(),
            product_id=deck.product_id(),
            manufacturer="Elgato",
            source="streamdeck",
        )

    def _visual_decks(self) -> list[Any]:
        return [d for d in self._manager.enumerate() if d.is_visual()]

    def enumerate(self) -> list[DeckDevice]:
        return [self._describe(d) for d in self._visual_decks()]

    def scan(self) -> list[DeckDevice]:
        devices: list[DeckDevice] = []
        for item in hid.enumerate():
            path = item.get("path") or b""
            devices.append(
                DeckDevice(
                    path=path.decode("utf-8", errors="replace") if isinstance(path, bytes) else str(path),
                    product=item.get("product_string") or "",
                    serial=item.get("serial_number") or None,
                    vendor_id=item.get("vendor_id"),
                    product_id=item.get("product_id"),
                    manufacturer=item.get("manufacturer_string") or None,
                    source="hid",
                )
            )
        return devices

    async def connect(self, path: str) -> StreamDeckHandle:
        """Open the deck whose id is `path`.

        Paths found by the HID scan are matched against every deck the driver
        knows about, not only the visual ones. A device the driver does not
        list, or lists without key displays, raises `UnsupportedDeviceError`.
        """
        decks = await asyncio.to_thread(self._manager.enumerate)
        deck = next((d for d in decks if str(d.id()) == path), None)
        if deck is None:
            if any(d.path == path for d in await asyncio.to_thread(self.scan)):
                raise UnsupportedDeviceError(f"HID device at {path} is not a Stream Deck model the driver supports")
            raise NoDeviceFoundError(f"No Stream Deck at {path}")
        if not deck.is_visual():
            raise UnsupportedDeviceError(f"{deck.deck_type()} at {path} has no key displays")
        try:
            await asyncio.to_thread(deck.open)
        except TransportError as exc:
            raise DeviceRuntimeError(f"Could not open {path}: {exc}") from exc
        log.info("opened %s at %s", deck.deck_type(), path, extra={"event": "device_open", "path": path})
        return StreamDeckHandle(deck)
