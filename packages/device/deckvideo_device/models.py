"""Typed models for keypad device discovery."""

from __future__ import annotations

from dataclasses import dataclass

ELGATO_VENDOR_ID = 0x0FD9


@dataclass(frozen=True)
class DeckDevice:
    path: str
    product: str
    serial: str | None = None
    vendor_id: int | None = None
    product_id: int | None = None
    manufacturer: str | None = None
    source: str = "deck"

    @property
    def vid_hex(self) -> str | None:
        return None if self.vendor_id is None else f"{self.vendor_id:04X}"

    @property
    def pid_hex(self) -> str | None:
        return None if self.product_id is None else f"{self.product_id:04X}"

    @property
    def is_elgato(self) -> bool:
        if self.vendor_id == ELGATO_VENDOR_ID:
            return True
        return "elgato" in (self.manufacturer or "").lower()
