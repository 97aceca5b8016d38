"""Device selection policy."""

from __future__ import annotations

from .errors import NoDeviceFoundError
from .models import DeckDevice
from .transport import DeckTransport


def auto_select_device(primary: list[DeckDevice], fallback: list[DeckDevice]) -> DeckDevice | None:
    """Pick the first recognised deck, else the first Elgato device from a raw HID scan."""
    if primary:
        return primary[0]
    for d in fallback:
        if d.is_elgato:
            return d
    return None


def discover_device(transport: DeckTransport) -> DeckDevice:
    primary = transport.enumerate()
    # The raw scan is only needed when the driver sees nothing.
    fallback = [] if primary else transport.scan()
    selected = auto_select_device(primary, fallback)
    if selected is None:
        raise NoDeviceFoundError("No Stream Deck found")
    return selected
