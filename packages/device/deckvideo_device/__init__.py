"""Keypad device interfaces and discovery for tiled video playback."""

from .discovery import auto_select_device, discover_device
from .errors import DeviceError, DeviceRuntimeError, NoDeviceFoundError, UnsupportedDeviceError
from .models import ELGATO_VENDOR_ID, DeckDevice
from .transport import DeckHandle, DeckTransport, ErrorListener, ErrorNotifier

__all__ = [
    "DeckDevice",
    "DeckHandle",
    "DeckTransport",
    "DeviceError",
    "DeviceRuntimeError",
    "ELGATO_VENDOR_ID",
    "ErrorListener",
    "ErrorNotifier",
    "NoDeviceFoundError",
    "UnsupportedDeviceError",
    "auto_select_device",
    "discover_device",
]
