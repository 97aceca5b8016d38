"""Device level errors."""

from __future__ import annotations


class DeviceError(RuntimeError):
    pass


class NoDeviceFoundError(DeviceError):
    pass


class DeviceRuntimeError(DeviceError):
    """Asynchronous fault reported by an open device."""


class UnsupportedDeviceError(DeviceError):
    """The device exists but the driver cannot put images on its keys."""
