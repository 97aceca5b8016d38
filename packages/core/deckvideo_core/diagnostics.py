"""Doctor payload for troubleshooting decode and device setup."""

from __future__ import annotations

import platform
import re
import shutil
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from deckvideo_device import DeckDevice, DeckTransport

from .config import AppConfig


_SECRET_RE = re.compile(r"(token|secret|password|apikey|api_key|auth)", re.IGNORECASE)


def redact(value: Any) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if _SECRET_RE.search(k):
                out[k] = "***REDACTED***"
            else:
                out[k] = redact(v)
        return out
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def describe_device(d: DeckDevice) -> dict[str, Any]:
    return {
        "path": d.path,
        "product": d.product,
        "serial": d.serial,
        "vid": d.vid_hex,
        "pid": d.pid_hex,
        "manufacturer": d.manufacturer,
        "source": d.source,
        "compatible": d.is_elgato,
    }


def build_doctor_payload(cfg: AppConfig, transport: DeckTransport | None) -> dict[str, Any]:
    ffmpeg = shutil.which(cfg.video.ffmpeg_binary)
    payload: dict[str, Any] = {
        "ts_utc": datetime.now(timezone.utc).isoformat(),
        "platform": platform.platform(),
        "python": platform.python_version(),
        "config": redact(asdict(cfg)),
        "ffmpeg": {"binary": cfg.video.ffmpeg_binary, "resolved": ffmpeg, "available": ffmpeg is not None},
        "devices": [],
        "hid_devices": [],
    }
    if transport is None:
        payload["device_error"] = "device transport unavailable"
        return payload

    payload["devices"] = [describe_device(d) for d in transport.enumerate()]
    payload["hid_devices"] = [describe_device(d) for d in transport.scan() if d.is_elgato]
    return payload
