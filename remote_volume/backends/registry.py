from __future__ import annotations
import logging
import sys
from typing import Optional

from .alsa import AlsaBackend
from .base import AudioBackend, UnsupportedBackend
from .macos import MacOSBackend
from .sim import SimBackend
from .windows import WindowsBackend

log = logging.getLogger(__name__)

_BY_PLATFORM = {
    "darwin": "macos",
    "win32": "windows",
}


def select_backend(name: str = "auto", platform: Optional[str] = None, *, alsa_control: str = "Master") -> AudioBackend:
    """Pick the backend once at startup; unknown platforms get an always-failing backend."""
    platform = platform or sys.platform
    key = (name or "auto").strip().lower()
    if key == "auto":
        key = "alsa" if platform.startswith("linux") else _BY_PLATFORM.get(platform, "")

    if key == "alsa":
        return AlsaBackend(control=alsa_control)
    if key == "macos":
        return MacOSBackend()
    if key == "windows":
        return WindowsBackend()
    if key == "sim":
        return SimBackend()
    if name and name.strip().lower() != "auto":
        raise ValueError(f"unknown audio backend: {name!r}")

    log.warning("No audio backend for platform %r; volume control disabled", platform)
    return UnsupportedBackend(platform)
