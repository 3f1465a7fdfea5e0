from __future__ import annotations
from typing import Optional

from .base import AudioBackend, BackendError, parse_percent, run_command

FALLBACK_DEVICE = "Built-in Output"


def default_output_from_profiler(text: str) -> Optional[str]:
    """Return the device flagged 'Default Output Device: Yes' in system_profiler output."""
    current: Optional[str] = None
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            continue
        if line.endswith(":") and ": " not in line:
            current = line[:-1]
        elif line == "Default Output Device: Yes" and current:
            return current
    return None


class MacOSBackend(AudioBackend):
    """CoreAudio through AppleScript `get volume settings`."""

    name = "macos"

    def __init__(self, osascript: str = "osascript") -> None:
        self._osascript = osascript

    async def _script(self, source: str) -> str:
        return await run_command([self._osascript, "-e", source])

    async def get_volume(self) -> int:
        out = await self._script("output volume of (get volume settings)")
        # "missing value" when the current device has no software volume
        return parse_percent(out)

    async def set_volume(self, volume: int) -> None:
        await self._script(f"set volume output volume {int(volume)}")

    async def get_muted(self) -> bool:
        out = await self._script("output muted of (get volume settings)")
        if out not in {"true", "false"}:
            raise BackendError(f"unparseable mute output: {out!r}")
        return out == "true"

    async def set_muted(self, muted: bool) -> None:
        await self._script(f"set volume {'with' if muted else 'without'} output muted")

    async def get_output_device(self) -> str:
        out = await run_command(["system_profiler", "SPAudioDataType"], timeout=15.0)
        return default_output_from_profiler(out) or FALLBACK_DEVICE
