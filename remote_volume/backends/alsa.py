from __future__ import annotations
import re

from .base import AudioBackend, BackendError, run_command

_PERCENT = re.compile(r"\[(\d+)%\]")
_SWITCH = re.compile(r"\[(on|off)\]")
_CONTROL = re.compile(r"Simple mixer control '([^']+)'")


class AlsaBackend(AudioBackend):
    """ALSA mixer via `amixer`, one simple control (Master by default)."""

    name = "alsa"

    def __init__(self, control: str = "Master", amixer: str = "amixer") -> None:
        self._control = control
        self._amixer = amixer

    async def _get(self) -> str:
        return await run_command([self._amixer, "get", self._control])

    async def get_volume(self) -> int:
        out = await self._get()
        m = _PERCENT.search(out)
        if not m:
            raise BackendError(f"no volume in amixer output for {self._control!r}")
        return int(m.group(1))

    async def set_volume(self, volume: int) -> None:
        await run_command([self._amixer, "set", self._control, f"{int(volume)}%"])

    async def get_muted(self) -> bool:
        out = await self._get()
        # Controls without a playback switch (e.g. some PCM) cannot be muted.
        switches = _SWITCH.findall(out)
        if not switches and not _PERCENT.search(out):
            raise BackendError(f"no mute state in amixer output for {self._control!r}")
        return "off" in switches

    async def set_muted(self, muted: bool) -> None:
        await run_command([self._amixer, "set", self._control, "mute" if muted else "unmute"])

    async def get_output_device(self) -> str:
        out = await run_command([self._amixer])
        m = _CONTROL.search(out)
        return m.group(1) if m else self._control
