from __future__ import annotations

from .base import AudioBackend, BackendError, parse_percent, run_command

FALLBACK_DEVICE = "Default"


class WindowsBackend(AudioBackend):
    """Default playback endpoint via the AudioDeviceCmdlets PowerShell module."""

    name = "windows"

    def __init__(self, powershell: str = "powershell") -> None:
        self._powershell = powershell

    async def _ps(self, command: str) -> str:
        return await run_command([self._powershell, "-NoProfile", "-NonInteractive", "-Command", command])

    async def get_volume(self) -> int:
        return parse_percent(await self._ps("Get-AudioDevice -PlaybackVolume"))

    async def set_volume(self, volume: int) -> None:
        await self._ps(f"Set-AudioDevice -PlaybackVolume {int(volume)}")

    async def get_muted(self) -> bool:
        out = await self._ps("Get-AudioDevice -PlaybackMute")
        if out not in {"True", "False"}:
            raise BackendError(f"unparseable mute output: {out!r}")
        return out == "True"

    async def set_muted(self, muted: bool) -> None:
        await self._ps(f"Set-AudioDevice -PlaybackMute {'$true' if muted else '$false'}")

    async def get_output_device(self) -> str:
        out = await self._ps("(Get-AudioDevice -Playback).Name")
        return out or FALLBACK_DEVICE
