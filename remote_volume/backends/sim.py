from __future__ import annotations
import asyncio
from typing import Optional

from .base import AudioBackend, BackendError

# In-memory backend for tests and for running the server on a box without a mixer.


class SimBackend(AudioBackend):
    name = "sim"

    def __init__(self, volume: int = 50, muted: bool = False, device: str = "Simulated Output") -> None:
        self.volume = volume
        self.muted = muted
        self.device = device
        self.fail_with: Optional[str] = None
        self.calls: list[str] = []
        self._lock = asyncio.Lock()

    def _check(self, call: str) -> None:
        self.calls.append(call)
        if self.fail_with:
            raise BackendError(self.fail_with)

    async def get_volume(self) -> int:
        async with self._lock:
            self._check("get_volume")
            return self.volume

    async def set_volume(self, volume: int) -> None:
        async with self._lock:
            self._check("set_volume")
            self.volume = max(0, min(100, int(volume)))

    async def get_muted(self) -> bool:
        async with self._lock:
            self._check("get_muted")
            return self.muted

    async def set_muted(self, muted: bool) -> None:
        async with self._lock:
            self._check("set_muted")
            self.muted = bool(muted)

    async def get_output_device(self) -> str:
        async with self._lock:
            self._check("get_output_device")
            return self.device
