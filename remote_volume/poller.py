from __future__ import annotations
import asyncio, logging
import contextlib
from enum import Enum
from typing import Optional

from .backends.base import AudioBackend, BackendError
from .hub import BroadcastHub
from .state import StateCache, VolumeState, clamp_volume

log = logging.getLogger(__name__)


class PollState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class PollLoop:
    """Catches out-of-band changes (hardware knob, other mixers) and fans them out."""

    def __init__(
        self,
        backend: AudioBackend,
        hub: BroadcastHub,
        cache: StateCache,
        *,
        interval: float = 0.5,
        enabled: bool = True,
    ) -> None:
        self._backend = backend
        self._hub = hub
        self._cache = cache
        self._interval = interval
        self._enabled = enabled
        self._state = PollState.STOPPED
        self._task: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()
        self._failures = 0

    @property
    def state(self) -> PollState:
        return self._state

    def start(self) -> bool:
        if not self._enabled:
            log.info("polling disabled")
            return False
        if self._state is PollState.RUNNING:
            return True
        self._stopping.clear()
        self._state = PollState.RUNNING
        self._task = asyncio.create_task(self._run(), name="volume-poll")
        log.info("polling every %.0f ms", self._interval * 1000)
        return True

    async def stop(self) -> None:
        self._stopping.set()
        task, self._task = self._task, None
        if task:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._state = PollState.STOPPED

    async def tick(self) -> bool:
        """One poll. Returns True if it broadcast a new state."""
        try:
            volume = clamp_volume(await self._backend.get_volume())
            muted = bool(await self._backend.get_muted())
            if not self._cache.changed(volume, muted):
                self._failures = 0
                return False
            device = await self._backend.get_output_device()
        except BackendError as exc:
            self._failures += 1
            if self._failures == 1:
                log.warning("poll failed: %s", exc)
            else:
                log.debug("poll failed (%d in a row): %s", self._failures, exc)
            return False

        self._failures = 0
        state = VolumeState(volume=volume, muted=muted, device=device)
        self._cache.update(state)
        await self._hub.broadcast(state.to_dict())
        log.debug("out-of-band change: %s", state)
        return True

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while not self._stopping.is_set():
            await self.tick()
            # fixed period: a slow tick does not shift later ones
            next_at += self._interval
            delay = max(0.0, next_at - loop.time())
            if delay == 0.0:
                next_at = loop.time()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            except asyncio.TimeoutError:
                continue
