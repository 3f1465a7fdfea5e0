from __future__ import annotations
import asyncio, logging
from typing import Callable, Union

from .backends.base import AudioBackend, BackendError
from .hub import BroadcastHub, ClientConnection
from .protocol import (
    AdjustVolume, DecodeError, GetState, Intent, Mute, SetVolume, ToggleMute, Unmute,
    decode, error_payload,
)
from .state import StateCache, VolumeState, clamp_volume, read_state

log = logging.getLogger(__name__)


class CommandRouter:
    """
    Applies intents to the audio backend.
    Intents run one at a time so read-modify-write actions (adjust, toggle)
    never interleave; successful mutations refresh the cache and fan out.
    """

    def __init__(
        self,
        backend: AudioBackend,
        hub: BroadcastHub,
        cache: StateCache,
        clamp: Callable[[int], int] = clamp_volume,
    ) -> None:
        self._backend = backend
        self._hub = hub
        self._cache = cache
        self._clamp = clamp
        self._lock = asyncio.Lock()

    async def execute(self, intent: Intent) -> VolumeState:
        """Run one intent and return the freshly read state. Raises BackendError."""
        async with self._lock:
            if isinstance(intent, GetState):
                return await read_state(self._backend)

            await self._apply(intent)
            state = await read_state(self._backend)
            self._cache.update(state)
            # still under the lock so fan-out order matches mutation order
            await self._hub.broadcast(state.to_dict())
        return state

    async def _apply(self, intent: Intent) -> None:
        b = self._backend
        if isinstance(intent, SetVolume):
            await b.set_volume(self._clamp(intent.value))
        elif isinstance(intent, AdjustVolume):
            current = await b.get_volume()
            await b.set_volume(self._clamp(current + intent.direction * intent.delta))
        elif isinstance(intent, Mute):
            await b.set_muted(True)
        elif isinstance(intent, Unmute):
            await b.set_muted(False)
        elif isinstance(intent, ToggleMute):
            await b.set_muted(not await b.get_muted())
        else:
            raise TypeError(f"unhandled intent: {intent!r}")

    async def handle(self, client: ClientConnection, raw: Union[str, bytes]) -> None:
        """Decode one inbound frame from `client` and act on it. Never raises for bad input."""
        try:
            intent = decode(raw)
        except DecodeError as exc:
            log.debug("bad message from %s: %s", client.peer, exc)
            self._hub.send_to(client, error_payload(str(exc)))
            return

        try:
            state = await self.execute(intent)
        except BackendError as exc:
            log.warning("%s from %s failed: %s", type(intent).__name__, client.peer, exc)
            self._hub.send_to(client, error_payload(str(exc)))
            return

        if isinstance(intent, GetState):
            self._hub.send_to(client, state.to_dict())
