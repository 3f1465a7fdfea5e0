"""Shared fixtures: an in-memory backend and fake peers standing in for sockets."""

import asyncio
import json
from typing import Any

import pytest

from remote_volume.backends.sim import SimBackend
from remote_volume.hub import BroadcastHub, ClientConnection
from remote_volume.router import CommandRouter
from remote_volume.state import StateCache


class FakePeer:
    """Records frames a ClientConnection writes; can be told to fail like a dropped socket."""

    def __init__(self, name: str = "peer", fail: bool = False) -> None:
        self.name = name
        self.fail = fail
        self.frames: list[dict[str, Any]] = []

    async def send(self, frame: str) -> None:
        if self.fail:
            raise ConnectionResetError(f"{self.name} went away")
        self.frames.append(json.loads(frame))


async def settle(*clients: ClientConnection) -> None:
    """Let writer tasks drain everything queued so far."""
    for client in clients:
        await client.flush()
    await asyncio.sleep(0)


@pytest.fixture
def backend() -> SimBackend:
    return SimBackend(volume=50, muted=False, device="Speakers")


@pytest.fixture
def cache() -> StateCache:
    return StateCache()


@pytest.fixture
def hub(backend: SimBackend) -> BroadcastHub:
    return BroadcastHub(backend)


@pytest.fixture
def router(backend: SimBackend, hub: BroadcastHub, cache: StateCache) -> CommandRouter:
    return CommandRouter(backend, hub, cache)
