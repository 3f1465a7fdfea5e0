from __future__ import annotations
import asyncio, json, logging
import contextlib
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from .backends.base import AudioBackend, BackendError
from .protocol import error_payload
from .state import read_state

log = logging.getLogger(__name__)

Send = Callable[[str], Awaitable[None]]


class ClientConnection:
    """One connected peer. Outbound frames go through a bounded queue drained by a writer task."""

    def __init__(self, send: Send, peer: str = "?", maxsize: int = 32) -> None:
        self.peer = peer
        self._send = send
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._writer(), name=f"ws-writer {self.peer}")

    def enqueue(self, payload: Dict[str, Any]) -> bool:
        if self._closed:
            return False
        frame = json.dumps(payload)
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            # drop oldest; every frame is a full snapshot so the newest wins
            with contextlib.suppress(asyncio.QueueEmpty):
                self._queue.get_nowait()
                self._queue.task_done()
            self._queue.put_nowait(frame)
        return True

    async def flush(self) -> None:
        """Wait until everything enqueued so far was written (or discarded)."""
        if self._task is None or self._task.done():
            return
        await self._queue.join()

    async def close(self) -> None:
        self._closed = True
        task, self._task = self._task, None
        if task:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _writer(self) -> None:
        while True:
            frame = await self._queue.get()
            try:
                if not self._closed:
                    await self._send(frame)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log.info("send to %s failed, dropping client: %r", self.peer, exc)
                self._closed = True
            finally:
                self._queue.task_done()


class BroadcastHub:
    """Owns the live client set. All membership changes and fan-outs happen under one lock."""

    def __init__(self, backend: AudioBackend) -> None:
        self._backend = backend
        self._clients: Set[ClientConnection] = set()
        self._lock = asyncio.Lock()

    @property
    def count(self) -> int:
        return len(self._clients)

    async def register(self, send: Send, peer: str = "?") -> ClientConnection:
        client = ClientConnection(send, peer)
        client.start()
        async with self._lock:
            self._clients.add(client)
            total = len(self._clients)
        log.info("client connected: %s (%d total)", peer, total)
        await self.send_state(client)
        return client

    async def unregister(self, client: ClientConnection) -> None:
        async with self._lock:
            self._clients.discard(client)
            total = len(self._clients)
        await client.close()
        log.info("client disconnected: %s (%d total)", client.peer, total)

    def send_to(self, client: ClientConnection, payload: Dict[str, Any]) -> bool:
        return client.enqueue(payload)

    async def send_state(self, client: ClientConnection) -> None:
        """Push freshly queried state to one client (error descriptor if the backend fails)."""
        try:
            state = await read_state(self._backend)
        except BackendError as exc:
            log.warning("state query for %s failed: %s", client.peer, exc)
            self.send_to(client, error_payload(str(exc)))
            return
        self.send_to(client, state.to_dict())

    async def broadcast(self, payload: Dict[str, Any]) -> int:
        delivered = 0
        async with self._lock:
            for client in self._clients:
                if client.closed:
                    continue
                if client.enqueue(payload):
                    delivered += 1
        return delivered

    async def close(self) -> None:
        async with self._lock:
            clients, self._clients = list(self._clients), set()
        for client in clients:
            await client.close()
