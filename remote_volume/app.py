"""Remote Volume entry: audio backend + poll loop + WebSocket/HTTP server."""
from __future__ import annotations
import asyncio, logging
import contextlib
import dataclasses
import signal

import uvicorn

from .backends.registry import select_backend
from .config import Config
from .hub import BroadcastHub
from .persistence import SQLiteKV, SettingsStore
from .poller import PollLoop
from .router import CommandRouter
from .server import make_app
from .state import StateCache

log = logging.getLogger(__name__)


async def main() -> None:
    cfg = Config.load()
    logging.basicConfig(level=cfg.log_level.upper())

    store = SettingsStore(SQLiteKV(cfg.settings_db))
    settings = await store.load()
    if cfg.port_override:
        settings = dataclasses.replace(settings, port=cfg.port_override).validate()

    backend = select_backend(cfg.audio_backend, alsa_control=cfg.alsa_control)
    log.info("Remote Volume starting")
    log.info("  Port: %d", settings.port)
    log.info("  Polling: %s", settings.polling_enabled)
    log.info("  Polling Interval: %dms", settings.polling_interval_ms)
    log.info("  Autostart: %s", settings.autostart)
    log.info("  Backend: %s", backend.name)

    cache = StateCache()
    hub = BroadcastHub(backend)
    router = CommandRouter(backend, hub, cache)
    poller = PollLoop(
        backend, hub, cache,
        interval=settings.polling_interval_ms / 1000.0,
        enabled=settings.polling_enabled,
    )

    app = make_app(hub, router, store, settings)

    # Uvicorn inside this process
    config = uvicorn.Config(app=app, host=cfg.host, port=settings.port, log_level=cfg.log_level.lower(), loop="asyncio")
    server = uvicorn.Server(config)

    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            asyncio.get_running_loop().add_signal_handler(sig, stop.set)

    serve = asyncio.create_task(server.serve())
    poller.start()
    log.info("WebSocket server started on %s:%d", cfg.host, settings.port)

    waiter = asyncio.create_task(stop.wait())
    try:
        await asyncio.wait({serve, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        log.info("shutting down")
        await poller.stop()
        await hub.close()
        server.should_exit = True
        waiter.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await waiter
        (result,) = await asyncio.gather(serve, return_exceptions=True)
    if isinstance(result, Exception):
        raise result


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
