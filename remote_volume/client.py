"""remote-volume-ctl: talk to a running Remote Volume server."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import random
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional

import aiohttp
import httpx

DEFAULT_URL = "ws://127.0.0.1:8080/"

ACTIONS = (
    "setVolume", "increaseVolume", "decreaseVolume",
    "mute", "unmute", "toggleMute", "getState", "isMuted",
)
NEEDS_VALUE = {"setVolume", "increaseVolume", "decreaseVolume"}

OnState = Callable[[dict], Awaitable[None]] | Callable[[dict], None]


def build_request(action: str, value: Optional[int] = None) -> Dict[str, Any]:
    if action not in ACTIONS:
        raise ValueError(f"unknown action {action!r} (choose from {', '.join(ACTIONS)})")
    if action in NEEDS_VALUE:
        if value is None:
            raise ValueError(f"{action} needs a value")
        return {"action": action, "value": int(value)}
    return {"action": action}


def http_base(ws_url: str) -> str:
    """ws://host:port/ -> http://host:port"""
    if ws_url.startswith("wss://"):
        base = "https://" + ws_url[len("wss://"):]
    elif ws_url.startswith("ws://"):
        base = "http://" + ws_url[len("ws://"):]
    else:
        base = ws_url
    return base.rstrip("/")


class VolumeClient:
    """
    One WebSocket session against the server.
    The server pushes the current state right after connect; connect()
    consumes and returns it so request() replies line up.
    """

    def __init__(self, url: str = DEFAULT_URL, *, timeout: float = 5.0) -> None:
        self._url = url
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._stopping = asyncio.Event()

    async def __aenter__(self) -> "VolumeClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def connect(self) -> dict:
        """Open the socket and return the greeting state."""
        await self._close_ws()
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        self._ws = await self._session.ws_connect(self._url, heartbeat=30, autoping=True)
        return await self._receive()

    async def request(self, action: str, value: Optional[int] = None) -> dict:
        ws = self._ws
        if ws is None or ws.closed:
            raise ConnectionError("not connected")
        await ws.send_json(build_request(action, value))
        return await self._receive()

    async def watch(self, on_state: OnState) -> None:
        """Call on_state for every pushed message; reconnect with backoff + jitter until stop()."""
        delay = 1.0
        while not self._stopping.is_set():
            try:
                greeting = await self.connect()
                delay = 1.0
                await self._emit(on_state, greeting)
                await self._recv_loop(on_state)
            except asyncio.CancelledError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError) as exc:
                if not self._stopping.is_set():
                    print(f"[ws] error: {exc!r}", file=sys.stderr, flush=True)
            if self._stopping.is_set():
                break
            timeout = min(60.0, delay) * random.uniform(0.75, 1.25)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=timeout)
                break
            except asyncio.TimeoutError:
                delay = min(delay * 2.0, 60.0)

    async def stop(self) -> None:
        self._stopping.set()
        await self.close()

    async def close(self) -> None:
        await self._close_ws()
        sess, self._session = self._session, None
        if sess:
            with contextlib.suppress(Exception):
                await sess.close()

    # ── Internals ───────────────────────────────────────────────────────────

    async def _receive(self) -> dict:
        ws = self._ws
        if ws is None:
            raise ConnectionError("not connected")
        msg = await ws.receive(timeout=self._timeout)
        if msg.type != aiohttp.WSMsgType.TEXT:
            raise ConnectionError(f"connection closed ({msg.type.name})")
        return json.loads(msg.data)

    async def _recv_loop(self, on_state: OnState) -> None:
        ws = self._ws
        assert ws is not None
        while not self._stopping.is_set():
            msg = await ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    data = json.loads(msg.data)
                except ValueError:
                    continue
                await self._emit(on_state, data)
            elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                break  # reconnect

    @staticmethod
    async def _emit(on_state: OnState, data: dict) -> None:
        res = on_state(data)
        if asyncio.iscoroutine(res):
            await res

    async def _close_ws(self) -> None:
        ws, self._ws = self._ws, None
        if ws:
            with contextlib.suppress(Exception):
                await ws.close()


async def fetch_config(base: str, changes: Dict[str, Any], timeout: float = 5.0) -> dict:
    async with httpx.AsyncClient(timeout=timeout) as cli:
        if changes:
            r = await cli.patch(base + "/api/config", json=changes)
        else:
            r = await cli.get(base + "/api/config")
    data = r.json()
    if r.status_code >= 400:
        raise RuntimeError(data.get("error") or f"HTTP {r.status_code}")
    return data


def _print(data: dict) -> None:
    print(json.dumps(data), flush=True)


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="remote-volume-ctl", description="Control a Remote Volume server.")
    p.add_argument("--url", default=DEFAULT_URL, help=f"server WebSocket URL (default {DEFAULT_URL})")
    p.add_argument("--timeout", type=float, default=5.0)
    sub = p.add_subparsers(dest="command", required=True)

    for action in ACTIONS:
        sp = sub.add_parser(action, help=f"send '{action}'")
        if action in NEEDS_VALUE:
            sp.add_argument("value", type=int)

    sub.add_parser("watch", help="print every state change until interrupted")

    cp = sub.add_parser("config", help="show or change persisted settings (applied on restart)")
    cp.add_argument("--port", type=int)
    cp.add_argument("--polling", dest="polling_enabled", action=argparse.BooleanOptionalAction, default=None)
    cp.add_argument("--interval", dest="polling_interval_ms", type=int, metavar="MS")
    cp.add_argument("--autostart", action=argparse.BooleanOptionalAction, default=None)
    return p


async def _run(args: argparse.Namespace) -> int:
    if args.command == "config":
        keys = ("port", "polling_enabled", "polling_interval_ms", "autostart")
        changes = {k: getattr(args, k) for k in keys if getattr(args, k) is not None}
        try:
            _print(await fetch_config(http_base(args.url), changes, timeout=args.timeout))
        except (httpx.HTTPError, RuntimeError, ValueError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 1
        return 0

    client = VolumeClient(args.url, timeout=args.timeout)
    if args.command == "watch":
        try:
            await client.watch(_print)
        finally:
            await client.stop()
        return 0

    try:
        async with client:
            reply = await client.request(args.command, getattr(args, "value", None))
    except (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    _print(reply)
    return 1 if "error" in reply else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _parser().parse_args(argv)
    with contextlib.suppress(KeyboardInterrupt):
        return asyncio.run(_run(args))
    return 130


if __name__ == "__main__":
    sys.exit(main())
