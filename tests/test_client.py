"""Tests for the remote-volume-ctl client against a stand-in aiohttp server."""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import WSMsgType, web
from aiohttp import test_utils

from remote_volume.client import VolumeClient, _parser, build_request, http_base


def make_fake_server() -> web.Application:
    state = {"volume": 50, "muted": False, "device": "Fake"}

    async def ws_handler(request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        await ws.send_json(state)
        async for msg in ws:
            if msg.type != WSMsgType.TEXT:
                break
            data = msg.json()
            if data["action"] == "setVolume":
                state["volume"] = data["value"]
                await ws.send_json(state)
            elif data["action"] == "getState":
                await ws.send_json(state)
            else:
                await ws.send_json({"error": "Unknown action"})
        return ws

    app = web.Application()
    app.router.add_get("/", ws_handler)
    return app


@pytest_asyncio.fixture
async def ws_url():
    server = test_utils.TestServer(make_fake_server())
    await server.start_server()
    try:
        yield str(server.make_url("/")).replace("http://", "ws://", 1)
    finally:
        await server.close()


class TestHelpers:
    def test_build_request(self) -> None:
        assert build_request("setVolume", 3) == {"action": "setVolume", "value": 3}
        assert build_request("mute") == {"action": "mute"}
        assert build_request("mute", 9) == {"action": "mute"}

    def test_build_request_errors(self) -> None:
        with pytest.raises(ValueError, match="needs a value"):
            build_request("increaseVolume")
        with pytest.raises(ValueError, match="unknown action"):
            build_request("louder")

    def test_http_base(self) -> None:
        assert http_base("ws://10.0.0.2:2501/") == "http://10.0.0.2:2501"
        assert http_base("wss://box.local/") == "https://box.local"

    def test_parser(self) -> None:
        args = _parser().parse_args(["--url", "ws://h:1/", "setVolume", "40"])
        assert (args.url, args.command, args.value) == ("ws://h:1/", "setVolume", 40)
        args = _parser().parse_args(["config", "--no-polling", "--interval", "250"])
        assert args.polling_enabled is False
        assert args.polling_interval_ms == 250
        assert args.port is None


class TestVolumeClient:
    @pytest.mark.asyncio
    async def test_greeting_and_request(self, ws_url: str) -> None:
        client = VolumeClient(ws_url, timeout=2.0)
        try:
            assert (await client.connect())["volume"] == 50
            assert (await client.request("setVolume", 12))["volume"] == 12
            assert (await client.request("getState"))["volume"] == 12
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_request_without_connection(self) -> None:
        with pytest.raises(ConnectionError):
            await VolumeClient("ws://127.0.0.1:9/").request("mute")

    @pytest.mark.asyncio
    async def test_watch_until_stopped(self, ws_url: str) -> None:
        client = VolumeClient(ws_url, timeout=2.0)
        seen = []
        got_one = asyncio.Event()

        def on_state(data: dict) -> None:
            seen.append(data)
            got_one.set()

        task = asyncio.create_task(client.watch(on_state))
        await asyncio.wait_for(got_one.wait(), timeout=2.0)
        await client.stop()
        await asyncio.wait_for(task, timeout=2.0)

        assert seen[0]["device"] == "Fake"
