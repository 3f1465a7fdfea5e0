from __future__ import annotations
import logging
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .backends.base import BackendError
from .config import Settings
from .hub import BroadcastHub
from .persistence import SettingsStore
from .protocol import ActionBody, DecodeError, GetState, error_payload, to_intent
from .router import CommandRouter

log = logging.getLogger(__name__)


class PatchConfigBody(BaseModel):
    port: Optional[int] = None
    polling_enabled: Optional[bool] = None
    polling_interval_ms: Optional[int] = None
    autostart: Optional[bool] = None


def make_app(hub: BroadcastHub, router: CommandRouter, store: SettingsStore, active: Settings) -> FastAPI:
    app = FastAPI(title="remote-volume")

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError):
        # same {"error": ...} shape as the WebSocket replies, not FastAPI's 422 detail list
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body") or "body"
        return JSONResponse(error_payload(f"invalid {where}: {first.get('msg', 'bad value')}"), status_code=400)

    @app.websocket("/")
    async def ws_volume(ws: WebSocket):
        await ws.accept()
        peer = f"{ws.client.host}:{ws.client.port}" if ws.client else "?"
        client = await hub.register(ws.send_text, peer)
        try:
            while True:
                msg = await ws.receive()
                if msg["type"] == "websocket.disconnect":
                    break
                raw = msg.get("text")
                if raw is None:
                    raw = msg.get("bytes") or b""
                await router.handle(client, raw)
        except WebSocketDisconnect:
            pass
        finally:
            await hub.unregister(client)

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    @app.get("/api/state")
    async def get_state():
        try:
            state = await router.execute(GetState())
        except BackendError as exc:
            return JSONResponse(error_payload(str(exc)), status_code=502)
        return state.to_dict()

    @app.post("/api/action")
    async def post_action(body: ActionBody):
        try:
            intent = to_intent(body)
        except DecodeError as exc:
            return JSONResponse(error_payload(str(exc)), status_code=400)
        try:
            state = await router.execute(intent)
        except BackendError as exc:
            log.warning("%s via HTTP failed: %s", type(intent).__name__, exc)
            return JSONResponse(error_payload(str(exc)), status_code=502)
        return state.to_dict()

    @app.get("/api/config")
    async def get_config():
        stored = await store.load()
        return {"settings": stored.to_dict(), "active": active.to_dict(), "clients": hub.count}

    @app.patch("/api/config")
    async def patch_config(body: PatchConfigBody):
        changes = body.model_dump(exclude_none=True)
        try:
            updated = await store.update(**changes)
        except ValueError as exc:
            return JSONResponse({"ok": False, "error": str(exc)}, status_code=400)
        log.info("settings updated (%s); restart to apply", ", ".join(sorted(changes)) or "no changes")
        return {"ok": True, "restart_required": updated != active, "settings": updated.to_dict()}

    return app
