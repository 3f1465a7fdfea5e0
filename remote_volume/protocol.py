"""Wire protocol: JSON text frames decoded into intents."""

from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ValidationError, field_validator

UNKNOWN_ACTION = "Unknown action"


class DecodeError(ValueError):
    """Inbound message is not a usable request."""


class UnknownActionError(DecodeError):
    def __init__(self, action: str = "") -> None:
        super().__init__(UNKNOWN_ACTION)
        self.action = action


class ActionBody(BaseModel):
    action: str
    value: Optional[int] = None

    @field_validator("value", mode="before")
    @classmethod
    def _numeric_value(cls, v: Any) -> Any:
        # JSON true/"50" must not pass as an integer; whole floats still do
        if isinstance(v, (bool, str)):
            raise ValueError("value must be an integer")
        return v


@dataclass(frozen=True)
class SetVolume:
    value: int


@dataclass(frozen=True)
class AdjustVolume:
    delta: int
    direction: int  # +1 or -1


@dataclass(frozen=True)
class Mute:
    pass


@dataclass(frozen=True)
class Unmute:
    pass


@dataclass(frozen=True)
class ToggleMute:
    pass


@dataclass(frozen=True)
class GetState:
    pass


Intent = Union[SetVolume, AdjustVolume, Mute, Unmute, ToggleMute, GetState]


def _require_value(body: ActionBody) -> int:
    if body.value is None:
        raise DecodeError(f"'{body.action}' requires an integer 'value'")
    return body.value


def to_intent(body: ActionBody) -> Intent:
    a = body.action
    if a == "setVolume":
        return SetVolume(_require_value(body))
    if a == "increaseVolume":
        return AdjustVolume(_require_value(body), +1)
    if a == "decreaseVolume":
        return AdjustVolume(_require_value(body), -1)
    if a == "mute":
        return Mute()
    if a == "unmute":
        return Unmute()
    if a == "toggleMute":
        return ToggleMute()
    if a in {"getState", "isMuted"}:
        return GetState()
    raise UnknownActionError(a)


def decode(raw: Union[str, bytes]) -> Intent:
    """Parse one frame; raises DecodeError (or UnknownActionError) on bad input."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("message is not valid UTF-8") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"invalid JSON: {exc.msg} at position {exc.pos}") from exc
    if not isinstance(data, dict):
        raise DecodeError("message must be a JSON object")
    if not isinstance(data.get("action"), str):
        raise DecodeError("message requires a string 'action'")
    try:
        body = ActionBody.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ())) or "message"
        raise DecodeError(f"invalid {where}: {first.get('msg', 'bad value')}") from exc
    return to_intent(body)


def error_payload(message: str) -> Dict[str, Any]:
    return {"error": message}
