from __future__ import annotations
import asyncio, logging
import contextlib
from typing import Sequence

log = logging.getLogger(__name__)

# Upper bound for a single external mixer command (seconds).
DEFAULT_TIMEOUT = 5.0


class BackendError(RuntimeError):
    """An audio backend call failed (missing utility, bad exit, unparseable output)."""


class UnsupportedPlatformError(BackendError):
    pass


class AudioBackend:
    """Volume/mute capability of the default output device."""

    name = "base"

    async def get_volume(self) -> int: ...
    async def set_volume(self, volume: int) -> None: ...
    async def get_muted(self) -> bool: ...
    async def set_muted(self, muted: bool) -> None: ...
    async def get_output_device(self) -> str: ...


class UnsupportedBackend(AudioBackend):
    name = "unsupported"

    def __init__(self, platform: str) -> None:
        self._platform = platform

    def _fail(self) -> UnsupportedPlatformError:
        return UnsupportedPlatformError(f"Unsupported platform: {self._platform}")

    async def get_volume(self) -> int:
        raise self._fail()

    async def set_volume(self, volume: int) -> None:
        raise self._fail()

    async def get_muted(self) -> bool:
        raise self._fail()

    async def set_muted(self, muted: bool) -> None:
        raise self._fail()

    async def get_output_device(self) -> str:
        raise self._fail()


async def run_command(argv: Sequence[str], *, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Run one command and return its stripped stdout; raise BackendError otherwise."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise BackendError(f"command not found: {argv[0]}") from exc
    except OSError as exc:
        raise BackendError(f"failed to run {argv[0]}: {exc}") from exc

    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError as exc:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        with contextlib.suppress(Exception):
            await proc.wait()
        raise BackendError(f"{argv[0]} timed out after {timeout:.1f}s") from exc

    if proc.returncode != 0:
        detail = (err or out or b"").decode("utf-8", "replace").strip()
        log.debug("command %r exited %s: %s", list(argv), proc.returncode, detail)
        raise BackendError(f"{argv[0]} exited with status {proc.returncode}: {detail or 'no output'}")
    return (out or b"").decode("utf-8", "replace").strip()


def parse_percent(text: str) -> int:
    """Parse a bare integer percentage like '42' or '42%'."""
    value = text.strip().rstrip("%").strip()
    try:
        return int(round(float(value)))
    except (ValueError, OverflowError) as exc:
        raise BackendError(f"unparseable volume output: {text!r}") from exc
