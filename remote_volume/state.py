from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .backends.base import AudioBackend

MIN_VOLUME = 0
MAX_VOLUME = 100


def clamp_volume(value: int, low: int = MIN_VOLUME, high: int = MAX_VOLUME) -> int:
    return max(low, min(high, int(value)))


@dataclass(frozen=True)
class VolumeState:
    volume: int = 0
    muted: bool = False
    device: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


async def read_state(backend: AudioBackend) -> VolumeState:
    """Freshly query the backend; raises BackendError on any failed call."""
    volume = await backend.get_volume()
    muted = await backend.get_muted()
    device = await backend.get_output_device()
    return VolumeState(volume=clamp_volume(volume), muted=bool(muted), device=device)


class StateCache:
    """Last state that went out to clients. Used only to detect change."""

    def __init__(self) -> None:
        self._last: Optional[VolumeState] = None

    @property
    def last(self) -> Optional[VolumeState]:
        return self._last

    def changed(self, volume: int, muted: bool) -> bool:
        # device is display-only; only volume and mute count as a change
        last = self._last
        return last is None or last.volume != clamp_volume(volume) or last.muted != bool(muted)

    def update(self, state: VolumeState) -> None:
        self._last = state
