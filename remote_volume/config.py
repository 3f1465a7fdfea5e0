"""Configuration helpers for environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


def _getenv_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def _getenv_int(name: str, default: int) -> int:
    v = (os.getenv(name) or "").strip()
    if not v:
        return default
    try:
        return int(v)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {v!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Persisted user settings. Read once at startup; edits apply after a restart."""
    port: int = 8080
    polling_enabled: bool = True
    polling_interval_ms: int = 500
    autostart: bool = False

    def validate(self) -> "Settings":
        if not isinstance(self.port, int) or not 1 <= self.port <= 65535:
            raise ValueError(f"port must be 1..65535, got {self.port!r}")
        if not isinstance(self.polling_interval_ms, int) or self.polling_interval_ms < 10:
            raise ValueError(f"polling_interval_ms must be >= 10, got {self.polling_interval_ms!r}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def defaults() -> "Settings":
        """First-run defaults; build variants override them via DEF_* env."""
        return Settings(
            port=_getenv_int("DEF_PORT", 8080),
            polling_enabled=_getenv_bool("DEF_POLLING_ENABLED", True),
            polling_interval_ms=_getenv_int("DEF_POLLING_INTERVAL_MS", 500),
            autostart=_getenv_bool("DEF_AUTOSTART", False),
        )


@dataclass(frozen=True)
class Config:
    # All fields are passed explicitly by Config.load(), so we don’t put per-field defaults here.
    data_dir: str
    host: str
    port_override: Optional[int]

    audio_backend: str
    alsa_control: str

    log_level: str

    @staticmethod
    def load() -> "Config":
        """Build a Config from environment."""
        data_dir      = os.getenv("DATA_DIR") or os.path.expanduser("~/.local/share/remote-volume")
        host          = os.getenv("HOST", "0.0.0.0")
        port_raw      = (os.getenv("PORT") or "").strip()
        port_override = _getenv_int("PORT", 0) if port_raw else None

        audio_backend = os.getenv("AUDIO_BACKEND", "auto")
        alsa_control  = os.getenv("ALSA_CONTROL", "Master")

        log_level     = os.getenv("LOG_LEVEL", "INFO")

        return Config(
            data_dir=data_dir,
            host=host,
            port_override=port_override,
            audio_backend=audio_backend,
            alsa_control=alsa_control,
            log_level=log_level,
        )

    @property
    def settings_db(self) -> str:
        return os.path.join(self.data_dir, "settings.db")
