from __future__ import annotations
import asyncio
import contextlib
import json
import logging
import os
import sqlite3
from dataclasses import fields, replace
from typing import Any, Dict, Iterable, Mapping, Optional

from .config import Settings

log = logging.getLogger(__name__)


class SQLiteKV:
    """JSON values keyed by name in one SQLite table; reads and writes go in batches."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._lock = asyncio.Lock()
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with contextlib.closing(self._connect()) as conn, conn:
            conn.execute("CREATE TABLE IF NOT EXISTS kv (k TEXT PRIMARY KEY, v TEXT NOT NULL)")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._path)

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Stored values for ``keys``; keys with no row are left out of the result."""
        wanted = list(keys)
        if not wanted:
            return {}

        def _read() -> Dict[str, Any]:
            marks = ",".join("?" * len(wanted))
            with contextlib.closing(self._connect()) as conn:
                rows = conn.execute(f"SELECT k, v FROM kv WHERE k IN ({marks})", wanted).fetchall()
            return {k: json.loads(v) for k, v in rows}

        async with self._lock:
            return await asyncio.to_thread(_read)

    async def set_many(self, values: Mapping[str, Any]) -> None:
        """Write every pair in one transaction."""
        rows = [(k, json.dumps(v)) for k, v in values.items()]
        if not rows:
            return

        def _write() -> None:
            with contextlib.closing(self._connect()) as conn, conn:
                conn.executemany("REPLACE INTO kv (k, v) VALUES (?,?)", rows)

        async with self._lock:
            await asyncio.to_thread(_write)

    async def get(self, key: str, default: Any = None) -> Any:
        return (await self.get_many([key])).get(key, default)

    async def set(self, key: str, value: Any) -> None:
        await self.set_many({key: value})


_KEYS = tuple(f.name for f in fields(Settings))


class SettingsStore:
    """Settings persisted in the KV store; missing keys are seeded with defaults on first run."""

    def __init__(self, kv: SQLiteKV, defaults: Optional[Settings] = None) -> None:
        self.kv = kv
        self.defaults = defaults or Settings.defaults()

    async def load(self) -> Settings:
        values = await self.kv.get_many(_KEYS)
        missing = {k: getattr(self.defaults, k) for k in _KEYS if k not in values}
        if missing:
            await self.kv.set_many(missing)
            for key, value in missing.items():
                log.info("settings: seeded %s=%r", key, value)
            values.update(missing)
        try:
            return Settings(**values).validate()
        except ValueError as exc:
            log.warning("stored settings invalid (%s); using defaults", exc)
            return self.defaults

    async def update(self, **changes: Any) -> Settings:
        unknown = set(changes) - set(_KEYS)
        if unknown:
            raise ValueError(f"unknown settings: {', '.join(sorted(unknown))}")
        current = await self.load()
        updated = replace(current, **changes).validate()
        await self.kv.set_many(changes)
        return updated
