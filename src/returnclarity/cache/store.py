"""Key-value persistence behind the policy cache.

Values are JSON-compatible objects. ``bytes_in_use`` is an estimate over
the serialized form (key length plus JSON length), which is all the
prune threshold needs.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Any | None: ...
    async def get_all(self, prefix: str = "") -> dict[str, Any]: ...
    async def set(self, key: str, value: Any) -> None: ...
    async def remove(self, keys: list[str]) -> None: ...
    async def bytes_in_use(self) -> int: ...


def _size_of(data: dict[str, str]) -> int:
    return sum(len(k) + len(v) for k, v in data.items())


class InMemoryKeyValueStore:
    """Process-local store; values are kept serialized like real storage."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def get_all(self, prefix: str = "") -> dict[str, Any]:
        return {
            k: json.loads(v)
            for k, v in self._data.items()
            if k.startswith(prefix)
        }

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    async def remove(self, keys: list[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def bytes_in_use(self) -> int:
        return _size_of(self._data)


class JsonFileKeyValueStore:
    """Store persisted as a single JSON file (used by the CLI).

    The whole file is rewritten on every mutation via a temp file and
    rename, so a crash mid-write leaves the previous file intact.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._data: dict[str, str] | None = None

    async def _load(self) -> dict[str, str]:
        if self._data is None:
            self._data = await asyncio.to_thread(self._read)
        return self._data

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning(
                "event=cache_file_unreadable path=%s action=reset",
                self._path,
            )
            return {}
        if not isinstance(raw, dict):
            return {}
        return {str(k): json.dumps(v) for k, v in raw.items()}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {k: json.loads(v) for k, v in data.items()}
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    async def get(self, key: str) -> Any | None:
        data = await self._load()
        raw = data.get(key)
        return json.loads(raw) if raw is not None else None

    async def get_all(self, prefix: str = "") -> dict[str, Any]:
        data = await self._load()
        return {
            k: json.loads(v) for k, v in data.items() if k.startswith(prefix)
        }

    async def set(self, key: str, value: Any) -> None:
        data = await self._load()
        data[key] = json.dumps(value)
        await asyncio.to_thread(self._write, dict(data))

    async def remove(self, keys: list[str]) -> None:
        data = await self._load()
        removed = [k for k in keys if data.pop(k, None) is not None]
        if removed:
            await asyncio.to_thread(self._write, dict(data))

    async def bytes_in_use(self) -> int:
        return _size_of(await self._load())
