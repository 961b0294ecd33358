"""Key-value store backends."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Async string-to-string store with a flat key space."""

    async def get_item(self, key: str) -> Optional[str]: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...

    async def all_items(self) -> dict[str, str]: ...


class MemoryStore:
    """Process-local store, mostly useful for tests and previews."""

    def __init__(self, items: Optional[dict[str, str]] = None) -> None:
        self._items: dict[str, str] = dict(items or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def all_items(self) -> dict[str, str]:
        return dict(self._items)


class JsonFileStore:
    """Store backed by a single JSON object file.

    Every write re-reads the file, applies the change and atomically replaces
    it, so separate processes sharing the file see each other's writes (last
    write wins). Blocking file I/O runs in a worker thread.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)

    def _read(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            self._logger.warning("Could not read store %s: %s", self.path, exc)
            return {}
        try:
            payload = json.loads(raw)
        except ValueError:
            self._logger.warning("Store %s is not valid JSON; treating it as empty", self.path)
            return {}
        if not isinstance(payload, dict):
            self._logger.warning("Store %s does not hold a JSON object; treating it as empty", self.path)
            return {}
        return {key: value for key, value in payload.items() if isinstance(value, str)}

    def _write(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(items, handle, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _update(self, key: str, value: Optional[str]) -> None:
        items = self._read()
        if value is None:
            if key not in items:
                return
            items.pop(key)
        else:
            items[key] = value
        self._write(items)

    async def get_item(self, key: str) -> Optional[str]:
        items = await asyncio.to_thread(self._read)
        return items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._update, key, value)

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._update, key, None)

    async def all_items(self) -> dict[str, str]:
        return await asyncio.to_thread(self._read)


__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore"]
