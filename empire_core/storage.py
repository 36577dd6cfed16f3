"""
EMPIRE CORE — SETTINGS STORE
Persistent key-value capability consumed by modules for their settings.

Keys are namespaced by the caller (``"<module>_settings"``). Missing keys are
simply absent from the mapping returned by ``get``.
"""

import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Union

from .errors import StoreUnavailableError

LOG = logging.getLogger("empire.storage")


class SettingsStore(ABC):
    """Abstract persistent store."""

    @abstractmethod
    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Return the stored values for ``keys`` that exist."""

    @abstractmethod
    async def set(self, mapping: Mapping[str, Any]) -> None:
        """Write every key of ``mapping``."""


class MemoryStore(SettingsStore):
    """In-process store. Values are deep-copied in and out."""

    def __init__(self, initial: Mapping[str, Any] = None):
        self._data: Dict[str, Any] = copy.deepcopy(dict(initial or {}))

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    async def set(self, mapping: Mapping[str, Any]) -> None:
        for key, value in mapping.items():
            self._data[key] = copy.deepcopy(value)

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)


class JsonFileStore(SettingsStore):
    """
    Store backed by a single JSON document on disk.

    File I/O runs in a worker thread so the event loop is never blocked.
    A missing file reads as empty; an unreadable or corrupt file raises
    StoreUnavailableError.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreUnavailableError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreUnavailableError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            tmp.replace(self.path)
        except (OSError, TypeError, ValueError) as e:
            raise StoreUnavailableError(f"Cannot write {self.path}: {e}") from e

    async def get(self, keys: Iterable[str]) -> Dict[str, Any]:
        data = await asyncio.to_thread(self._read)
        return {k: data[k] for k in keys if k in data}

    async def set(self, mapping: Mapping[str, Any]) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data.update(mapping)
            await asyncio.to_thread(self._write, data)
        LOG.debug(f"[Storage] Wrote {len(mapping)} key(s) to {self.path}")
