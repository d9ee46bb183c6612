"""
Persistent key-value store used by the timing estimator and result cache.

Values must be JSON-serializable. Methods are coroutines so callers treat
every read and write as a suspension point, even for the local backends
provided here.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from studyscribe.config import STORE_FILE
from studyscribe.logging_config import debug_log, error


class KeyValueStore(ABC):
    """Abstract async key-value store."""

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under key, or default."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix."""


class InMemoryStore(KeyValueStore):
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    async def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> list[str]:
        return [key for key in self._data if key.startswith(prefix)]


class JsonFileStore(KeyValueStore):
    """
    Store persisted as a single JSON document.

    The file is read once on first access and rewritten after every
    mutation. A missing or corrupted file starts an empty store.

    Reads and writes are synchronous and run on the event loop. The store
    holds timing samples and cached results, a document small enough that
    a rewrite is cheap, and a write is on disk by the time set() or
    delete() returns. Keep large payloads out of it.
    """

    def __init__(self, path: Path = STORE_FILE):
        self.path = Path(path)
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data

        try:
            with open(self.path, encoding='utf-8') as f:
                data = json.load(f)
            self._data = data if isinstance(data, dict) else {}
            debug_log(f"[STORE] Loaded {len(self._data)} keys from {self.path}")
        except FileNotFoundError:
            self._data = {}
        except (OSError, json.JSONDecodeError) as e:
            error(f"[STORE] Could not read {self.path}, starting empty: {e}")
            self._data = {}

        return self._data

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, indent=2)
        tmp_path.replace(self.path)

    async def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    async def set(self, key: str, value: Any) -> None:
        self._load()[key] = value
        self._save()

    async def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save()

    async def keys(self, prefix: str = "") -> list[str]:
        return [key for key in self._load() if key.startswith(prefix)]
