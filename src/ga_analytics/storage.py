"""Durable key-value storage and the fallback client id.

The fallback channel identifies this client with a pseudo-random id that
should survive restarts.  Storage is best-effort: when it is unavailable a
fresh id is generated for every request.
"""

from __future__ import annotations

import json
import logging
import random
import time
from pathlib import Path
from typing import Dict, Optional, Protocol

from ga_analytics.errors import StorageUnavailable

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryKeyValueStore:
    """Process-local store; useful for tests and short-lived scripts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileKeyValueStore:
    """Small string map persisted as a single JSON object on disk."""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        try:
            if not self.path.exists():
                return {}
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise StorageUnavailable(f"cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageUnavailable(f"{self.path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as exc:
            raise StorageUnavailable(f"cannot write {self.path}: {exc}") from exc


def generate_client_id() -> str:
    """Return a GA-shaped client id: ``<random 31-bit int>.<unix seconds>``."""
    return f"{random.randint(1, 2**31 - 1)}.{int(time.time())}"


class ClientIdProvider:
    """Lazily materializes the fallback client id."""

    def __init__(self, store: Optional[KeyValueStore], key: str):
        self._store = store
        self._key = key
        self._cached: Optional[str] = None

    def get(self) -> str:
        if self._cached:
            return self._cached
        if self._store is None:
            return generate_client_id()

        try:
            existing = self._store.get(self._key)
            if existing:
                self._cached = existing
                return existing
            client_id = generate_client_id()
            self._store.set(self._key, client_id)
        except Exception as exc:
            logger.debug("Client id storage unavailable (%s); using ephemeral id", exc)
            return generate_client_id()

        self._cached = client_id
        return client_id
