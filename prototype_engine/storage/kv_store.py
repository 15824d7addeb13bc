"""
Key/value stores backing project persistence and the image cache.

Values are plain strings (JSON blobs); the stores never interpret them.
"""
import json
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Protocol

from prototype_engine.config import settings, get_redis_client
from prototype_engine.logging_config import logger


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None: ...
    def delete(self, key: str) -> None: ...
    def keys(self, prefix: str = "") -> List[str]: ...


class InMemoryKeyValueStore:
    """Process-local store, used in tests and as a last resort"""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class FileKeyValueStore:
    """JSON file-backed store for local development.

    The whole file is a single object mapping key -> value. Writes rewrite
    the file under a coarse lock. TTLs are ignored.
    """

    def __init__(self, file_path: Optional[str] = None) -> None:
        self._lock = RLock()
        self._path = Path(file_path or settings.STORAGE_FILE)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        raw = self._path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self._path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, str]) -> None:
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self._path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return sorted(k for k in self._read() if k.startswith(prefix))


class RedisKeyValueStore:
    """Redis-backed store; the client must use decode_responses=True"""

    def __init__(self, client) -> None:
        self._client = client

    def get(self, key: str) -> Optional[str]:
        return self._client.get(key)

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        if ttl:
            self._client.set(key, value, ex=ttl)
        else:
            self._client.set(key, value)

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def keys(self, prefix: str = "") -> List[str]:
        return sorted(self._client.scan_iter(match=f"{prefix}*"))


_store: Optional[KeyValueStore] = None


def build_kv_store(backend: Optional[str] = None) -> KeyValueStore:
    """Build a store for the configured backend.

    Redis falls back to the file store when the server is unreachable.
    """
    backend = (backend or settings.STORAGE_BACKEND).lower()

    if backend == "memory":
        return InMemoryKeyValueStore()

    if backend == "redis":
        client = get_redis_client()
        if client:
            logger.info("Using Redis key/value store", url=settings.REDIS_URL)
            return RedisKeyValueStore(client)
        logger.warning("Redis not available, using file storage", path=settings.STORAGE_FILE)

    return FileKeyValueStore()


def get_kv_store() -> KeyValueStore:
    global _store
    if _store is None:
        _store = build_kv_store()
    return _store


def set_kv_store(store: Optional[KeyValueStore]) -> None:
    """Replace the shared store (None resets it to be rebuilt lazily)."""
    global _store
    _store = store
