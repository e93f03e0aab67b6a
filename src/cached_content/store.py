"""Key-value stores for cache records.

The orchestrator only needs `get`/`set`/`delete` with a TTL. Two simple
implementations are bundled: a process-local memory store, and a JSON file
store for persistence across processes. `FailSoftStore` wraps any store so
backend failures degrade to cache misses instead of reaching the caller.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
import time
from typing import TYPE_CHECKING, Any, Protocol

from cached_content.exceptions import CacheStoreError, MalformedRecordError
from cached_content.record import CacheRecord, Decoder, Encoder
from cached_content.registry import Dependency

if TYPE_CHECKING:
    import os

log = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Minimal key-value surface with expiry, in seconds.

    A `ttl` of 0 or None means the entry never expires on its own.
    """

    def get(self, key: str) -> Any | None:
        """Return the stored value for `key`, or None when absent or expired."""
        ...

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store `value` under `key`."""
        ...

    def delete(self, key: str) -> None:
        """Remove `key` if present."""
        ...


def _expires_at(ttl: int | None, now: float) -> float | None:
    if ttl is None or ttl <= 0:
        return None
    return now + ttl


class InMemoryCacheStore:
    """Process-local store keeping values as Python objects.

    Expiry uses a monotonic clock and is enforced lazily on read.
    """

    def __init__(self, clock: Any = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float | None]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._entries[key] = (value, _expires_at(ttl, self._clock()))

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


class JSONFileCacheStore:
    """One JSON document per key under a directory.

    Records are written as payloads (see `CacheRecord.to_payload`) with their
    wall-clock expiry alongside. Writes go to a temp file and are renamed into
    place. Descriptors are encoded with `encode` and decoded with `decode`;
    the defaults handle `Dependency`.

    Shape saved per key:
      {"expires_at": float | null, "record": {"content": ..., "registries": {...}}}
    """

    def __init__(
        self,
        directory: str | os.PathLike[str],
        *,
        encode: Encoder = Dependency.to_dict,
        decode: Decoder = Dependency.from_dict,
        clock: Any = time.time,
    ) -> None:
        self._dir = Path(directory)
        self._encode = encode
        self._decode = decode
        self._clock = clock

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self._dir / f"{digest}.json"

    def get(self, key: str) -> CacheRecord | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise CacheStoreError(f"Failed to read cache entry {path}: {e}") from e
        if not isinstance(document, dict):
            raise MalformedRecordError(f"Cache entry {path} is not a JSON object")

        expires_at = document.get("expires_at")
        if isinstance(expires_at, int | float) and self._clock() >= expires_at:
            self.delete(key)
            return None
        return CacheRecord.from_payload(document.get("record"), self._decode)

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        if not isinstance(value, CacheRecord):
            raise TypeError(f"Expected CacheRecord, got {type(value).__name__}")
        document = {
            "key": key,
            "expires_at": _expires_at(ttl, self._clock()),
            "record": value.to_payload(self._encode),
        }
        path = self._path(key)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
            Path.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            raise CacheStoreError(f"Failed to write cache entry {path}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise CacheStoreError(f"Failed to delete cache entry for {key}: {e}") from e


class FailSoftStore:
    """Wraps a store so that backend failures never reach the caller.

    Read failures are reported as misses; write and delete failures are
    logged and dropped. The cache then degrades to rendering live.
    """

    def __init__(self, inner: CacheStore) -> None:
        self.inner = inner

    def get(self, key: str) -> Any | None:
        try:
            return self.inner.get(key)
        except Exception as e:
            log.warning("Cache read failed for %s; treating as miss: %s", key, e)
            return None

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            self.inner.set(key, value, ttl)
        except Exception as e:
            log.warning("Cache write failed for %s: %s", key, e, exc_info=True)

    def delete(self, key: str) -> None:
        try:
            self.inner.delete(key)
        except Exception as e:
            log.warning("Cache delete failed for %s: %s", key, e, exc_info=True)
