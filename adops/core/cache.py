"""Ad Ops Hub - Dashboard Cache.

Short-lived memoization in front of sheet reads and aggregation. Entries
carry their own TTL and are only ever replaced or deleted, so a reader sees
either a whole payload or a miss. Any read failure is a miss. Expired
entries are swept on every put.
"""

import json
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from adops.core.errors import CacheReadError
from adops.models.storage_models import CacheEntry
from adops.core.logging import get_logger

logger = get_logger("cache")

Clock = Callable[[], float]


class CacheBackend(ABC):
    """Key -> serialized string store with per-entry TTL."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or expired."""
        ...

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete the entry; no-op when absent."""
        ...


class MemoryCacheBackend(CacheBackend):
    """Process-local backend. One instance per process."""

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float, int]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, created_at, ttl = entry
            if self._clock() - created_at >= ttl:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            now = self._clock()
            expired = [
                k for k, (_, created_at, ttl) in self._entries.items() if now - created_at >= ttl
            ]
            for k in expired:
                del self._entries[k]
            self._entries[key] = (value, now, ttl_seconds)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)


class DatabaseCacheBackend(CacheBackend):
    """Backend shared by every worker through the ``cache_entries`` table."""

    def __init__(self, engine: Engine, clock: Clock = time.time):
        self.engine = engine
        self._clock = clock

    def get(self, key: str) -> Optional[str]:
        try:
            with Session(self.engine) as session:
                entry = session.get(CacheEntry, key)
                if entry is None:
                    return None
                if self._clock() - entry.created_at >= entry.ttl_seconds:
                    return None
                return entry.payload
        except Exception as e:
            raise CacheReadError(f"Cache read failed for {key}: {e}") from e

    def put(self, key: str, value: str, ttl_seconds: int) -> None:
        with Session(self.engine) as session:
            now = self._clock()
            expired = session.exec(
                select(CacheEntry).where(
                    CacheEntry.key != key,
                    CacheEntry.created_at + CacheEntry.ttl_seconds <= now,
                )
            ).all()
            for stale in expired:
                session.delete(stale)

            entry = session.get(CacheEntry, key)
            if entry is None:
                entry = CacheEntry(key=key, payload=value, created_at=now, ttl_seconds=ttl_seconds)
            else:
                entry.payload = value
                entry.created_at = now
                entry.ttl_seconds = ttl_seconds
            session.add(entry)
            session.commit()

    def remove(self, key: str) -> None:
        with Session(self.engine) as session:
            entry = session.get(CacheEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()


def _serialize(payload: Any) -> str:
    if isinstance(payload, BaseModel):
        return payload.model_dump_json()
    if isinstance(payload, list):
        return json.dumps(
            [p.model_dump(mode="json") if isinstance(p, BaseModel) else p for p in payload]
        )
    return json.dumps(payload, default=str)


class DashboardCache:
    """JSON payload cache over a CacheBackend.

    ``get`` never raises: corrupted payloads and backend errors are logged
    and reported as a miss. ``put`` and ``invalidate`` are best-effort.
    """

    def __init__(self, backend: CacheBackend):
        self.backend = backend

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.backend.get(key)
        except Exception as e:
            logger.warning(f"Cache read failed, recomputing: {e}", extra={"cache_key": key})
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding corrupted cache entry: {e}", extra={"cache_key": key})
            return None

    def put(self, key: str, payload: Any, ttl_seconds: int) -> None:
        try:
            self.backend.put(key, _serialize(payload), ttl_seconds)
        except Exception as e:
            logger.warning(f"Cache write failed: {e}", extra={"cache_key": key})

    def invalidate(self, key: str) -> None:
        try:
            self.backend.remove(key)
            logger.info("Cache entry invalidated", extra={"cache_key": key})
        except Exception as e:
            logger.warning(f"Cache invalidation failed: {e}", extra={"cache_key": key})
