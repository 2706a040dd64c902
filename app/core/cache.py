"""Cache-aside stores for serialized API payloads.

Values are opaque strings (JSON produced by the response models). Stores never
raise on ``get``/``set`` failures from the caller's point of view: the helper
functions at the bottom log and swallow, so a broken cache degrades to a miss.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from time import monotonic
from typing import Callable, Protocol

from app.core.log import get_logger

LOGGER = get_logger(__name__)


class CacheStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def ping(self) -> bool: ...


@dataclass
class _Entry:
    value: str
    expires_at: float


class InMemoryCache:
    """Process-local TTL cache with LRU eviction once ``max_entries`` is reached."""

    def __init__(self, max_entries: int = 1024, clock: Callable[[], float] = monotonic) -> None:
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = Lock()
        self._max_entries = max_entries
        self._clock = clock

    def get(self, key: str) -> str | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= now:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        expires_at = self._clock() + ttl_seconds
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=expires_at)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class NullCache:
    """Store used when caching is switched off."""

    def get(self, key: str) -> str | None:
        return None

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        return None

    def delete(self, key: str) -> None:
        return None

    def clear(self) -> None:
        return None

    def ping(self) -> bool:
        return True


def safe_get(cache: CacheStore, key: str) -> str | None:
    try:
        return cache.get(key)
    except Exception:
        LOGGER.warning("Cache read failed for %s; treating as miss", key, exc_info=True)
        return None


def safe_set(cache: CacheStore, key: str, value: str, ttl_seconds: int) -> bool:
    try:
        cache.set(key, value, ttl_seconds)
    except Exception:
        LOGGER.warning("Cache write failed for %s; continuing without cache", key, exc_info=True)
        return False
    return True
