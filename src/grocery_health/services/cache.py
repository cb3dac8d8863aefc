"""TTL cache for product search results."""

import threading
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Cache(Protocol):
    """Key-value cache with per-entry expiry."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a value for ``ttl_seconds``."""

    def delete(self, key: str) -> None:
        """Drop a cached value."""


@dataclass(frozen=True)
class _Entry:
    value: object
    expires_at: datetime


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class InMemoryCache(Cache):
    """Process-local cache holding at most ``max_entries`` values.

    When full, the entry written longest ago is evicted.
    """

    def __init__(
        self, max_entries: int = 256, clock: Callable[[], datetime] = _utc_now
    ) -> None:
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> object | None:
        """Return a cached value unless it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a value, evicting the oldest entry when full."""
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = _Entry(value=value, expires_at=expires_at)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        """Remove a value if present."""
        with self._lock:
            self._entries.pop(key, None)
