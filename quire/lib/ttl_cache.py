"""Per-key expiring cache using monotonic timestamps."""

import time
from typing import Any, Generic, TypeVar

V = TypeVar("V")

_MISSING = object()


class TTLCache(Generic[V]):
    """Maps keys to values that expire ``ttl`` seconds after being set.

    ``None`` is a cacheable value, so negative lookups can be remembered too.
    Expired entries are pruned periodically to bound memory usage.
    """

    def __init__(self, ttl: float = 30.0, cleanup_interval: float = 60.0) -> None:
        self.ttl = ttl
        self._entries: dict[str, tuple[float, V]] = {}
        self._last_cleanup = time.monotonic()
        self._cleanup_interval = cleanup_interval

    def _cleanup_stale(self, now: float) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        stale_keys = [key for key, (expires, _) in self._entries.items() if expires <= now]
        for key in stale_keys:
            del self._entries[key]

    def get(self, key: str, default: Any = _MISSING) -> V | Any:
        """Return the live value for *key*, or *default* (a miss sentinel)."""
        now = time.monotonic()
        self._cleanup_stale(now)
        entry = self._entries.get(key)
        if entry is None:
            return default
        expires, value = entry
        if expires <= now:
            del self._entries[key]
            return default
        return value

    def set(self, key: str, value: V) -> None:
        now = time.monotonic()
        self._cleanup_stale(now)
        self._entries[key] = (now + self.ttl, value)

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or every entry when *key* is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def is_miss(value: Any) -> bool:
        return value is _MISSING
