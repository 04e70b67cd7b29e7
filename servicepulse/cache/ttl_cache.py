from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    stored_at: float


class TTLCache(Generic[K, V]):
    """
    Expiring key/value store.

    Staleness is evaluated lazily on read: an entry is fresh iff
    ``now - stored_at < ttl``. Nothing is swept in the background; an entry
    lives until it is overwritten by the next ``set`` for the same key.

    ``get_or_load`` serializes check-then-load-then-store per key so that
    concurrent callers for one key trigger a single load.
    """

    def __init__(self, default_ttl_seconds: float, *, clock: Callable[[], float] = time.monotonic):
        self.default_ttl_seconds = float(default_ttl_seconds)
        self._clock = clock
        self._entries: dict[K, CacheEntry[V]] = {}
        self._locks: dict[K, asyncio.Lock] = {}
        # callers holding or waiting on each lock; a lock is dropped when this reaches zero
        self._lock_users: dict[K, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _ttl(self, ttl_seconds: float | None) -> float:
        return self.default_ttl_seconds if ttl_seconds is None else float(ttl_seconds)

    def age(self, key: K) -> float | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry.stored_at

    def get(self, key: K, ttl_seconds: float | None = None) -> tuple[V | None, bool]:
        entry = self._entries.get(key)
        if entry is None:
            return None, False
        fresh = (self._clock() - entry.stored_at) < self._ttl(ttl_seconds)
        return entry.value, fresh

    def set(self, key: K, value: V) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    async def get_or_load(
        self,
        key: K,
        loader: Callable[[], Awaitable[V]],
        ttl_seconds: float | None = None,
    ) -> tuple[V, bool, float]:
        """
        Return ``(value, hit, age_seconds)``.

        On a miss ``loader`` is awaited under the key's lock and its value
        stored. A loader exception propagates and nothing is stored.
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
            self._lock_users[key] = 0
        self._lock_users[key] += 1

        try:
            async with lock:
                entry = self._entries.get(key)
                if entry is not None:
                    age = self._clock() - entry.stored_at
                    if age < self._ttl(ttl_seconds):
                        return entry.value, True, age
                loaded = await loader()
                self.set(key, loaded)
                return loaded, False, 0.0
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]
