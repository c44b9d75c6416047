"""In-process TTL caches for salts and pinned session identities.

Both caches are shared by every request thread of one process, so each one
guards its map with a ``threading.Lock``. Entries expire at an absolute
deadline fixed when they are written; reads never extend it.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from threading import Lock
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class _Entry(Generic[V]):
    value: V
    expires_at: float


class TtlCache(Generic[K, V]):
    """Thread-safe bounded map with per-entry absolute expiry.

    Every entry lives for the same TTL and a re-put moves its key to the back,
    so key order is also expiry order. Purging and eviction only ever touch
    the front of the map.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self._ttl_seconds = float(ttl_seconds)
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[K, _Entry[V]] = OrderedDict()
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def get(self, key: K) -> V | None:
        """Return the live value for ``key`` or ``None`` when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    def put(self, key: K, value: V) -> None:
        """Store ``value`` under ``key`` for one full TTL."""
        with self._lock:
            now = self._clock()
            self._entries.pop(key, None)
            if len(self._entries) >= self._max_entries:
                self._purge_expired_locked(now)
            while len(self._entries) >= self._max_entries:
                self._entries.popitem(last=False)
            self._entries[key] = _Entry(value=value, expires_at=now + self._ttl_seconds)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_expired_locked(self, now: float) -> None:
        while self._entries:
            oldest = next(iter(self._entries.values()))
            if now < oldest.expires_at:
                break
            self._entries.popitem(last=False)


class SaltCache:
    """Daily salts keyed by ``(app_id, day)``."""

    def __init__(
        self,
        *,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TtlCache[tuple[str, str], bytes] = TtlCache(
            ttl_seconds=ttl_seconds,
            max_entries=max_entries,
            clock=clock,
        )

    def get(self, *, app_id: str, day: str) -> bytes | None:
        return self._cache.get((app_id, day))

    def put(self, *, app_id: str, day: str, salt: bytes) -> None:
        if not salt:
            raise ValueError("salt is required")
        self._cache.put((app_id, day), salt)

    def __len__(self) -> int:
        return len(self._cache)


class SessionIdentityCache:
    """Pinned user ids keyed by ``(app_id, session_id)``.

    A session keeps the first id computed for it until the entry expires,
    even when later events of the same session arrive from another address.
    Empty ids are never stored, so a pinned value is always a real identifier.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TtlCache[tuple[str, str], str] = TtlCache(
            ttl_seconds=ttl_seconds,
            max_entries=max_entries,
            clock=clock,
        )

    def get(self, *, app_id: str, session_id: str) -> str | None:
        value = self._cache.get((app_id, session_id))
        return value or None

    def put(self, *, app_id: str, session_id: str, user_id: str) -> None:
        if not user_id:
            raise ValueError("user_id is required")
        self._cache.put((app_id, session_id), user_id)

    def __len__(self) -> int:
        return len(self._cache)
