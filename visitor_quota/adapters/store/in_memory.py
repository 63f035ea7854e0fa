"""In-memory key-value store with per-key expiry.

Notes:
- Per-process only: running multiple workers gives each worker its own quota state.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from visitor_quota.adapters.store.base import AbstractKeyValueStore


@dataclass
class _Entry:
    value: str
    expires_at: float


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Dictionary-backed store honouring the same TTL contract as Redis.

    Expired entries are dropped lazily on read.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the in-memory store.

        Args:
            clock: Time source function returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for entry in self._entries.values() if entry.expires_at > now)

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    async def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        """Store a value that expires ``ttl_seconds`` from now.

        Raises:
            ValueError: If key is empty or ttl_seconds is not positive.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be >= 1")

        with self._lock:
            self._entries[key] = _Entry(
                value=value,
                expires_at=self._clock() + ttl_seconds,
            )

    def ttl(self, key: str) -> float | None:
        """Remaining lifetime of ``key`` in seconds, or None if absent."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            remaining = entry.expires_at - self._clock()
            return remaining if remaining > 0 else None
