"""Key-value store interface.

Services depend on this abstraction (not on a concrete client) so the shared
Redis store can be replaced by the in-memory backend in tests and local runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractKeyValueStore(ABC):
    """Interface for best-effort remote key-value stores.

    Every call may fail or time out. Implementations raise
    ``StoreUnavailableError`` for any failure talking to the backend and never
    leak client-specific exception types.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Fetch the value stored under ``key``.

        Args:
            key: Fully qualified store key.

        Returns:
            The stored string value, or None when the key is absent or expired.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` with a native expiry.

        Args:
            key: Fully qualified store key.
            value: Serialized value.
            ttl_seconds: Expiry in seconds counted from this write.

        Raises:
            StoreUnavailableError: If the backend cannot be reached.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections held by the store (no-op by default)."""
        return None
