"""Redis key-value store adapter.

Uses the asynchronous ``redis.asyncio`` client. The client is created once by
the application factory and shared by every request; connections are pooled
by the client and released on shutdown through ``close()``.

Any Redis-level failure (connection refused, timeout, protocol error) is
translated into ``StoreUnavailableError`` so callers depend on a single error
type regardless of backend.
"""

from __future__ import annotations

import asyncio
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from visitor_quota.adapters.store.base import AbstractKeyValueStore
from visitor_quota.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class RedisKeyValueStore(AbstractKeyValueStore):
    """Store adapter backed by a shared Redis instance."""

    def __init__(self, client: Redis, *, key_prefix: str = "") -> None:
        """Wrap an existing Redis client.

        Args:
            client: Configured ``redis.asyncio.Redis`` instance with
                ``decode_responses=True``.
            key_prefix: Optional namespace prepended to every key.
        """
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        socket_timeout_seconds: float = 2.0,
        connect_timeout_seconds: float = 2.0,
        key_prefix: str = "",
    ) -> "RedisKeyValueStore":
        """Build the adapter from a connection URL.

        No connection is opened here; the pool connects lazily on first use.
        """
        client = Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=socket_timeout_seconds,
            socket_connect_timeout=connect_timeout_seconds,
        )
        logger.debug("store.redis.client_created", extra={"key_prefix": key_prefix})
        return cls(client, key_prefix=key_prefix)

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(self._key(key))
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            raise StoreUnavailableError(
                code="store_unavailable",
                message=f"Redis GET failed: {type(exc).__name__}",
                details={"backend": "redis", "operation": "get"},
            ) from exc

        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        return value

    async def set(self, key: str, value: str, *, ttl_seconds: int) -> None:
        try:
            await self._client.set(self._key(key), value, ex=ttl_seconds)
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            raise StoreUnavailableError(
                code="store_unavailable",
                message=f"Redis SET failed: {type(exc).__name__}",
                details={"backend": "redis", "operation": "set"},
            ) from exc

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("store.redis.client_closed")
