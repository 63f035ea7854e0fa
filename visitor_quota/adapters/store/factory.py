"""Factory for creating key-value store instances."""

from __future__ import annotations

import logging

from visitor_quota.adapters.store.base import AbstractKeyValueStore
from visitor_quota.adapters.store.in_memory import InMemoryKeyValueStore
from visitor_quota.adapters.store.redis_store import RedisKeyValueStore
from visitor_quota.core.config import StoreSettings, settings
from visitor_quota.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


def create_store(store_settings: StoreSettings | None = None) -> AbstractKeyValueStore | None:
    """Instantiate the configured store backend.

    Args:
        store_settings: Store configuration; defaults to global settings.

    Returns:
        The store instance, or None when the Redis backend has no URL
        configured (quota enforcement then fails open).

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.lower()

    if backend == "memory":
        logger.info("store.configured", extra={"backend": "memory"})
        return InMemoryKeyValueStore()

    if backend == "redis":
        if not cfg.url:
            logger.warning(
                "store.not_configured",
                extra={"backend": "redis", "hint": "set STORE_URL to enable quota enforcement"},
            )
            return None
        logger.info("store.configured", extra={"backend": "redis"})
        return RedisKeyValueStore.from_url(
            cfg.url,
            socket_timeout_seconds=cfg.socket_timeout_seconds,
            connect_timeout_seconds=cfg.connect_timeout_seconds,
            key_prefix=cfg.key_prefix,
        )

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: redis, memory",
        details={"backend": backend},
    )
