"""Key-value store adapters.

Quota state lives in a shared remote store (Redis) in production; the
in-memory backend keeps the same contract for tests and local runs.
"""

from visitor_quota.adapters.store.base import AbstractKeyValueStore
from visitor_quota.adapters.store.factory import create_store
from visitor_quota.adapters.store.in_memory import InMemoryKeyValueStore
from visitor_quota.adapters.store.redis_store import RedisKeyValueStore

__all__ = [
    "AbstractKeyValueStore",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "create_store",
]
