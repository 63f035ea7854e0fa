"""Anonymous visitor identification for the client process.

The resolver produces one identity per process and caches it:
- the fingerprinting provider is tried first (bounded by a timeout);
- on any provider failure a fallback id is derived from device signals and
  persisted in durable local storage, so later fallbacks on the same device
  return the same id;
- without durable storage the fallback degrades to a random token.

Concurrent ``resolve()`` calls share one in-flight task, so the provider runs
at most once per process. ``resolve()`` never raises.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from visitor_quota.adapters.fingerprint.base import AbstractFingerprintProvider
from visitor_quota.adapters.fingerprint.machine import MachineFingerprintProvider
from visitor_quota.core.config import VisitorSettings, settings
from visitor_quota.core.logging import hash_identifier
from visitor_quota.utils.device_signals import (
    FALLBACK_PREFIX,
    DeviceSignals,
    collect_local_signals,
    fallback_token,
)
from visitor_quota.utils.local_storage import JsonFileStorage

logger = logging.getLogger(__name__)

FALLBACK_STORAGE_KEY = "visitorFallbackId"
PLACEHOLDER_ID = "server-side-fallback"


class VisitorOrigin(str, Enum):
    FINGERPRINTED = "fingerprinted"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class VisitorIdentity:
    """Resolved visitor identity.

    Attributes:
        id: Opaque identifier sent with every quota call.
        origin: Whether the id came from fingerprinting or the fallback path.
        persistent: False only for the placeholder returned outside a client
            context; such ids are never stored or cached.
    """

    id: str
    origin: VisitorOrigin
    persistent: bool = True


class LocalStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


@dataclass
class ClientContext:
    """What the resolver can observe about the client it runs in."""

    collect_signals: Callable[[], DeviceSignals] = collect_local_signals
    storage: LocalStorage | None = None


def _random_fallback_id() -> str:
    return f"{FALLBACK_PREFIX}{uuid.uuid4().hex[:16]}"


class VisitorResolver:
    """Resolve and cache the visitor identity for this process."""

    def __init__(
        self,
        provider: AbstractFingerprintProvider,
        context: ClientContext | None,
        *,
        fingerprint_timeout_seconds: float = 1.0,
    ) -> None:
        """Initialize the resolver.

        Args:
            provider: Fingerprinting provider tried first.
            context: Client context; None means no client runtime is available
                and only a placeholder identity can be produced.
            fingerprint_timeout_seconds: Upper bound for one provider attempt.
        """
        self._provider = provider
        self._context = context
        self._timeout = fingerprint_timeout_seconds
        self._identity: VisitorIdentity | None = None
        self._inflight: asyncio.Task[VisitorIdentity] | None = None

    @property
    def identity(self) -> VisitorIdentity | None:
        """Cached identity, or None before the first resolution completes."""
        return self._identity

    async def resolve(self) -> VisitorIdentity:
        """Return the visitor identity, resolving it on first use."""
        if self._context is None:
            logger.debug("visitor.no_client_context")
            return VisitorIdentity(
                id=PLACEHOLDER_ID,
                origin=VisitorOrigin.FALLBACK,
                persistent=False,
            )

        if self._identity is not None:
            return self._identity

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._resolve_once())

        # Shield so a cancelled waiter does not cancel the shared attempt.
        return await asyncio.shield(self._inflight)

    def reset(self) -> None:
        """Forget the cached identity; the next resolve() starts over."""
        self._identity = None
        self._inflight = None

    async def _resolve_once(self) -> VisitorIdentity:
        try:
            identity = await self._fingerprint()
            if identity is None:
                identity = await asyncio.to_thread(self._fallback)
            self._identity = identity
            logger.info(
                "visitor.resolved",
                extra={
                    "origin": identity.origin.value,
                    "visitor_hash": hash_identifier(identity.id),
                },
            )
            return identity
        finally:
            self._inflight = None

    async def _fingerprint(self) -> VisitorIdentity | None:
        try:
            visitor_id = await asyncio.wait_for(
                self._provider.get_visitor_id(),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "visitor.fingerprint_failed",
                extra={"reason": "timeout", "timeout_s": self._timeout},
            )
            return None
        except Exception as exc:
            logger.warning(
                "visitor.fingerprint_failed",
                extra={"reason": type(exc).__name__, "error_message": str(exc)},
            )
            return None

        if not visitor_id:
            logger.warning("visitor.fingerprint_failed", extra={"reason": "empty_id"})
            return None

        return VisitorIdentity(id=visitor_id, origin=VisitorOrigin.FINGERPRINTED)

    def _fallback(self) -> VisitorIdentity:
        """Build the fallback identity (blocking: touches local storage)."""
        assert self._context is not None
        storage = self._context.storage

        if storage is None:
            logger.warning("visitor.fallback", extra={"source": "random", "reason": "no_storage"})
            return VisitorIdentity(id=_random_fallback_id(), origin=VisitorOrigin.FALLBACK)

        try:
            stored = storage.get_item(FALLBACK_STORAGE_KEY)
        except (OSError, ValueError) as exc:
            logger.warning(
                "visitor.fallback",
                extra={"source": "random", "reason": "storage_unreadable", "error_message": str(exc)},
            )
            return VisitorIdentity(id=_random_fallback_id(), origin=VisitorOrigin.FALLBACK)

        if stored:
            logger.info("visitor.fallback", extra={"source": "storage"})
            return VisitorIdentity(id=stored, origin=VisitorOrigin.FALLBACK)

        try:
            token = fallback_token(self._context.collect_signals())
        except Exception as exc:
            logger.warning(
                "visitor.fallback",
                extra={"source": "random", "reason": "signals_unavailable", "error_message": str(exc)},
            )
            return VisitorIdentity(id=_random_fallback_id(), origin=VisitorOrigin.FALLBACK)

        try:
            storage.set_item(FALLBACK_STORAGE_KEY, token)
        except (OSError, ValueError) as exc:
            # The token is still derived from the signals, just not pinned.
            logger.warning(
                "visitor.fallback_not_persisted",
                extra={"error_message": str(exc)},
            )

        logger.info("visitor.fallback", extra={"source": "signals"})
        return VisitorIdentity(id=token, origin=VisitorOrigin.FALLBACK)


def create_visitor_resolver(visitor_settings: VisitorSettings | None = None) -> VisitorResolver:
    """Build the resolver for a local client process from settings.

    Uses the machine fingerprint provider, local device signals and a JSON
    file for the persisted fallback id.
    """
    cfg = visitor_settings or settings.visitor
    return VisitorResolver(
        MachineFingerprintProvider(),
        ClientContext(storage=JsonFileStorage(cfg.storage_path)),
        fingerprint_timeout_seconds=cfg.fingerprint_timeout_seconds,
    )
