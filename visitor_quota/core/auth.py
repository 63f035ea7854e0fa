"""Admin key authentication for operator endpoints.

Only the visitor debug endpoint is protected. Visitors themselves are
anonymous; this is not visitor authentication.

Keys are validated against a comma-separated list from environment variables.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header

from visitor_quota.core.config import settings
from visitor_quota.core.errors import AuthenticationAppError
from visitor_quota.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ") == {"key1", "key2", "key3"}
        True
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()

    return {key.strip() for key in keys_string.split(",") if key.strip()}


def validate_admin_key(provided_key: str | None) -> None:
    """Validate an admin key against the configured keys.

    Args:
        provided_key: Key from the request, possibly missing.

    Raises:
        AuthenticationAppError: If no keys are configured, or the key is
            missing or not one of them.
    """
    valid_keys = parse_api_keys(settings.app.admin_api_keys)

    if not valid_keys:
        logger.error(
            "admin_key_validation_failed",
            extra={"reason": "admin_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="admin_keys_not_configured",
            message="Admin endpoints are enabled but no admin keys are configured",
            details={"hint": "Set APP_ADMIN_API_KEYS or disable with APP_DEBUG_ENDPOINT_ENABLED=false"},
        )

    if not provided_key:
        logger.warning("admin_key_validation_failed", extra={"reason": "missing_admin_key"})
        raise AuthenticationAppError(
            code="missing_admin_key",
            message="Missing admin key. Provide X-Admin-Key header.",
        )

    if not any(hmac.compare_digest(provided_key, key) for key in valid_keys):
        logger.warning(
            "admin_key_validation_failed",
            extra={
                "reason": "invalid_admin_key",
                "admin_key_hash": hash_identifier(provided_key),
            },
        )
        raise AuthenticationAppError(
            code="invalid_admin_key",
            message="Invalid or missing admin key",
        )


async def verify_admin_key(
    x_admin_key: Annotated[str | None, Header(alias="X-Admin-Key")] = None,
) -> None:
    """FastAPI dependency guarding operator endpoints.

    Usage:
        @router.get("/debug/visitor", dependencies=[Depends(verify_admin_key)])

    Raises:
        AuthenticationAppError: Mapped to 403 by the exception handlers.
    """
    validate_admin_key(x_admin_key)
    logger.info(
        "auth.success",
        extra={"admin_key_hash": hash_identifier(x_admin_key or "")},
    )
