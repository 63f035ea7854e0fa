"""Command-line quota client.

Resolves this machine's visitor identity once, then asks the quota service
whether the protected action may run (``check``) or consumes one unit of the
visitor's quota (``consume``). The outcome is printed as one JSON object.

Exit status is 0 when the action is allowed and 1 when the quota is spent.
Service outages fail open, so they never produce a non-zero status.

Usage:
    visitor-quota consume
    visitor-quota --service-url https://quota.example.com check
    visitor-quota identity
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Sequence

import httpx

from visitor_quota.core.config import settings
from visitor_quota.core.logging import configure_logging
from visitor_quota.services.quota_client import QuotaClient
from visitor_quota.services.visitor_resolver import VisitorResolver, create_visitor_resolver

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="visitor-quota",
        description="Check or consume this visitor's quota on the quota service.",
    )
    parser.add_argument(
        "--service-url",
        default=settings.visitor.service_url,
        help="Base URL of the quota service (default: VISITOR_SERVICE_URL)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level on stderr")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("check", help="Report whether the action is allowed, without consuming quota")
    subparsers.add_parser("consume", help="Consume one unit of quota")
    subparsers.add_parser("identity", help="Print the resolved visitor identity only")
    return parser


async def run(
    command: str,
    *,
    service_url: str,
    resolver: VisitorResolver | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Execute one client command and return its JSON-ready result.

    Args:
        command: ``check``, ``consume`` or ``identity``.
        service_url: Base URL of the quota service.
        resolver: Identity resolver; built from ``VISITOR_*`` settings if omitted.
        http_client: Optional pre-built client (owned by the caller).
    """
    resolver = resolver or create_visitor_resolver(settings.visitor)
    identity = await resolver.resolve()
    result: dict[str, Any] = {"visitorId": identity.id, "origin": identity.origin.value}

    if command == "identity":
        return result

    async with QuotaClient(
        service_url,
        resolver,
        http_client=http_client,
        timeout_seconds=settings.visitor.request_timeout_seconds,
    ) as client:
        if command == "check":
            decision = await client.check()
        else:
            decision = await client.increment()

    result.update(
        allowed=decision.allowed,
        resetsAt=decision.resets_at,
        limit=decision.limit,
        remaining=decision.remaining,
    )
    return result


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    log_cfg = settings.log.model_copy(update={"level": "INFO" if args.verbose else "WARNING"})
    configure_logging(log_cfg, stream=sys.stderr)

    result = asyncio.run(run(args.command, service_url=args.service_url))
    logger.info("client.done", extra={"command": args.command, "allowed": result.get("allowed")})

    print(json.dumps(result))
    return 0 if result.get("allowed", True) else 1


if __name__ == "__main__":
    sys.exit(main())
