"""Integration tests for the admin-only GET /debug/visitor endpoint."""

import asyncio
import json
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from visitor_quota.adapters.store.base import AbstractKeyValueStore
from visitor_quota.adapters.store.in_memory import InMemoryKeyValueStore
from visitor_quota.core.app_factory import create_app
from visitor_quota.core.errors import StoreUnavailableError

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key-123"}


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def client(store: InMemoryKeyValueStore) -> TestClient:
    return TestClient(create_app(store=store))


def test_requires_admin_key(client) -> None:
    resp = client.get("/debug/visitor", params={"visitorId": "visitor-1"})

    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "missing_admin_key"


def test_rejects_wrong_admin_key(client) -> None:
    resp = client.get(
        "/debug/visitor",
        params={"visitorId": "visitor-1"},
        headers={"X-Admin-Key": "not-a-real-key"},
    )

    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "invalid_admin_key"


def test_unknown_visitor_has_no_record(client) -> None:
    resp = client.get("/debug/visitor", params={"visitorId": "visitor-1"}, headers=ADMIN_HEADERS)

    assert resp.status_code == 200
    body = resp.json()
    assert body["visitorId"] == "visitor-1"
    assert body["limitKey"] == "algebraTutorRateLimit"
    assert body["rateLimit"] is None
    assert body["decision"]["allowed"] is True


def test_shows_stored_record_and_decision(client) -> None:
    for _ in range(5):
        client.post("/rate-limit", json={"visitorId": "visitor-1"})

    resp = client.get(
        "/debug/visitor",
        params={"visitorId": "visitor-1"},
        headers={"X-Admin-Key": "test-admin-key-456"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["rateLimit"]["count"] == 5
    assert body["decision"]["allowed"] is False
    assert body["decision"]["resetsAt"] == body["rateLimit"]["timestamp"] + 86_400_000


def test_inspection_does_not_consume_quota(client, store) -> None:
    client.post("/rate-limit", json={"visitorId": "visitor-1"})

    for _ in range(3):
        client.get("/debug/visitor", params={"visitorId": "visitor-1"}, headers=ADMIN_HEADERS)

    stored = json.loads(asyncio.run(store.get("ratelimit:algebraTutorRateLimit:visitor-1")))
    assert stored["count"] == 1


def test_malformed_record_is_reported_as_null(client, store) -> None:
    asyncio.run(store.set("ratelimit:algebraTutorRateLimit:visitor-1", "{broken", ttl_seconds=60))

    resp = client.get("/debug/visitor", params={"visitorId": "visitor-1"}, headers=ADMIN_HEADERS)

    assert resp.status_code == 200
    assert resp.json()["rateLimit"] is None


def test_missing_visitor_id_returns_400(client) -> None:
    resp = client.get("/debug/visitor", headers=ADMIN_HEADERS)

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "visitor_id_required"


def test_disabled_endpoint_returns_404(client) -> None:
    with patch("visitor_quota.api.routes.visitor.settings") as mock_settings:
        mock_settings.app.debug_endpoint_enabled = False

        resp = client.get("/debug/visitor", params={"visitorId": "visitor-1"}, headers=ADMIN_HEADERS)

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"


def test_store_failure_returns_503() -> None:
    failing = Mock(spec=AbstractKeyValueStore)
    failing.get = AsyncMock(
        side_effect=StoreUnavailableError(
            code="store_unavailable",
            message="Key-value store is unavailable",
            details={"backend": "redis", "operation": "get"},
        )
    )
    client = TestClient(create_app(store=failing))

    resp = client.get("/debug/visitor", params={"visitorId": "visitor-1"}, headers=ADMIN_HEADERS)

    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "store_unavailable"


def test_unconfigured_store_returns_503() -> None:
    with patch("visitor_quota.core.app_factory.create_store", return_value=None):
        client = TestClient(create_app())

    resp = client.get("/debug/visitor", params={"visitorId": "visitor-1"}, headers=ADMIN_HEADERS)

    assert resp.status_code == 503
    assert resp.json()["error"]["code"] == "store_not_configured"
