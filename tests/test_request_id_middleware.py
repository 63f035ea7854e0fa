from __future__ import annotations

from fastapi.testclient import TestClient

from visitor_quota.adapters.store.in_memory import InMemoryKeyValueStore
from visitor_quota.core.app_factory import create_app


client = TestClient(create_app(store=InMemoryKeyValueStore()))


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID")
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_error_envelope_carries_request_id():
    resp = client.get("/rate-limit", headers={"X-Request-ID": "corr-789"})

    assert resp.status_code == 400
    assert resp.json()["error"]["request_id"] == "corr-789"
    assert resp.headers.get("X-Request-ID") == "corr-789"
