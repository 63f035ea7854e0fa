"""Tests for global exception handlers.

Validates that every error type maps to the expected HTTP status and leaves
the service in the same envelope, without leaking internals.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from visitor_quota.core.errors import (
    AppError,
    AuthenticationAppError,
    ProviderUnavailableError,
    StoreUnavailableError,
    ValidationAppError,
)
from visitor_quota.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        ("error", "status_code"),
        [
            (ValidationAppError(code="visitor_id_required", message="Visitor ID is required"), 400),
            (AuthenticationAppError(code="invalid_admin_key", message="Invalid or missing admin key"), 403),
            (StoreUnavailableError(code="store_unavailable", message="Key-value store is unavailable"), 503),
            (ProviderUnavailableError(code="fingerprint_unavailable", message="blocked"), 500),
            (AppError(code="generic", message="generic failure"), 500),
        ],
    )
    def test_status_mapping(self, client: TestClient, app_with_handlers: FastAPI, error, status_code) -> None:
        @app_with_handlers.get("/boom")
        async def boom():
            raise error

        response = client.get("/boom")

        assert response.status_code == status_code
        data = response.json()
        assert data["error"]["code"] == error.code
        assert data["error"]["message"] == error.message
        assert "request_id" in data["error"]

    def test_details_are_included_when_present(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/details")
        async def details():
            raise StoreUnavailableError(
                code="store_unavailable",
                message="Key-value store is unavailable",
                details={"backend": "redis", "operation": "get"},
            )

        data = client.get("/details").json()

        assert data["error"]["details"] == {"backend": "redis", "operation": "get"}

    def test_details_are_omitted_when_empty(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/no-details")
        async def no_details():
            raise ValidationAppError(code="test", message="test")

        data = client.get("/no-details").json()

        assert "details" not in data["error"]


class TestFrameworkErrors:
    def test_request_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/typed")
        async def typed(count: int):
            return {"count": count}

        response = client.get("/typed", params={"count": "many"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "invalid_request"
        assert "query.count" in data["error"]["details"]["context"]["fields"]

    def test_http_exception_keeps_status(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/gone")
        async def gone():
            raise HTTPException(status_code=404, detail="Not Found")

        response = client.get("/gone")

        assert response.status_code == 404
        assert response.json()["error"] == {"code": "http_404", "message": "Not Found", "request_id": None}

    def test_unknown_route_uses_envelope(self, client: TestClient) -> None:
        response = client.get("/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "http_404"


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_general_exception_handler_hides_internals(self) -> None:
        request = AsyncMock()
        request.url.path = "/rate-limit"
        request.method = "POST"

        exc = RuntimeError("Unexpected error: redis password rejected")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data["error"]["code"] == "internal_server_error"
        assert "redis password" not in data["error"]["message"]
        assert "RuntimeError" not in bytes(response.body).decode()

    def test_unexpected_exception_through_app(self, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/crash")
        async def crash():
            raise ValueError("Test error with details")

        client = TestClient(app_with_handlers, raise_server_exceptions=False)
        response = client.get("/crash")

        assert response.status_code == 500
        assert "Traceback" not in response.text
        assert "Test error with details" not in response.text


def test_setup_exception_handlers_registers_handlers(app_with_handlers: FastAPI) -> None:
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
