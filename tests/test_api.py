"""Tests for MenuTrail API application structure.

Tests cover:
- App factory (create_app) and store ownership
- Health endpoints
- Request ID middleware
- Error response helpers
- OpenAPI documentation endpoints
"""

import json
import logging
import uuid

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from menutrail.api import create_app
from menutrail.api.main import LOG_FORMAT
from menutrail.api.middleware.errors import (
    APIError,
    NotFoundError,
    SimulatedErrorAPIError,
    ValidationAPIError,
    build_error_response,
)
from menutrail.api.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIDLogFilter,
    get_request_id,
    request_id_ctx,
)
from menutrail.core.config import SandboxSettings, Settings
from menutrail.services.sandbox import SandboxDeliveryStore


class TestAppFactory:
    """Tests for the create_app factory function."""

    def test_create_app_returns_fastapi_instance(self):
        """Test that create_app returns a FastAPI application."""
        assert isinstance(create_app(), FastAPI)

    def test_create_app_sets_title_and_version(self):
        """Test that the app has its title and default version."""
        app = create_app()
        assert app.title == "MenuTrail Delivery Sandbox API"
        assert app.version == "0.1.0"

    def test_create_app_docs_urls(self):
        """Test that documentation URLs live under /api."""
        app = create_app()
        assert app.docs_url == "/api/docs"
        assert app.redoc_url == "/api/redoc"
        assert app.openapi_url == "/api/openapi.json"

    def test_each_app_gets_its_own_store(self):
        """Apps built without a store do not share state."""
        first = create_app()
        second = create_app()
        assert isinstance(first.state.sandbox_store, SandboxDeliveryStore)
        assert first.state.sandbox_store is not second.state.sandbox_store

    def test_injected_store_is_used(self, store):
        """An injected store is served as-is."""
        assert create_app(store=store).state.sandbox_store is store

    def test_settings_configure_store(self):
        """Sandbox settings flow into the store the app creates."""
        settings = Settings(app_version="9.9.9", sandbox=SandboxSettings(base_fee=1.0))
        app = create_app(settings)
        assert app.version == "9.9.9"
        assert app.state.settings is settings
        assert app.state.sandbox_store.settings.base_fee == 1.0


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_root_health(self, api_client: AsyncClient):
        """Test the root health endpoint."""
        response = await api_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_sandbox_health(self, api_client: AsyncClient, store):
        """Test the sandbox namespace health endpoint."""
        store.create("o1", "a", "b")
        response = await api_client.get("/api/sandbox-deliveries/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["namespace"] == "sandbox"
        assert data["deliveries"] == 1


class TestRequestIDMiddleware:
    """Tests for the X-Request-ID middleware."""

    @pytest.mark.asyncio
    async def test_generates_request_id(self, api_client: AsyncClient):
        """A request without an id gets a fresh UUID."""
        response = await api_client.get("/health")
        request_id = response.headers[REQUEST_ID_HEADER]
        assert uuid.UUID(request_id)

    @pytest.mark.asyncio
    async def test_preserves_client_request_id(self, api_client: AsyncClient):
        """A client-supplied id is echoed back."""
        response = await api_client.get("/health", headers={REQUEST_ID_HEADER: "dash-42"})
        assert response.headers[REQUEST_ID_HEADER] == "dash-42"

    @pytest.mark.asyncio
    async def test_replaces_oversized_request_id(self, api_client: AsyncClient):
        """Oversized client ids are replaced."""
        response = await api_client.get("/health", headers={REQUEST_ID_HEADER: "x" * 500})
        assert response.headers[REQUEST_ID_HEADER] != "x" * 500

    @pytest.mark.asyncio
    async def test_error_response_carries_request_id(self, api_client: AsyncClient):
        """Error bodies and headers carry the request id."""
        response = await api_client.get(
            "/api/sandbox-deliveries/unknown", headers={REQUEST_ID_HEADER: "req-404"}
        )
        assert response.status_code == 404
        assert response.headers[REQUEST_ID_HEADER] == "req-404"
        assert response.json()["request_id"] == "req-404"

    def test_no_request_id_outside_request(self):
        """Outside a request there is no id."""
        assert get_request_id() is None

    def test_log_filter_adds_request_id(self):
        """Log records receive the current request id."""
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
        token = request_id_ctx.set("req-log")
        try:
            assert RequestIDLogFilter().filter(record)
        finally:
            request_id_ctx.reset(token)
        assert record.request_id == "req-log"

    def test_log_filter_placeholder(self):
        """Records logged outside a request get a placeholder."""
        record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
        RequestIDLogFilter().filter(record)
        assert record.request_id == "-"

    def test_log_format_renders_request_id(self):
        """Formatted log lines carry the request id."""
        record = logging.LogRecord("menutrail", logging.INFO, __file__, 1, "created", None, None)
        token = request_id_ctx.set("req-fmt")
        try:
            RequestIDLogFilter().filter(record)
        finally:
            request_id_ctx.reset(token)
        line = logging.Formatter(LOG_FORMAT).format(record)
        assert line.endswith("INFO menutrail [req-fmt]: created")


class TestErrorResponses:
    """Tests for error classes and the response builder."""

    def test_build_error_response_basic(self):
        """A basic error has error and message."""
        response = build_error_response("bad", "Bad thing", 400)
        assert response.status_code == 400
        assert json.loads(response.body) == {"error": "bad", "message": "Bad thing"}

    def test_build_error_response_with_detail(self):
        """Detail is included when given."""
        response = build_error_response("bad", "Bad thing", 400, detail={"field": "x"})
        assert json.loads(response.body)["detail"] == {"field": "x"}

    def test_api_error_defaults(self):
        """APIError defaults to 400."""
        error = APIError(error="custom", message="Custom")
        assert error.status_code == 400
        assert error.detail is None
        assert str(error) == "Custom"

    def test_not_found_error(self):
        """NotFoundError is a 404 naming the resource."""
        error = NotFoundError("Sandbox delivery", "abc")
        assert error.status_code == 404
        assert error.error == "not_found"
        assert error.message == "Sandbox delivery not found: abc"

    def test_validation_api_error(self):
        """ValidationAPIError is a 400."""
        error = ValidationAPIError("Nope", detail={"field": "status"})
        assert error.status_code == 400
        assert error.error == "validation_error"

    def test_simulated_error(self):
        """SimulatedErrorAPIError carries the reason and error code."""
        error = SimulatedErrorAPIError("timeout", delivery_id="sandbox-o1-1")
        assert error.status_code == 400
        assert error.message == "Simulated error: timeout"
        assert error.detail == {
            "errorCode": "SANDBOX_SIMULATED_ERROR",
            "reason": "timeout",
            "deliveryId": "sandbox-o1-1",
        }


class TestOpenAPIDocumentation:
    """Tests for the OpenAPI schema."""

    @pytest.mark.asyncio
    async def test_openapi_schema(self, api_client: AsyncClient):
        """The schema lists the sandbox routes."""
        response = await api_client.get("/api/openapi.json")
        assert response.status_code == 200
        paths = response.json()["paths"]
        assert "/api/sandbox-deliveries" in paths
        assert "/api/sandbox-deliveries/{delivery_id}" in paths
        assert "/api/sandbox-deliveries/quotes" in paths
        assert set(paths["/api/sandbox-deliveries"]) >= {"get", "post", "put", "delete"}

    @pytest.mark.asyncio
    async def test_swagger_ui(self, api_client: AsyncClient):
        """Swagger UI is served."""
        response = await api_client.get("/api/docs")
        assert response.status_code == 200
