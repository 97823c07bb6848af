"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, field_validator

from app.core.errors import (
    AppError,
    InternalAppError,
    NotFoundAppError,
    ValidationAppError,
)
from app.core.exception_handlers import setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400."""
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(
                code="invalid_user_id",
                message="Invalid user ID. Must be a positive integer."
            )

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "invalid_user_id"
        assert data["error"]["message"] == "Invalid user ID. Must be a positive integer."
        assert "request_id" in data["error"]

    def test_not_found_error_returns_404(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify NotFoundAppError returns HTTP 404 with its details."""
        @app_with_handlers.get("/test-not-found")
        async def test_endpoint():
            raise NotFoundAppError(
                code="user_not_found",
                message="User with ID 999 not found",
                details={"key": "999"},
            )

        response = client.get("/test-not-found")

        assert response.status_code == 404
        data = response.json()
        assert data["error"]["code"] == "user_not_found"
        assert data["error"]["details"]["key"] == "999"

    def test_internal_error_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify InternalAppError returns HTTP 500."""
        @app_with_handlers.get("/test-internal")
        async def test_endpoint():
            raise InternalAppError(
                code="backing_store_error",
                message="Failed to fetch 1"
            )

        response = client.get("/test-internal")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "backing_store_error"

    def test_error_response_format_is_consistent(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify error responses have consistent JSON structure."""
        @app_with_handlers.get("/test-format")
        async def test_endpoint():
            raise ValidationAppError(code="test", message="test")

        response = client.get("/test-format")
        data = response.json()

        assert "error" in data
        assert "code" in data["error"]
        assert "message" in data["error"]
        assert "request_id" in data["error"]
        assert "details" not in data["error"]


class TestRequestValidationHandler:
    """Body validation failures keep the 400 error shape."""

    def test_validator_message_is_returned_without_prefix(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        class Payload(BaseModel):
            email: str

            @field_validator("email")
            @classmethod
            def _check(cls, value: str) -> str:
                if "@" not in value:
                    raise ValueError("Invalid email format")
                return value

        @app_with_handlers.post("/test-body")
        async def test_endpoint(payload: Payload):
            return {"ok": True}

        response = client.post("/test-body", json={"email": "nope"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "invalid_request"
        assert data["error"]["message"] == "Invalid email format"

    def test_missing_field_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        class Payload(BaseModel):
            name: str

        @app_with_handlers.post("/test-missing")
        async def test_endpoint(payload: Payload):
            return {"ok": True}

        response = client.post("/test-missing", json={})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_request"


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        """Verify fallback exception handler is registered."""
        assert Exception in app_with_handlers.exception_handlers

    def test_unexpected_exception_returns_generic_500(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-crash")
        async def test_endpoint():
            raise RuntimeError("database connection failed")

        response = client.get("/test-crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "database connection" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        from app.core.exception_handlers import general_exception_handler

        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_body = response.body if isinstance(response.body, bytes) else bytes(response.body)
        response_text = response_body.decode()
        assert json.loads(response_text)["error"]["code"] == "internal_server_error"
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        """Verify setup_exception_handlers properly registers handlers."""
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        """Verify calling setup_exception_handlers multiple times is safe."""
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
