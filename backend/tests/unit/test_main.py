"""
Unit tests for main FastAPI application.

Tests the health check, router mounting and the global exception handlers.
"""

import json

import pytest
from unittest.mock import Mock
from fastapi.testclient import TestClient

from main import app, global_exception_handler, health_check, value_error_handler


class TestHealthEndpoint:

    def test_health_endpoint(self):
        client = TestClient(app)
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_health_check_function_directly(self):
        assert await health_check() == {"status": "healthy"}

    def test_scheduling_routes_mounted_under_api(self):
        paths = {route.path for route in app.routes}

        assert "/api/appointments" in paths
        assert "/api/practitioners/{practitioner_id}/available-slots" in paths
        assert "/api/waitlist" in paths


class TestExceptionHandlers:
    """Test global exception handlers."""

    @pytest.mark.asyncio
    async def test_global_exception_handler(self):
        response = await global_exception_handler(Mock(), RuntimeError("boom"))

        assert response.status_code == 500
        assert json.loads(response.body) == {"detail": "Internal server error", "type": "internal_error"}

    @pytest.mark.asyncio
    async def test_value_error_handler(self):
        response = await value_error_handler(Mock(), ValueError("Invalid date format: 2025-13-01"))

        assert response.status_code == 400
        assert json.loads(response.body) == {
            "detail": "Invalid date format: 2025-13-01",
            "type": "validation_error",
        }
