"""
Unit tests for Gateway main service.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_gateway.app.main import GatewayService, create_app
from shared.errors import (
    UnknownEndpointError,
    UnknownWidgetError,
    UpstreamFailureError,
    ValidationError,
    status_code_for,
)


class TestGatewayService:
    """Test cases for GatewayService."""

    @pytest.fixture
    def gateway_service(self):
        """Create GatewayService instance."""
        return GatewayService()

    @pytest.fixture
    def client(self, gateway_service):
        """Create test client."""
        return TestClient(gateway_service.app)

    def test_root_endpoint(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "gateway"
        assert data["message"] == "HQ Trucking Platform - Widget Gateway"

    def test_api_status_endpoint(self, client):
        """Test API status endpoint."""
        response = client.get("/api/v1/status")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "operational"
        assert data["gateway"] == "HQ-Trucking-v1.0"
        assert data["widgets"] == ["rates", "analytics", "operations", "market", "saga"]

    def test_health_endpoint(self, client):
        """Test health endpoint."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "gateway"
        assert data["status"] == "ok"

    @patch('service_gateway.app.main.GatewayService._check_dependencies')
    def test_health_dependency_failure(self, mock_check_deps, client):
        """Test health endpoint when a dependency check fails."""
        mock_check_deps.side_effect = RuntimeError("router offline")

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["error"] == "router offline"

    def test_metrics_endpoint(self, gateway_service, client):
        """Test Prometheus metrics endpoint."""
        client.get("/api/widget/rates/current")

        response = client.get("/metrics")
        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "widget_requests_total" in response.text
        sample = gateway_service.metrics.registry.get_sample_value(
            "widget_requests_total", {"widget": "rates", "outcome": "success"}
        )
        assert sample == 1

    def test_request_id_propagated(self, client):
        """Test X-Request-ID echo."""
        response = client.get("/", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"

    def test_widget_miss_then_hit(self, client):
        """Test that the second identical read is served from cache."""
        first = client.get("/api/widget/rates/current")
        second = client.get("/api/widget/rates/current")

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["success"] is True
        assert first.json()["meta"]["cached"] is False
        assert second.json()["meta"]["cached"] is True
        assert second.json()["data"] == first.json()["data"]
        assert second.json()["meta"]["requestCount"] == 2

    def test_query_string_forwarded(self, client):
        """Test query parameters reach the backend."""
        response = client.get("/api/widget/saga/quote", params={"route": "Chennai-Bangalore"})

        assert response.status_code == 200
        assert response.json()["data"]["route"] == "Chennai-Bangalore"

    def test_unknown_widget(self, client):
        """Test unregistered widget id."""
        response = client.get("/api/widget/ghost/x")

        assert response.status_code == 404
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "UNKNOWN_WIDGET"
        assert data["error"] == "Widget 'ghost' not registered in gateway"
        assert "responseTimeMs" in data["meta"]
        assert data["meta"]["requestCount"] == 1

    def test_unknown_endpoint(self, client):
        """Test endpoint the backend does not serve."""
        response = client.get("/api/widget/analytics/nope")

        assert response.status_code == 404
        assert response.json()["code"] == "UNKNOWN_ENDPOINT"
        assert response.json()["error"] == "Analytics endpoint 'nope' not found"

    def test_upstream_failure(self):
        """Test backend exception is surfaced as a failure envelope."""
        router = MagicMock()
        router.route = AsyncMock(side_effect=RuntimeError("connection refused"))
        client = TestClient(create_app(router=router))

        response = client.get("/api/widget/rates/current")

        assert response.status_code == 502
        data = response.json()
        assert data["success"] is False
        assert data["code"] == "UPSTREAM_FAILURE"
        assert data["error"] == "connection refused"

    def test_repeated_query_keys_are_kept(self):
        """Test repeated query parameters are not collapsed."""
        router = MagicMock()
        router.route = AsyncMock(return_value={"ok": True})
        client = TestClient(create_app(router=router))

        client.get("/api/widget/rates/current?a=1&a=2")
        client.get("/api/widget/rates/current?a=2")

        assert router.route.await_count == 2
        first_params = router.route.await_args_list[0].args[2]
        second_params = router.route.await_args_list[1].args[2]
        assert first_params["query"] == {"a": ["1", "2"]}
        assert second_params["query"] == {"a": "2"}

    @pytest.mark.parametrize("exc_class", [
        ValidationError, UnknownWidgetError, UnknownEndpointError, UpstreamFailureError,
    ])
    def test_status_code_follows_error_class(self, exc_class):
        """Test error codes map to the status declared on their class."""
        assert status_code_for(exc_class.error_code) == exc_class.status_code

    def test_status_code_for_unknown_code(self):
        """Test unrecognized codes fall back to a server error."""
        assert status_code_for("SOMETHING_ELSE") == 500
        assert status_code_for(None) == 500

    def test_post_forwards_json_body(self):
        """Test POST body reaches the backend."""
        router = MagicMock()
        router.route = AsyncMock(return_value={"status": "assigned"})
        client = TestClient(create_app(router=router))

        response = client.post("/api/widget/saga/assign", json={"vehicleId": "TN-456"})

        assert response.status_code == 200
        service_name, endpoint, params = router.route.await_args.args
        assert service_name == "orderSaga"
        assert endpoint == "assign"
        assert params["method"] == "POST"
        assert params["body"] == {"vehicleId": "TN-456"}
        assert params["widgetId"] == "saga"

    def test_post_invalid_json(self, client):
        """Test malformed POST body is rejected."""
        response = client.post(
            "/api/widget/saga/assign",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_stats_endpoint(self, client):
        """Test gateway statistics."""
        client.get("/api/widget/rates/current")
        client.get("/api/widget/rates/current")
        client.get("/api/widget/ghost/current")

        response = client.get("/api/stats")

        assert response.status_code == 200
        stats = response.json()["gateway"]
        assert stats["totalRequests"] == 3
        assert stats["cacheSize"] == 1
        assert stats["performance"]["cacheHits"] == 1
        assert len(stats["registeredWidgets"]) == 5

    def test_widget_catalog(self, client):
        """Test widget catalog endpoint."""
        response = client.get("/api/v1/widgets")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 5
        assert data["widgets"]["market"]["cacheTtlSeconds"] == 900
        assert data["widgets"]["saga"]["service"] == "orderSaga"
        assert data["widgets"]["rates"]["budget"] == {"maxResponseBytes": 150000, "maxResponseMillis": 2000}

    def test_app_state_exposes_service(self, gateway_service):
        """Test service instance is reachable from app state."""
        assert gateway_service.app.state.gateway_service is gateway_service
