"""
Tests for health endpoints, health aggregation and the HTTP middlewares.
"""

import logging

import pytest

from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdFilter, table_session_var
from shared.utils.health import (
    ComponentHealth,
    HealthStatus,
    health_check_with_timeout,
    overall_status,
)


@health_check_with_timeout(timeout=1.0, component="redis", critical=False)
async def _redis_down():
    raise ConnectionError("connection refused")


@health_check_with_timeout(timeout=1.0, component="database")
async def _database_down():
    raise ConnectionError("could not connect to server")


class TestHealthEndpoints:

    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "table-share-api"

    def test_detailed_health_checks_database(self, client):
        """With notifications disabled only the database is checked."""
        response = client.get("/api/health/detailed")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["dependencies"]["database"]["status"] == "healthy"
        assert data["dependencies"]["database"]["critical"] is True
        assert "redis" not in data["dependencies"]

    def test_redis_down_is_degraded_not_unavailable(self, client, monkeypatch):
        monkeypatch.setattr(settings, "events_enabled", True)
        monkeypatch.setattr("rest_api.routers.public.health.check_redis_health", _redis_down)

        response = client.get("/api/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["dependencies"]["redis"]["error"] == "connection refused"

    def test_database_down_is_unavailable(self, client, monkeypatch):
        monkeypatch.setattr("rest_api.routers.public.health.check_database_health", _database_down)

        response = client.get("/api/health/detailed")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestHealthAggregation:

    def _result(self, status, critical=True):
        return ComponentHealth(component="x", status=status, critical=critical)

    def test_all_healthy(self):
        assert overall_status([self._result(HealthStatus.HEALTHY)]) == HealthStatus.HEALTHY

    def test_optional_failure_degrades(self):
        results = [self._result(HealthStatus.HEALTHY), self._result(HealthStatus.UNHEALTHY, critical=False)]
        assert overall_status(results) == HealthStatus.DEGRADED

    def test_critical_failure_wins(self):
        results = [self._result(HealthStatus.UNHEALTHY), self._result(HealthStatus.UNHEALTHY, critical=False)]
        assert overall_status(results) == HealthStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_timeout_becomes_unhealthy(self):
        import asyncio

        @health_check_with_timeout(timeout=0.01, component="slow")
        async def check_slow():
            await asyncio.sleep(1)

        result = await check_slow()

        assert result.status == HealthStatus.UNHEALTHY
        assert "0.01" in result.error


class TestMiddlewares:

    def test_request_id_is_generated(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Request-ID"]

    def test_request_id_is_propagated(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    def test_security_headers(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_non_json_body_rejected(self, client):
        response = client.post("/api/orders/confirm", content="session_id=1", headers={"Content-Type": "text/plain"})
        assert response.status_code == 415

    def test_log_records_carry_table_session(self):
        token = table_session_var.set("42")
        try:
            record = logging.LogRecord("rest_api.cart", logging.INFO, __file__, 1, "msg", (), None)
            CorrelationIdFilter().filter(record)
        finally:
            table_session_var.reset(token)

        assert record.table_session == "42"
        assert record.request_id == "-"
