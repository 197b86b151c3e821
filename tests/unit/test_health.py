"""
Tests for health check endpoints.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from campaign_terminal.main import app
from campaign_terminal.terminal.cache import MemoryCacheBackend, RedisCacheBackend, ResultCache
from campaign_terminal.terminal.rate_limiter import SlidingWindowRateLimiter
from tests.conftest import FakeRedis

client = TestClient(app)


@pytest.fixture(autouse=True)
def services(provider):
    provider.api_key = "test-key"
    app.state.provider = provider
    app.state.cache = ResultCache(MemoryCacheBackend())
    app.state.limiter = SlidingWindowRateLimiter(max_requests=100, window_seconds=3600)
    return app.state


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_health_all_ok(provider):
    """Every check passes with a configured key and the memory cache."""
    asyncio.run(app.state.limiter.check_limit())

    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    checks = data["checks"]
    assert checks["cache"]["backend"] == "memory"
    assert checks["rate_limiter"] == {
        "backend": "memory",
        "ok": True,
        "limit": 100,
        "remaining": 99,
        "window_seconds": 3600,
    }
    assert checks["provider"]["ok"] is True
    assert provider.calls == []


def test_health_degraded_without_api_key(provider):
    """A missing key degrades the status without failing the request."""
    provider.api_key = ""

    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["provider"]["issues"] == ["INSTANTLY_API_KEY not set"]


def test_health_redis_unreachable():
    """Redis-backed cache reports the ping result."""
    app.state.cache = ResultCache(RedisCacheBackend(FakeRedis()))

    with patch("campaign_terminal.routes.health.fast_redis.ping", AsyncMock(return_value=False)):
        response = client.get("/health")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["cache"]["backend"] == "redis"
    assert data["checks"]["cache"]["ok"] is False
