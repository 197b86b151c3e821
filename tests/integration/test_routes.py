"""
HTTP tests for /terminal and /tasks/generate. The lifespan is not run; the
services it would build are replaced with fakes on app.state.
"""

import pytest
from fastapi.testclient import TestClient

from campaign_terminal.main import app
from campaign_terminal.terminal.cache import MemoryCacheBackend, ResultCache
from campaign_terminal.terminal.dispatcher import CommandDispatcher
from campaign_terminal.terminal.rate_limiter import SlidingWindowRateLimiter

client = TestClient(app)


@pytest.fixture(autouse=True)
def services(provider):
    cache = ResultCache(MemoryCacheBackend())
    limiter = SlidingWindowRateLimiter(max_requests=50, window_seconds=3600)
    app.state.provider = provider
    app.state.cache = cache
    app.state.limiter = limiter
    app.state.dispatcher = CommandDispatcher(provider, cache, limiter)
    return app.state


def test_terminal_query_returns_rendered_and_structured_report(provider):
    response = client.post("/terminal", json={"query": "low leads"})

    assert response.status_code == 200
    data = response.json()
    assert data["resolved_command"] == "low_leads"
    assert data["params"] == {}
    assert data["response_text"].startswith("🚨 **Campaigns with <3000 Uncontacted Leads**")
    assert data["structured"]["sections"][0]["items"][0]["name"] == "Acme - Running Dry"
    assert response.headers["X-Request-ID"]


def test_terminal_query_extracts_params():
    response = client.post("/terminal", json={"query": "diagnose running dry"})

    data = response.json()
    assert data["resolved_command"] == "diagnose"
    assert data["params"] == {"campaign": "running dry"}
    assert data["structured"]["title"] == "Diagnosis: Acme - Running Dry"


def test_force_refresh_flag_bypasses_cache(provider):
    client.post("/terminal", json={"query": "low leads"})
    cached = client.post("/terminal", json={"query": "low leads"}).json()
    fresh = client.post("/terminal", json={"query": "low leads", "force_refresh": True}).json()

    assert cached["structured"]["metadata"]["cached"] is True
    assert "(cached)" in cached["response_text"]
    assert fresh["structured"]["metadata"]["cached"] is False
    assert provider.calls.count("list_campaigns") == 2


def test_upstream_failure_is_still_200(provider, upstream_down):
    provider.fail_with = upstream_down

    response = client.post("/terminal", json={"query": "inbox health"})

    assert response.status_code == 200
    assert response.json()["structured"]["type"] == "error"
    assert response.json()["structured"]["title"] == "Connection Error"


def test_query_is_required():
    response = client.post("/terminal", json={})

    assert response.status_code == 422


def test_generate_tasks_from_snapshots(provider):
    body = {
        "clients": [
            {
                "client_name": "Globex",
                "total_sent": 20000,
                "total_replies": 40,
                "uncontacted_leads": 10000,
                "active_inboxes": 5,
                "avg_inbox_health": 97,
            }
        ]
    }

    response = client.post("/tasks/generate", json=body)

    assert response.status_code == 200
    data = response.json()
    assert data["client_count"] == 1
    assert data["daily"][0]["bucket"] == "COPY_ISSUE"
    assert data["daily"][0]["severity"] == "critical"
    assert data["weekly"][-1]["id"].startswith("portfolio-summary-")
    assert provider.calls == []


def test_generate_tasks_from_workspace(provider):
    response = client.post("/tasks/generate", json={})

    assert response.status_code == 200
    data = response.json()
    assert data["client_count"] == 2
    assert {task["client_name"] for task in data["daily"]} == {"Acme", "Globex"}


def test_generate_tasks_upstream_down(provider, upstream_down):
    provider.fail_with = upstream_down

    response = client.post("/tasks/generate", json={"include_trends": False})

    assert response.status_code == 503
    assert response.json()["detail"] == "Metrics provider unavailable: Unable to connect to Instantly API"


def test_generate_tasks_validates_snapshots():
    response = client.post("/tasks/generate", json={"clients": [{"client_name": "", "total_sent": -1}]})

    assert response.status_code == 422
