from datetime import date

import httpx
import pytest

from campaign_terminal.models.domain.metrics_domain import DateRange
from campaign_terminal.services.errors import EntityNotFoundError, UpstreamUnavailableError
from campaign_terminal.services.instantly_client import InstantlyClient, extract_array

BASE_URL = "https://instantly.test/api/v2"


def make_client(handler, api_key: str = "test-key") -> InstantlyClient:
    return InstantlyClient(
        api_key=api_key,
        base_url=BASE_URL,
        timeout=5,
        max_retries=3,
        backoff_factor=0,
        transport=httpx.MockTransport(handler),
    )


def route(request: httpx.Request) -> str:
    return request.url.path.removeprefix("/api/v2")


@pytest.mark.parametrize(
    "data,expected",
    [
        ([{"id": 1}], [{"id": 1}]),
        ({"items": [{"id": 1}]}, [{"id": 1}]),
        ({"data": [{"id": 2}]}, [{"id": 2}]),
        ({"nothing": "here"}, []),
        (None, []),
    ],
)
def test_extract_array(data, expected):
    assert extract_array(data) == expected


@pytest.mark.asyncio
async def test_list_campaigns_keeps_active_and_joins_analytics():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if route(request) == "/campaigns":
            return httpx.Response(
                200,
                json={
                    "items": [
                        {"id": "c1", "name": "Acme - Q1", "status": 2, "email_tag_list": ["Acme"]},
                        {"id": "c2", "name": "Acme - Old", "status": 3},
                        {"id": "c3", "name": "Globex - New", "status": 2},
                    ]
                },
            )
        return httpx.Response(
            200,
            json=[
                {
                    "campaign_id": "c1",
                    "emails_sent_count": 1000,
                    "contacted_count": 200,
                    "leads_count": 500,
                    "reply_count": 10,
                    "total_interested": 4,
                    "total_meeting_booked": 2,
                }
            ],
        )

    client = make_client(handler)
    campaigns = await client.list_campaigns(DateRange(date(2025, 1, 1), date(2025, 1, 8)))
    await client.close()

    assert [c.id for c in campaigns] == ["c1", "c3"]
    acme = campaigns[0]
    assert acme.tags == ["Acme"]
    assert acme.metrics.sent == 1000
    assert acme.metrics.uncontacted == 300
    assert acme.metrics.reply_rate == 1.0
    assert campaigns[1].metrics is None

    analytics_call = next(r for r in seen if route(r) == "/campaigns/analytics")
    assert analytics_call.url.params["start_date"] == "2025-01-01"
    assert seen[0].headers["Authorization"] == "Bearer test-key"


@pytest.mark.asyncio
async def test_pagination_follows_cursor():
    pages = {
        None: {"items": [{"email": "a@acme.io"}], "next_starting_after": "a@acme.io"},
        "a@acme.io": {"items": [{"email": "b@acme.io"}]},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=pages[request.url.params.get("starting_after")])

    client = make_client(handler)
    accounts = await client.get_accounts()

    assert [a.email for a in accounts] == ["a@acme.io", "b@acme.io"]


@pytest.mark.asyncio
async def test_account_parsing():
    raw = [
        {
            "email": "down@acme.io",
            "status": -1,
            "provider_code": 2,
            "tags": [{"label": "Acme"}],
            "error_message": "Invalid credentials",
        },
        {
            "email": "warm@acme.io",
            "status": 1,
            "warmup_status": 1,
            "stat_warmup_score": 97,
            "daily_limit": 30,
            "timestamp_last_used": "2025-01-01T08:00:00Z",
        },
    ]

    client = make_client(lambda request: httpx.Response(200, json={"items": raw}))
    down, warm = await client.get_accounts()

    assert down.is_disconnected
    assert down.provider == "Microsoft"
    assert down.tags == ["Acme"]
    assert down.has_error
    assert warm.status_label == "warmup"
    assert warm.warmup_enabled
    assert warm.daily_limit == 30
    assert warm.effective_health == 97
    assert warm.last_used.year == 2025


@pytest.mark.asyncio
async def test_not_found_maps_to_entity_error():
    client = make_client(lambda request: httpx.Response(404, json={"message": "nope"}))

    with pytest.raises(EntityNotFoundError) as exc_info:
        await client.get_workspace()

    assert exc_info.value.entity_type == "workspace"


@pytest.mark.asyncio
async def test_server_errors_retried_then_raised():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(500, text="boom")

    client = make_client(handler)
    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await client.get_workspace()

    assert len(attempts) == 3
    assert exc_info.value.status_code == 500
    assert exc_info.value.detail == "boom"
    assert exc_info.value.recoverable


@pytest.mark.asyncio
async def test_transient_error_recovers():
    responses = iter([httpx.Response(503), httpx.Response(200, json={"name": "Acme Outbound"})])

    client = make_client(lambda request: next(responses))

    assert await client.get_workspace() == {"name": "Acme Outbound"}


@pytest.mark.asyncio
async def test_client_error_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(401, text="unauthorized")

    client = make_client(handler)
    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await client.get_workspace()

    assert len(attempts) == 1
    assert not exc_info.value.recoverable


@pytest.mark.asyncio
async def test_network_error_becomes_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)
    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await client.list_tags()

    assert exc_info.value.message == "Unable to connect to Instantly API"
    assert "connection refused" in exc_info.value.detail


@pytest.mark.asyncio
async def test_missing_api_key_never_calls_upstream():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(200, json=[])

    client = make_client(handler, api_key="")

    with pytest.raises(UpstreamUnavailableError) as exc_info:
        await client.get_accounts()
    status = await client.test_connection()

    assert exc_info.value.status_code == 401
    assert not status.success
    assert attempts == []


@pytest.mark.asyncio
async def test_list_tags_tries_each_endpoint():
    def handler(request: httpx.Request) -> httpx.Response:
        if route(request) == "/tags":
            return httpx.Response(200, json={"items": [{"name": "Acme"}, {"label": "Globex"}]})
        return httpx.Response(404)

    client = make_client(handler)

    assert await client.list_tags() == ["Acme", "Globex"]


@pytest.mark.asyncio
async def test_test_connection_counts_campaigns():
    client = make_client(lambda request: httpx.Response(200, json={"items": [{"id": "c1"}, {"id": "c2"}]}))

    status = await client.test_connection()

    assert status.success
    assert status.campaign_count == 2


@pytest.mark.asyncio
async def test_unknown_resource_kind():
    client = make_client(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(ValueError):
        await client.list_resources("invoices")
