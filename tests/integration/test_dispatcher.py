"""
Dispatcher tests: resolver output through limiter, cache and handlers, with a
fake metrics provider behind them.
"""

import pytest

from campaign_terminal.terminal.cache import MemoryCacheBackend, ResultCache
from campaign_terminal.terminal.dispatcher import CommandDispatcher
from campaign_terminal.terminal.rate_limiter import SlidingWindowRateLimiter
from campaign_terminal.terminal.resolver import resolve
from tests.conftest import FROZEN_NOW


def make_dispatcher(provider, clock, max_requests: int = 10) -> CommandDispatcher:
    return CommandDispatcher(
        provider,
        ResultCache(MemoryCacheBackend(), clock=clock),
        SlidingWindowRateLimiter(max_requests=max_requests, window_seconds=3600, clock=clock),
        clock=lambda: FROZEN_NOW,
    )


@pytest.fixture
def dispatcher(provider, clock):
    return make_dispatcher(provider, clock)


async def ask(dispatcher: CommandDispatcher, text: str):
    return await dispatcher.dispatch(resolve(text))


@pytest.mark.asyncio
async def test_second_request_served_from_cache(dispatcher, provider, clock):
    first = await ask(dispatcher, "low leads")
    clock.advance(600)
    second = await ask(dispatcher, "which campaigns need leads")

    assert not first.metadata.cached
    assert second.metadata.cached
    assert second.metadata.timestamp == "10 minutes ago"
    assert second.sections == first.sections
    assert provider.calls.count("list_campaigns") == 1
    assert await dispatcher.limiter.remaining() == 9


@pytest.mark.asyncio
async def test_expired_entry_refetched(dispatcher, provider, clock):
    await ask(dispatcher, "low leads")
    clock.advance(1801)

    report = await ask(dispatcher, "low leads")

    assert not report.metadata.cached
    assert provider.calls.count("list_campaigns") == 2


@pytest.mark.asyncio
async def test_refresh_prefix_bypasses_cache(dispatcher, provider):
    await ask(dispatcher, "low leads")
    report = await ask(dispatcher, "r! low leads")

    assert not report.metadata.cached
    assert provider.calls.count("list_campaigns") == 2
    assert await dispatcher.limiter.remaining() == 8


@pytest.mark.asyncio
async def test_params_are_part_of_the_cache_key(dispatcher, provider):
    acme = await ask(dispatcher, "diagnose running dry")
    globex = await ask(dispatcher, "diagnose weak copy")

    assert acme.title != globex.title
    assert not globex.metadata.cached


@pytest.mark.asyncio
async def test_local_commands_cost_nothing(dispatcher, provider):
    for text in ("help", "blocked domains", "billing", "removed inboxes"):
        report = await ask(dispatcher, text)
        assert report.type != "error"

    assert provider.calls == []
    assert await dispatcher.limiter.remaining() == 10


@pytest.mark.asyncio
async def test_rate_limit_refuses_fetch_but_serves_cache(provider, clock):
    dispatcher = make_dispatcher(provider, clock, max_requests=1)
    await ask(dispatcher, "low leads")

    refused = await ask(dispatcher, "benchmarks")
    cached = await ask(dispatcher, "low leads")

    assert refused.type == "error"
    assert refused.title == "Rate Limit Reached"
    assert refused.sections[0].title == "RATE LIMITED"
    assert refused.sections[0].items[0].name == "Try again in 60 minutes"
    assert cached.metadata.cached
    assert provider.calls.count("list_campaigns") == 1


@pytest.mark.asyncio
async def test_upstream_failure_becomes_connection_error(dispatcher, provider, upstream_down):
    provider.fail_with = upstream_down

    report = await ask(dispatcher, "low leads")

    assert report.type == "error"
    assert report.title == "Connection Error"
    assert report.icon == "❌"
    item = report.sections[0].items[0]
    assert item.name == "Unable to connect to Instantly API"
    assert item.details == ["Try again in a few minutes or check your connection.", "connect timeout"]


@pytest.mark.asyncio
async def test_error_reports_are_not_cached(dispatcher, provider, upstream_down):
    provider.fail_with = upstream_down
    await ask(dispatcher, "low leads")
    provider.fail_with = None

    report = await ask(dispatcher, "low leads")

    assert report.type == "success"
    assert not report.metadata.cached


@pytest.mark.asyncio
async def test_campaign_not_found_hints(dispatcher):
    diagnose = await ask(dispatcher, "diagnose Initech")
    detail = await ask(dispatcher, "campaign Initech")

    assert diagnose.title == "Campaign Not Found"
    assert diagnose.sections[0].items[0].name == 'No campaign matching "Initech"'
    assert diagnose.sections[0].items[0].details == ["Try: diagnose [campaign name]"]
    assert detail.sections[0].items[0].details == ['Try using "list" to see all campaigns']


@pytest.mark.asyncio
async def test_tag_not_found(dispatcher):
    report = await ask(dispatcher, "accounts tagged Initech")

    assert report.title == "Tag Not Found"
    assert report.icon == "🏷️"
    assert report.sections[0].items[0].name == 'Tag "Initech" not found'


@pytest.mark.asyncio
async def test_invalid_input(dispatcher, provider):
    report = await ask(dispatcher, "verify email bob")

    assert report.type == "error"
    assert report.title == "Invalid Email"
    assert report.sections[0].title == "INVALID INPUT"
    assert report.sections[0].items[0].details == ["Usage: verify email@example.com"]
    assert provider.calls == []


@pytest.mark.asyncio
async def test_unexpected_failure_is_contained(dispatcher, provider):
    provider.fail_with = RuntimeError("boom")

    report = await ask(dispatcher, "inbox health")

    assert report.type == "error"
    assert report.title == "Error"
    assert report.sections[0].items[0].name == "Unexpected error"
    assert report.summary == ["An error occurred while processing your request"]


@pytest.mark.asyncio
async def test_refresh_clears_cache(dispatcher, provider):
    await ask(dispatcher, "low leads")
    await ask(dispatcher, "inbox health")

    cleared = await ask(dispatcher, "refresh")
    after = await ask(dispatcher, "low leads")

    assert cleared.title == "Cache Cleared"
    assert cleared.summary[0] == "Removed 2 cached reports"
    assert not after.metadata.cached


@pytest.mark.asyncio
async def test_unknown_input_suggests_commands(dispatcher, provider):
    report = await ask(dispatcher, "xyzzy plugh")

    assert report.type == "info"
    assert report.title == "Command not recognized"
    assert [i.name for i in report.sections[0].items] == ["daily", "weekly summary", "low leads", "help"]
    assert report.summary[0] == 'Could not understand: "xyzzy plugh"'
    assert provider.calls == []


@pytest.mark.asyncio
async def test_weekly_summary_warms_its_sub_reports(dispatcher, provider):
    summary = await ask(dispatcher, "weekly summary")
    benchmarks = await ask(dispatcher, "benchmarks")

    assert summary.title == "Weekly Task Summary"
    assert summary.metadata.extra["checks"]["benchmarks"] == 1
    assert benchmarks.metadata.cached
    assert await dispatcher.limiter.remaining() == 6
