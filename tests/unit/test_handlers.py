from datetime import timedelta

import pytest

from campaign_terminal.models.domain.command_domain import CommandType
from campaign_terminal.models.domain.metrics_domain import ConnectionStatus
from campaign_terminal.services.errors import EntityNotFoundError, InvalidQueryError
from campaign_terminal.terminal.handlers import HANDLER_REGISTRY, HandlerContext, get_handler
from campaign_terminal.terminal.handlers.registry import register
from tests.conftest import FROZEN_NOW, campaign


def ctx_for(provider, command: CommandType, raw_text: str = "", **params) -> HandlerContext:
    return HandlerContext(
        command=command,
        provider=provider,
        now=FROZEN_NOW,
        params=params,
        raw_text=raw_text or command.phrase,
    )


async def run(provider, command: CommandType, raw_text: str = "", **params):
    return await get_handler(command).handler(ctx_for(provider, command, raw_text, **params))


def full_text(report) -> str:
    return report.sections[0].items[0].details[0]


def test_every_command_has_a_handler():
    local = {CommandType.REFRESH, CommandType.UNKNOWN}

    assert set(HANDLER_REGISTRY) == set(CommandType) - local


def test_duplicate_registration_rejected():
    with pytest.raises(ValueError):

        @register(CommandType.HELP)
        async def another_help(ctx):  # pragma: no cover
            return None


def test_static_handlers_make_no_upstream_calls():
    for command in (CommandType.HELP, CommandType.BLOCKED_DOMAINS, CommandType.BILLING):
        entry = get_handler(command)
        assert entry.ttl_class is None
        assert not entry.upstream


@pytest.mark.asyncio
async def test_low_leads_splits_critical_and_warning(provider):
    provider.campaigns.append(campaign("Globex - Thin", "c4", total_leads=12_000, contacted=10_000))

    report = await run(provider, CommandType.LOW_LEADS)

    assert report.title == "Campaigns with <3000 Uncontacted Leads"
    critical, warning = report.sections
    assert [i.name for i in critical.items] == ["Acme - Running Dry"]
    assert critical.items[0].priority == "URGENT"
    assert critical.items[0].metrics == {"uncontacted": 500, "daily_send": 667, "depletion_days": 0}
    assert [i.name for i in warning.items] == ["Globex - Thin"]
    assert report.summary[0] == "Total: 2 campaigns need lead orders"
    assert report.metadata.issue_count == 2


@pytest.mark.asyncio
async def test_low_leads_all_good(provider):
    provider.campaigns = [campaign("Acme - Healthy")]

    report = await run(provider, CommandType.LOW_LEADS)

    assert report.type == "info"
    assert report.sections[0].title == "ALL GOOD"


@pytest.mark.asyncio
async def test_daily_flags_runway_and_reply_rate(provider):
    report = await run(provider, CommandType.DAILY)

    items = report.sections[0].items
    assert [(i.name, i.priority) for i in items] == [
        ("Acme - Running Dry", "URGENT"),
        ("Globex - Weak Copy", "HIGH"),
    ]
    assert report.summary[-1] == "2 campaigns need attention"
    assert report.summary[0] == "SEND VOLUME: 60,000 total sent ✅"


@pytest.mark.asyncio
async def test_benchmarks_lists_campaigns_below_reply_floor(provider):
    report = await run(provider, CommandType.BENCHMARKS)

    section = report.sections[0]
    assert section.title == "BELOW REPLY RATE BENCHMARK (0.45%)"
    assert [i.name for i in section.items] == ["Globex - Weak Copy"]
    assert section.items[0].priority == "CRITICAL"
    assert report.summary == ["1 campaigns below 0.45% reply rate", "1 critical", "0 warning"]


@pytest.mark.asyncio
async def test_conversion_separates_zero_and_low(provider):
    provider.campaigns = [
        campaign("Acme - Healthy"),
        campaign("Acme - Broken", positive_replies=12, meetings=0),
        campaign("Globex - Slow", positive_replies=10, meetings=2),
    ]

    report = await run(provider, CommandType.CONVERSION)

    assert [s.title for s in report.sections] == [
        "ZERO CONVERSIONS (Broken Subsequences)",
        "LOW CONVERSION (<40%)",
    ]
    assert report.metadata.issue_count == 2
    assert report.summary[-1] == "Total opportunity: 22+ positive replies not converting"


@pytest.mark.asyncio
async def test_conversion_all_good(provider):
    report = await run(provider, CommandType.CONVERSION)

    assert report.sections[0].title == "ALL CAMPAIGNS CONVERTING WELL"
    assert report.metadata.issue_count == 0


@pytest.mark.asyncio
async def test_reply_trends_compare_against_previous_week(provider):
    previous_start = FROZEN_NOW.date() - timedelta(days=14)
    provider.campaigns_by_range[previous_start] = [
        campaign("Acme - Healthy", "c1", replies=400),
        campaign("Acme - Running Dry", "c2", total_leads=10_500, contacted=10_000),
        campaign("Globex - Weak Copy", "c3", replies=20),
    ]

    report = await run(provider, CommandType.REPLY_TRENDS)

    declining, improving = report.sections
    assert [i.name for i in declining.items] == ["Acme - Healthy"]
    assert [i.name for i in improving.items] == ["Globex - Weak Copy"]
    assert report.metadata.issue_count == 1


@pytest.mark.asyncio
async def test_diagnose_by_param(provider):
    report = await run(provider, CommandType.DIAGNOSE, campaign="running dry")

    assert report.title == "Diagnosis: Acme - Running Dry"
    assert "Critical Lead Shortage" in full_text(report)
    assert report.metadata.issue_count == 1


@pytest.mark.asyncio
async def test_diagnose_falls_back_to_raw_text(provider):
    report = await run(provider, CommandType.DIAGNOSE, raw_text="diagnose weak copy campaign")

    assert report.title == "Diagnosis: Globex - Weak Copy"
    assert "Low Reply Rate" in full_text(report)


@pytest.mark.asyncio
async def test_diagnose_unknown_campaign(provider):
    with pytest.raises(EntityNotFoundError) as exc_info:
        await run(provider, CommandType.DIAGNOSE, campaign="Initech")

    assert exc_info.value.entity_type == "campaign"
    assert exc_info.value.query == "Initech"


@pytest.mark.asyncio
async def test_campaign_list_carries_raw_rows(provider):
    report = await run(provider, CommandType.CAMPAIGNS)

    assert report.title == "Active Campaign Analysis (3 campaigns)"
    assert report.sections[0].items[0].name == "Full Analysis"
    assert {row["name"] for row in report.metadata.raw_campaigns} == {
        "Acme - Healthy",
        "Acme - Running Dry",
        "Globex - Weak Copy",
    }
    assert "SUMMARY BY CLASSIFICATION" in full_text(report)


@pytest.mark.asyncio
async def test_inbox_health_groups_accounts(provider):
    report = await run(provider, CommandType.INBOX_HEALTH)

    summary = report.metadata.extra["summary"]
    assert summary["total"] == 3
    assert summary["healthy"] == 1
    assert summary["issues"] == 2
    assert report.metadata.issue_count == 2
    assert report.metadata.raw_accounts[0]["email"] == "down@acme.io"


@pytest.mark.asyncio
async def test_inbox_issues_grouped_by_tag(provider):
    report = await run(provider, CommandType.INBOX_ISSUES)

    text = full_text(report)
    assert "**Acme**\n  🔴 Disconnected: 1" in text
    assert report.metadata.issue_count == 1


@pytest.mark.asyncio
async def test_accounts_by_tag_matches_substring(provider):
    report = await run(provider, CommandType.ACCOUNTS_BY_TAG, tag="acm")

    assert report.title == "Accounts: Acme"
    assert "🔴 down@acme.io" in full_text(report)
    assert report.summary == ['2 accounts with tag "Acme"']


@pytest.mark.asyncio
async def test_accounts_by_unknown_tag(provider):
    with pytest.raises(EntityNotFoundError) as exc_info:
        await run(provider, CommandType.ACCOUNTS_BY_TAG, tag="Initech")

    assert exc_info.value.entity_type == "tag"


@pytest.mark.asyncio
async def test_send_volume_counts_lost_capacity(provider):
    report = await run(provider, CommandType.SEND_VOLUME)

    assert report.sections[1].items[0].name == "1 inboxes disconnected (would add ~50 sends/day)"
    assert report.metadata.extra["lost_capacity"] == 50


@pytest.mark.asyncio
async def test_send_volume_7d_uses_last_seven_days(provider):
    provider.resources["daily_analytics"] = [
        {"date": f"2025-01-0{day}", "sent": 1000} for day in range(1, 10)
    ]

    report = await run(provider, CommandType.SEND_VOLUME_7D)

    text = full_text(report)
    assert "Fri, Jan 3: 1,000" in text
    assert "Jan 2:" not in text
    assert "**Trend:** ✅ **Stable** (within normal range)" in text


@pytest.mark.asyncio
async def test_weekly_summary_runs_every_check(provider):
    report = await run(provider, CommandType.WEEKLY_SUMMARY)

    checks = report.metadata.extra["checks"]
    assert checks == {"benchmarks": 1, "conversion": 0, "inbox_health": 2, "reply_trends": 0}
    actions = [item.name for item in report.sections[1].items]
    assert actions == [
        "MEDIUM: Review copy for low reply rate campaigns",
        "MEDIUM: Reconnect disconnected inboxes",
    ]


@pytest.mark.asyncio
async def test_verify_email_requires_address(provider):
    with pytest.raises(InvalidQueryError):
        await run(provider, CommandType.VERIFY_EMAIL, email="bob")

    assert provider.calls == []


@pytest.mark.asyncio
async def test_verify_email(provider):
    report = await run(provider, CommandType.VERIFY_EMAIL, email="bob@acme.io")

    assert "**Valid:** ✅ Yes" in full_text(report)


@pytest.mark.asyncio
async def test_status_reports_failure_as_error(provider):
    provider.connection = ConnectionStatus(success=False, message="bad key")

    report = await run(provider, CommandType.STATUS)

    assert report.type == "error"
    assert "**Error:** bad key" in full_text(report)


@pytest.mark.asyncio
async def test_blocked_domains_is_static(provider):
    report = await run(provider, CommandType.BLOCKED_DOMAINS)

    assert report.type == "info"
    assert provider.calls == []


@pytest.mark.asyncio
async def test_help_lists_commands(provider):
    report = await run(provider, CommandType.HELP)

    assert report.title == "Campaign Terminal Commands"
    assert "accounts tagged [tag]" in full_text(report)
