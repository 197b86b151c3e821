from datetime import date

import pytest

from campaign_terminal.models.api.task_request import ClientSnapshotInput
from campaign_terminal.models.domain.classification_domain import IssueBucket
from campaign_terminal.models.domain.metrics_domain import DateRange
from campaign_terminal.services.task_service import (
    inbox_summary_from_snapshots,
    metrics_from_snapshot,
    tasks_for_snapshots,
    tasks_for_workspace,
    to_response,
)
from tests.conftest import FROZEN_NOW, FakeMetricsProvider, account, campaign

ACME = ClientSnapshotInput(
    client_name="Acme",
    total_sent=50_000,
    total_replies=1_000,
    positive_replies=150,
    opportunities=200,
    uncontacted_leads=20_000,
    total_leads=70_000,
    active_campaigns=2,
    active_inboxes=10,
    avg_inbox_health=98.0,
)
GLOBEX = ClientSnapshotInput(
    client_name="Globex",
    total_sent=20_000,
    total_replies=40,
    uncontacted_leads=10_000,
    active_inboxes=5,
    disconnected_inboxes=1,
    avg_inbox_health=90.0,
)


def test_metrics_from_snapshot_derives_rates():
    metrics = metrics_from_snapshot(ACME)

    assert metrics.reply_rate == pytest.approx(2.0)
    assert metrics.conversion_rate == pytest.approx(20.0)
    assert metrics.open_rate == 0.0


def test_metrics_from_empty_snapshot():
    metrics = metrics_from_snapshot(ClientSnapshotInput(client_name="New"))

    assert metrics.reply_rate == 0.0
    assert metrics.conversion_rate == 0.0


def test_inbox_summary_weights_health_by_inbox_count():
    summary = inbox_summary_from_snapshots([ACME, GLOBEX])

    assert summary.total == 16
    assert summary.disconnected == 1
    assert summary.avg_health_score == pytest.approx((98 * 10 + 90 * 5) / 15)
    assert summary.warming == 0


def test_tasks_for_snapshots():
    tasks = tasks_for_snapshots([ACME, GLOBEX], FROZEN_NOW)

    assert [t.entity_name for t in tasks.daily] == ["Globex"]
    assert tasks.daily[0].bucket is IssueBucket.DELIVERABILITY_ISSUE
    assert tasks.weekly[0].id == "inbox-health-2025-01-08"


@pytest.mark.asyncio
async def test_tasks_for_workspace(provider):
    tasks, client_count = await tasks_for_workspace(provider, FROZEN_NOW)

    assert client_count == 2
    assert [(t.entity_name, t.bucket) for t in tasks.daily] == [
        ("Acme", IssueBucket.DELIVERABILITY_ISSUE),
        ("Globex", IssueBucket.COPY_ISSUE),
    ]
    assert provider.calls.count("list_campaigns") == 3
    assert provider.calls.count("get_accounts") == 1
    assert "trends-2025-01-08" not in {t.id for t in tasks.weekly}


@pytest.mark.asyncio
async def test_tasks_for_workspace_without_trends(provider):
    await tasks_for_workspace(provider, FROZEN_NOW, include_trends=False)

    assert provider.calls.count("list_campaigns") == 1
    assert provider.requested_ranges == [None]


@pytest.mark.asyncio
async def test_tasks_for_workspace_propagates_upstream_errors(provider, upstream_down):
    provider.fail_with = upstream_down

    with pytest.raises(type(upstream_down)):
        await tasks_for_workspace(provider, FROZEN_NOW)


def test_to_response():
    tasks = tasks_for_snapshots([GLOBEX], FROZEN_NOW)

    response = to_response(tasks, 1, FROZEN_NOW)

    assert response.client_count == 1
    assert response.daily[0].type == "daily"
    assert response.daily[0].client_name == "Globex"
    assert response.daily[0].bucket == "DELIVERABILITY_ISSUE"
    assert response.daily[0].severity == "critical"
    assert all(task.type == "weekly" for task in response.weekly)


@pytest.mark.asyncio
async def test_workspace_classifies_on_lifetime_totals():
    provider = FakeMetricsProvider(
        campaigns=[
            campaign("Acme - Core", "a1", sent=120_000, contacted=70_000, total_leads=120_000, replies=600)
        ],
        accounts=[account("rep@acme.io", tags=["Acme"])],
    )
    provider.campaigns_by_range[date(2025, 1, 1)] = [campaign("Acme - Core", "a1", sent=8_000, replies=40)]
    provider.campaigns_by_range[date(2024, 12, 25)] = [campaign("Acme - Core", "a1", sent=8_000, replies=80)]

    tasks, client_count = await tasks_for_workspace(provider, FROZEN_NOW)

    assert client_count == 1
    assert [(t.entity_name, t.bucket) for t in tasks.daily] == [("Acme", IssueBucket.TAM_EXHAUSTED)]
    assert tasks.daily[0].metrics["total_sent"] == 120_000
    assert provider.requested_ranges == [
        None,
        DateRange(date(2025, 1, 1), date(2025, 1, 8)),
        DateRange(date(2024, 12, 25), date(2025, 1, 1)),
    ]

    trend_task = next(t for t in tasks.weekly if t.category == "trends")
    assert trend_task.metrics["clients"] == "Acme (-50.0%)"
