"""
Task service - turns client metrics into the daily and weekly task lists.

Two entry points:
- tasks_for_snapshots: caller-supplied client numbers, no upstream call
- tasks_for_workspace: fetch lifetime campaigns and accounts live, group by client, classify

Service layer returns domain models only - the route handles HTTP concerns.
"""

import asyncio
from datetime import datetime

from campaign_terminal.engine.benchmarks import CLIENT_BENCHMARKS
from campaign_terminal.engine.client_classifier import (
    accounts_for_client,
    aggregate_client_metrics,
    classify_all_clients,
    classify_client_metrics,
    group_campaigns_by_client,
)
from campaign_terminal.engine.inbox_detector import summarize_inbox_health
from campaign_terminal.engine.task_generator import build_weekly_trends, generate_tasks
from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.api.task_request import ClientSnapshotInput
from campaign_terminal.models.api.task_response import AutoTaskResponse, GenerateTasksResponse
from campaign_terminal.models.domain.classification_domain import AutoTask, TaskLists
from campaign_terminal.models.domain.metrics_domain import (
    ClientMetrics,
    DateRange,
    InboxHealthSummary,
)
from campaign_terminal.services.metrics_provider import MetricsProvider

logger = get_logger(__name__)


def _rate(numerator: int, denominator: int) -> float:
    return numerator / denominator * 100 if denominator > 0 else 0.0


def metrics_from_snapshot(snapshot: ClientSnapshotInput) -> ClientMetrics:
    return ClientMetrics(
        total_sent=snapshot.total_sent,
        total_opened=0,
        total_replies=snapshot.total_replies,
        reply_rate=_rate(snapshot.total_replies, snapshot.total_sent),
        open_rate=0.0,
        positive_replies=snapshot.positive_replies,
        opportunities=snapshot.opportunities,
        conversion_rate=_rate(snapshot.opportunities, snapshot.total_replies),
        uncontacted_leads=snapshot.uncontacted_leads,
        total_leads=snapshot.total_leads,
        active_campaigns=snapshot.active_campaigns,
        active_inboxes=snapshot.active_inboxes,
        disconnected_inboxes=snapshot.disconnected_inboxes,
        low_health_inboxes=snapshot.low_health_inboxes,
        avg_inbox_health=snapshot.avg_inbox_health,
    )


def inbox_summary_from_snapshots(snapshots: list[ClientSnapshotInput]) -> InboxHealthSummary:
    """Portfolio inbox counts rebuilt from per-client numbers (health averaged by inbox count)."""
    active = sum(s.active_inboxes for s in snapshots)
    low_health = sum(s.low_health_inboxes for s in snapshots)
    weighted_health = sum(s.avg_inbox_health * s.active_inboxes for s in snapshots)
    return InboxHealthSummary(
        total=active + sum(s.disconnected_inboxes for s in snapshots),
        healthy=max(0, active - low_health),
        low_health=low_health,
        disconnected=sum(s.disconnected_inboxes for s in snapshots),
        warming=0,
        avg_health_score=weighted_health / active if active else 0.0,
    )


def tasks_for_snapshots(snapshots: list[ClientSnapshotInput], now: datetime) -> TaskLists:
    classifications = [
        classify_client_metrics(s.client_name, metrics_from_snapshot(s), CLIENT_BENCHMARKS, now)
        for s in snapshots
    ]
    return generate_tasks(classifications, inbox_summary_from_snapshots(snapshots), None, now)


async def tasks_for_workspace(
    provider: MetricsProvider, now: datetime, include_trends: bool = True
) -> tuple[TaskLists, int]:
    """
    Classify every client in the live workspace and generate its tasks.

    Returns:
        (task lists, number of clients classified)

    Raises:
        UpstreamUnavailableError: the provider could not be reached
    """
    today = now.date()
    fetches = [provider.list_campaigns(), provider.get_accounts()]
    if include_trends:
        fetches.append(provider.list_campaigns(DateRange.for_period("week", today)))
        fetches.append(provider.list_campaigns(DateRange.previous_week(today)))
    lifetime, accounts, *weeks = await asyncio.gather(*fetches)

    # Rule thresholds are lifetime totals; week windows only feed the trend comparison
    grouped = group_campaigns_by_client(lifetime)
    classifications = classify_all_clients(grouped, accounts, CLIENT_BENCHMARKS, now)

    trends = None
    if include_trends:
        current_week, previous_week = (group_campaigns_by_client(w) for w in weeks)
        trends = build_weekly_trends(
            {
                name: aggregate_client_metrics(campaigns, accounts_for_client(name, accounts))
                for name, campaigns in current_week.items()
            },
            {
                name: aggregate_client_metrics(campaigns, accounts_for_client(name, accounts))
                for name, campaigns in previous_week.items()
            },
            now,
        )

    tasks = generate_tasks(classifications, summarize_inbox_health(accounts), trends, now)
    logger.info(
        "Workspace tasks generated",
        client_count=len(classifications),
        campaign_count=len(lifetime),
        account_count=len(accounts),
    )
    return tasks, len(classifications)


def _task_response(task: AutoTask) -> AutoTaskResponse:
    return AutoTaskResponse(
        id=task.id,
        type=task.horizon,
        bucket=task.bucket.value,
        severity=task.severity.value,
        client_name=task.entity_name,
        title=task.title,
        description=task.description,
        category=task.category,
        metrics=task.metrics,
        created_at=task.created_at,
        due_date=task.due_date,
        completed=task.completed,
    )


def to_response(tasks: TaskLists, client_count: int, generated_at: datetime) -> GenerateTasksResponse:
    return GenerateTasksResponse(
        daily=[_task_response(t) for t in tasks.daily],
        weekly=[_task_response(t) for t in tasks.weekly],
        generated_at=generated_at,
        client_count=client_count,
    )
