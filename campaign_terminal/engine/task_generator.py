"""
Task generator - turns client classifications into due-dated daily and weekly task lists.

Task ids embed the calendar date, so regenerating on the same day yields the
same ids and callers can merge completion state by id.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime, timedelta

from campaign_terminal.engine.benchmarks import CLIENT_BENCHMARKS, ClientBenchmarks
from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.domain.classification_domain import (
    AutoTask,
    ClientClassification,
    IssueBucket,
    Severity,
    TaskLists,
)
from campaign_terminal.models.domain.metrics_domain import (
    ClientMetrics,
    ClientTrend,
    InboxHealthSummary,
    WeeklyTrendData,
)

logger = get_logger(__name__)

DUE_IN_DAYS: dict[Severity, int] = {
    Severity.CRITICAL: 1,
    Severity.HIGH: 2,
    Severity.MEDIUM: 5,
}

SKIP_DAILY: frozenset[IssueBucket] = frozenset({IssueBucket.PERFORMING_WELL, IssueBucket.TOO_EARLY})

FRIDAY = 4


def end_of_week(now: datetime) -> datetime:
    """Next Friday, strictly after today (a Friday rolls to the following one)."""
    days_until_friday = (FRIDAY - now.weekday()) % 7 or 7
    return now + timedelta(days=days_until_friday)


def due_date_for(severity: Severity, now: datetime) -> datetime:
    days = DUE_IN_DAYS.get(severity)
    if days is None:
        return end_of_week(now)
    return now + timedelta(days=days)


def _and_more(names: Sequence[str], shown: int) -> str:
    text = ", ".join(names[:shown])
    if len(names) > shown:
        text += f" and {len(names) - shown} more"
    return text


def _daily_task(c: ClientClassification, now: datetime, stamp: str) -> AutoTask:
    return AutoTask(
        id=f"{c.bucket.value}-{c.client_id}-{stamp}",
        horizon="daily",
        bucket=c.bucket,
        severity=c.severity,
        entity_name=c.client_name,
        title=c.auto_task.title,
        description=c.auto_task.description,
        category=c.auto_task.category,
        due_date=due_date_for(c.severity, now),
        created_at=now,
        metrics={
            "reply_rate": c.metrics.reply_rate,
            "conversion_rate": c.metrics.conversion_rate,
            "uncontacted_leads": c.metrics.uncontacted_leads,
            "total_sent": c.metrics.total_sent,
            "opportunities": c.metrics.opportunities,
        },
    )


def _weekly_tasks(
    classifications: Sequence[ClientClassification],
    inbox_health: InboxHealthSummary,
    trends: WeeklyTrendData | None,
    now: datetime,
    stamp: str,
    b: ClientBenchmarks,
) -> list[AutoTask]:
    due = end_of_week(now)
    weekly: list[AutoTask] = []

    def task(prefix: str, **fields) -> AutoTask:
        return AutoTask(
            id=f"{prefix}-{stamp}", horizon="weekly", due_date=due, created_at=now, **fields
        )

    below = [
        c.client_name
        for c in classifications
        if c.metrics.reply_rate < b.CRITICAL_REPLY_RATE or c.metrics.conversion_rate < b.TARGET_CONVERSION
    ]
    if below:
        weekly.append(
            task(
                "benchmark-check",
                bucket=IssueBucket.COPY_ISSUE,
                severity=Severity.HIGH,
                entity_name="All Clients",
                title=f"{len(below)} clients below benchmarks",
                description=f"Review: {_and_more(below, 5)}",
                category="benchmark",
                metrics={"count": len(below), "clients": ", ".join(below)},
            )
        )

    with_replies = [c for c in classifications if c.metrics.total_replies > b.MIN_REPLIES_FOR_CONVERSION]
    low_conversion = [c for c in with_replies if c.metrics.conversion_rate < b.ASPIRATIONAL_CONVERSION]
    if low_conversion:
        avg_conversion = sum(c.metrics.conversion_rate for c in classifications) / len(classifications)
        # low_conversion is a subset of with_replies, so there is always a best performer
        best = max(with_replies, key=lambda c: c.metrics.conversion_rate)
        weekly.append(
            task(
                "conversion-check",
                bucket=IssueBucket.SUBSEQUENCE_ISSUE,
                severity=Severity.MEDIUM,
                entity_name="All Clients",
                title=f"{len(low_conversion)} clients below {b.ASPIRATIONAL_CONVERSION:g}% reply-to-meeting",
                description=f"Best performer: {best.client_name} at {best.metrics.conversion_rate:.1f}%",
                category="conversion",
                metrics={"count": len(low_conversion), "avg_conversion": round(avg_conversion, 2)},
            )
        )

    inbox_issues = inbox_health.disconnected + inbox_health.low_health
    if inbox_issues > 0:
        weekly.append(
            task(
                "inbox-health",
                bucket=IssueBucket.DELIVERABILITY_ISSUE,
                severity=Severity.CRITICAL if inbox_health.disconnected > 0 else Severity.HIGH,
                entity_name="All Inboxes",
                title=f"{inbox_issues} inboxes need attention",
                description=(
                    f"{inbox_health.disconnected} disconnected, "
                    f"{inbox_health.low_health} below health score {b.HEALTHY_INBOX:g}"
                ),
                category="deliverability",
                metrics={
                    "total": inbox_health.total,
                    "healthy": inbox_health.healthy,
                    "low_health": inbox_health.low_health,
                    "disconnected": inbox_health.disconnected,
                    "avg_health": inbox_health.avg_health_score,
                },
            )
        )

    declining = trends.declining if trends is not None else []
    if declining:
        weekly.append(
            task(
                "trends",
                bucket=IssueBucket.COPY_ISSUE,
                severity=Severity.MEDIUM,
                entity_name="All Clients",
                title=f"{len(declining)} clients with declining reply rates",
                description=f"Week-over-week decline: {_and_more([t.name for t in declining], 3)}",
                category="trends",
                metrics={
                    "declining_count": len(declining),
                    "clients": ", ".join(f"{t.name} ({t.change:.1f}%)" for t in declining),
                },
            )
        )

    performing_well = sum(1 for c in classifications if c.bucket is IssueBucket.PERFORMING_WELL)
    needs_attention = sum(1 for c in classifications if c.severity in (Severity.CRITICAL, Severity.HIGH))
    avg_reply = (
        sum(c.metrics.reply_rate for c in classifications) / len(classifications) if classifications else 0.0
    )
    weekly.append(
        task(
            "portfolio-summary",
            bucket=IssueBucket.PERFORMING_WELL,
            severity=Severity.LOW,
            entity_name="Portfolio",
            title="Weekly Portfolio Health Review",
            description=(
                f"{performing_well} performing well, {needs_attention} need attention, "
                f"{len(classifications)} total clients"
            ),
            category="review",
            metrics={
                "total": len(classifications),
                "performing_well": performing_well,
                "needs_attention": needs_attention,
                "avg_reply_rate": round(avg_reply, 2),
            },
        )
    )
    return weekly


def generate_tasks(
    classifications: Sequence[ClientClassification],
    inbox_health: InboxHealthSummary,
    trends: WeeklyTrendData | None = None,
    now: datetime | None = None,
    benchmarks: ClientBenchmarks = CLIENT_BENCHMARKS,
) -> TaskLists:
    now = now or datetime.now(UTC)
    stamp = now.date().isoformat()

    daily = [_daily_task(c, now, stamp) for c in classifications if c.bucket not in SKIP_DAILY]
    weekly = _weekly_tasks(classifications, inbox_health, trends, now, stamp, benchmarks)

    # sorted() is stable, so equal severities keep generation order
    daily = sorted(daily, key=lambda t: t.severity.rank)
    weekly = sorted(weekly, key=lambda t: t.severity.rank)

    logger.info(
        "Tasks generated",
        daily_count=len(daily),
        weekly_count=len(weekly),
        critical_count=sum(1 for t in daily + weekly if t.severity is Severity.CRITICAL),
    )
    return TaskLists(daily=daily, weekly=weekly)


def build_weekly_trends(
    current: Mapping[str, ClientMetrics],
    previous: Mapping[str, ClientMetrics],
    now: datetime | None = None,
    benchmarks: ClientBenchmarks = CLIENT_BENCHMARKS,
) -> WeeklyTrendData:
    """
    Compare each client's reply rate against the previous window.

    Change is relative (percent of the previous rate). A client with no
    previous data, or a zero previous rate, is reported as stable.
    """
    now = now or datetime.now(UTC)
    year, week, _ = now.isocalendar()
    clients = []
    for name, metrics in current.items():
        prior = previous.get(name)
        prev_rate = prior.reply_rate if prior is not None else 0.0
        change = (metrics.reply_rate - prev_rate) / prev_rate * 100 if prev_rate > 0 else 0.0
        if change > benchmarks.TREND_SIGNIFICANT:
            trend = "improving"
        elif change < -benchmarks.TREND_SIGNIFICANT:
            trend = "declining"
        else:
            trend = "stable"
        clients.append(
            ClientTrend(
                name=name,
                reply_rate=metrics.reply_rate,
                previous_reply_rate=prev_rate,
                change=change,
                trend=trend,
            )
        )
    return WeeklyTrendData(week=f"{year}-W{week:02d}", clients=clients)
