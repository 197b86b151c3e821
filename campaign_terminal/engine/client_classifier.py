"""
Client classifier - rolls a client's campaigns and inboxes up into one issue bucket.

A "client" is the prefix of its campaign names ("Acme - Q3 Outbound" -> "Acme").
The chain runs most-critical first; deliverability problems mask everything else
because they distort every downstream rate.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from campaign_terminal.engine.benchmarks import CLIENT_BENCHMARKS, ClientBenchmarks
from campaign_terminal.engine.rules import Rule, always, first_match
from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.domain.classification_domain import (
    AutoTaskTemplate,
    ClientClassification,
    IssueBucket,
    Severity,
)
from campaign_terminal.models.domain.metrics_domain import (
    Account,
    CampaignRecord,
    ClientMetrics,
    MetricsSnapshot,
)

logger = get_logger(__name__)

CLIENT_NAME_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^(.+?)\s*[-–—|]\s*"),  # "Client - Campaign", "Client | Campaign"
    re.compile(r"^\[(.+?)\]\s*"),  # "[Client] Campaign"
    re.compile(r"^(.+?):\s*"),  # "Client: Campaign"
)


def extract_client_name(campaign_name: str) -> str:
    for pattern in CLIENT_NAME_PATTERNS:
        match = pattern.match(campaign_name)
        if match:
            return match.group(1).strip()

    words = campaign_name.split()
    if len(words) >= 2:
        return " ".join(words[:2])
    return campaign_name


def client_id_for(client_name: str) -> str:
    return re.sub(r"\s+", "-", client_name.lower())


def group_campaigns_by_client(campaigns: Iterable[CampaignRecord]) -> dict[str, list[CampaignRecord]]:
    grouped: dict[str, list[CampaignRecord]] = {}
    for campaign in campaigns:
        grouped.setdefault(extract_client_name(campaign.name), []).append(campaign)
    return grouped


def accounts_for_client(client_name: str, accounts: Iterable[Account]) -> list[Account]:
    """Accounts tagged with the client's name (case-insensitive)."""
    wanted = client_name.lower()
    return [a for a in accounts if any(tag.lower() == wanted for tag in a.tags)]


def aggregate_client_metrics(
    campaigns: list[CampaignRecord],
    accounts: list[Account],
    benchmarks: ClientBenchmarks = CLIENT_BENCHMARKS,
) -> ClientMetrics:
    totals = MetricsSnapshot.combine([c.metrics for c in campaigns if c.metrics is not None])

    active_accounts = [a for a in accounts if a.is_connected]
    low_health = [a for a in active_accounts if a.effective_health < benchmarks.HEALTHY_INBOX]
    avg_health = (
        sum(a.effective_health for a in active_accounts) / len(active_accounts)
        if active_accounts
        else 0.0
    )

    return ClientMetrics(
        total_sent=totals.sent,
        total_opened=totals.opened,
        total_replies=totals.replies,
        reply_rate=totals.reply_rate,
        open_rate=totals.open_rate,
        positive_replies=totals.positive_replies,
        opportunities=totals.opportunities,
        conversion_rate=totals.reply_to_opportunity_rate,
        uncontacted_leads=totals.uncontacted,
        total_leads=totals.total_leads,
        active_campaigns=sum(1 for c in campaigns if c.is_active),
        active_inboxes=len(active_accounts),
        disconnected_inboxes=len(accounts) - len(active_accounts),
        low_health_inboxes=len(low_health),
        avg_inbox_health=avg_health,
        total_bounced=totals.bounced,
    )


@dataclass(slots=True, frozen=True)
class _ClientCtx:
    name: str
    m: ClientMetrics
    b: ClientBenchmarks
    analyzed_at: datetime


def _classification(
    ctx: _ClientCtx,
    bucket: IssueBucket,
    severity: Severity,
    reason: str,
    task: AutoTaskTemplate,
) -> ClientClassification:
    return ClientClassification(
        client_id=client_id_for(ctx.name),
        client_name=ctx.name,
        bucket=bucket,
        severity=severity,
        reason=reason,
        metrics=ctx.m,
        auto_task=task,
        analyzed_at=ctx.analyzed_at,
    )


def _deliverability(c: _ClientCtx) -> ClientClassification:
    d, low = c.m.disconnected_inboxes, c.m.low_health_inboxes
    return _classification(
        c,
        IssueBucket.DELIVERABILITY_ISSUE,
        Severity.CRITICAL if d > 0 else Severity.HIGH,
        f"{d} disconnected, {low} low health inboxes",
        AutoTaskTemplate(
            title=f"Fix {d + low} inbox issues for {c.name}",
            description=(
                f"{d} disconnected inboxes need re-authentication. "
                f"{low} inboxes below health score {c.b.HEALTHY_INBOX:g}."
            ),
            category="deliverability",
        ),
    )


def _too_early(c: _ClientCtx) -> ClientClassification:
    return _classification(
        c,
        IssueBucket.TOO_EARLY,
        Severity.LOW,
        f"Only {c.m.total_sent:,} sends, need {c.b.EARLY_STAGE:,}+ for reliable data",
        AutoTaskTemplate(
            title=f"Monitor {c.name}",
            description=f"Campaign still in early stage. Continue monitoring until {c.b.EARLY_STAGE:,} sends.",
            category="monitor",
        ),
    )


def _volume(c: _ClientCtx) -> ClientClassification:
    copy_first = c.m.reply_rate < c.b.CRITICAL_REPLY_RATE
    reason = f"Only {c.m.uncontacted_leads:,} uncontacted leads remaining"
    if copy_first:
        reason += f" - fix copy first ({c.m.reply_rate:.2f}% reply)"
        task = AutoTaskTemplate(
            title=f"Fix copy THEN order leads for {c.name}",
            description=(
                f"Reply rate {c.m.reply_rate:.2f}% is too low. "
                "Fix copy before ordering new leads to avoid waste."
            ),
            category="volume",
        )
    else:
        task = AutoTaskTemplate(
            title=f"Order new leads for {c.name}",
            description=(
                f"Campaign performing at {c.m.reply_rate:.2f}% reply rate. "
                "Order new leads to continue momentum."
            ),
            category="volume",
        )
    return _classification(
        c,
        IssueBucket.VOLUME_ISSUE,
        Severity.CRITICAL if c.m.uncontacted_leads < c.b.SEVERE_UNCONTACTED else Severity.HIGH,
        reason,
        task,
    )


def _copy(c: _ClientCtx) -> ClientClassification:
    r = c.m.reply_rate
    return _classification(
        c,
        IssueBucket.COPY_ISSUE,
        Severity.CRITICAL if r < c.b.COPY_CRITICAL_REPLY_RATE else Severity.HIGH,
        f"Reply rate {r:.2f}% is below {c.b.CRITICAL_REPLY_RATE}% minimum",
        AutoTaskTemplate(
            title=f"Rewrite copy for {c.name}",
            description=(
                f"Reply rate {r:.2f}% indicates copy isn't resonating. Review: subject line "
                f"({c.b.SUBJECT_LINE_WORDS} words max), first line ({c.b.FIRST_LINE_WORDS} words max), "
                f"overall length (<{c.b.MAX_BODY_WORDS} words), and mechanism differentiation."
            ),
            category="copy",
        ),
    )


def _subsequence(c: _ClientCtx) -> ClientClassification:
    m = c.m
    return _classification(
        c,
        IssueBucket.SUBSEQUENCE_ISSUE,
        Severity.CRITICAL,
        f"{m.reply_rate:.2f}% reply rate but only {m.conversion_rate:.2f}% conversion",
        AutoTaskTemplate(
            title=f"Fix subsequences for {c.name}",
            description=(
                f"Getting {m.total_replies} replies but only {m.opportunities} opportunities "
                f"({m.conversion_rate:.2f}% conversion). Review price objection responses "
                "(quote lowest packages), info responses (don't give away too much), and meeting CTAs."
            ),
            category="subsequence",
        ),
    )


def _tam_exhausted(c: _ClientCtx) -> ClientClassification:
    return _classification(
        c,
        IssueBucket.TAM_EXHAUSTED,
        Severity.MEDIUM,
        f"{c.m.total_sent:,} lifetime sends with {c.m.reply_rate:.2f}% reply rate",
        AutoTaskTemplate(
            title=f"New campaign + recycle leads for {c.name}",
            description=(
                f"TAM exhausted with {c.m.total_sent:,} sends. Create new campaign with fresh copy, "
                "then recycle leads from completed campaigns."
            ),
            category="recycle",
        ),
    )


def _not_viable(c: _ClientCtx) -> ClientClassification:
    return _classification(
        c,
        IssueBucket.NOT_VIABLE,
        Severity.LOW,
        f"{c.m.total_sent:,} sends with only {c.m.opportunities} opportunities",
        AutoTaskTemplate(
            title=f"Review viability of {c.name}",
            description=(
                "High send volume with poor results. Discuss with client: offer-market fit, "
                "targeting, or consider pausing."
            ),
            category="review",
        ),
    )


def _performing_well(c: _ClientCtx) -> ClientClassification:
    m = c.m
    return _classification(
        c,
        IssueBucket.PERFORMING_WELL,
        Severity.LOW,
        f"{m.reply_rate:.2f}% reply rate, {m.conversion_rate:.2f}% conversion, "
        f"{m.uncontacted_leads:,} leads remaining",
        AutoTaskTemplate(
            title=f"Monitor {c.name}",
            description="Performing well. Prepare to recycle leads when campaign completes.",
            category="monitor",
        ),
    )


CLIENT_RULES: list[Rule[_ClientCtx, ClientClassification]] = [
    Rule(
        "deliverability",
        lambda c: c.m.disconnected_inboxes > 0 or c.m.low_health_inboxes > c.b.MAX_LOW_HEALTH_INBOXES,
        _deliverability,
    ),
    Rule("too_early", lambda c: c.m.total_sent < c.b.EARLY_STAGE, _too_early),
    Rule("volume", lambda c: c.m.uncontacted_leads < c.b.CRITICAL_UNCONTACTED, _volume),
    Rule("copy", lambda c: c.m.reply_rate < c.b.CRITICAL_REPLY_RATE, _copy),
    Rule(
        "subsequence",
        lambda c: c.m.reply_rate >= c.b.GOOD_REPLY_RATE and c.m.conversion_rate < c.b.CRITICAL_CONVERSION,
        _subsequence,
    ),
    Rule(
        "tam_exhausted",
        lambda c: c.m.total_sent >= c.b.TAM_EXHAUSTED and c.m.reply_rate < c.b.LOW_REPLY_RATE,
        _tam_exhausted,
    ),
    Rule(
        "not_viable",
        lambda c: c.m.total_sent >= c.b.VIABLE_THRESHOLD
        and c.m.opportunities < c.b.NOT_VIABLE_MIN_OPPORTUNITIES,
        _not_viable,
    ),
    Rule("performing_well", always, _performing_well),
]


def classify_client_metrics(
    client_name: str,
    metrics: ClientMetrics,
    benchmarks: ClientBenchmarks = CLIENT_BENCHMARKS,
    now: datetime | None = None,
) -> ClientClassification:
    ctx = _ClientCtx(client_name, metrics, benchmarks, now or datetime.now(UTC))
    return first_match(CLIENT_RULES, ctx)


def classify_client(
    client_name: str,
    campaigns: list[CampaignRecord],
    accounts: list[Account],
    benchmarks: ClientBenchmarks = CLIENT_BENCHMARKS,
    now: datetime | None = None,
) -> ClientClassification:
    """
    Classify one client from its campaigns and the full account list.

    Only accounts tagged with the client name count toward its inbox health.
    """
    client_accounts = accounts_for_client(client_name, accounts)
    metrics = aggregate_client_metrics(campaigns, client_accounts, benchmarks)
    return classify_client_metrics(client_name, metrics, benchmarks, now)


def classify_all_clients(
    client_campaigns: Mapping[str, list[CampaignRecord]],
    accounts: list[Account],
    benchmarks: ClientBenchmarks = CLIENT_BENCHMARKS,
    now: datetime | None = None,
) -> list[ClientClassification]:
    now = now or datetime.now(UTC)
    results = [
        classify_client(name, campaigns, accounts, benchmarks, now)
        for name, campaigns in client_campaigns.items()
    ]
    logger.debug(
        "Clients classified",
        client_count=len(results),
        buckets={r.client_name: r.bucket.value for r in results},
    )
    return results


def client_health_score(metrics: ClientMetrics, benchmarks: ClientBenchmarks = CLIENT_BENCHMARKS) -> int:
    """Weighted 0-100 score for dashboards. Informational only, never drives a bucket."""
    reply_score = min(100.0, metrics.reply_rate / benchmarks.GOOD_REPLY_RATE * 100)
    conversion_score = min(100.0, metrics.conversion_rate / benchmarks.TARGET_CONVERSION * 100)
    bounce_score = max(0.0, 100 - metrics.bounce_rate * 10)
    inbox_score = metrics.avg_inbox_health

    score = reply_score * 0.35 + conversion_score * 0.25 + bounce_score * 0.2 + inbox_score * 0.2
    return round(min(100.0, max(0.0, score)))
