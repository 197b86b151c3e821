"""
Campaign classifier - assigns every campaign exactly one action bucket.

Rules run in a fixed order (first match wins):

    1. PENDING        not enough sends to judge
    2. NOT PRIORITY   20k+ contacted with <=2 opportunities (not viable)
    3. NOT PRIORITY   reply rate below the floor
    4. NEED NEW LIST  lead runway below 3k (urgent below 1k)
    5. REVIEW         replies fine, positive-reply -> meeting below target
    6. NO ACTION      everything else

Classification is a pure function of (snapshot, benchmark table).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from campaign_terminal.engine.benchmarks import TERMINAL_BENCHMARKS, TerminalBenchmarks
from campaign_terminal.engine.rules import Rule, always, first_match
from campaign_terminal.infrastructure.observability.logging import get_logger
from campaign_terminal.models.domain.classification_domain import (
    CampaignBucket,
    ClassificationResult,
    Severity,
    Urgency,
)
from campaign_terminal.models.domain.metrics_domain import CampaignRecord, MetricsSnapshot

logger = get_logger(__name__)

URGENCY_SEVERITY: dict[Urgency, Severity] = {
    Urgency.URGENT: Severity.CRITICAL,
    Urgency.HIGH: Severity.HIGH,
    Urgency.MEDIUM: Severity.MEDIUM,
    Urgency.LOW: Severity.LOW,
}


@dataclass(slots=True, frozen=True)
class _Ctx:
    entity_id: str
    name: str
    m: MetricsSnapshot
    b: TerminalBenchmarks


def _result(
    ctx: _Ctx,
    bucket: CampaignBucket,
    urgency: Urgency,
    reason: str,
    action: str,
    benchmark: str | None = None,
) -> ClassificationResult:
    return ClassificationResult(
        entity_id=ctx.entity_id,
        entity_name=ctx.name,
        bucket=bucket,
        urgency=urgency,
        severity=URGENCY_SEVERITY[urgency],
        reason=reason,
        recommended_action=action,
        metrics=ctx.m,
        benchmark_note=benchmark,
    )


# -- predicates -------------------------------------------------------------


def _insufficient_data(c: _Ctx) -> bool:
    return c.m.sent < c.b.MIN_DATA_THRESHOLD


def _not_viable(c: _Ctx) -> bool:
    return c.m.contacted >= c.b.NOT_VIABLE_THRESHOLD and c.m.opportunities <= c.b.NOT_VIABLE_OPP_MAX


def _reply_rate_below_floor(c: _Ctx) -> bool:
    return c.m.reply_rate < c.b.MIN_REPLY_RATE


def _low_leads(c: _Ctx) -> bool:
    return c.m.uncontacted < c.b.LOW_LEADS_WARNING


def _conversion_below_target(c: _Ctx) -> bool:
    return (
        c.m.reply_rate >= c.b.MIN_REPLY_RATE
        and c.m.positive_reply_to_meeting_rate < c.b.TARGET_CONVERSION
    )


def subsequences_broken(m: MetricsSnapshot, b: TerminalBenchmarks = TERMINAL_BENCHMARKS) -> bool:
    """Plenty of interested replies and not a single meeting."""
    return m.positive_replies > b.BROKEN_SUBSEQUENCE_POSITIVE_MIN and m.meetings == 0


# -- outcome builders -------------------------------------------------------


def _pending(c: _Ctx) -> ClassificationResult:
    return _result(
        c,
        CampaignBucket.PENDING,
        Urgency.LOW,
        f"Only {c.m.sent:,} sends - need more data",
        f"Continue running, evaluate after {c.b.MIN_DATA_THRESHOLD // 1000}k sends",
    )


def _not_priority_viability(c: _Ctx) -> ClassificationResult:
    return _result(
        c,
        CampaignBucket.NOT_PRIORITY,
        Urgency.HIGH,
        f"{c.m.contacted:,} contacted → {c.m.opportunities} opportunities - not viable",
        "Pause campaign, not worth continuing",
        f"After {c.b.NOT_VIABLE_THRESHOLD // 1000}k+ leads, expected >{c.b.NOT_VIABLE_OPP_MAX} opportunities",
    )


def _not_priority_reply_rate(c: _Ctx) -> ClassificationResult:
    floor = c.b.MIN_REPLY_RATE
    percent_below = (floor - c.m.reply_rate) / floor * 100
    return _result(
        c,
        CampaignBucket.NOT_PRIORITY,
        Urgency.HIGH,
        f"{c.m.reply_rate:.2f}% reply rate ({percent_below:.0f}% below {floor}% min)",
        "Review copy/targeting - too far below benchmark",
        f"Minimum: {floor}% reply rate",
    )


def _need_new_list(c: _Ctx) -> ClassificationResult:
    critical = c.m.uncontacted < c.b.LOW_LEADS_CRITICAL
    return _result(
        c,
        CampaignBucket.NEED_NEW_LIST,
        Urgency.URGENT if critical else Urgency.HIGH,
        f"Only {c.m.uncontacted:,} leads remaining",
        f"Order 30-50k leads {'TODAY' if critical else 'this week'}",
        f"Need {c.b.LOW_LEADS_WARNING // 1000}k+ uncontacted leads",
    )


def _review(c: _Ctx) -> ClassificationResult:
    conversion = c.m.positive_reply_to_meeting_rate
    target = f"Target: {c.b.TARGET_CONVERSION:g}% positive reply to meeting"
    if subsequences_broken(c.m, c.b):
        return _result(
            c,
            CampaignBucket.REVIEW,
            Urgency.URGENT,
            f"{c.m.positive_replies} positive replies → {c.m.meetings} meetings "
            f"({conversion:.2f}%) - BROKEN subsequences",
            "Fix subsequences URGENTLY (price/info/meeting)",
            target,
        )
    return _result(
        c,
        CampaignBucket.REVIEW,
        Urgency.MEDIUM,
        f"{c.m.reply_rate:.2f}% reply rate OK, but {conversion:.2f}% conversion "
        f"(target: {c.b.TARGET_CONVERSION:g}%)",
        "Optimize subsequences to improve conversion",
        target,
    )


def _no_action(c: _Ctx) -> ClassificationResult:
    if c.m.uncontacted < c.b.LEADS_REORDER_SOON:
        action = f"Performing well - prepare to order leads when <{c.b.LOW_LEADS_WARNING // 1000}k"
    else:
        action = "Performing well - let continue running"
    return _result(
        c,
        CampaignBucket.NO_ACTION,
        Urgency.LOW,
        f"{c.m.reply_rate:.2f}% reply rate, {c.m.uncontacted:,} leads remaining",
        action,
    )


CAMPAIGN_RULES: list[Rule[_Ctx, ClassificationResult]] = [
    Rule("pending", _insufficient_data, _pending),
    Rule("not_viable", _not_viable, _not_priority_viability),
    Rule("reply_rate_floor", _reply_rate_below_floor, _not_priority_reply_rate),
    Rule("need_new_list", _low_leads, _need_new_list),
    Rule("review_conversion", _conversion_below_target, _review),
    Rule("no_action", always, _no_action),
]


def classify_campaign(
    metrics: MetricsSnapshot,
    entity_id: str = "",
    name: str = "",
    benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS,
) -> ClassificationResult:
    """Classify a single campaign snapshot."""
    return first_match(CAMPAIGN_RULES, _Ctx(entity_id, name, metrics, benchmarks))


def classify_record(
    record: CampaignRecord, benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS
) -> ClassificationResult:
    """Classify a campaign as delivered by the provider; no analytics means PENDING."""
    if record.metrics is None:
        return ClassificationResult(
            entity_id=record.id,
            entity_name=record.name,
            bucket=CampaignBucket.PENDING,
            urgency=Urgency.LOW,
            severity=Severity.LOW,
            reason="No analytics data available",
            recommended_action="Wait for data collection",
            metrics=MetricsSnapshot(),
        )
    return classify_campaign(record.metrics, record.id, record.name, benchmarks)


def classify_campaigns(
    records: Iterable[CampaignRecord], benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS
) -> list[ClassificationResult]:
    """Classify a batch. A campaign that fails to classify becomes PENDING, never aborts the batch."""
    results = []
    for record in records:
        try:
            results.append(classify_record(record, benchmarks))
        except (ArithmeticError, TypeError, ValueError) as e:
            logger.warning(
                "Campaign could not be classified, marking pending",
                campaign_id=record.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            results.append(classify_record(CampaignRecord(id=record.id, name=record.name)))
    return results


def sort_key(result: ClassificationResult) -> tuple[int, int, int, str, str]:
    return (
        result.bucket.priority,
        result.urgency.rank,
        result.metrics.uncontacted,
        result.entity_name,
        result.entity_id,
    )


def sort_campaigns(results: Iterable[ClassificationResult]) -> list[ClassificationResult]:
    """Order by bucket priority, then urgency, then most lead-starved first."""
    return sorted(results, key=sort_key)


@dataclass(slots=True)
class CampaignSummary:
    total: int = 0
    by_bucket: dict[CampaignBucket, list[str]] = field(
        default_factory=lambda: {bucket: [] for bucket in CampaignBucket}
    )
    below_reply_rate: list[str] = field(default_factory=list)
    below_conversion: list[str] = field(default_factory=list)
    not_viable: list[str] = field(default_factory=list)
    need_leads: list[tuple[str, int]] = field(default_factory=list)
    urgent: list[ClassificationResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "by_classification": {bucket.value: names for bucket, names in self.by_bucket.items()},
            "below_benchmarks": {
                "reply_rate": self.below_reply_rate,
                "conversion": self.below_conversion,
                "viability": self.not_viable,
            },
            "need_leads": [{"name": n, "remaining": r} for n, r in self.need_leads],
            "urgent": [
                {"name": r.entity_name, "issue": r.reason, "action": r.recommended_action}
                for r in self.urgent
            ],
        }


def summarize_campaigns(
    results: Iterable[ClassificationResult], benchmarks: TerminalBenchmarks = TERMINAL_BENCHMARKS
) -> CampaignSummary:
    summary = CampaignSummary()
    for r in results:
        m = r.metrics
        summary.total += 1
        summary.by_bucket[r.bucket].append(r.entity_name)

        if r.bucket is CampaignBucket.PENDING:
            continue

        if m.reply_rate < benchmarks.MIN_REPLY_RATE:
            summary.below_reply_rate.append(r.entity_name)
        if 0 < m.positive_reply_to_meeting_rate < benchmarks.TARGET_CONVERSION:
            summary.below_conversion.append(r.entity_name)
        if m.contacted >= benchmarks.NOT_VIABLE_THRESHOLD and m.opportunities <= benchmarks.NOT_VIABLE_OPP_MAX:
            summary.not_viable.append(r.entity_name)
        if m.uncontacted < benchmarks.LOW_LEADS_WARNING:
            summary.need_leads.append((r.entity_name, m.uncontacted))
        if r.urgency is Urgency.URGENT:
            summary.urgent.append(r)
    return summary
