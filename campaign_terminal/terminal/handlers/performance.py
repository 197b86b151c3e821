"""
Performance handlers - reply-rate benchmarks, conversion, variants and trends.
"""

import asyncio
from dataclasses import dataclass

from campaign_terminal.engine.benchmarks import DIAGNOSTIC_STEPS
from campaign_terminal.models.api.terminal_response import (
    ReportItem,
    ReportMetadata,
    ReportSection,
    TerminalReport,
)
from campaign_terminal.models.domain.command_domain import CommandType
from campaign_terminal.models.domain.metrics_domain import DateRange
from campaign_terminal.terminal.formatting import short_date
from campaign_terminal.terminal.handlers.registry import HandlerContext, register, text_report
from campaign_terminal.terminal.handlers.reports import below_reply_benchmark, with_metrics

MAX_LISTED = 10
MAX_VARIANTS = 15
MIN_VARIANT_SENT = 100


@register(CommandType.BENCHMARKS, CommandType.UNDERPERFORMING, ttl_class="analytics")
async def benchmarks(ctx: HandlerContext) -> TerminalReport:
    """Campaigns below the reply-rate floor over the last 7 days, worst gap first."""
    b = ctx.benchmarks
    records = await ctx.provider.list_campaigns(DateRange.for_period("week", ctx.today))

    below = sorted(
        ((r, m) for r, m in with_metrics(records) if below_reply_benchmark(m, b)),
        key=lambda pair: pair[1].reply_rate,
    )
    items = []
    for record, m in below[:MAX_LISTED]:
        gap = b.MIN_REPLY_RATE - m.reply_rate
        is_critical = m.reply_rate < b.CRITICAL_REPLY_RATE
        items.append(
            ReportItem(
                name=record.name,
                details=[
                    f"Actual: {m.reply_rate:.2f}%",
                    f"Benchmark: {b.MIN_REPLY_RATE:g}%",
                    f"Gap: -{gap:.2f}% ({gap / b.MIN_REPLY_RATE * 100:.0f}% below)",
                    "Action: Review copy using diagnostic flowchart",
                ],
                priority="CRITICAL" if is_critical else "WARNING",
                metrics={"sent": m.sent, "replies": m.replies},
            )
        )
    critical = sum(1 for _, m in below if m.reply_rate < b.CRITICAL_REPLY_RATE)

    if below:
        section = ReportSection(
            title=f"BELOW REPLY RATE BENCHMARK ({b.MIN_REPLY_RATE:g}%)", count=len(below), items=items
        )
    else:
        section = ReportSection(
            title="ALL CAMPAIGNS HITTING BENCHMARKS",
            type="summary",
            items=[
                ReportItem(
                    name="Great work! ✅",
                    details=[
                        f"All active campaigns are at or above the {b.MIN_REPLY_RATE:g}% reply rate benchmark."
                    ],
                )
            ],
        )

    return TerminalReport(
        command=ctx.command.value,
        title="Campaign Benchmark Analysis",
        icon="📈",
        sections=[section],
        summary=[
            f"{len(below)} campaigns below {b.MIN_REPLY_RATE:g}% reply rate",
            f"{critical} critical",
            f"{len(below) - critical} warning",
        ],
        metadata=ReportMetadata(campaign_count=len(records), issue_count=len(below)),
    )


@register(CommandType.CONVERSION, CommandType.LOW_CONVERSION, ttl_class="analytics")
async def conversion(ctx: HandlerContext) -> TerminalReport:
    """Positive reply to meeting rate over the last 7 days."""
    b = ctx.benchmarks
    records = await ctx.provider.list_campaigns(DateRange.for_period("week", ctx.today))

    zero, low = [], []
    for record, m in with_metrics(records):
        if m.positive_replies == 0:
            continue
        if m.meetings == 0:
            zero.append((record, m))
        elif m.positive_reply_to_meeting_rate < b.TARGET_CONVERSION:
            low.append((record, m))

    sections = []
    if zero:
        sections.append(
            ReportSection(
                title="ZERO CONVERSIONS (Broken Subsequences)",
                count=len(zero),
                items=[
                    ReportItem(
                        name=r.name,
                        details=[
                            f"Positive Replies: {m.positive_replies}",
                            "Meetings: 0",
                            "Conversion: 0%",
                            "Issue: SUBSEQUENCES BROKEN",
                            "Action: Review price/info/meeting request templates",
                        ],
                        priority="CRITICAL",
                    )
                    for r, m in zero[:MAX_LISTED]
                ],
            )
        )
    if low:
        sections.append(
            ReportSection(
                title=f"LOW CONVERSION (<{b.TARGET_CONVERSION:g}%)",
                count=len(low),
                items=[
                    ReportItem(
                        name=r.name,
                        details=[
                            f"Positive Replies: {m.positive_replies}",
                            f"Meetings: {m.meetings}",
                            f"Conversion: {m.positive_reply_to_meeting_rate:.2f}%",
                            "Action: Optimize meeting request subsequence",
                        ],
                        priority="WARNING",
                    )
                    for r, m in low[:MAX_LISTED]
                ],
            )
        )
    if not sections:
        sections.append(
            ReportSection(
                title="ALL CAMPAIGNS CONVERTING WELL",
                type="summary",
                items=[
                    ReportItem(
                        name="Great work! ✅",
                        details=[
                            f"All campaigns with positive replies are above {b.TARGET_CONVERSION:g}% conversion."
                        ],
                    )
                ],
            )
        )

    not_converting = sum(m.positive_replies for _, m in zero + low)
    return TerminalReport(
        command=ctx.command.value,
        title="Positive Reply to Meeting Rate Analysis",
        icon="📊",
        sections=sections,
        summary=[
            f"{len(zero)} campaigns with 0% conversion (CRITICAL)",
            f"{len(low)} campaigns with <{b.TARGET_CONVERSION:g}% conversion",
            f"Total opportunity: {not_converting}+ positive replies not converting",
        ],
        metadata=ReportMetadata(campaign_count=len(records), issue_count=len(zero) + len(low)),
    )


def _variant_reply_rate(step: dict) -> float:
    if step.get("reply_rate") is not None:
        return float(step["reply_rate"])
    sent = int(step.get("sent") or 0)
    replied = int(step.get("replied") or step.get("replies") or 0)
    return replied / sent * 100 if sent > 0 else 0.0


@register(CommandType.BAD_VARIANTS, ttl_class="analytics")
async def bad_variants(ctx: HandlerContext) -> TerminalReport:
    b = ctx.benchmarks
    steps = await ctx.provider.list_resources("step_analytics")
    bad = sorted(
        (
            s
            for s in steps
            if int(s.get("sent") or 0) > MIN_VARIANT_SENT and _variant_reply_rate(s) < b.MIN_REPLY_RATE
        ),
        key=_variant_reply_rate,
    )

    lines = ["## 📧 Underperforming Variants", ""]
    if bad:
        lines += [f"Found **{len(bad)}** variants below {b.MIN_REPLY_RATE:g}% reply rate:", ""]
        for step in bad[:MAX_VARIANTS]:
            replied = int(step.get("replied") or step.get("replies") or 0)
            lines += [
                f"• **{step.get('variant', '?')}** (Step {step.get('step_number', step.get('step', '?'))})",
                f"  Sent: {int(step.get('sent') or 0)} | Replies: {replied} | "
                f"Rate: {_variant_reply_rate(step):.2f}%",
            ]
    else:
        lines.append("✅ All variants performing above benchmark!")

    return text_report(
        ctx,
        title="Bad Variants",
        icon="📧",
        section_title="VARIANTS",
        text="\n".join(lines),
        summary=[f"{len(bad)} underperforming variants"],
        issue_count=len(bad),
    )


@dataclass(slots=True, frozen=True)
class CampaignTrend:
    name: str
    previous_rate: float
    current_rate: float

    @property
    def change(self) -> float:
        return self.current_rate - self.previous_rate

    @property
    def percent_change(self) -> float:
        if self.previous_rate <= 0:
            return 0.0
        return self.change / self.previous_rate * 100


@register(CommandType.REPLY_TRENDS, ttl_class="analytics")
async def reply_trends(ctx: HandlerContext) -> TerminalReport:
    """Week-over-week reply rate: the last 7 days against the 7 days before."""
    b = ctx.benchmarks
    current, previous = await asyncio.gather(
        ctx.provider.list_campaigns(DateRange.for_period("week", ctx.today)),
        ctx.provider.list_campaigns(DateRange.previous_week(ctx.today)),
    )
    previous_by_id = {r.id: m for r, m in with_metrics(previous)}

    trends = []
    for record, m in with_metrics(current):
        prior = previous_by_id.get(record.id)
        if m.sent < b.MIN_SENT_FOR_TRENDS or prior is None or prior.sent == 0:
            continue
        trend = CampaignTrend(record.name, prior.reply_rate, m.reply_rate)
        if abs(trend.percent_change) > b.TREND_SIGNIFICANT:
            trends.append(trend)

    declining = [t for t in trends if t.change < 0]
    improving = [t for t in trends if t.change > 0]

    sections = []
    if declining:
        sections.append(
            ReportSection(
                title="DECLINING CAMPAIGNS",
                count=len(declining),
                items=[
                    ReportItem(
                        name=t.name,
                        details=[
                            f"Last week: {t.previous_rate:.2f}% → This week: {t.current_rate:.2f}%",
                            f"Change: {t.change:.2f}% ({t.percent_change:.1f}%)",
                            "DIAGNOSIS:",
                            *DIAGNOSTIC_STEPS,
                        ],
                        priority="HIGH",
                    )
                    for t in declining
                ],
            )
        )
    if improving:
        sections.append(
            ReportSection(
                title="IMPROVING CAMPAIGNS",
                count=len(improving),
                items=[
                    ReportItem(
                        name=t.name,
                        details=[
                            f"Last week: {t.previous_rate:.2f}% → This week: {t.current_rate:.2f}%",
                            f"Change: +{t.change:.2f}% (+{t.percent_change:.1f}%)",
                            "Action: Document what's working, replicate",
                        ],
                        priority="LOW",
                    )
                    for t in improving
                ],
            )
        )
    if not sections:
        sections.append(
            ReportSection(
                title="ALL CAMPAIGNS STABLE",
                type="summary",
                items=[
                    ReportItem(
                        name="No significant trend changes ✅",
                        details=[
                            f"All campaigns maintaining steady reply rates (±{b.TREND_SIGNIFICANT:g}%)."
                        ],
                    )
                ],
            )
        )

    return TerminalReport(
        command=ctx.command.value,
        title="Reply Rate Trend Analysis (Week over Week)",
        icon="📉",
        sections=sections,
        summary=[
            f"{len(declining)} declining (need attention)",
            f"{len(improving)} improving (study these!)",
            f"{len(current) - len(trends)} stable",
        ],
        metadata=ReportMetadata(campaign_count=len(current), issue_count=len(declining)),
    )


@register(CommandType.DAILY_TRENDS, ttl_class="daily_analytics")
async def daily_trends(ctx: HandlerContext) -> TerminalReport:
    rows = await ctx.provider.list_resources("daily_analytics")
    rows = sorted(rows, key=lambda row: str(row.get("date", "")))[-7:]

    lines = ["## 📈 Daily Trends (7 Days)", ""]
    if rows:
        lines += ["| Date | Sent | Replies | Rate |", "|------|------|---------|------|"]
        for row in rows:
            sent = int(row.get("sent") or 0)
            replies = int(row.get("replies") or 0)
            rate = replies / sent * 100 if sent > 0 else 0.0
            lines.append(f"| {short_date(row.get('date'))} | {sent:,} | {replies} | {rate:.2f}% |")
    else:
        lines.append("_No daily data available_")

    return text_report(
        ctx,
        title="Daily Trends",
        icon="📈",
        section_title="TRENDS",
        text="\n".join(lines),
    )
