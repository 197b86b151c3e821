"""
Time-based report handlers - daily and weekly summaries, the copy-paste form
reports, and send volume.
"""

import asyncio

from campaign_terminal.engine.benchmarks import TerminalBenchmarks
from campaign_terminal.models.api.terminal_response import (
    ReportItem,
    ReportMetadata,
    ReportSection,
    SectionStatus,
    TerminalReport,
)
from campaign_terminal.models.domain.command_domain import CommandType
from campaign_terminal.models.domain.metrics_domain import (
    Account,
    CampaignRecord,
    DateRange,
    MetricsSnapshot,
)
from campaign_terminal.terminal.formatting import short_date
from campaign_terminal.terminal.handlers.registry import HandlerContext, register, text_report

DAYS_PER_MONTH = 30
MAX_LISTED = 10
TOP_CAMPAIGNS = 5
MIN_SENT_FOR_RANKING = 500


def with_metrics(records: list[CampaignRecord]) -> list[tuple[CampaignRecord, MetricsSnapshot]]:
    return [(r, r.metrics) for r in records if r.metrics is not None]


def total_snapshot(records: list[CampaignRecord]) -> MetricsSnapshot:
    return MetricsSnapshot.combine([r.metrics for r in records if r.metrics is not None])


def below_reply_benchmark(m: MetricsSnapshot, b: TerminalBenchmarks) -> bool:
    return m.sent >= b.MIN_SENT_FOR_BENCHMARK and m.reply_rate < b.MIN_REPLY_RATE


def daily_campaign_tasks(
    pairs: list[tuple[CampaignRecord, MetricsSnapshot]], b: TerminalBenchmarks
) -> list[tuple[str, str]]:
    """(campaign name, action) pairs for the daily form."""
    tasks = []
    for record, m in pairs:
        if m.uncontacted < b.LOW_LEADS_CRITICAL:
            tasks.append((record.name, "🔴 Order 30k+ leads TODAY"))
        elif m.uncontacted < b.LOW_LEADS_WARNING:
            tasks.append((record.name, "⚠️ Order 50k leads this week"))

        if m.reply_rate < b.MIN_REPLY_RATE and m.sent > b.MIN_SENT_FOR_BENCHMARK:
            tasks.append((record.name, f"⚠️ Review copy ({m.reply_rate:.2f}% reply rate)"))

        if m.positive_replies > 5 and m.meetings == 0:
            tasks.append((record.name, "🔴 Fix subsequences (0 meetings from positive replies)"))
        elif m.positive_reply_to_meeting_rate < b.TARGET_CONVERSION and m.positive_replies > 3:
            tasks.append(
                (
                    record.name,
                    f"⚠️ Optimize subsequences ({m.positive_reply_to_meeting_rate:.1f}% conversion)",
                )
            )
    return tasks


@register(CommandType.DAILY, ttl_class="daily")
async def daily(ctx: HandlerContext) -> TerminalReport:
    """Today's campaigns needing attention: lead runway and reply rate."""
    b = ctx.benchmarks
    records = await ctx.provider.list_campaigns(DateRange.for_period("today", ctx.today))

    items = []
    for record, m in with_metrics(records):
        if m.uncontacted < b.LOW_LEADS_WARNING:
            critical = m.uncontacted < b.LOW_LEADS_CRITICAL
            items.append(
                ReportItem(
                    name=record.name,
                    details=[
                        f"Issue: {m.uncontacted:,} leads remaining",
                        "Action: Order 30k+ leads TODAY" if critical else "Action: Order 50k leads this week",
                    ],
                    priority="URGENT" if critical else "HIGH",
                    metrics={"uncontacted": m.uncontacted, "total": m.total_leads},
                )
            )
        if m.reply_rate < b.MIN_REPLY_RATE and m.sent > b.MIN_SENT_FOR_BENCHMARK:
            items.append(
                ReportItem(
                    name=record.name,
                    details=[
                        f"Issue: {m.reply_rate:.2f}% reply rate (below {b.MIN_REPLY_RATE:g}% min)",
                        "Action: Review copy using diagnostic flowchart",
                    ],
                    priority="HIGH",
                    metrics={"reply_rate": round(m.reply_rate, 2), "sent": m.sent},
                )
            )

    total_sent = total_snapshot(records).sent
    return TerminalReport(
        command=ctx.command.value,
        title="Daily Tasks Summary",
        icon="📋",
        sections=[
            ReportSection(
                title="CAMPAIGNS NEEDING ATTENTION",
                count=len(items),
                items=items[:MAX_LISTED],
            )
        ],
        summary=[
            f"SEND VOLUME: {total_sent:,} total sent ✅",
            f"ACTIVE CAMPAIGNS: {len(records)} campaigns",
            "No issues found! ✅" if not items else f"{len(items)} campaigns need attention",
        ],
        metadata=ReportMetadata(campaign_count=len(records), issue_count=len(items)),
    )


@register(CommandType.DAILY_REPORT, CommandType.FORM_DAILY, ttl_class="daily")
async def daily_report(ctx: HandlerContext) -> TerminalReport:
    """Copy-paste answers for the daily form."""
    b = ctx.benchmarks
    today_records, week_records, accounts = await asyncio.gather(
        ctx.provider.list_campaigns(DateRange.for_period("today", ctx.today)),
        ctx.provider.list_campaigns(DateRange.for_period("week", ctx.today)),
        ctx.provider.get_accounts(),
    )
    today_pairs = with_metrics(today_records)

    lines = [
        "# 📋 DAILY REPORT",
        "",
        f"*Generated: {ctx.today:%A, %B} {ctx.today.day}, {ctx.today.year}*",
        "",
        "## 📝 TASKS TO BE DONE TODAY",
        "",
    ]
    tasks = daily_campaign_tasks(today_pairs, b)
    if tasks:
        lines += [f"• **{name}** → {action}" for name, action in tasks]
    else:
        lines.append("✅ No urgent tasks - all campaigns performing well!")

    week_sent = total_snapshot(week_records).sent
    avg_daily = round(week_sent / 7)
    lines += [
        "",
        "## 📊 SEND VOLUME (Past 7 Days)",
        "",
        f"• Total Sent: **{week_sent:,}**",
        f"• Daily Average: **{avg_daily:,}**",
        f"• Status: {'✅ Normal' if avg_daily > 1000 else '⚠️ Below expected'}",
        "",
        "## 🚨 CAMPAIGNS UNDER 3,000 LEADS",
        "",
    ]
    low_leads = [(r, m) for r, m in today_pairs if m.uncontacted < b.LOW_LEADS_WARNING]
    if low_leads:
        for record, m in low_leads:
            icon = "🔴" if m.uncontacted < b.LOW_LEADS_CRITICAL else "⚠️"
            lines.append(f"{icon} **{record.name}** - {m.uncontacted:,} leads remaining")
    else:
        lines.append("✅ All campaigns have sufficient leads")

    disconnected = [a for a in accounts if a.is_disconnected]
    with_errors = [a for a in accounts if a.has_error]
    lines += ["", "## 📧 INBOX STATUS", ""]
    if not disconnected and not with_errors:
        lines.append("✅ No disconnected inboxes or sending errors")
    else:
        if disconnected:
            lines.append(f"🔴 **Disconnected:** {len(disconnected)} inboxes")
        if with_errors:
            lines.append(f"⚠️ **Sending Errors:** {len(with_errors)} inboxes")

    below = [(r, m) for r, m in today_pairs if below_reply_benchmark(m, b)]
    lines += ["", "## 📉 CAMPAIGNS BELOW BENCHMARKS", ""]
    if below:
        lines += [
            f"⚠️ **{r.name}** - {m.reply_rate:.2f}% reply rate (target: {b.MIN_REPLY_RATE:g}%)"
            for r, m in below
        ]
    else:
        lines.append("✅ All campaigns hitting benchmarks")

    low_conversion = [
        (r, m)
        for r, m in today_pairs
        if m.positive_replies >= 3 and m.positive_reply_to_meeting_rate < b.TARGET_CONVERSION
    ]
    lines += ["", f"## 🎯 SUB {b.TARGET_CONVERSION:g}% POSITIVE REPLY TO MEETING", ""]
    if low_conversion:
        lines += [
            f"⚠️ **{r.name}** - {m.positive_replies} positive → {m.meetings} meetings "
            f"({m.positive_reply_to_meeting_rate:.1f}%)"
            for r, m in low_conversion
        ]
    else:
        lines.append(f"✅ All campaigns above {b.TARGET_CONVERSION:g}% conversion")

    lines += ["", "---", "", "*Copy this report to fill your daily form!*"]
    return text_report(
        ctx,
        title="Daily Report",
        icon="📋",
        section_title="DAILY REPORT",
        text="\n".join(lines),
        summary=[
            f"{len(tasks)} tasks to complete",
            f"{len(low_leads)} campaigns need leads",
            f"{len(disconnected) + len(with_errors)} inbox issues",
        ],
        campaign_count=len(today_records),
        issue_count=len(tasks),
    )


@register(CommandType.WEEKLY, ttl_class="weekly")
async def weekly(ctx: HandlerContext) -> TerminalReport:
    """Seven-day performance: totals, top performers and campaigns below benchmark."""
    b = ctx.benchmarks
    records = await ctx.provider.list_campaigns(DateRange.for_period("week", ctx.today))
    pairs = with_metrics(records)
    total = total_snapshot(records)

    reply_rate = total.reply_rate
    conversion = total.reply_to_opportunity_rate
    meeting_rate = total.positive_reply_to_meeting_rate
    bounce_rate = total.bounce_rate

    ranked = sorted(
        ((r, m) for r, m in pairs if m.sent > MIN_SENT_FOR_RANKING),
        key=lambda pair: pair[1].reply_rate,
        reverse=True,
    )
    needing_attention = [
        (r, m) for r, m in pairs if m.reply_rate < b.MIN_REPLY_RATE and m.sent > b.MIN_SENT_FOR_BENCHMARK
    ]

    sections = [
        ReportSection(
            title="WEEKLY OVERVIEW",
            type="summary",
            status=SectionStatus(
                label="7-Day Performance",
                value=f"{reply_rate:.2f}% reply rate",
                icon="✅" if reply_rate >= b.MIN_REPLY_RATE else "⚠️",
            ),
        ),
        ReportSection(
            title="KEY METRICS",
            items=[
                ReportItem(
                    name="Emails Sent",
                    details=[f"{total.sent:,}", "Total emails sent this week"],
                    priority="LOW",
                ),
                ReportItem(
                    name="Replies",
                    details=[f"{total.replies:,} ({reply_rate:.2f}% rate)"],
                    priority="LOW" if reply_rate >= b.MIN_REPLY_RATE else "MEDIUM",
                ),
                ReportItem(
                    name="Opportunities",
                    details=[f"{total.opportunities:,} ({conversion:.1f}% conversion)"],
                    priority="LOW" if conversion >= b.TARGET_CONVERSION else "MEDIUM",
                ),
                ReportItem(
                    name="Meetings Booked",
                    details=[f"{total.meetings} ({meeting_rate:.1f}% from positive replies)"],
                    priority="LOW" if meeting_rate >= b.TARGET_CONVERSION else "MEDIUM",
                ),
                ReportItem(
                    name="Bounce Rate",
                    details=[
                        f"{bounce_rate:.2f}%",
                        "Higher than target" if bounce_rate > b.MAX_BOUNCE_RATE else "Within healthy range",
                    ],
                    priority="HIGH" if bounce_rate > b.MAX_BOUNCE_RATE else "LOW",
                ),
            ],
        ),
    ]

    top = ranked[:TOP_CAMPAIGNS]
    if top:
        sections.append(
            ReportSection(
                title="TOP PERFORMING CAMPAIGNS",
                count=len(top),
                items=[
                    ReportItem(
                        name=r.name,
                        details=[
                            f"Reply Rate: {m.reply_rate:.2f}%",
                            f"Sent: {m.sent:,}",
                            f"Replies: {m.replies}",
                        ],
                        priority="LOW",
                    )
                    for r, m in top
                ],
            )
        )

    if needing_attention:
        sections.append(
            ReportSection(
                title="CAMPAIGNS NEEDING ATTENTION",
                count=len(needing_attention),
                items=[
                    ReportItem(
                        name=r.name,
                        details=[
                            f"Reply Rate: {m.reply_rate:.2f}% (below {b.MIN_REPLY_RATE:g}% target)",
                            f"Sent: {m.sent:,}",
                            "Action: Review copy and targeting",
                        ],
                        priority="HIGH",
                    )
                    for r, m in needing_attention[:TOP_CAMPAIGNS]
                ],
            )
        )

    return TerminalReport(
        command=ctx.command.value,
        title="Weekly Campaign Report (7 Days)",
        icon="📊",
        sections=sections,
        summary=[
            f"{len(records)} active campaigns analyzed",
            f"{total.sent:,} emails sent this week",
            f"{total.replies:,} replies ({reply_rate:.2f}%)",
            f"{total.opportunities} opportunities generated",
            (
                f"⚠️ {len(needing_attention)} campaigns below benchmarks"
                if needing_attention
                else "✅ All campaigns performing within benchmarks"
            ),
        ],
        metadata=ReportMetadata(campaign_count=len(records), issue_count=len(needing_attention)),
    )


def _weekly_inbox_lines(accounts: list[Account], b: TerminalBenchmarks) -> list[str]:
    disconnected = [a for a in accounts if a.is_disconnected]
    with_errors = [a for a in accounts if a.has_error]
    low_health = [a for a in accounts if a.effective_health < b.MIN_HEALTH_SCORE]
    healthy = len(accounts) - len(disconnected) - len(with_errors)
    return [
        "## ✅ INBOX HEALTH CHECK",
        "",
        f"• Total Inboxes: {len(accounts)}",
        f"• Healthy: {max(0, healthy)} ✅",
        f"• Disconnected: {len(disconnected)}{' 🔴' if disconnected else ''}",
        f"• Sending Errors: {len(with_errors)}{' ⚠️' if with_errors else ''}",
        f"• Low Health Score: {len(low_health)}",
        "",
    ]


@register(CommandType.WEEKLY_REPORT, CommandType.FORM_WEEKLY, ttl_class="weekly")
async def weekly_report(ctx: HandlerContext) -> TerminalReport:
    """Copy-paste answers for the Wednesday checklist."""
    b = ctx.benchmarks
    records, accounts = await asyncio.gather(
        ctx.provider.list_campaigns(DateRange.for_period("week", ctx.today)),
        ctx.provider.get_accounts(),
    )
    total = total_snapshot(records)
    reply_rate = total.reply_rate
    meeting_rate = total.positive_reply_to_meeting_rate

    lines = [
        "# 📊 WEEKLY REPORT (Wednesday Checklist)",
        "",
        f"*Week of {ctx.today:%B} {ctx.today.day}, {ctx.today.year}*",
        "",
        *_weekly_inbox_lines(accounts, b),
        "## ✅ REPLY RATES",
        "",
        f"• Overall Reply Rate: {reply_rate:.2f}% {'✅' if reply_rate >= b.MIN_REPLY_RATE else '⚠️'}",
        f"• Benchmark: {b.MIN_REPLY_RATE:g}%",
        f"• Total Replies: {total.replies:,}",
        "",
        "## ✅ MEETING BOOKING RATE",
        "",
        f"• Positive Replies: {total.positive_replies}",
        f"• Meetings Booked: {total.meetings}",
        f"• Conversion Rate: {meeting_rate:.1f}% {'✅' if meeting_rate >= b.TARGET_CONVERSION else '⚠️'}",
        f"• Benchmark: {b.TARGET_CONVERSION:g}%",
        "",
        "## ✅ BAD VARIANTS",
        "",
        "_Run `bad variants` for variant-level performance_",
        "",
        "## ✅ BENCHMARK CHECK",
        "",
    ]

    below = [(r, m) for r, m in with_metrics(records) if below_reply_benchmark(m, b)]
    if below:
        lines.append(f"⚠️ {len(below)} campaigns below {b.MIN_REPLY_RATE:g}% reply rate:")
        lines += [f"• {r.name}: {m.reply_rate:.2f}%" for r, m in below[:TOP_CAMPAIGNS]]
    else:
        lines.append("✅ All campaigns hitting benchmarks!")

    lines += ["", "---", "", "*Copy this report to fill your Wednesday form!*"]
    return text_report(
        ctx,
        title="Weekly Report",
        icon="📊",
        section_title="WEEKLY REPORT",
        text="\n".join(lines),
        campaign_count=len(records),
        issue_count=len(below),
    )


WEEKLY_CHECKS: tuple[CommandType, ...] = (
    CommandType.BENCHMARKS,
    CommandType.CONVERSION,
    CommandType.INBOX_HEALTH,
    CommandType.REPLY_TRENDS,
)


@register(CommandType.WEEKLY_SUMMARY, ttl_class=None, upstream=False)
async def weekly_summary(ctx: HandlerContext) -> TerminalReport:
    """Run the four weekly checks concurrently and list the resulting priority actions."""
    results = await asyncio.gather(*(ctx.sub_report(command) for command in WEEKLY_CHECKS))
    benchmarks, conversion, inbox_health, reply_trends = results

    def issues(report: TerminalReport) -> int:
        return report.metadata.issue_count or 0

    sections = [
        ReportSection(
            title="COMPLETED CHECKS",
            type="summary",
            items=[
                ReportItem(name="✅ Inbox Health", details=[f"{issues(inbox_health)} issues found"]),
                ReportItem(
                    name="✅ Reply Trends", details=[f"{issues(reply_trends)} declining campaigns"]
                ),
                ReportItem(name="✅ Benchmarks", details=[f"{issues(benchmarks)} below target"]),
                ReportItem(name="✅ Conversion", details=[f"{issues(conversion)} conversion issues"]),
            ],
        )
    ]

    actions = []
    if issues(conversion):
        actions.append("HIGH: Fix broken subsequences (0% conversion campaigns)")
    if issues(benchmarks):
        actions.append("MEDIUM: Review copy for low reply rate campaigns")
    if issues(inbox_health):
        actions.append("MEDIUM: Reconnect disconnected inboxes")
    if issues(reply_trends):
        actions.append("LOW: Investigate declining campaigns")

    if actions:
        sections.append(
            ReportSection(
                title="PRIORITY ACTIONS THIS WEEK",
                items=[ReportItem(name=action, priority=action.split(":")[0]) for action in actions],
            )
        )

    return TerminalReport(
        command=ctx.command.value,
        title="Weekly Task Summary",
        icon="📋",
        sections=sections,
        summary=["All weekly checks completed ✅", f"{len(actions)} priority actions identified"],
        metadata=ReportMetadata(
            issue_count=len(actions),
            extra={"checks": {c.value: issues(r) for c, r in zip(WEEKLY_CHECKS, results)}},
        ),
    )


@register(CommandType.SEND_VOLUME, ttl_class="analytics")
async def send_volume(ctx: HandlerContext) -> TerminalReport:
    records, accounts = await asyncio.gather(ctx.provider.list_campaigns(), ctx.provider.get_accounts())
    total_sent = total_snapshot(records).sent
    avg_daily = round(total_sent / DAYS_PER_MONTH)

    impaired = [a for a in accounts if a.is_disconnected or a.has_error]
    lost_capacity = sum(a.daily_limit or ctx.benchmarks.DEFAULT_DAILY_LIMIT for a in impaired)
    causes = []
    if impaired:
        causes.append(f"{len(impaired)} inboxes disconnected (would add ~{lost_capacity} sends/day)")

    sections = [
        ReportSection(
            title="SEND VOLUME STATUS",
            type="status",
            status=SectionStatus(
                label="Total Sent (Lifetime)",
                value=f"{total_sent:,}",
                icon="✅",
                change=f"{avg_daily:,}/day avg",
            ),
        )
    ]
    if causes:
        sections.append(
            ReportSection(
                title="POSSIBLE ISSUES",
                items=[ReportItem(name=cause, priority="MEDIUM") for cause in causes],
            )
        )

    return TerminalReport(
        command=ctx.command.value,
        title="Send Volume Analysis",
        icon="📊",
        sections=sections,
        summary=[
            "Status: Normal ✅",
            f"Active Campaigns: {len(records)}",
            f"Connected Inboxes: {sum(1 for a in accounts if a.is_connected)}",
        ],
        metadata=ReportMetadata(
            campaign_count=len(records),
            issue_count=len(impaired),
            extra={"lost_capacity": lost_capacity, "average_daily": avg_daily},
        ),
    )


def volume_trend(daily_sent: list[int]) -> str:
    """Compare the second half of the window against the first."""
    if len(daily_sent) < 2:
        return "Not enough daily data"
    mid = len(daily_sent) // 2
    first_avg = sum(daily_sent[:mid]) / mid
    second_avg = sum(daily_sent[mid:]) / (len(daily_sent) - mid)
    if first_avg == 0:
        return "✅ **Stable** (within normal range)" if second_avg == 0 else "✅ **Increasing** (from zero)"
    change = (second_avg - first_avg) / first_avg * 100
    if change < -10:
        return f"⚠️ **Declining** ({change:.1f}% from first half of week)"
    if change > 10:
        return f"✅ **Increasing** (+{change:.1f}% from first half of week)"
    return "✅ **Stable** (within normal range)"


def _row_int(row: dict, key: str) -> int:
    return int(row.get(key) or 0)


@register(CommandType.SEND_VOLUME_7D, ttl_class="daily_analytics")
async def send_volume_7d(ctx: HandlerContext) -> TerminalReport:
    records, daily_rows = await asyncio.gather(
        ctx.provider.list_campaigns(DateRange.for_period("week", ctx.today)),
        ctx.provider.list_resources("daily_analytics"),
    )
    week_sent = total_snapshot(records).sent
    rows = sorted(daily_rows, key=lambda row: str(row.get("date", "")))[-7:]

    lines = [
        "## 📊 7-Day Send Volume Analysis",
        "",
        f"**Total Sent:** {week_sent:,}",
        f"**Daily Average:** {round(week_sent / 7):,}",
        f"**Trend:** {volume_trend([_row_int(row, 'sent') for row in rows])}",
        "",
    ]
    if rows:
        lines += ["### Daily Breakdown", ""]
        for row in rows:
            sent = _row_int(row, "sent")
            bar = "█" * min(20, round(sent / 500))
            lines.append(f"{short_date(row.get('date'), weekday=True)}: {sent:,} {bar}".rstrip())

    return text_report(
        ctx,
        title="7-Day Send Volume",
        icon="📊",
        section_title="SEND VOLUME TREND",
        text="\n".join(lines),
        summary=[f"{week_sent:,} total sent", f"{round(week_sent / 7):,}/day average"],
        campaign_count=len(records),
    )
